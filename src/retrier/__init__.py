"""Bounded retry with exponential backoff."""

from .errors import ExitCode, RetrierError
from .notify import LoggingSink, NotificationSink, StreamSink
from .retry import (
    DEFAULT_BACKOFF_BASE,
    DEFAULT_RETRIES,
    Retrier,
    RetryPolicy,
    RetrySession,
    SessionState,
    backoff_duration,
    run_with_retry,
)

__all__ = [
    "DEFAULT_BACKOFF_BASE",
    "DEFAULT_RETRIES",
    "ExitCode",
    "LoggingSink",
    "NotificationSink",
    "Retrier",
    "RetrierError",
    "RetryPolicy",
    "RetrySession",
    "SessionState",
    "StreamSink",
    "backoff_duration",
    "run_with_retry",
]
