"""Bounded retry with exponential backoff."""

from __future__ import annotations

import logging as py_logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

from retrier.errors import RetrierError
from retrier.notify import LoggingSink, NotificationSink

T = TypeVar("T")

DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_BASE = 0

logger = py_logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration shared by any number of ``attempt`` calls.

    An unlabeled policy runs its operation exactly once: retries are only
    performed for operations that can be named in the advisory.
    """

    label: str | None = None
    max_retries: int = DEFAULT_RETRIES
    backoff_base: int = DEFAULT_BACKOFF_BASE
    non_retryable: tuple[type[BaseException], ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise RetrierError.bad_policy("Invalid retry count.", "max_retries must be an integer.")
        if self.max_retries < 0:
            raise RetrierError.bad_policy("Invalid retry count.", "max_retries cannot be negative.")
        if isinstance(self.backoff_base, bool) or not isinstance(self.backoff_base, int):
            raise RetrierError.bad_policy("Invalid backoff base.", "backoff_base must be an integer.")

        kinds = self.non_retryable
        if isinstance(kinds, type):
            kinds = (kinds,)
        normalized = tuple(kinds) if isinstance(kinds, Iterable) else None
        if normalized is None or not all(
            isinstance(kind, type) and issubclass(kind, BaseException) for kind in normalized
        ):
            raise RetrierError.bad_policy(
                "Invalid non-retryable kinds.",
                "non_retryable must contain exception classes only.",
            )
        object.__setattr__(self, "non_retryable", normalized)

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def is_non_retryable(self, error: BaseException) -> bool:
        return isinstance(error, self.non_retryable)


class SessionState(Enum):
    START = "start"
    CONTINUING = "continuing"
    DONE = "done"


@dataclass
class RetrySession(Generic[T]):
    """Progress of a single ``attempt`` call. Never shared between calls."""

    total_attempts: int
    current_attempt: int = 0
    last_failed: bool = False
    last_error: Exception | None = None
    result: T | None = None
    state: SessionState = SessionState.START

    def should_continue(self) -> bool:
        return self.state is not SessionState.DONE

    @property
    def is_last_attempt(self) -> bool:
        return self.current_attempt >= self.total_attempts

    def begin(self) -> int:
        if self.current_attempt >= self.total_attempts:
            raise RuntimeError("Retry session exhausted its attempts.")
        self.current_attempt += 1
        return self.current_attempt

    def record_success(self, value: T) -> None:
        self.result = value
        self.last_failed = False
        self.state = SessionState.DONE

    def record_failure(self, error: Exception) -> None:
        self.last_failed = True
        self.last_error = error
        self.state = SessionState.CONTINUING

    def finish(self) -> None:
        self.state = SessionState.DONE


@dataclass(frozen=True)
class _Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class _Failure:
    error: Exception


_Outcome = Union[_Success[T], _Failure]


def _invoke(operation: Callable[[], T]) -> _Outcome[T]:
    try:
        return _Success(operation())
    except Exception as exc:
        return _Failure(exc)


def backoff_duration(backoff_base: int, attempt: int) -> float:
    """Seconds to wait after ``attempt`` failed: ``2 ** (backoff_base + attempt - 1)``.

    A negative exponent gives the exact fractional power of two (0.5, 0.25,
    ...), which is slept as-is rather than clamped.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return 2 ** (backoff_base + attempt - 1)


def format_advisory(
    label: str,
    delay: float,
    next_attempt: int,
    total_attempts: int,
    error: BaseException,
) -> str:
    # Whole-second delays are ints of arbitrary size; only fractions are floats.
    seconds = str(delay) if isinstance(delay, int) else f"{delay:g}"
    return (
        f"Retrying {label} in {seconds} seconds due to error "
        f"({next_attempt}/{total_attempts}): {type(error).__name__} {error}"
    )


class Retrier:
    """Run zero-argument operations under a :class:`RetryPolicy`.

    Holds no per-call state, so one instance may serve concurrent callers.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        sink: NotificationSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool | None = None,
    ) -> None:
        self.policy = policy
        self.sink = sink or LoggingSink()
        self._sleep = sleep
        self._verbose = verbose

    @property
    def verbose(self) -> bool:
        if self._verbose is not None:
            return self._verbose
        return py_logging.getLogger("retrier").isEnabledFor(py_logging.DEBUG)

    def _is_terminal(self, session: RetrySession[T], error: Exception) -> bool:
        if session.is_last_attempt or self.policy.is_non_retryable(error):
            return True
        return not self.policy.label

    def attempt(self, operation: Callable[[], T]) -> T:
        """Return the first successful result of ``operation``.

        The failure of the last invocation is re-raised unchanged once
        attempts run out, or straight away when it is non-retryable or the
        policy has no label.
        """
        policy = self.policy
        session: RetrySession[T] = RetrySession(total_attempts=policy.total_attempts)

        while session.should_continue():
            current = session.begin()
            logger.debug(
                "Running %s attempt %s/%s", policy.label or "operation", current, session.total_attempts
            )
            outcome = _invoke(operation)
            if isinstance(outcome, _Success):
                session.record_success(outcome.value)
                continue

            error = outcome.error
            session.record_failure(error)
            if self._is_terminal(session, error):
                session.finish()
                logger.debug(
                    "Giving up on %s after attempt %s/%s: %s",
                    policy.label or "operation",
                    current,
                    session.total_attempts,
                    type(error).__name__,
                )
                raise error

            delay = backoff_duration(policy.backoff_base, current)
            self.sink.advise(
                format_advisory(policy.label or "", delay, current + 1, session.total_attempts, error),
                verbose=self.verbose,
            )
            self._sleep(delay)

        return session.result  # type: ignore[return-value]


def run_with_retry(
    operation: Callable[[], T],
    *,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    sink: NotificationSink | None = None,
) -> T:
    return Retrier(policy, sink=sink, sleep=sleep).attempt(operation)
