"""Advisory sinks for retry notifications."""

from __future__ import annotations

import logging as py_logging
import sys
from typing import Protocol, TextIO

logger = py_logging.getLogger("retrier.retry")


class NotificationSink(Protocol):
    def advise(self, message: str, *, verbose: bool = False) -> None: ...


class LoggingSink:
    """Send advisories to a logger at WARNING level.

    Log records are already line oriented, so the ``verbose`` hint has
    nothing to suppress here.
    """

    def __init__(self, target: py_logging.Logger | None = None) -> None:
        self.logger = target or logger

    def advise(self, message: str, *, verbose: bool = False) -> None:
        del verbose
        self.logger.warning(message)


class StreamSink:
    """Write advisories to a text stream, separated from preceding output."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # sys.stderr may be replaced after construction.
        return self._stream or sys.stderr

    def advise(self, message: str, *, verbose: bool = False) -> None:
        # Progress dots may precede the advisory on the same line.
        if not verbose:
            self.stream.write("\n")
        self.stream.write(f"{message}\n")
        self.stream.flush()
