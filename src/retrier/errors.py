"""Errors raised by retrier itself and the exit codes the CLI maps them to.

Failures raised by retried operations never pass through here; they are
re-raised unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    COMMAND_FAILED = 5
    COMMAND_TIMEOUT = 6


@dataclass
class RetrierError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    @classmethod
    def bad_policy(cls, message: str, hint: str) -> RetrierError:
        return cls(message, code=ExitCode.CONFIG_ERROR, hint=hint)

    @classmethod
    def bad_invocation(cls, message: str, hint: str) -> RetrierError:
        return cls(message, code=ExitCode.INVALID_ARGS, hint=hint)

    def __str__(self) -> str:
        return f"{self.message} Hint: {self.hint}" if self.hint else self.message


def user_facing_error(message: str, *, hint: str = "") -> str:
    text = f"Error: {message.rstrip('.')}"
    return f"{text}. Next step: {hint}" if hint else f"{text}."
