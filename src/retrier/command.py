"""Shell command execution with classified failures."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable, Iterable
from dataclasses import dataclass

logger = py_logging.getLogger(__name__)

TIMEOUT_RETURNCODE = 124


class CommandError(Exception):
    def __init__(
        self,
        command: str,
        returncode: int,
        output: str = "",
        *,
        message: str | None = None,
    ) -> None:
        super().__init__(message or f"command exited with status {returncode}: {command}")
        self.command = command
        self.returncode = returncode
        self.output = output


class CommandFailedError(CommandError):
    """Non-zero exit; worth another try."""


class CommandAbortedError(CommandError):
    """Exit status the caller declared fatal."""


class CommandTimeoutError(CommandError):
    def __init__(self, command: str, timeout_seconds: float, output: str = "") -> None:
        super().__init__(
            command,
            TIMEOUT_RETURNCODE,
            output,
            message=f"command timed out after {timeout_seconds:g}s: {command}",
        )
        self.timeout_seconds = timeout_seconds


@dataclass(frozen=True)
class CommandResult:
    command: str
    returncode: int
    output: str


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class CommandRunner:
    def __init__(
        self,
        timeout_seconds: float | None = None,
        *,
        fatal_exit_codes: Iterable[int] = (),
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.fatal_exit_codes = frozenset(fatal_exit_codes)

    def run(
        self,
        command: str,
        *,
        runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
    ) -> CommandResult:
        argv = ["bash", "-lc", command]
        logger.debug("Executing command=%s timeout=%s", command, self.timeout_seconds)
        try:
            completed = runner(
                argv,
                shell=False,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            output = f"{_decode(exc.stdout)}{_decode(exc.stderr)}".strip()
            logger.error("Command timed out command=%s", command)
            raise CommandTimeoutError(command, self.timeout_seconds or exc.timeout, output) from exc

        output = f"{completed.stdout or ''}{completed.stderr or ''}".strip()
        if completed.returncode == 0:
            return CommandResult(command=command, returncode=0, output=output)

        logger.warning("Command failed returncode=%s command=%s", completed.returncode, command)
        if completed.returncode in self.fatal_exit_codes:
            raise CommandAbortedError(command, completed.returncode, output)
        raise CommandFailedError(command, completed.returncode, output)
