"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import shlex
import subprocess
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from .command import (
    CommandAbortedError,
    CommandError,
    CommandResult,
    CommandRunner,
    CommandTimeoutError,
)
from .config import load_settings, policy_from_settings
from .errors import ExitCode, RetrierError, user_facing_error
from .logging import configure_logging, default_log_path
from .notify import StreamSink
from .retry import Retrier

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


def _retries_type(value: str) -> int:
    try:
        retries = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--retries must be an integer") from exc
    if retries < 0:
        raise argparse.ArgumentTypeError("--retries cannot be negative")
    return retries


def _backoff_type(value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--backoff must be an integer") from exc


def _timeout_type(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--timeout must be a number") from exc
    if seconds <= 0:
        raise argparse.ArgumentTypeError("--timeout must be positive")
    return seconds


def _exit_code_type(value: str) -> int:
    try:
        code = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--fatal-exit-code must be an integer") from exc
    if code < 1 or code > 255:
        raise argparse.ArgumentTypeError("--fatal-exit-code must be between 1 and 255")
    return code


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="retrier",
        description="Run a shell command, retrying failures with exponential backoff.",
    )
    parser.add_argument("--retries", type=_retries_type, default=None)
    parser.add_argument("--backoff", type=_backoff_type, default=None)
    naming = parser.add_mutually_exclusive_group()
    naming.add_argument("--label", default=None)
    naming.add_argument(
        "--no-label",
        action="store_true",
        help="Run the command exactly once",
    )
    parser.add_argument("--timeout", type=_timeout_type, default=None)
    parser.add_argument(
        "--fatal-exit-code",
        dest="fatal_exit_codes",
        type=_exit_code_type,
        action="append",
        default=[],
        help="Exit status that stops retrying immediately (repeatable)",
    )
    parser.add_argument("--no-retry-on-timeout", action="store_true")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("command", nargs=argparse.REMAINDER)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def resolve_command(namespace: argparse.Namespace) -> str:
    parts = list(namespace.command)
    if parts and parts[0] == "--":
        parts = parts[1:]
    if not parts:
        raise RetrierError.bad_invocation(
            "No command given.",
            "Pass the command after '--', e.g. retrier -- make test.",
        )
    if len(parts) == 1:
        return parts[0]
    return shlex.join(parts)


def run_cli_flow(
    namespace: argparse.Namespace,
    *,
    runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    command = resolve_command(namespace)
    settings = load_settings(namespace.config)

    non_retryable: list[type[BaseException]] = [CommandAbortedError]
    if namespace.no_retry_on_timeout:
        non_retryable.append(CommandTimeoutError)
    label = None if namespace.no_label else (namespace.label or command)
    policy = policy_from_settings(
        label,
        non_retryable=non_retryable,
        settings=settings,
        retries=namespace.retries,
        backoff=namespace.backoff,
    )

    command_runner = CommandRunner(
        namespace.timeout,
        fatal_exit_codes=namespace.fatal_exit_codes,
    )
    retrier = Retrier(
        policy,
        sink=StreamSink(),
        sleep=sleep,
        verbose=namespace.log_level == "DEBUG",
    )

    def operation() -> CommandResult:
        return command_runner.run(command, runner=runner)

    result = retrier.attempt(operation)
    if result.output:
        print(result.output)
    return int(ExitCode.SUCCESS)


def _report_command_error(exc: CommandError) -> None:
    if exc.output:
        print(exc.output, file=sys.stderr)
    print(user_facing_error(str(exc)), file=sys.stderr)


def main(
    argv: Sequence[str] | None = None,
    *,
    runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    try:
        logger.debug("Starting CLI flow")
        return run_cli_flow(namespace, runner=runner, sleep=sleep)
    except CommandTimeoutError as exc:
        logger.error("Command timed out after final attempt: %s", exc.command)
        _report_command_error(exc)
        return int(ExitCode.COMMAND_TIMEOUT)
    except CommandError as exc:
        logger.error(
            "Command failed after final attempt (returncode=%s): %s",
            exc.returncode,
            exc.command,
        )
        _report_command_error(exc)
        return int(ExitCode.COMMAND_FAILED)
    except RetrierError as exc:
        logger.error(
            "Handled RetrierError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        hint = f"Inspect logs: {log_path}"
        print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
