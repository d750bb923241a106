"""Retry settings loading/saving."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from retrier.retry import DEFAULT_BACKOFF_BASE, DEFAULT_RETRIES, RetryPolicy

DEFAULT_CONFIG_PATH = Path("~/.config/retrier/config.toml").expanduser()
RETRY_ENV = "RETRIER_RETRY"
BACKOFF_ENV = "RETRIER_BACKOFF"


class RetrySettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    retry: int = Field(default=DEFAULT_RETRIES, ge=0)
    backoff: int = DEFAULT_BACKOFF_BASE


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _sanitize(raw: dict[str, object]) -> RetrySettings:
    settings = RetrySettings()

    retry = _as_int(raw.get("retry", settings.retry))
    if retry is not None and retry >= 0:
        settings.retry = retry

    backoff = _as_int(raw.get("backoff", settings.backoff))
    if backoff is not None:
        settings.backoff = backoff

    return settings


def _apply_env(settings: RetrySettings) -> RetrySettings:
    env_retry = _as_int(os.getenv(RETRY_ENV, ""))
    if env_retry is not None and env_retry >= 0:
        settings.retry = env_retry
    env_backoff = _as_int(os.getenv(BACKOFF_ENV, ""))
    if env_backoff is not None:
        settings.backoff = env_backoff
    return settings


def load_settings(path: str | Path | None = None) -> RetrySettings:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _apply_env(RetrySettings())
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _apply_env(RetrySettings())
    return _apply_env(_sanitize(raw))


def save_settings(settings: RetrySettings, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    lines = [
        f"retry = {settings.retry}",
        f"backoff = {settings.backoff}",
    ]
    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return resolved


def policy_from_settings(
    label: str | None = None,
    *,
    non_retryable: Iterable[type[BaseException]] = (),
    settings: RetrySettings | None = None,
    retries: int | None = None,
    backoff: int | None = None,
) -> RetryPolicy:
    """Build a policy, filling unset limits from ``settings`` (loaded when omitted)."""
    if retries is None or backoff is None:
        resolved = settings or load_settings()
        if retries is None:
            retries = resolved.retry
        if backoff is None:
            backoff = resolved.backoff
    return RetryPolicy(
        label=label,
        max_retries=retries,
        backoff_base=backoff,
        non_retryable=tuple(non_retryable),
    )
