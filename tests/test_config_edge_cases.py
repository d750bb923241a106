"""Config module edge case tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from retrier.config import RETRY_ENV, RetrySettings, get_config_path, load_settings


def test_config_ignores_negative_retry(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("retry = -1\nbackoff = 2\n", encoding="utf-8")
    loaded = load_settings(path)
    assert loaded.retry == 3
    assert loaded.backoff == 2


def test_config_ignores_non_integer_values(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('retry = "many"\nbackoff = true\n', encoding="utf-8")
    loaded = load_settings(path)
    assert loaded.retry == 3
    assert loaded.backoff == 0


def test_config_accepts_quoted_integers(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('retry = "4"\n', encoding="utf-8")
    assert load_settings(path).retry == 4


def test_config_invalid_toml_returns_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("retry = = 4\n", encoding="utf-8")
    loaded = load_settings(path)
    assert loaded.retry == 3
    assert loaded.backoff == 0


def test_config_ignores_invalid_environment_override(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv(RETRY_ENV, "-3")
    assert load_settings(tmp_path / "missing.toml").retry == 3

    monkeypatch.setenv(RETRY_ENV, "lots")
    assert load_settings(tmp_path / "missing.toml").retry == 3


def test_settings_model_rejects_negative_retry_assignment() -> None:
    settings = RetrySettings()
    with pytest.raises(ValidationError):
        settings.retry = -1


def test_get_config_path_expands_user() -> None:
    assert get_config_path("~/retrier.toml").is_absolute()
    assert get_config_path(None).name == "config.toml"
