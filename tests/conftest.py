from __future__ import annotations

from pathlib import Path

import pytest

from retrier.config import BACKOFF_ENV, RETRY_ENV


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))

        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def _isolate_retry_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(RETRY_ENV, raising=False)
    monkeypatch.delenv(BACKOFF_ENV, raising=False)
