"""Pytest configuration for test isolation.

Every test gets a clean ``MIDAS_*`` environment, so values from a developer's
shell or ``.env`` never leak into assertions, and cached database engines are
disposed afterwards so each test's SQLite file is released.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

import midas_finance.categorize as categorize_mod
from midas_db.client import dispose_engines
from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("MIDAS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")


@pytest.fixture(autouse=True)
def _no_backoff_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(categorize_mod, "_sleep_backoff", lambda attempt_no: None)


@pytest.fixture
def db_url(tmp_path: Path) -> Iterator[str]:
    url = bootstrap_sqlite_db(tmp_path / "midas.db")
    yield url
    dispose_engines()
