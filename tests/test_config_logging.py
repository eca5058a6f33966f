from __future__ import annotations

import io
import logging
from collections.abc import Iterator

import pytest

from midas_finance.config import DEFAULT_OPENAI_MODEL, Settings
from midas_finance.errors import ConfigurationError
from midas_finance.logging_setup import (
    configure_logging,
    get_logger,
    reset_logging,
    resolve_level,
)


def test_settings_defaults() -> None:
    s = Settings.from_env()

    assert s.openai_api_key == "test-key"
    assert s.database_url is None
    assert s.openai_model == DEFAULT_OPENAI_MODEL
    assert (s.categorize_page_size, s.categorize_concurrency) == (25, 4)


def test_settings_read_tunables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///x.db")
    monkeypatch.setenv("MIDAS_OPENAI_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("MIDAS_CATEGORIZE_PAGE_SIZE", "10")
    monkeypatch.setenv("MIDAS_CATEGORIZE_CONCURRENCY", "2")

    s = Settings.from_env()

    assert s.require_database() == "sqlite+pysqlite:///x.db"
    assert s.openai_model == "gpt-4o-mini"
    assert (s.categorize_page_size, s.categorize_concurrency) == (10, 2)


@pytest.mark.parametrize("raw", ["ten", "0", "-3"])
def test_settings_reject_bad_integers(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("MIDAS_CATEGORIZE_PAGE_SIZE", raw)

    with pytest.raises(ConfigurationError, match="MIDAS_CATEGORIZE_PAGE_SIZE"):
        Settings.from_env()


def test_missing_keys_raise_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    s = Settings.from_env()

    with pytest.raises(ConfigurationError):
        s.require_openai()
    with pytest.raises(ConfigurationError):
        s.require_database()


# ---- Logging -----------------------------------------------------------------


@pytest.fixture
def pkg_logger() -> Iterator[logging.Logger]:
    reset_logging()
    yield logging.getLogger("midas_finance")
    reset_logging()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("debug", logging.DEBUG), (" Warning ", logging.WARNING), ("15", 15), (40, 40)],
)
def test_resolve_level(raw: int | str, expected: int) -> None:
    assert resolve_level(raw) == expected


def test_resolve_level_falls_back_to_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MIDAS_LOG_LEVEL", "ERROR")

    assert resolve_level(None) == logging.ERROR
    assert resolve_level("verbose") == logging.ERROR


def test_configure_logging_once(pkg_logger: logging.Logger) -> None:
    stream = io.StringIO()

    configure_logging("debug", stream=stream, fmt="%(name)s %(message)s")
    configure_logging("error", stream=io.StringIO())
    get_logger("midas_finance.test").debug("recurring_sync:done created=%d", 2)

    assert stream.getvalue() == "midas_finance.test recurring_sync:done created=2\n"
    assert len(pkg_logger.handlers) == 1
    assert pkg_logger.propagate is False


def test_library_logger_is_silent_until_configured(pkg_logger: logging.Logger) -> None:
    get_logger("midas_finance.x")

    assert [type(h) for h in pkg_logger.handlers] == [logging.NullHandler]
