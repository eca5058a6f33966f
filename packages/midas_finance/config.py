"""Runtime settings for midas_finance.

Settings come from the process environment. The CLI loads a local ``.env``
with ``python-dotenv`` before calling :meth:`Settings.from_env`; library
callers may build :class:`Settings` directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigurationError

DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_PAGE_SIZE = 25
DEFAULT_CONCURRENCY = 4


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved runtime configuration."""

    database_url: str | None = None
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    categorize_page_size: int = DEFAULT_PAGE_SIZE
    categorize_concurrency: int = DEFAULT_CONCURRENCY
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Create settings from environment variables."""

        return cls(
            database_url=os.getenv("DATABASE_URL") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("MIDAS_OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            categorize_page_size=_int_env("MIDAS_CATEGORIZE_PAGE_SIZE", DEFAULT_PAGE_SIZE),
            categorize_concurrency=_int_env("MIDAS_CATEGORIZE_CONCURRENCY", DEFAULT_CONCURRENCY),
            log_level=os.getenv("MIDAS_LOG_LEVEL", "INFO"),
        )

    def require_openai(self) -> str:
        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set in the environment.")
        return self.openai_api_key

    def require_database(self) -> str:
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL is not set; pass --database-url or set it.")
        return self.database_url


__all__ = ["Settings", "DEFAULT_OPENAI_MODEL", "DEFAULT_PAGE_SIZE", "DEFAULT_CONCURRENCY"]
