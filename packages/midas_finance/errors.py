"""Exception hierarchy for ``midas_finance``."""

from __future__ import annotations


class MidasError(Exception):
    """Base exception for all midas_finance errors."""


class ConfigurationError(MidasError):
    """Raised when required configuration (env vars, settings) is missing or invalid."""


class StatementDecodeError(MidasError):
    """Raised when an uploaded statement cannot be decoded into rows at all.

    No partial output accompanies this error.
    """

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"could not read statement {source!r}: {reason}")
        self.source = source
        self.reason = reason


class NoTransactionsFoundError(MidasError):
    """Raised when statements decode fine but no row survives admission."""

    def __init__(self, sources: tuple[str, ...] = ()) -> None:
        names = ", ".join(sources) if sources else "input"
        super().__init__(f"no transactions found in {names}")
        self.sources = sources


class CategorizationError(MidasError):
    """Raised when the categorization oracle fails after retries."""


__all__ = [
    "MidasError",
    "ConfigurationError",
    "StatementDecodeError",
    "NoTransactionsFoundError",
    "CategorizationError",
]
