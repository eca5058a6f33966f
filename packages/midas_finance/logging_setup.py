"""Process-wide logging for ``midas_finance``.

Entrypoints call :func:`configure_logging` once; library modules only ever
call :func:`get_logger` with a ``"midas_finance.<module>"`` name and never
attach handlers themselves. Until configuration runs, the package logger
carries a ``NullHandler`` so embedding applications see nothing.

Messages follow an ``event:name key=value ...`` layout, e.g.
``recurring_sync:done user=u1 year=2024 month=2 created=2``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "midas_finance"
LEVEL_ENV_VAR = "MIDAS_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# HTTP and SQL chatter from the stack stays at WARNING unless we run at DEBUG.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "openai", "sqlalchemy.engine")

_configured = False


def resolve_level(level: int | str | None) -> int:
    """Turn ``level`` (number, digits or level name) into a numeric level.

    ``None`` or an unknown name falls back to ``MIDAS_LOG_LEVEL``, then INFO.
    """

    if isinstance(level, int):
        return level
    if level is not None:
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        value = logging.getLevelNamesMapping().get(name)
        if value is not None:
            return value
    from_env = os.getenv(LEVEL_ENV_VAR)
    if from_env and from_env != level:
        return resolve_level(from_env)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Attach one stream handler to the package logger; later calls are no-ops.

    Parameters
    ----------
    level:
        Level number or name. ``None`` reads ``MIDAS_LOG_LEVEL`` (default INFO).
    fmt:
        Format string, :data:`DEFAULT_FORMAT` when omitted.
    stream:
        Handler stream; ``sys.stderr`` at call time when omitted.
    """

    global _configured
    if _configured:
        return

    numeric = resolve_level(level)
    pkg = logging.getLogger(PACKAGE_LOGGER)
    pkg.handlers = [h for h in pkg.handlers if not isinstance(h, logging.NullHandler)]

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    pkg.addHandler(handler)
    pkg.setLevel(numeric)
    pkg.propagate = False

    if numeric > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def reset_logging() -> None:
    """Drop the package handlers so :func:`configure_logging` can run again."""

    global _configured
    pkg = logging.getLogger(PACKAGE_LOGGER)
    for h in list(pkg.handlers):
        pkg.removeHandler(h)
    pkg.setLevel(logging.NOTSET)
    pkg.propagate = True
    _configured = False


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not _configured and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "reset_logging", "resolve_level", "get_logger"]
