"""Ingest utilities shared by CLI commands and the ledger service.

Exposes :func:`load_statement`, which reads one or more uploaded statement
files, normalizes each and concatenates the admitted rows in file order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from os import PathLike
from pathlib import Path

from ..errors import NoTransactionsFoundError, StatementDecodeError
from ..logging_setup import get_logger
from ..models import CellValue, ParsedStatementRow
from .adapters.delimited import read_delimited_rows
from .adapters.spreadsheet import read_spreadsheet_rows
from .normalize import normalize_statement_rows

_logger = get_logger("midas_finance.ingest")

type RecordReader = Callable[[str | PathLike[str]], list[dict[str, CellValue]]]

READERS: dict[str, RecordReader] = {
    ".csv": read_delimited_rows,
    ".txt": read_delimited_rows,
    ".tsv": read_delimited_rows,
    ".xlsx": read_spreadsheet_rows,
    ".xlsm": read_spreadsheet_rows,
}


def read_statement_file(path: str | PathLike[str]) -> list[ParsedStatementRow]:
    """Read and normalize a single statement file.

    Raises ``StatementDecodeError`` for unsupported extensions and files that
    cannot be decoded. An empty result is not an error at this level.
    """

    p = Path(path)
    reader = READERS.get(p.suffix.lower())
    if reader is None:
        supported = ", ".join(sorted(READERS))
        raise StatementDecodeError(str(p), f"unsupported file type (expected one of {supported})")
    rows = normalize_statement_rows(reader(p))
    _logger.info("statement:read file=%s rows=%d", p.name, len(rows))
    return rows


def load_statement(paths: Iterable[str | PathLike[str]]) -> list[ParsedStatementRow]:
    """Load statement files and return all admitted rows, in file then row order.

    Raises
    ------
    StatementDecodeError
        When any file cannot be decoded; no partial result is returned.
    NoTransactionsFoundError
        When every file decoded but no row survived admission.
    """

    sources = [Path(p) for p in paths]
    rows: list[ParsedStatementRow] = []
    for src in sources:
        rows.extend(read_statement_file(src))
    if not rows:
        raise NoTransactionsFoundError(tuple(s.name for s in sources))
    return rows


__all__ = ["READERS", "read_statement_file", "load_statement"]
