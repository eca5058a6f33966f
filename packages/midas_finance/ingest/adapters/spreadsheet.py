"""Adapter for XLSX statements via ``openpyxl``.

Only the first worksheet is read, with cached formula results
(``data_only=True``). Spreadsheet exports usually carry a preamble above the
real header, so header inference runs before records are built.
"""

from __future__ import annotations

import zipfile
from datetime import date, datetime, time
from os import PathLike
from pathlib import Path
from typing import Any
from xml.etree.ElementTree import ParseError

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ...errors import StatementDecodeError
from ...logging_setup import get_logger
from ...models import CellValue
from ..normalize import find_header_row, rows_to_records

_logger = get_logger("midas_finance.ingest.spreadsheet")

_DECODE_FAILURES = (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ParseError)


def _to_cell_value(value: Any) -> CellValue:
    """Reduce an openpyxl cell value to text, number or ``None``."""

    if value is None:
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (int, float, str)):
        return value
    return str(value)


def read_spreadsheet_grid(path: str | PathLike[str]) -> list[list[CellValue]]:
    """Return the first worksheet of ``path`` as a grid of cell values."""

    p = Path(path)
    wb = None
    # Sheet XML is parsed lazily, so a damaged part can fail during iteration.
    try:
        wb = load_workbook(p, read_only=True, data_only=True)
        if not wb.worksheets:
            raise StatementDecodeError(str(p), "workbook has no worksheets")
        ws = wb.worksheets[0]
        grid = [[_to_cell_value(v) for v in row] for row in ws.iter_rows(values_only=True)]
    except _DECODE_FAILURES as exc:
        raise StatementDecodeError(str(p), str(exc) or type(exc).__name__) from exc
    finally:
        if wb is not None:
            wb.close()
    _logger.debug("spreadsheet:read source=%s rows=%d", p, len(grid))
    return grid


def read_spreadsheet_rows(path: str | PathLike[str]) -> list[dict[str, CellValue]]:
    """Read an XLSX statement into column-keyed records below the inferred header."""

    grid = read_spreadsheet_grid(path)
    return rows_to_records(grid, find_header_row(grid))


__all__ = ["read_spreadsheet_grid", "read_spreadsheet_rows"]
