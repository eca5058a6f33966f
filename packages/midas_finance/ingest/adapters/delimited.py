"""Adapter for delimited text statements (CSV/TSV exports).

Bank exports differ in encoding and separator: Brazilian banks commonly emit
Latin-1 text separated by semicolons, while newer exports are UTF-8 (often
with a BOM) and comma separated. The first non-blank row is the header.
"""

from __future__ import annotations

import csv
import io
from os import PathLike
from pathlib import Path

from ...errors import StatementDecodeError
from ...logging_setup import get_logger
from ...models import CellValue
from ..normalize import rows_to_records

_logger = get_logger("midas_finance.ingest.delimited")

_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "latin-1")
_DELIMITERS = ",;\t"
_SNIFF_BYTES = 8192


def _decode(data: bytes, source: str) -> str:
    for encoding in _ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise StatementDecodeError(source, "unsupported text encoding")


def _detect_delimiter(text: str) -> str:
    sample = text[:_SNIFF_BYTES]
    try:
        return csv.Sniffer().sniff(sample, delimiters=_DELIMITERS).delimiter
    except csv.Error:
        first_line = next((ln for ln in sample.splitlines() if ln.strip()), "")
        # Most frequent candidate on the header line; comma when none occurs.
        counts = {d: first_line.count(d) for d in _DELIMITERS}
        best = max(counts, key=lambda d: counts[d])
        return best if counts[best] > 0 else ","


def parse_delimited_text(text: str, *, source: str = "<text>") -> list[dict[str, CellValue]]:
    """Parse delimited ``text`` into column-keyed records (cells stay strings)."""

    delimiter = _detect_delimiter(text)
    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        rows: list[list[CellValue]] = [
            list(row) for row in reader if any(cell.strip() for cell in row)
        ]
    except csv.Error as exc:
        raise StatementDecodeError(source, str(exc)) from exc
    _logger.debug("delimited:parsed source=%s delimiter=%r rows=%d", source, delimiter, len(rows))
    if not rows:
        return []
    return rows_to_records(rows, 0)


def read_delimited_rows(path: str | PathLike[str]) -> list[dict[str, CellValue]]:
    """Read a CSV/TSV statement file into column-keyed records."""

    p = Path(path)
    try:
        data = p.read_bytes()
    except OSError as exc:
        raise StatementDecodeError(str(p), exc.strerror or str(exc)) from exc
    return parse_delimited_text(_decode(data, str(p)), source=str(p))


__all__ = ["parse_delimited_text", "read_delimited_rows"]
