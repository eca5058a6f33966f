"""Bank statement normalization: raw rows -> :class:`ParsedStatementRow`.

The pipeline has four steps, each exposed on its own so callers and tests can
drive them individually:

- :func:`find_header_row` locates the header in a raw spreadsheet grid whose
  first rows may hold a bank preamble (title, account number, period).
- :func:`rows_to_records` turns the grid below the header into ordered
  ``column -> cell`` mappings.
- :func:`detect_fields` maps canonical fields to column names once per file
  using :data:`~midas_finance.ingest.patterns.FIELD_PATTERNS`.
- :func:`normalize_statement_rows` builds canonical rows and applies the
  admission filter.

All functions are pure; nothing here touches files or the network.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from ..logging_setup import get_logger
from ..models import CellValue, ParsedStatementRow, StatementRecord
from .amounts import parse_amount
from .patterns import (
    FIELD_PATTERNS,
    HEADER_AMOUNT_TOKENS,
    HEADER_DATE_TOKENS,
    HEADER_DESCRIPTION_TOKENS,
    HEADER_SCAN_LIMIT,
    HEADER_TRANSACTION_TOKENS,
    FieldName,
)

_logger = get_logger("midas_finance.ingest.normalize")

type FieldMapping = dict[FieldName, str | None]

# Fallback descriptions must be longer than this many characters.
_FALLBACK_MIN_LENGTH = 3


def _cell_text(value: CellValue) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_blank(value: CellValue) -> bool:
    return value is None or value == ""


def _contains_any(text: str, tokens: Sequence[str]) -> bool:
    return any(t in text for t in tokens)


def find_header_row(rows: Sequence[Sequence[CellValue]]) -> int:
    """Return the index of the header row within the first rows of a grid.

    A row qualifies when its lower-cased joined cells contain a date token
    together with an amount or description token, or a transaction token
    together with an amount token. The first qualifying row wins; ``0`` is
    returned when none qualifies within the scan limit.
    """

    for idx, row in enumerate(rows[:HEADER_SCAN_LIMIT]):
        if not row:
            continue
        text = " ".join(_cell_text(c).lower() for c in row)
        has_date = _contains_any(text, HEADER_DATE_TOKENS)
        has_amount = _contains_any(text, HEADER_AMOUNT_TOKENS)
        has_description = _contains_any(text, HEADER_DESCRIPTION_TOKENS)
        has_transaction = _contains_any(text, HEADER_TRANSACTION_TOKENS)
        if (has_date and (has_amount or has_description)) or (has_transaction and has_amount):
            _logger.debug("header:found row=%d", idx)
            return idx
    return 0


def rows_to_records(
    rows: Sequence[Sequence[CellValue]], header_index: int = 0
) -> list[dict[str, CellValue]]:
    """Convert the rows following ``header_index`` into column-keyed records.

    Columns with an empty header are dropped, rows with no non-empty cell are
    skipped and short rows yield ``None`` for their missing cells. When a
    header repeats, the later column's value is kept.
    """

    if header_index >= len(rows):
        return []
    headers = [_cell_text(h) for h in rows[header_index]]
    records: list[dict[str, CellValue]] = []
    for row in rows[header_index + 1 :]:
        if not row or all(_is_blank(c) for c in row):
            continue
        record: dict[str, CellValue] = {}
        for col, header in enumerate(headers):
            if not header:
                continue
            record[header] = row[col] if col < len(row) else None
        records.append(record)
    return records


def column_union(records: Iterable[StatementRecord]) -> list[str]:
    """Ordered union of the column names across ``records`` (first seen first)."""

    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def detect_fields(columns: Iterable[str]) -> FieldMapping:
    """Map each canonical field to the first column whose name matches it.

    Fields are resolved independently, so a single column (for example
    ``"Lançamento"``) may serve as both date and description.
    """

    names = list(columns)
    mapping: FieldMapping = {}
    for field_name, pattern in FIELD_PATTERNS:
        mapping[field_name] = next((n for n in names if pattern.search(n)), None)
    return mapping


def _fallback_description(record: StatementRecord) -> str:
    best: str | None = None
    for value in record.values():
        if not isinstance(value, str) or len(value) <= _FALLBACK_MIN_LENGTH:
            continue
        # Ties go to the later column.
        if best is None or len(value) >= len(best):
            best = value
    return best.strip() if best is not None else ""


def _optional_text(record: StatementRecord, column: str | None) -> str | None:
    if column is None:
        return None
    text = _cell_text(record.get(column)).strip()
    return text or None


def _normalize_record(
    record: StatementRecord, fields: Mapping[FieldName, str | None]
) -> ParsedStatementRow:
    amount_col = fields.get("amount")
    value = parse_amount(record.get(amount_col)) if amount_col else Decimal("0")

    desc_col = fields.get("description")
    if desc_col:
        description = _cell_text(record.get(desc_col)).strip()
    else:
        description = _fallback_description(record)

    date_col = fields.get("date")
    date = _cell_text(record.get(date_col)).strip() if date_col else ""

    return ParsedStatementRow(
        date=date,
        description=description,
        value=value,
        category=_optional_text(record, fields.get("category")),
        bank=_optional_text(record, fields.get("bank")),
    )


def is_admissible(row: ParsedStatementRow) -> bool:
    """A row is kept when it has a description or a date, and a non-zero value."""

    return bool(row.description or row.date) and row.value != 0


def normalize_statement_rows(
    records: Sequence[StatementRecord], *, fields: Mapping[FieldName, str | None] | None = None
) -> list[ParsedStatementRow]:
    """Normalize records into canonical rows, in input order.

    Parameters
    ----------
    records:
        Column-keyed rows of one file.
    fields:
        Optional precomputed field mapping; detected from the union of the
        records' column names when omitted.

    Returns
    -------
    list[ParsedStatementRow]
        Admitted rows only. Rows failing admission (footers, subtotals,
        blank amounts) are dropped without error. No deduplication.
    """

    if not records:
        return []
    mapping = fields if fields is not None else detect_fields(column_union(records))
    out = [r for r in (_normalize_record(rec, mapping) for rec in records) if is_admissible(r)]
    _logger.debug(
        "normalize:done rows=%d kept=%d date_col=%r amount_col=%r desc_col=%r",
        len(records),
        len(out),
        mapping.get("date"),
        mapping.get("amount"),
        mapping.get("description"),
    )
    return out


def normalize_grid(rows: Sequence[Sequence[CellValue]]) -> list[ParsedStatementRow]:
    """Header inference, record building and normalization for a raw grid."""

    return normalize_statement_rows(rows_to_records(rows, find_header_row(rows)))


__all__ = [
    "FieldMapping",
    "find_header_row",
    "rows_to_records",
    "column_union",
    "detect_fields",
    "is_admissible",
    "normalize_statement_rows",
    "normalize_grid",
]
