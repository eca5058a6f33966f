"""Statement ingestion: file adapters, header inference and normalization."""

from .amounts import parse_amount
from .normalize import (
    detect_fields,
    find_header_row,
    is_admissible,
    normalize_grid,
    normalize_statement_rows,
    rows_to_records,
)
from .patterns import FIELD_PATTERNS
from .utils import load_statement, read_statement_file

__all__ = [
    "FIELD_PATTERNS",
    "parse_amount",
    "find_header_row",
    "rows_to_records",
    "detect_fields",
    "is_admissible",
    "normalize_statement_rows",
    "normalize_grid",
    "read_statement_file",
    "load_statement",
]
