"""File-format adapters producing column-keyed statement records."""

from .delimited import parse_delimited_text, read_delimited_rows
from .spreadsheet import read_spreadsheet_grid, read_spreadsheet_rows

__all__ = [
    "parse_delimited_text",
    "read_delimited_rows",
    "read_spreadsheet_grid",
    "read_spreadsheet_rows",
]
