"""Calendar helpers shared by the materializer, installments and reports.

Months are addressed as ``(year, month_index)`` with a zero-based
``month_index`` (0 = January), matching how the ledger pages through months.
No function here reads the wall clock; callers pass reference dates in.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

# Day-first formats are tried before month-first ones when ``day_first`` is set.
_DAY_FIRST_FORMATS: tuple[str, ...] = ("%d/%m/%Y", "%d/%m/%y", "%d-%m-%Y", "%d.%m.%Y")
_MONTH_FIRST_FORMATS: tuple[str, ...] = ("%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y")
_ISO_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%Y/%m/%d")


def _check_month_index(month_index: int) -> None:
    if not 0 <= month_index <= 11:
        raise ValueError(f"month_index must be within 0..11, got {month_index}")


def last_day_of_month(year: int, month_index: int) -> int:
    """Return the last valid day number of the month (28-31).

    Computed as the day before the 1st of the following month.
    """

    _check_month_index(month_index)
    if month_index == 11:
        first_of_next = date(year + 1, 1, 1)
    else:
        first_of_next = date(year, month_index + 2, 1)
    return (first_of_next - timedelta(days=1)).day


def clamped_datetime(year: int, month_index: int, day_of_month: int) -> datetime:
    """Return midnight of ``day_of_month`` in the month, clamped into range.

    Days past the end of the month land on its last day; days below 1 land
    on the 1st. Never raises for an out-of-range day.
    """

    last = last_day_of_month(year, month_index)
    day = max(1, min(day_of_month, last))
    return datetime(year, month_index + 1, day)


def add_months(year: int, month_index: int, offset: int) -> tuple[int, int]:
    """Shift ``(year, month_index)`` by ``offset`` months."""

    _check_month_index(month_index)
    total = year * 12 + month_index + offset
    return total // 12, total % 12


def in_month(value: date, year: int, month_index: int) -> bool:
    """True when ``value`` (a date or datetime) falls in the given month."""

    return value.year == year and value.month == month_index + 1


def parse_statement_date(raw: str | None, *, day_first: bool = True) -> date | None:
    """Best-effort parse of a raw statement date string.

    Accepts ISO dates/datetimes and the common slash/dash/dot layouts.
    ``day_first`` selects the ``DD/MM`` reading for ambiguous values (the
    Brazilian convention); returns ``None`` when nothing matches.
    """

    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        pass
    first = s.split()[0]
    ordered = (
        _ISO_FORMATS + _DAY_FIRST_FORMATS + _MONTH_FIRST_FORMATS
        if day_first
        else _ISO_FORMATS + _MONTH_FIRST_FORMATS + _DAY_FIRST_FORMATS
    )
    for fmt in ordered:
        try:
            return datetime.strptime(first, fmt).date()
        except ValueError:
            continue
    return None


__all__ = [
    "last_day_of_month",
    "clamped_datetime",
    "add_months",
    "in_month",
    "parse_statement_date",
]
