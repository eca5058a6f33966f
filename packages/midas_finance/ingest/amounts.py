"""Amount cell coercion for statements in Brazilian or US number formats."""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation

from ..models import CellValue

# Currency marker and whitespace. The upper-case ``R`` covers the ``R$`` prefix.
_CURRENCY_AND_SPACE_RE = re.compile(r"[R$\s]")
_SIGN_MARKERS_RE = re.compile(r"[()\-]")
_US_DECIMAL_RE = re.compile(r"\.\d{2}$")
_BR_DECIMAL_RE = re.compile(r",\d{2}$")
# Longest numeric prefix; trailing garbage (``"1.234.567"`` -> ``1.234``) is ignored.
_LEADING_NUMBER_RE = re.compile(r"^[+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

_ZERO = Decimal("0")


def _parse_leading_number(text: str) -> Decimal:
    m = _LEADING_NUMBER_RE.match(text)
    if m is None:
        return _ZERO
    try:
        return Decimal(m.group(0))
    except InvalidOperation:
        return _ZERO


def _from_number(value: int | float | Decimal) -> Decimal:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return _ZERO
        # ``str`` keeps the shortest repr (``0.1`` rather than its binary expansion).
        return Decimal(str(value))
    return Decimal(value)


def parse_amount(raw: CellValue) -> Decimal:
    """Coerce a raw amount cell into a signed ``Decimal``.

    Numbers pass through unchanged. Strings are cleaned in steps:

    1. Drop currency markers (``R``, ``$``) and all whitespace.
    2. A leading ``-`` or ``(`` marks the amount negative; every ``(``, ``)``
       and ``-`` is then removed.
    3. A trailing ``.XX`` means US format (commas are thousands separators);
       a trailing ``,XX`` means Brazilian format (dots are thousands
       separators, the comma is the decimal point). Otherwise a lone comma
       with no dot is read as the decimal point.
    4. The longest leading number is parsed; no number at all yields ``0``.

    The heuristic is kept as-is for ambiguous inputs: ``"1.234"`` reads as
    one point two three four, not one thousand two hundred thirty-four.

    Never raises.
    """

    if raw is None or isinstance(raw, bool):
        return _ZERO
    if isinstance(raw, (int, float, Decimal)):
        return _from_number(raw)

    cleaned = _CURRENCY_AND_SPACE_RE.sub("", str(raw))
    negative = cleaned.startswith(("-", "("))
    cleaned = _SIGN_MARKERS_RE.sub("", cleaned)

    if _US_DECIMAL_RE.search(cleaned):
        cleaned = cleaned.replace(",", "")
    elif _BR_DECIMAL_RE.search(cleaned):
        cleaned = cleaned.replace(".", "").replace(",", ".", 1)
    elif "," in cleaned and "." not in cleaned:
        cleaned = cleaned.replace(",", ".", 1)

    magnitude = _parse_leading_number(cleaned)
    return -magnitude if negative else magnitude


__all__ = ["parse_amount"]
