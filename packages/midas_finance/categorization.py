"""Result parsing and application for statement categorization.

The model output is validated with Pydantic and aligned back to the page by
``idx``. Category names are checked against the caller's allow-list with an
in-list fallback; the oracle is not trusted to return one decision per row,
so absent decisions are filled with the fallback category as an expense.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from typing import Any

from .logging_setup import get_logger
from .models import ParsedStatementRow, StatementDecision, StatementDecisionBody
from .prompting import FALLBACK_CATEGORY

_logger = get_logger("midas_finance.categorization")


def parse_and_align_decisions(
    body: Mapping[str, Any],
    *,
    num_items: int,
    allowed_categories: Sequence[str],
    fallback_category: str = FALLBACK_CATEGORY,
) -> list[StatementDecision]:
    """Parse a Responses API JSON body into decisions aligned by ``idx``.

    Parameters
    ----------
    body:
        Decoded JSON with a top-level ``results`` list.
    num_items:
        Number of rows on the page; valid ``idx`` values are ``0..num_items-1``.
    allowed_categories:
        Allow-list for ``category``; other values become ``fallback_category``.

    Returns
    -------
    list[StatementDecision]
        Exactly ``num_items`` decisions in page order.

    Raises
    ------
    ValueError
        On a malformed body, an out-of-range ``idx`` or a duplicate ``idx``.
        (``pydantic.ValidationError`` is a ``ValueError``.)
    """

    if not isinstance(body, Mapping):
        raise ValueError("Invalid response: expected a JSON object at top level")

    parsed = StatementDecisionBody.model_validate(body)
    allowed_set = set(allowed_categories)

    out: list[StatementDecision | None] = [None] * num_items
    for item in parsed.results:
        idx = item.idx
        if not (0 <= idx < num_items):
            raise ValueError(f"Invalid response: 'idx' out of range: {idx}")
        if out[idx] is not None:
            raise ValueError(f"Invalid response: duplicate idx {idx}")
        if item.category not in allowed_set:
            item = item.model_copy(update={"category": fallback_category})
        out[idx] = item

    missing = [i for i, v in enumerate(out) if v is None]
    if missing:
        _logger.warning("categorize:missing_decisions count=%d indices=%s", len(missing), missing)

    return [
        d
        if d is not None
        else StatementDecision(idx=i, category=fallback_category, is_income=False)
        for i, d in enumerate(out)
    ]


def apply_decisions(
    rows: Sequence[ParsedStatementRow], decisions: Sequence[StatementDecision]
) -> list[ParsedStatementRow]:
    """Return rows with category set and value sign corrected from direction.

    Income becomes ``+|value|`` and expense ``-|value|``, whatever sign the
    statement used.
    """

    if len(rows) != len(decisions):
        raise ValueError(f"expected {len(rows)} decisions, got {len(decisions)}")
    out: list[ParsedStatementRow] = []
    for row, decision in zip(rows, decisions, strict=True):
        magnitude = abs(row.value)
        out.append(
            dataclasses.replace(
                row,
                category=decision.category,
                value=magnitude if decision.is_income else -magnitude,
            )
        )
    return out


__all__ = ["parse_and_align_decisions", "apply_decisions"]
