"""Recurring transaction materialization.

Given the recurring templates, the existing ledger and a target month,
:func:`materialize_recurring` returns the transactions still missing for that
month. It is a pure function: the caller merges the result into its visible
state and persists each new transaction on its own (see
:func:`midas_finance.ledger.sync_recurring_for_month`).

Whether a template was already materialized is decided only by looking for a
transaction with the template's id dated in the target month. There is no
"last run" pointer, so running twice for the same month is a no-op the second
time.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Sequence

from .dates import clamped_datetime, in_month
from .logging_setup import get_logger
from .models import RecurringTemplate, Transaction, TransactionCategory, TransactionType

_logger = get_logger("midas_finance.recurring")


def _new_id() -> str:
    return str(uuid.uuid4())


def _materialized_template_ids(
    transactions: Iterable[Transaction], year: int, month_index: int
) -> set[str]:
    return {
        tx.recurring_id
        for tx in transactions
        if tx.recurring_id and in_month(tx.date, year, month_index)
    }


def materialize_recurring(
    templates: Sequence[RecurringTemplate],
    transactions: Iterable[Transaction],
    *,
    year: int,
    month: int,
    id_factory: Callable[[], str] = _new_id,
) -> list[Transaction]:
    """Synthesize the transactions missing for ``(year, month)``.

    Parameters
    ----------
    templates:
        Recurring templates, in display order. Output follows this order.
    transactions:
        The full existing ledger (any month).
    year, month:
        Target month; ``month`` is zero-based (0 = January).
    id_factory:
        Produces fresh transaction ids (UUID4 strings by default).

    Returns
    -------
    list[Transaction]
        One new transaction per template lacking one in the target month;
        empty when everything is already materialized.
    """

    done = _materialized_template_ids(transactions, year, month)
    created: list[Transaction] = []
    for template in templates:
        if template.id in done:
            continue
        is_income = template.type is TransactionType.INCOME
        created.append(
            Transaction(
                id=id_factory(),
                amount=template.amount,
                description=template.name,
                category=template.category,
                type=template.type,
                date=clamped_datetime(year, month, template.day_of_month),
                is_recurring=True,
                recurring_id=template.id,
                transaction_category=(
                    TransactionCategory.INCOME if is_income else TransactionCategory.FIXED
                ),
                is_paid=False,
            )
        )
        # Two templates sharing an id must not both materialize.
        done.add(template.id)

    _logger.debug(
        "materialize:done year=%d month=%d templates=%d created=%d",
        year,
        month + 1,
        len(templates),
        len(created),
    )
    return created


__all__ = ["materialize_recurring"]
