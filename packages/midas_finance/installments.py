"""Installment purchases ("parcelado em 10x").

A purchase of ``total`` paid over ``n`` months becomes ``n`` sibling expense
transactions sharing one ``installment_group_id``, one per month starting at
the purchase month.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime
from decimal import ROUND_DOWN, Decimal

from .dates import add_months, clamped_datetime
from .models import Transaction, TransactionCategory, TransactionType

_CENT = Decimal("0.01")


def _new_id() -> str:
    return str(uuid.uuid4())


def installment_amounts(total: Decimal, n: int) -> list[Decimal]:
    """Split ``total`` into ``n`` cent amounts that sum exactly to ``total``.

    Each share is ``total / n`` truncated to cents; the leftover cents go on
    the first installment.
    """

    if n < 1:
        raise ValueError(f"installment count must be >= 1, got {n}")
    total = total.quantize(_CENT)
    share = (total / n).quantize(_CENT, rounding=ROUND_DOWN)
    first = total - share * (n - 1)
    return [first] + [share] * (n - 1)


def split_installments(
    *,
    amount: Decimal,
    description: str,
    category: str,
    purchase_date: datetime,
    installments: int,
    transaction_category: TransactionCategory | None = None,
    id_factory: Callable[[], str] = _new_id,
) -> list[Transaction]:
    """Expand an installment purchase into monthly expense transactions.

    Descriptions read ``"<description> (k/n)"``. Each later installment keeps
    the purchase day of month, clamped to the month's last day (a purchase on
    the 31st is due on Feb 28/29). ``installments <= 1`` yields a single plain
    transaction with no group id.
    """

    if installments <= 1:
        return [
            Transaction(
                id=id_factory(),
                amount=amount,
                description=description,
                category=category,
                type=TransactionType.EXPENSE,
                date=purchase_date,
                transaction_category=transaction_category,
            )
        ]

    group_id = id_factory()
    amounts = installment_amounts(amount, installments)
    start_month = purchase_date.month - 1
    out: list[Transaction] = []
    for k, share in enumerate(amounts):
        year, month = add_months(purchase_date.year, start_month, k)
        due = clamped_datetime(year, month, purchase_date.day)
        out.append(
            Transaction(
                id=id_factory(),
                amount=share,
                description=f"{description} ({k + 1}/{installments})",
                category=category,
                type=TransactionType.EXPENSE,
                date=due.replace(
                    hour=purchase_date.hour,
                    minute=purchase_date.minute,
                    second=purchase_date.second,
                ),
                transaction_category=transaction_category,
                installment_group_id=group_id,
            )
        )
    return out


__all__ = ["installment_amounts", "split_installments"]
