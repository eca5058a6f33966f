from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from midas_finance.installments import installment_amounts, split_installments
from midas_finance.models import TransactionCategory, TransactionType


def _ids():
    counter = iter(range(1, 1000))
    return lambda: f"id-{next(counter)}"


@pytest.mark.parametrize(
    ("total", "n", "expected"),
    [
        (Decimal("100"), 3, [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]),
        (Decimal("1200"), 10, [Decimal("120.00")] * 10),
        (Decimal("0.05"), 2, [Decimal("0.03"), Decimal("0.02")]),
        (Decimal("10"), 1, [Decimal("10.00")]),
    ],
)
def test_amounts_sum_to_total(total: Decimal, n: int, expected: list[Decimal]) -> None:
    got = installment_amounts(total, n)

    assert got == expected
    assert sum(got) == total


def test_amounts_reject_zero_count() -> None:
    with pytest.raises(ValueError):
        installment_amounts(Decimal("10"), 0)


def test_split_keeps_day_clamped_per_month() -> None:
    txs = split_installments(
        amount=Decimal("300"),
        description="Geladeira",
        category="Compras",
        purchase_date=datetime(2024, 12, 31, 10, 15),
        installments=3,
        id_factory=_ids(),
    )

    assert [t.date for t in txs] == [
        datetime(2024, 12, 31, 10, 15),
        datetime(2025, 1, 31, 10, 15),
        datetime(2025, 2, 28, 10, 15),
    ]
    assert [t.description for t in txs] == [
        "Geladeira (1/3)",
        "Geladeira (2/3)",
        "Geladeira (3/3)",
    ]
    assert {t.installment_group_id for t in txs} == {"id-1"}
    assert [t.id for t in txs] == ["id-2", "id-3", "id-4"]
    assert all(t.type is TransactionType.EXPENSE for t in txs)
    assert all(not t.is_recurring for t in txs)


def test_split_carries_dashboard_group() -> None:
    txs = split_installments(
        amount=Decimal("90"),
        description="Curso",
        category="Educação",
        purchase_date=datetime(2024, 1, 10),
        installments=2,
        transaction_category=TransactionCategory.FIXED,
        id_factory=_ids(),
    )

    assert all(t.transaction_category is TransactionCategory.FIXED for t in txs)


def test_single_installment_is_a_plain_transaction() -> None:
    [tx] = split_installments(
        amount=Decimal("59.90"),
        description="Livro",
        category="Educação",
        purchase_date=datetime(2024, 5, 2),
        installments=1,
        id_factory=_ids(),
    )

    assert tx.description == "Livro"
    assert tx.amount == Decimal("59.90")
    assert tx.installment_group_id is None
