from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from openpyxl import Workbook

from midas_db.client import session_scope
from midas_finance import ledger, persistence
from midas_finance.models import TransactionCategory, TransactionType
from tests.helpers.openai_stub import StatementOpenAIStub

pytestmark = pytest.mark.e2e

USER = "e2e-user"


def test_rent_on_the_31st_lands_on_leap_day(db_url: str) -> None:
    ledger.add_recurring(
        USER,
        name="Aluguel",
        amount=Decimal("1500.00"),
        category="Moradia",
        type=TransactionType.EXPENSE,
        day_of_month=31,
        database_url=db_url,
    )

    for month in range(12):
        ledger.sync_recurring_for_month(USER, 2024, month, database_url=db_url)
        ledger.sync_recurring_for_month(USER, 2024, month, database_url=db_url)

    with session_scope(database_url=db_url) as s:
        txs = persistence.fetch_transactions(s, user_id=USER)

    assert len(txs) == 12
    by_month = {t.date.month: t for t in txs}
    feb = by_month[2]
    assert feb.date == datetime(2024, 2, 29)
    assert feb.transaction_category is TransactionCategory.FIXED
    assert feb.is_paid is False and feb.is_recurring is True
    assert by_month[4].date == datetime(2024, 4, 30)
    assert by_month[12].date == datetime(2024, 12, 31)

    rep = ledger.monthly_report(USER, 2024, 1, database_url=db_url)
    assert rep.stats.total_expense == Decimal("1500.00")
    assert rep.breakdown[TransactionCategory.FIXED].paid_count == 0


def test_statement_import_flow(db_url: str, tmp_path: Path) -> None:
    wb = Workbook()
    ws = wb.active
    ws.append(["Banco Exemplo"])
    ws.append(["Data", "Descrição", "Valor", "Banco"])
    ws.append([datetime(2024, 3, 1), "MERCADO LIVRE", -199.9, "Itaú"])
    ws.append([datetime(2024, 3, 5), "SALARIO", 4200, "Itaú"])
    ws.append([None, "Saldo final", None, None])
    path = tmp_path / "extrato.xlsx"
    wb.save(path)

    stub = StatementOpenAIStub(
        lambda item: ("Receitas", True) if "SALARIO" in item["description"] else ("Compras", False)
    )
    out = ledger.import_statement(
        USER, [path], reference_date=date(2024, 3, 31), database_url=db_url, client=stub
    )

    assert out.report_id is not None
    assert out.report.total_income == Decimal("4200")
    assert out.report.total_expense == Decimal("-199.9")
    assert out.report.banks == ["Itaú"]
    assert [r.category for r in out.report.transactions] == ["Compras", "Receitas"]
