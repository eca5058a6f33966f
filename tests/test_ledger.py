from __future__ import annotations

import itertools
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from midas_db.client import session_scope
from midas_db.models.finance import StatementReportRecord
from midas_finance import ledger, persistence
from midas_finance.config import Settings
from midas_finance.errors import NoTransactionsFoundError
from midas_finance.models import (
    BudgetGoal,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from tests.helpers.openai_stub import FixedOpenAIStub, StatementOpenAIStub

USER = "user-1"
SETTINGS = Settings(openai_api_key="test-key", categorize_page_size=10)


def _ids(prefix: str = "id"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def _add_rent_and_salary(db_url: str) -> None:
    ledger.add_recurring(
        USER,
        name="Aluguel",
        amount=Decimal("1500.00"),
        category="Moradia",
        type=TransactionType.EXPENSE,
        day_of_month=31,
        database_url=db_url,
        id_factory=_ids("rec-rent"),
    )
    ledger.add_recurring(
        USER,
        name="Salário",
        amount=Decimal("5000.00"),
        category="Receitas",
        type=TransactionType.INCOME,
        day_of_month=5,
        database_url=db_url,
        id_factory=_ids("rec-salary"),
    )


def _stored(db_url: str) -> list[Transaction]:
    with session_scope(database_url=db_url) as s:
        return persistence.fetch_transactions(s, user_id=USER)


# ---- Recurring ---------------------------------------------------------------


def test_sync_persists_and_is_idempotent(db_url: str) -> None:
    _add_rent_and_salary(db_url)

    first = ledger.sync_recurring_for_month(USER, 2024, 1, database_url=db_url)
    second = ledger.sync_recurring_for_month(USER, 2024, 1, database_url=db_url)

    assert (len(first.created), first.persisted, first.failed) == (2, 2, 0)
    assert (second.created, second.persisted, second.failed) == ([], 0, 0)
    stored = {t.recurring_id: t for t in _stored(db_url)}
    assert stored["rec-rent-1"].date == datetime(2024, 2, 29)
    assert stored["rec-rent-1"].transaction_category is TransactionCategory.FIXED
    assert stored["rec-rent-1"].is_paid is False
    assert stored["rec-salary-1"].transaction_category is TransactionCategory.INCOME


def test_sync_counts_failed_writes(db_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
    _add_rent_and_salary(db_url)
    real_save = persistence.save_transaction

    def flaky_save(session: Any, *, user_id: str, tx: Transaction) -> None:
        if tx.recurring_id == "rec-rent-1":
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        real_save(session, user_id=user_id, tx=tx)

    monkeypatch.setattr(persistence, "save_transaction", flaky_save)

    outcome = ledger.sync_recurring_for_month(USER, 2024, 1, database_url=db_url)

    assert len(outcome.created) == 2
    assert (outcome.persisted, outcome.failed) == (1, 1)
    assert [t.recurring_id for t in _stored(db_url)] == ["rec-salary-1"]

    monkeypatch.setattr(persistence, "save_transaction", real_save)
    retry = ledger.sync_recurring_for_month(USER, 2024, 1, database_url=db_url)
    assert [t.recurring_id for t in retry.created] == ["rec-rent-1"]
    assert retry.persisted == 1


def test_expense_template_creates_zero_budget_goal(db_url: str) -> None:
    _add_rent_and_salary(db_url)

    with session_scope(database_url=db_url) as s:
        goals = persistence.fetch_budget_goals(s, user_id=USER)

    assert goals == [BudgetGoal("Moradia", Decimal("0"))]


def test_existing_budget_goal_is_kept(db_url: str) -> None:
    ledger.set_budget(USER, "Moradia", Decimal("30"), database_url=db_url)
    _add_rent_and_salary(db_url)

    with session_scope(database_url=db_url) as s:
        goals = persistence.fetch_budget_goals(s, user_id=USER)

    assert goals == [BudgetGoal("Moradia", Decimal("30"))]


def test_add_recurring_validates_day(db_url: str) -> None:
    with pytest.raises(ValueError, match="day_of_month"):
        ledger.add_recurring(
            USER,
            name="X",
            amount=Decimal("1"),
            category="Outros",
            type=TransactionType.EXPENSE,
            day_of_month=32,
            database_url=db_url,
        )


def test_remove_recurring_drops_its_transactions(db_url: str) -> None:
    _add_rent_and_salary(db_url)
    ledger.sync_recurring_for_month(USER, 2024, 0, database_url=db_url)
    ledger.sync_recurring_for_month(USER, 2024, 1, database_url=db_url)

    removed = ledger.remove_recurring(USER, "rec-rent-1", database_url=db_url)

    assert removed == 2
    assert {t.recurring_id for t in _stored(db_url)} == {"rec-salary-1"}


# ---- Editing transactions ----------------------------------------------------


def _record(db_url: str, tx_id: str, *, group: str | None = None, day: int = 10) -> None:
    ledger.record_transaction(
        USER,
        Transaction(
            id=tx_id,
            amount=Decimal("100.00"),
            description=f"Compra {tx_id}",
            category="Compras",
            type=TransactionType.EXPENSE,
            date=datetime(2024, 3, day),
            installment_group_id=group,
        ),
        database_url=db_url,
    )


def test_delete_single_installment_or_whole_purchase(db_url: str) -> None:
    for i in (1, 2, 3):
        _record(db_url, f"tv-{i}", group="grp-tv", day=i)
    _record(db_url, "other")

    assert ledger.delete_transaction(USER, "tv-1", database_url=db_url) == 1
    assert sorted(t.id for t in _stored(db_url)) == ["other", "tv-2", "tv-3"]

    removed = ledger.delete_transaction(
        USER, "tv-2", include_installments=True, database_url=db_url
    )

    assert removed == 2
    assert [t.id for t in _stored(db_url)] == ["other"]


def test_delete_unknown_transaction_removes_nothing(db_url: str) -> None:
    _record(db_url, "tx-1")

    assert (
        ledger.delete_transaction(USER, "nope", include_installments=True, database_url=db_url)
        == 0
    )
    assert ledger.delete_transaction("someone-else", "tx-1", database_url=db_url) == 0
    assert [t.id for t in _stored(db_url)] == ["tx-1"]


def test_recategorize_transaction(db_url: str) -> None:
    _record(db_url, "tx-1")

    assert ledger.recategorize_transaction(USER, "tx-1", " Lazer ", database_url=db_url) is True
    assert ledger.recategorize_transaction(USER, "nope", "Lazer", database_url=db_url) is False
    assert _stored(db_url)[0].category == "Lazer"
    with pytest.raises(ValueError):
        ledger.recategorize_transaction(USER, "tx-1", "  ", database_url=db_url)


def test_mark_paid_and_unpaid(db_url: str) -> None:
    _record(db_url, "tx-1")
    paid_at = datetime(2024, 3, 11, 9, 30)

    assert ledger.mark_paid(USER, "tx-1", paid_at=paid_at, database_url=db_url) is True
    [tx] = _stored(db_url)
    assert (tx.is_paid, tx.paid_date) == (True, paid_at)

    assert ledger.mark_paid(USER, "tx-1", paid=False, paid_at=paid_at, database_url=db_url)
    [tx] = _stored(db_url)
    assert (tx.is_paid, tx.paid_date) == (False, None)


# ---- Monthly report ----------------------------------------------------------


def test_monthly_report_combines_stats_and_budget(db_url: str) -> None:
    _add_rent_and_salary(db_url)
    ledger.set_budget(USER, "Moradia", Decimal("25"), database_url=db_url)
    ledger.sync_recurring_for_month(USER, 2024, 2, database_url=db_url)
    ledger.record_transaction(
        USER,
        Transaction(
            id="tx-food",
            amount=Decimal("500.00"),
            description="Mercado",
            category="Alimentação",
            type=TransactionType.EXPENSE,
            date=datetime(2024, 3, 12),
        ),
        database_url=db_url,
    )

    rep = ledger.monthly_report(USER, 2024, 2, database_url=db_url)

    assert rep.stats.total_income == Decimal("5000")
    assert rep.stats.total_expense == Decimal("2000")
    assert rep.breakdown[TransactionCategory.FIXED].total == Decimal("1500")
    assert rep.breakdown[TransactionCategory.VARIABLE].count == 1
    by_cat = {line.category: line for line in rep.budget}
    assert by_cat["Moradia"].budget_amount == Decimal("1250")
    assert by_cat["Moradia"].usage_percent == Decimal("120")
    # recording the expense created a 0% goal with actual spending
    assert by_cat["Alimentação"].usage_percent == Decimal("100")


# ---- Free text ---------------------------------------------------------------


def test_record_text_transaction_with_installments(db_url: str) -> None:
    stub = FixedOpenAIStub(
        [
            {
                "is_transaction": True,
                "amount": 1200,
                "description": "Celular",
                "category": "Compras",
                "type": "EXPENSE",
                "date": "2024-03-10",
                "installments": 10,
                "message": "Compra parcelada registrada.",
            }
        ]
    )

    result, txs = ledger.record_text_transaction(
        USER,
        "comprei um celular de 1200 em 10x",
        today=date(2024, 3, 10),
        database_url=db_url,
        settings=SETTINGS,
        client=stub,
    )

    assert result.message == "Compra parcelada registrada."
    assert len(txs) == 10
    stored = _stored(db_url)
    assert len(stored) == 10
    assert len({t.installment_group_id for t in stored}) == 1
    with session_scope(database_url=db_url) as s:
        assert [g.category for g in persistence.fetch_budget_goals(s, user_id=USER)] == ["Compras"]


def test_record_text_question_stores_nothing(db_url: str) -> None:
    stub = FixedOpenAIStub(
        [
            {
                "is_transaction": False,
                "amount": None,
                "description": None,
                "category": None,
                "type": None,
                "date": None,
                "installments": None,
                "message": "Você gastou pouco este mês.",
            }
        ]
    )

    result, txs = ledger.record_text_transaction(
        USER, "como estou?", today=date(2024, 3, 10), database_url=db_url, client=stub
    )

    assert txs == []
    assert result.message == "Você gastou pouco este mês."
    assert _stored(db_url) == []


# ---- Statement import --------------------------------------------------------


def _statement(tmp_path: Path) -> Path:
    p = tmp_path / "extrato.csv"
    p.write_text(
        "Data;Descrição;Valor;Banco\n"
        "01/03/2024;IFOOD *PEDIDO;-45,90;Nubank\n"
        "05/03/2024;SALARIO EMPRESA;3.500,00;Nubank\n"
        "12/03/2024;UBER TRIP;23,10;Nubank\n",
        encoding="utf-8",
    )
    return p


def _decide(item: dict[str, Any]) -> tuple[str, bool]:
    desc = item["description"]
    if "SALARIO" in desc:
        return ("Receitas", True)
    if "IFOOD" in desc:
        return ("Alimentação", False)
    return ("Transporte", False)


def test_import_statement_categorizes_and_stores(db_url: str, tmp_path: Path) -> None:
    stub = StatementOpenAIStub(_decide, advice="  📊 RESUMO: gastos sob controle.\n")

    out = ledger.import_statement(
        USER,
        [_statement(tmp_path)],
        reference_date=date(2024, 3, 20),
        database_url=db_url,
        settings=SETTINGS,
        client=stub,
    )

    report = out.report
    assert out.file_name == "Extrato_20-03-2024"
    assert out.report_id is not None
    assert report.total_income == Decimal("3500.00")
    # "UBER" had a positive sign in the file; direction makes it an expense.
    assert report.total_expense == Decimal("-69.00")
    assert report.categories == {
        "Alimentação": Decimal("45.90"),
        "Receitas": Decimal("3500.00"),
        "Transporte": Decimal("23.10"),
    }
    assert (report.period_start, report.period_end) == (date(2024, 3, 1), date(2024, 3, 12))
    assert report.banks == ["Nubank"]
    assert report.advice == "📊 RESUMO: gastos sob controle."
    # one categorization page, then one advice request over the final totals
    advice_call = stub.calls[-1]
    assert len(stub.calls) == 2
    assert advice_call["text"]["format"]["name"] == "statement_advice"
    assert "- Receitas: 3500.00" in advice_call["input"]
    assert "Total expense: 69.00" in advice_call["input"]
    with session_scope(database_url=db_url) as s:
        rec = s.get(StatementReportRecord, out.report_id)
        assert rec is not None
        assert rec.ai_advice == "📊 RESUMO: gastos sob controle."


def test_import_statement_without_llm_or_storage(tmp_path: Path) -> None:
    out = ledger.import_statement(
        USER,
        [_statement(tmp_path)],
        reference_date=date(2024, 3, 20),
        categorize=False,
        persist=False,
    )

    assert out.report_id is None
    assert out.report.categories == {"Outros": Decimal("3569.00")}
    assert out.report.advice == ""
    assert out.report.total_income == Decimal("3523.10")


def test_import_statement_with_nothing_admitted(db_url: str, tmp_path: Path) -> None:
    p = tmp_path / "vazio.csv"
    p.write_text("Data;Descrição;Valor\n", encoding="utf-8")

    with pytest.raises(NoTransactionsFoundError):
        ledger.import_statement(
            USER,
            [p],
            reference_date=date(2024, 3, 20),
            database_url=db_url,
            client=FixedOpenAIStub([]),
        )
