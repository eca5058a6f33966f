"""Ledger service: the operations the CLI (or any shell) runs against storage.

Each function opens its own ``session_scope`` from ``midas_db.client``. The
recurring sync is the one fan-out point: every synthesized transaction is
written in its own scope so a failed write never undoes the others.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from os import PathLike
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from midas_db.client import session_scope

from . import persistence
from .categorize import advise_on_statement, categorize_statement_rows, parse_text_transaction
from .config import Settings
from .ingest.utils import load_statement
from .installments import split_installments
from .logging_setup import get_logger
from .models import (
    BudgetGoal,
    RecurringTemplate,
    StatementReport,
    TextParseResult,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from .pmap import p_map
from .prompting import DEFAULT_CATEGORIES, FALLBACK_CATEGORY
from .recurring import materialize_recurring
from .reports import (
    BudgetLine,
    CategoryBreakdown,
    CategoryStat,
    MonthlyStats,
    budget_report,
    build_statement_report,
    category_stats,
    dashboard_breakdown,
    month_transactions,
    monthly_stats,
)

_logger = get_logger("midas_finance.ledger")

_PERSIST_CONCURRENCY = 4


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class MaterializationOutcome:
    """Result of a recurring sync.

    ``created`` lists every synthesized transaction, persisted or not, so the
    caller can show them right away; ``failed`` counts the writes that did
    not go through.
    """

    created: list[Transaction]
    persisted: int
    failed: int


@dataclass(frozen=True, slots=True)
class StatementImport:
    report: StatementReport
    file_name: str
    report_id: int | None = None


@dataclass(frozen=True, slots=True)
class MonthlyReport:
    year: int
    month: int
    stats: MonthlyStats
    categories: list[CategoryStat]
    budget: list[BudgetLine]
    breakdown: dict[TransactionCategory, CategoryBreakdown]


def _ensure_budget_goal(session: Session, *, user_id: str, category: str) -> bool:
    """Create a 0% goal for ``category`` when the user has none; True if created."""

    goals = persistence.fetch_budget_goals(session, user_id=user_id)
    if any(g.category == category for g in goals):
        return False
    persistence.upsert_budget_goal(
        session,
        user_id=user_id,
        goal=BudgetGoal(category=category, target_percentage=Decimal("0")),
    )
    _logger.info("budget:auto_created user=%s category=%s", user_id, category)
    return True


# ---------------------------------------------------------------------------
# Recurring
# ---------------------------------------------------------------------------


def sync_recurring_for_month(
    user_id: str,
    year: int,
    month: int,
    *,
    database_url: str | None = None,
    concurrency: int = _PERSIST_CONCURRENCY,
    id_factory: Callable[[], str] = _new_id,
) -> MaterializationOutcome:
    """Materialize the user's recurring templates for ``(year, month)``.

    ``month`` is zero-based. Never raises for individual write failures;
    they are logged and counted in the outcome.
    """

    with session_scope(database_url=database_url) as s:
        templates = persistence.fetch_recurring(s, user_id=user_id)
        existing = persistence.fetch_transactions(s, user_id=user_id)

    created = materialize_recurring(
        templates, existing, year=year, month=month, id_factory=id_factory
    )
    if not created:
        _logger.info("recurring_sync:up_to_date user=%s year=%d month=%d", user_id, year, month + 1)
        return MaterializationOutcome(created=[], persisted=0, failed=0)

    def _persist(tx: Transaction) -> bool:
        try:
            with session_scope(database_url=database_url) as s:
                persistence.save_transaction(s, user_id=user_id, tx=tx)
        except SQLAlchemyError as exc:
            _logger.warning(
                "recurring_sync:persist_failed tx=%s recurring_id=%s error=%s",
                tx.id,
                tx.recurring_id,
                exc.__class__.__name__,
            )
            return False
        return True

    results = p_map(created, _persist, concurrency=min(concurrency, len(created)))
    persisted = sum(1 for ok in results if ok)
    outcome = MaterializationOutcome(
        created=created, persisted=persisted, failed=len(created) - persisted
    )
    _logger.info(
        "recurring_sync:done user=%s year=%d month=%d created=%d persisted=%d failed=%d",
        user_id,
        year,
        month + 1,
        len(created),
        outcome.persisted,
        outcome.failed,
    )
    return outcome


def add_recurring(
    user_id: str,
    *,
    name: str,
    amount: Decimal,
    category: str,
    type: TransactionType,
    day_of_month: int,
    database_url: str | None = None,
    id_factory: Callable[[], str] = _new_id,
) -> RecurringTemplate:
    """Store a new recurring template; expense categories get a budget goal."""

    if not 1 <= day_of_month <= 31:
        raise ValueError(f"day_of_month must be within 1..31, got {day_of_month}")
    if amount < 0:
        raise ValueError("amount must be non-negative")
    template = RecurringTemplate(
        id=id_factory(),
        name=name,
        amount=amount,
        category=category,
        type=type,
        day_of_month=day_of_month,
    )
    with session_scope(database_url=database_url) as s:
        persistence.save_recurring(s, user_id=user_id, template=template)
        if type is TransactionType.EXPENSE:
            _ensure_budget_goal(s, user_id=user_id, category=category)
    return template


def remove_recurring(user_id: str, recurring_id: str, *, database_url: str | None = None) -> int:
    """Delete a template and its materialized transactions; returns how many were removed."""

    with session_scope(database_url=database_url) as s:
        return persistence.delete_recurring(s, user_id=user_id, recurring_id=recurring_id)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def record_transaction(
    user_id: str, tx: Transaction, *, database_url: str | None = None
) -> Transaction:
    """Persist one transaction; a new expense category gets a 0% budget goal."""

    with session_scope(database_url=database_url) as s:
        persistence.save_transaction(s, user_id=user_id, tx=tx)
        if tx.type is TransactionType.EXPENSE:
            _ensure_budget_goal(s, user_id=user_id, category=tx.category)
    return tx


def transactions_from_text_result(
    result: TextParseResult,
    *,
    today: date,
    id_factory: Callable[[], str] = _new_id,
) -> list[Transaction]:
    """Turn a parsed free-text entry into ledger transactions.

    Expenses with more than one installment are split; everything else is a
    single transaction. Missing date, type and category default to
    ``today``, expense and ``"Outros"``.
    """

    if not result.is_transaction:
        return []
    if result.amount is None:
        raise ValueError("parsed transaction has no amount")

    tx_type = result.type or TransactionType.EXPENSE
    when = datetime.combine(result.date or today, datetime.min.time())
    description = result.description or FALLBACK_CATEGORY
    category = result.category or FALLBACK_CATEGORY

    if tx_type is TransactionType.EXPENSE and (result.installments or 1) > 1:
        return split_installments(
            amount=result.amount,
            description=description,
            category=category,
            purchase_date=when,
            installments=result.installments or 1,
            id_factory=id_factory,
        )
    return [
        Transaction(
            id=id_factory(),
            amount=result.amount,
            description=description,
            category=category,
            type=tx_type,
            date=when,
        )
    ]


def record_text_transaction(
    user_id: str,
    text: str,
    *,
    today: date,
    categories: Sequence[str] = DEFAULT_CATEGORIES,
    database_url: str | None = None,
    settings: Settings | None = None,
    client: Any | None = None,
    id_factory: Callable[[], str] = _new_id,
) -> tuple[TextParseResult, list[Transaction]]:
    """Parse a free-text entry with the LLM and store what it describes.

    Returns the parse result (its ``message`` is the reply to show) and the
    stored transactions, empty when the text was not a transaction.
    """

    result = parse_text_transaction(
        text, categories, today=today, settings=settings, client=client
    )
    txs = transactions_from_text_result(result, today=today, id_factory=id_factory)
    if not txs:
        return result, []
    with session_scope(database_url=database_url) as s:
        for tx in txs:
            persistence.save_transaction(s, user_id=user_id, tx=tx)
        if txs[0].type is TransactionType.EXPENSE:
            _ensure_budget_goal(s, user_id=user_id, category=txs[0].category)
    return result, txs


def delete_transaction(
    user_id: str,
    transaction_id: str,
    *,
    include_installments: bool = False,
    database_url: str | None = None,
) -> int:
    """Delete a transaction; returns how many rows were removed.

    With ``include_installments`` every sibling of an installment purchase
    goes too. Unknown ids remove nothing.
    """

    with session_scope(database_url=database_url) as s:
        if include_installments:
            group_id = next(
                (
                    t.installment_group_id
                    for t in persistence.fetch_transactions(s, user_id=user_id)
                    if t.id == transaction_id
                ),
                None,
            )
            if group_id is not None:
                removed = persistence.delete_installment_group(
                    s, user_id=user_id, group_id=group_id
                )
                _logger.info(
                    "transaction:group_deleted user=%s group=%s removed=%d",
                    user_id,
                    group_id,
                    removed,
                )
                return removed
        found = persistence.delete_transaction(s, user_id=user_id, transaction_id=transaction_id)
    return int(found)


def recategorize_transaction(
    user_id: str, transaction_id: str, category: str, *, database_url: str | None = None
) -> bool:
    """Move a transaction to ``category``; False when the id is unknown."""

    if not category.strip():
        raise ValueError("category must be non-empty")
    with session_scope(database_url=database_url) as s:
        return persistence.update_transaction_category(
            s, user_id=user_id, transaction_id=transaction_id, category=category.strip()
        )


def mark_paid(
    user_id: str,
    transaction_id: str,
    *,
    paid: bool = True,
    paid_at: datetime | None = None,
    database_url: str | None = None,
) -> bool:
    with session_scope(database_url=database_url) as s:
        return persistence.set_transaction_paid(
            s, user_id=user_id, transaction_id=transaction_id, paid=paid, paid_date=paid_at
        )


# ---------------------------------------------------------------------------
# Budgets and reports
# ---------------------------------------------------------------------------


def set_budget(
    user_id: str,
    category: str,
    target_percentage: Decimal,
    *,
    database_url: str | None = None,
) -> BudgetGoal:
    goal = BudgetGoal(category=category, target_percentage=target_percentage)
    with session_scope(database_url=database_url) as s:
        persistence.upsert_budget_goal(s, user_id=user_id, goal=goal)
    return goal


def monthly_report(
    user_id: str, year: int, month: int, *, database_url: str | None = None
) -> MonthlyReport:
    """Dashboard figures for ``(year, month)`` (zero-based month)."""

    with session_scope(database_url=database_url) as s:
        txs = month_transactions(persistence.fetch_transactions(s, user_id=user_id), year, month)
        goals = persistence.fetch_budget_goals(s, user_id=user_id)
    stats = monthly_stats(txs)
    cats = category_stats(txs, stats)
    return MonthlyReport(
        year=year,
        month=month,
        stats=stats,
        categories=cats,
        budget=budget_report(stats, cats, goals),
        breakdown=dashboard_breakdown(txs),
    )


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


def import_statement(
    user_id: str,
    paths: Iterable[str | PathLike[str]],
    *,
    reference_date: date,
    categorize: bool = True,
    categories: Sequence[str] = DEFAULT_CATEGORIES,
    persist: bool = True,
    day_first: bool = True,
    database_url: str | None = None,
    settings: Settings | None = None,
    client: Any | None = None,
) -> StatementImport:
    """Load statement files, categorize them and store the summary report.

    With ``categorize`` the report also carries the model's advice, asked for
    once the category totals are known.

    Raises ``StatementDecodeError`` or ``NoTransactionsFoundError`` from
    loading; nothing is stored in that case.
    """

    sources = [Path(p) for p in paths]
    rows = load_statement(sources)
    if categorize:
        rows = categorize_statement_rows(rows, categories, settings=settings, client=client)
    report = build_statement_report(rows, reference_date=reference_date, day_first=day_first)
    if categorize:
        report = replace(
            report, advice=advise_on_statement(report, settings=settings, client=client)
        )
    file_name = f"Extrato_{reference_date:%d-%m-%Y}"

    report_id: int | None = None
    if persist:
        with session_scope(database_url=database_url) as s:
            report_id = persistence.save_statement_report(
                s, user_id=user_id, report=report, file_name=file_name
            )
    _logger.info(
        "statement_import:done user=%s files=%d rows=%d report_id=%s",
        user_id,
        len(sources),
        len(rows),
        report_id,
    )
    return StatementImport(report=report, file_name=file_name, report_id=report_id)


__all__ = [
    "MaterializationOutcome",
    "StatementImport",
    "MonthlyReport",
    "sync_recurring_for_month",
    "add_recurring",
    "remove_recurring",
    "record_transaction",
    "transactions_from_text_result",
    "record_text_transaction",
    "delete_transaction",
    "recategorize_transaction",
    "mark_paid",
    "set_budget",
    "monthly_report",
    "import_statement",
]
