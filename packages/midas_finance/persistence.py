# ruff: noqa: I001
"""Persistence integration for midas_finance.

Functions here read and write the ledger in the shared database owned by
``libs/db``. They take an open SQLAlchemy ``Session`` (see
``midas_db.client.session_scope``) and never commit themselves; the caller's
scope is the unit of work.

Scope:
- Transactions: fetch, save (idempotent on ``id``), delete, recategorize,
  mark paid/unpaid, delete an installment group.
- Recurring templates: fetch, save, delete (with their materialized
  transactions).
- Budget goals: fetch and upsert on ``(user_id, category)``.
- Statement reports: insert.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from midas_db.models.finance import (
    BudgetGoalRecord,
    RecurringRecord,
    StatementReportRecord,
    TransactionRecord,
)
from .models import (
    BudgetGoal,
    RecurringTemplate,
    StatementReport,
    Transaction,
    TransactionCategory,
    TransactionType,
)


# ---------------------------------------------------------------------------
# Row <-> domain mapping
# ---------------------------------------------------------------------------


def _transaction_from_record(rec: TransactionRecord) -> Transaction:
    return Transaction(
        id=rec.id,
        amount=Decimal(rec.amount),
        description=rec.description,
        category=rec.category,
        type=TransactionType(rec.type),
        date=rec.date,
        is_recurring=bool(rec.is_recurring),
        recurring_id=rec.recurring_id,
        transaction_category=(
            TransactionCategory(rec.transaction_category) if rec.transaction_category else None
        ),
        is_paid=bool(rec.is_paid),
        paid_date=rec.paid_date,
        installment_group_id=rec.installment_group_id,
    )


def _transaction_to_record(user_id: str, tx: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=tx.id,
        user_id=user_id,
        amount=tx.amount,
        description=tx.description,
        category=tx.category,
        type=tx.type.value,
        date=tx.date,
        is_recurring=tx.is_recurring,
        recurring_id=tx.recurring_id,
        transaction_category=(
            tx.transaction_category.value if tx.transaction_category is not None else None
        ),
        is_paid=tx.is_paid,
        paid_date=tx.paid_date,
        installment_group_id=tx.installment_group_id,
    )


def _recurring_from_record(rec: RecurringRecord) -> RecurringTemplate:
    return RecurringTemplate(
        id=rec.id,
        name=rec.name,
        amount=Decimal(rec.amount),
        category=rec.category,
        type=TransactionType(rec.type),
        day_of_month=rec.day_of_month,
    )


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def fetch_transactions(session: Session, *, user_id: str) -> list[Transaction]:
    """Return every transaction of ``user_id``, newest first."""

    stmt = (
        select(TransactionRecord)
        .where(TransactionRecord.user_id == user_id)
        .order_by(TransactionRecord.date.desc(), TransactionRecord.id)
    )
    return [_transaction_from_record(r) for r in session.scalars(stmt)]


def save_transaction(session: Session, *, user_id: str, tx: Transaction) -> None:
    """Insert or update one transaction keyed by ``tx.id``.

    Saving the same transaction twice leaves a single row.
    """

    existing = session.get(TransactionRecord, tx.id)
    if existing is not None and existing.user_id != user_id:
        raise ValueError(f"transaction {tx.id!r} belongs to another user")
    session.merge(_transaction_to_record(user_id, tx))
    session.flush()


def delete_transaction(session: Session, *, user_id: str, transaction_id: str) -> bool:
    result = session.execute(
        delete(TransactionRecord).where(
            TransactionRecord.user_id == user_id, TransactionRecord.id == transaction_id
        )
    )
    return bool(result.rowcount)


def update_transaction_category(
    session: Session, *, user_id: str, transaction_id: str, category: str
) -> bool:
    result = session.execute(
        update(TransactionRecord)
        .where(TransactionRecord.user_id == user_id, TransactionRecord.id == transaction_id)
        .values(category=category)
    )
    return bool(result.rowcount)


def set_transaction_paid(
    session: Session,
    *,
    user_id: str,
    transaction_id: str,
    paid: bool,
    paid_date: datetime | None = None,
) -> bool:
    """Mark a transaction paid (stamping ``paid_date``) or unpaid (clearing it)."""

    result = session.execute(
        update(TransactionRecord)
        .where(TransactionRecord.user_id == user_id, TransactionRecord.id == transaction_id)
        .values(is_paid=paid, paid_date=paid_date if paid else None)
    )
    return bool(result.rowcount)


def delete_installment_group(session: Session, *, user_id: str, group_id: str) -> int:
    """Delete every installment sharing ``group_id``; returns the number removed."""

    result = session.execute(
        delete(TransactionRecord).where(
            TransactionRecord.user_id == user_id,
            TransactionRecord.installment_group_id == group_id,
        )
    )
    return int(result.rowcount or 0)


# ---------------------------------------------------------------------------
# Recurring templates
# ---------------------------------------------------------------------------


def fetch_recurring(session: Session, *, user_id: str) -> list[RecurringTemplate]:
    """Return the user's templates ordered by day of month, then name."""

    stmt = (
        select(RecurringRecord)
        .where(RecurringRecord.user_id == user_id)
        .order_by(RecurringRecord.day_of_month, RecurringRecord.name, RecurringRecord.id)
    )
    return [_recurring_from_record(r) for r in session.scalars(stmt)]


def save_recurring(session: Session, *, user_id: str, template: RecurringTemplate) -> None:
    session.merge(
        RecurringRecord(
            id=template.id,
            user_id=user_id,
            name=template.name,
            amount=template.amount,
            category=template.category,
            type=template.type.value,
            day_of_month=template.day_of_month,
        )
    )
    session.flush()


def delete_recurring(session: Session, *, user_id: str, recurring_id: str) -> int:
    """Delete a template together with the transactions it materialized.

    Returns the number of transactions removed.
    """

    result = session.execute(
        delete(TransactionRecord).where(
            TransactionRecord.user_id == user_id,
            TransactionRecord.recurring_id == recurring_id,
        )
    )
    session.execute(
        delete(RecurringRecord).where(
            RecurringRecord.user_id == user_id, RecurringRecord.id == recurring_id
        )
    )
    return int(result.rowcount or 0)


# ---------------------------------------------------------------------------
# Budget goals
# ---------------------------------------------------------------------------


def fetch_budget_goals(session: Session, *, user_id: str) -> list[BudgetGoal]:
    stmt = (
        select(BudgetGoalRecord)
        .where(BudgetGoalRecord.user_id == user_id)
        .order_by(BudgetGoalRecord.category)
    )
    return [
        BudgetGoal(category=r.category, target_percentage=Decimal(r.target_percentage))
        for r in session.scalars(stmt)
    ]


def upsert_budget_goal(session: Session, *, user_id: str, goal: BudgetGoal) -> None:
    """Insert or replace the goal for ``(user_id, goal.category)``."""

    if not (Decimal("0") <= goal.target_percentage <= Decimal("100")):
        raise ValueError(
            f"target_percentage must be within 0..100, got {goal.target_percentage}"
        )
    session.merge(
        BudgetGoalRecord(
            user_id=user_id,
            category=goal.category,
            target_percentage=goal.target_percentage,
        )
    )
    session.flush()


# ---------------------------------------------------------------------------
# Statement reports
# ---------------------------------------------------------------------------


def save_statement_report(
    session: Session, *, user_id: str, report: StatementReport, file_name: str
) -> int:
    """Insert a statement report and return its id."""

    rec = StatementReportRecord(
        user_id=user_id,
        file_name=file_name,
        period_start=report.period_start,
        period_end=report.period_end,
        total_income=report.total_income,
        total_expense=report.total_expense,
        categories={k: float(v) for k, v in report.categories.items()},
        banks=list(report.banks),
        transactions=[r.to_dict() for r in report.transactions],
        ai_advice=report.advice or None,
    )
    session.add(rec)
    session.flush()
    return int(rec.id)


__all__ = [
    "fetch_transactions",
    "save_transaction",
    "delete_transaction",
    "update_transaction_category",
    "set_transaction_paid",
    "delete_installment_group",
    "fetch_recurring",
    "save_recurring",
    "delete_recurring",
    "fetch_budget_goals",
    "upsert_budget_goal",
    "save_statement_report",
]
