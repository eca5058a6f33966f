from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import expression as sa_expr

# BIGINT identity on Postgres; SQLite only auto-increments INTEGER PRIMARY KEY.
_BigIntId = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: transactions
# ---------------------------


class TransactionRecord(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("type IN ('INCOME','EXPENSE')", name="ck_transactions_type"),
        CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        CheckConstraint(
            "transaction_category IS NULL OR transaction_category IN ('income','fixed','variable')",
            name="ck_transactions_transaction_category",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String(7), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    # Lookup key to recurring_transactions.id; not a foreign key so that
    # history survives template edits.
    recurring_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    transaction_category: Mapped[str | None] = mapped_column(String(8), nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa_expr.false())
    paid_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    installment_group_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Recurring templates
# ---------------------------


class RecurringRecord(Base):
    __tablename__ = "recurring_transactions"
    __table_args__ = (
        CheckConstraint("type IN ('INCOME','EXPENSE')", name="ck_recurring_type"),
        CheckConstraint("day_of_month >= 1 AND day_of_month <= 31", name="ck_recurring_day"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String(7), nullable=False)
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Budget goals (one per user and category)
# ---------------------------


class BudgetGoalRecord(Base):
    __tablename__ = "budget_goals"
    __table_args__ = (
        CheckConstraint(
            "target_percentage >= 0 AND target_percentage <= 100",
            name="ck_budget_goals_target_percentage",
        ),
    )

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    category: Mapped[str] = mapped_column(String, primary_key=True)
    target_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Statement reports
# ---------------------------


class StatementReportRecord(Base):
    __tablename__ = "statement_reports"

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_income: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_expense: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    categories: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    banks: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    transactions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    ai_advice: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
