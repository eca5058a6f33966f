# ruff: noqa: I001
"""Ledger core tables: transactions, recurring templates, budget goals, reports.

Revision ID: 0001_midas_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_midas_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "transactions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("type", sa.String(7), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurring_id", sa.String(), nullable=True),
        sa.Column("transaction_category", sa.String(8), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("paid_date", sa.DateTime(), nullable=True),
        sa.Column("installment_group_id", sa.String(), nullable=True),
        _created_at(),
        sa.CheckConstraint("type IN ('INCOME','EXPENSE')", name="ck_transactions_type"),
        sa.CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        sa.CheckConstraint(
            "transaction_category IS NULL OR transaction_category IN ('income','fixed','variable')",
            name="ck_transactions_transaction_category",
        ),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_recurring_id", "transactions", ["recurring_id"])
    op.create_index(
        "ix_transactions_installment_group_id", "transactions", ["installment_group_id"]
    )

    op.create_table(
        "recurring_transactions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("type", sa.String(7), nullable=False),
        sa.Column("day_of_month", sa.Integer(), nullable=False),
        _created_at(),
        sa.CheckConstraint("type IN ('INCOME','EXPENSE')", name="ck_recurring_type"),
        sa.CheckConstraint("day_of_month >= 1 AND day_of_month <= 31", name="ck_recurring_day"),
    )
    op.create_index("ix_recurring_transactions_user_id", "recurring_transactions", ["user_id"])

    op.create_table(
        "budget_goals",
        sa.Column("user_id", sa.String(), primary_key=True),
        sa.Column("category", sa.String(), primary_key=True),
        sa.Column("target_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "target_percentage >= 0 AND target_percentage <= 100",
            name="ck_budget_goals_target_percentage",
        ),
    )

    op.create_table(
        "statement_reports",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("total_income", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_expense", sa.Numeric(14, 2), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("banks", sa.JSON(), nullable=False),
        sa.Column("transactions", sa.JSON(), nullable=False),
        sa.Column("ai_advice", sa.String(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_statement_reports_user_id", "statement_reports", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_statement_reports_user_id", table_name="statement_reports")
    op.drop_table("statement_reports")
    op.drop_table("budget_goals")
    op.drop_index("ix_recurring_transactions_user_id", table_name="recurring_transactions")
    op.drop_table("recurring_transactions")
    op.drop_index("ix_transactions_installment_group_id", table_name="transactions")
    op.drop_index("ix_transactions_recurring_id", table_name="transactions")
    op.drop_index("ix_transactions_user_id", table_name="transactions")
    op.drop_table("transactions")
