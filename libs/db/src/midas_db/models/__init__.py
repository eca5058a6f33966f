"""Shared SQLAlchemy models registry for the ledger database."""

from .finance import (
    Base,
    BudgetGoalRecord,
    RecurringRecord,
    StatementReportRecord,
    TransactionRecord,
)

__all__ = [
    "Base",
    "TransactionRecord",
    "RecurringRecord",
    "BudgetGoalRecord",
    "StatementReportRecord",
]
