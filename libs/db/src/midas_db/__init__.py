"""midas_db: shared database library (SQLAlchemy/Alembic).

Public exports
--------------
- ``Base`` and ``metadata`` for Alembic autogenerate/targeting
- ORM models in ``midas_db.models.finance`` (re-exported for convenience)
- Engine/session helpers in ``midas_db.client``
"""

from __future__ import annotations

from .models.finance import (
    Base,
    BudgetGoalRecord,
    RecurringRecord,
    StatementReportRecord,
    TransactionRecord,
)

# Re-export SQLAlchemy metadata for Alembic's env.py
metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "TransactionRecord",
    "RecurringRecord",
    "BudgetGoalRecord",
    "StatementReportRecord",
]
