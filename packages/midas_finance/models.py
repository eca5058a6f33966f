"""Domain models and type aliases for ``midas_finance``.

Ledger entities (:class:`Transaction`, :class:`RecurringTemplate`,
:class:`BudgetGoal`) are frozen dataclasses; updates go through
``dataclasses.replace``. Amounts are ``Decimal`` magnitudes and direction is
carried by :class:`TransactionType`.

Statement rows are modelled loosely on purpose: an uploaded spreadsheet has
arbitrary, locale-dependent column names and mixed cell types, so a raw row is
an ordered mapping from column name to a small tagged :data:`CellValue`. Only
after normalization does a row become a :class:`ParsedStatementRow`.

LLM responses are validated with Pydantic (:class:`StatementDecision`,
:class:`TextParseResult`).
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class TransactionType(StrEnum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionCategory(StrEnum):
    """Dashboard grouping of a transaction (income, fixed bill, variable spend)."""

    INCOME = "income"
    FIXED = "fixed"
    VARIABLE = "variable"


# ---------------------------------------------------------------------------
# Ledger entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single ledger entry.

    ``recurring_id`` is a lookup key back to the :class:`RecurringTemplate`
    that produced the entry, not an ownership relation. ``installment_group_id``
    is shared by the sibling entries of one installment purchase.
    ``is_paid``/``paid_date`` only matter for fixed expenses.
    """

    id: str
    amount: Decimal
    description: str
    category: str
    type: TransactionType
    date: datetime
    is_recurring: bool = False
    recurring_id: str | None = None
    transaction_category: TransactionCategory | None = None
    is_paid: bool = False
    paid_date: datetime | None = None
    installment_group_id: str | None = None

    @property
    def effective_category(self) -> TransactionCategory:
        if self.transaction_category is not None:
            return self.transaction_category
        if self.type is TransactionType.INCOME:
            return TransactionCategory.INCOME
        return TransactionCategory.VARIABLE


@dataclass(frozen=True, slots=True)
class RecurringTemplate:
    """A monthly-repeating rule.

    ``day_of_month`` is nominal (1-31); the materialized date is clamped to
    the last valid day of the target month.
    """

    id: str
    name: str
    amount: Decimal
    category: str
    type: TransactionType
    day_of_month: int


@dataclass(frozen=True, slots=True)
class BudgetGoal:
    """Share of monthly income budgeted to ``category`` (0-100)."""

    category: str
    target_percentage: Decimal


# ---------------------------------------------------------------------------
# Statement rows
# ---------------------------------------------------------------------------

type CellValue = str | int | float | Decimal | None
"""A loosely typed spreadsheet cell: text, number or empty."""

type StatementRecord = Mapping[str, CellValue]
"""One raw statement row keyed by (arbitrary) column header, in column order."""


@dataclass(frozen=True, slots=True)
class ParsedStatementRow:
    """A canonical statement row.

    ``date`` keeps the raw text from the file (its format is not known at this
    layer). ``value`` is signed; the sign may later be corrected by the
    categorization oracle.
    """

    date: str
    description: str
    value: Decimal
    category: str | None = None
    bank: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "description": self.description,
            "value": float(self.value),
            "category": self.category,
            "bank": self.bank,
        }


@dataclass(frozen=True, slots=True)
class StatementReport:
    """Summary of an imported (and usually categorized) statement.

    ``advice`` is the analyst write-up for a categorized import, empty otherwise.
    """

    period_start: date
    period_end: date
    total_income: Decimal
    total_expense: Decimal
    categories: dict[str, Decimal]
    banks: list[str]
    transactions: list[ParsedStatementRow] = field(default_factory=list)
    advice: str = ""


# ---------------------------------------------------------------------------
# DTOs for LLM responses
# ---------------------------------------------------------------------------


class StatementDecision(BaseModel):
    """One categorization decision for a statement row (page-relative ``idx``)."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    idx: int
    category: str
    is_income: bool


class StatementDecisionBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    results: list[StatementDecision]


class StatementAdvice(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    advice: str


class TextParseResult(BaseModel):
    """Structured reading of a free-text (or voice-to-text) entry.

    When ``is_transaction`` is false the input was a question or chatter and
    ``message`` carries the reply; the other fields are then ``None``.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    is_transaction: bool
    amount: Decimal | None = None
    description: str | None = None
    category: str | None = None
    type: TransactionType | None = None
    date: dt.date | None = None
    installments: int | None = None
    message: str = ""

    @field_validator("amount")
    @classmethod
    def _amount_magnitude(cls, v: Decimal | None) -> Decimal | None:
        if v is None:
            return None
        return abs(v)

    @field_validator("date", mode="before")
    @classmethod
    def _lenient_date(cls, v: Any) -> Any:
        """Read ``YYYY-MM-DD`` (time part ignored); unreadable text means no date."""

        if isinstance(v, str):
            try:
                return dt.date.fromisoformat(v.strip()[:10])
            except ValueError:
                return None
        return v

    @field_validator("installments")
    @classmethod
    def _installments_positive(cls, v: int | None) -> int | None:
        if v is None or v < 1:
            return None
        return v


__all__ = [
    "TransactionType",
    "TransactionCategory",
    "Transaction",
    "RecurringTemplate",
    "BudgetGoal",
    "CellValue",
    "StatementRecord",
    "ParsedStatementRow",
    "StatementReport",
    "StatementDecision",
    "StatementDecisionBody",
    "StatementAdvice",
    "TextParseResult",
]
