"""Monthly dashboard, budget and statement summaries.

All functions are pure and take the month or reference date explicitly.
Amounts are ``Decimal``; percentages are ``Decimal`` values on a 0-100 scale.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .dates import in_month, parse_statement_date
from .models import (
    BudgetGoal,
    ParsedStatementRow,
    StatementReport,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from .prompting import FALLBACK_CATEGORY

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True, slots=True)
class MonthlyStats:
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal


@dataclass(frozen=True, slots=True)
class CategoryStat:
    """Per-category total; ``percentage`` is the share of the month's expense."""

    category: str
    amount: Decimal
    type: TransactionType
    percentage: Decimal


@dataclass(frozen=True, slots=True)
class BudgetLine:
    category: str
    target_percentage: Decimal
    budget_amount: Decimal
    actual_amount: Decimal
    remaining: Decimal
    usage_percent: Decimal


@dataclass(frozen=True, slots=True)
class CategoryBreakdown:
    total: Decimal = _ZERO
    paid: Decimal = _ZERO
    count: int = 0
    paid_count: int = 0


def month_transactions(
    transactions: Iterable[Transaction], year: int, month: int
) -> list[Transaction]:
    """Transactions dated in ``(year, month)``; ``month`` is zero-based."""

    return [t for t in transactions if in_month(t.date, year, month)]


def monthly_stats(transactions: Iterable[Transaction]) -> MonthlyStats:
    income = _ZERO
    expense = _ZERO
    for t in transactions:
        if t.type is TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return MonthlyStats(total_income=income, total_expense=expense, balance=income - expense)


def category_stats(
    transactions: Sequence[Transaction], stats: MonthlyStats | None = None
) -> list[CategoryStat]:
    """Group ``transactions`` by category name, in first-seen order.

    A category's type is the type of its last transaction. Expense shares use
    the month's total expense as denominator (``1`` when there is none);
    income categories get ``0``.
    """

    stats = stats or monthly_stats(transactions)
    totals: dict[str, tuple[Decimal, TransactionType]] = {}
    for t in transactions:
        amount, _ = totals.get(t.category, (_ZERO, t.type))
        totals[t.category] = (amount + t.amount, t.type)

    denominator = stats.total_expense or Decimal("1")
    return [
        CategoryStat(
            category=cat,
            amount=amount,
            type=tx_type,
            percentage=(
                amount / denominator * _HUNDRED if tx_type is TransactionType.EXPENSE else _ZERO
            ),
        )
        for cat, (amount, tx_type) in totals.items()
    ]


def budget_report(
    stats: MonthlyStats,
    categories: Sequence[CategoryStat],
    goals: Iterable[BudgetGoal],
) -> list[BudgetLine]:
    """Compare each budget goal with the month's actual spending.

    The budget for a goal is ``total_income * target_percentage / 100``.
    Usage is ``actual / budget * 100``; with no budget it is ``100`` when
    anything was spent and ``0`` otherwise. Goals with neither budget nor
    spending are omitted. Lines are ordered by target percentage, highest
    first.
    """

    actual_by_category: dict[str, Decimal] = {}
    for c in categories:
        actual_by_category.setdefault(c.category, c.amount)

    lines: list[BudgetLine] = []
    for goal in goals:
        actual = actual_by_category.get(goal.category, _ZERO)
        budget = stats.total_income * goal.target_percentage / _HUNDRED
        if budget > 0:
            usage = actual / budget * _HUNDRED
        else:
            usage = _HUNDRED if actual > 0 else _ZERO
        if budget <= 0 and actual <= 0:
            continue
        lines.append(
            BudgetLine(
                category=goal.category,
                target_percentage=goal.target_percentage,
                budget_amount=budget,
                actual_amount=actual,
                remaining=budget - actual,
                usage_percent=usage,
            )
        )
    lines.sort(key=lambda line: line.target_percentage, reverse=True)
    return lines


def dashboard_breakdown(
    transactions: Iterable[Transaction],
) -> dict[TransactionCategory, CategoryBreakdown]:
    """Totals, paid totals and counts per dashboard group (income/fixed/variable)."""

    out = {group: CategoryBreakdown() for group in TransactionCategory}
    for t in transactions:
        b = out[t.effective_category]
        out[t.effective_category] = CategoryBreakdown(
            total=b.total + t.amount,
            paid=b.paid + t.amount if t.is_paid else b.paid,
            count=b.count + 1,
            paid_count=b.paid_count + 1 if t.is_paid else b.paid_count,
        )
    return out


def build_statement_report(
    rows: Sequence[ParsedStatementRow],
    *,
    reference_date: date,
    day_first: bool = True,
) -> StatementReport:
    """Summarize (categorized) statement rows.

    Parameters
    ----------
    rows:
        Rows with signed values; positive is income.
    reference_date:
        Period fallback when no row has a parseable date.
    day_first:
        Read ambiguous dates as ``DD/MM`` (Brazilian exports).

    Returns
    -------
    StatementReport
        ``total_expense`` is the (negative) sum of negative values;
        category totals are absolute and keyed by category (``"Outros"``
        when unset); banks are distinct non-empty names in first-seen order.
    """

    income = _ZERO
    expense = _ZERO
    categories: dict[str, Decimal] = {}
    banks: dict[str, None] = {}
    dates: list[date] = []

    for r in rows:
        if r.value > 0:
            income += r.value
        else:
            expense += r.value
        cat = r.category or FALLBACK_CATEGORY
        categories[cat] = categories.get(cat, _ZERO) + abs(r.value)
        if r.bank:
            banks.setdefault(r.bank, None)
        parsed = parse_statement_date(r.date, day_first=day_first)
        if parsed is not None:
            dates.append(parsed)

    period_start = min(dates) if dates else reference_date
    period_end = max(dates) if dates else period_start
    return StatementReport(
        period_start=period_start,
        period_end=period_end,
        total_income=income,
        total_expense=expense,
        categories=categories,
        banks=list(banks),
        transactions=list(rows),
    )


__all__ = [
    "MonthlyStats",
    "CategoryStat",
    "BudgetLine",
    "CategoryBreakdown",
    "month_transactions",
    "monthly_stats",
    "category_stats",
    "budget_report",
    "dashboard_breakdown",
    "build_statement_report",
]
