"""Public interface for the ``midas_finance`` package.

This module re-exports the package's operations and models as the stable
import surface. There is no runtime logic here, only symbol re-exports.
"""

from .categorize import categorize_statement_rows, parse_text_transaction
from .ingest import (
    FIELD_PATTERNS,
    detect_fields,
    find_header_row,
    load_statement,
    normalize_statement_rows,
    parse_amount,
)
from .installments import split_installments
from .ledger import (
    MaterializationOutcome,
    import_statement,
    record_text_transaction,
    record_transaction,
    sync_recurring_for_month,
)
from .models import (
    BudgetGoal,
    ParsedStatementRow,
    RecurringTemplate,
    StatementReport,
    TextParseResult,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from .recurring import materialize_recurring
from .reports import (
    budget_report,
    build_statement_report,
    category_stats,
    dashboard_breakdown,
    month_transactions,
    monthly_stats,
)

__all__ = [
    # Core
    "materialize_recurring",
    "FIELD_PATTERNS",
    "parse_amount",
    "find_header_row",
    "detect_fields",
    "normalize_statement_rows",
    "load_statement",
    "split_installments",
    # Oracle client
    "categorize_statement_rows",
    "parse_text_transaction",
    # Reports
    "month_transactions",
    "monthly_stats",
    "category_stats",
    "budget_report",
    "dashboard_breakdown",
    "build_statement_report",
    # Service
    "MaterializationOutcome",
    "sync_recurring_for_month",
    "record_transaction",
    "record_text_transaction",
    "import_statement",
    # Models
    "TransactionType",
    "TransactionCategory",
    "Transaction",
    "RecurringTemplate",
    "BudgetGoal",
    "ParsedStatementRow",
    "StatementReport",
    "TextParseResult",
]
