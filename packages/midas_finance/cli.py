# ruff: noqa: I001
"""CLI for the ``midas_finance`` package.

A Typer-based console interface over :mod:`midas_finance.ledger`.
Environment variables (``DATABASE_URL``, ``OPENAI_API_KEY`` and the
``MIDAS_*`` tunables) are loaded from a local ``.env`` using
``python-dotenv`` before any command runs. Business logic lives in the
ledger and the modules it calls; commands only parse arguments, call into it
and print results.

Months are given on the command line as calendar months (1-12).
"""

from __future__ import annotations

import sys
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from dotenv import load_dotenv

from .config import Settings
from .errors import ConfigurationError
from .logging_setup import configure_logging


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    raise typer.Exit(code=1)


def _parse_decimal(raw: str, *, name: str) -> Decimal:
    try:
        value = Decimal(raw.replace(",", "."))
    except InvalidOperation:
        _fail(f"{name} must be a number, got {raw!r}")
    if not value.is_finite():
        _fail(f"{name} must be a finite number, got {raw!r}")
    return value


def _month_index(month: int) -> int:
    if not 1 <= month <= 12:
        _fail(f"month must be within 1..12, got {month}")
    return month - 1


def _fmt_money(value: Decimal) -> str:
    return f"{value:.2f}"


def _settings(database_url: str | None = None) -> Settings:
    """Settings from the environment, with ``--database-url`` taking precedence."""

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        _fail(str(e))
    if database_url:
        settings = replace(settings, database_url=database_url)
    return settings


def _database_url(database_url: str | None) -> str:
    try:
        return _settings(database_url).require_database()
    except ConfigurationError as e:
        _fail(str(e))


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Personal finance ledger: recurring bills, statement imports and budgets. "
        "Loads DATABASE_URL and OPENAI_API_KEY from a local .env before running."
    ),
)

USER_OPTION = typer.Option("--user", "-u", help="User id owning the ledger rows.")
DATABASE_URL_OPTION = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


@app.command("materialize")
def materialize_cmd(
    user: Annotated[str, USER_OPTION],
    year: Annotated[int, typer.Option(help="Target year.")],
    month: Annotated[int, typer.Option(help="Target calendar month (1-12).")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Create this month's transactions for every recurring template."""

    from sqlalchemy.exc import SQLAlchemyError

    from .ledger import sync_recurring_for_month

    month_index = _month_index(month)
    url = _database_url(database_url)
    try:
        outcome = sync_recurring_for_month(user, year, month_index, database_url=url)
    except (SQLAlchemyError, RuntimeError) as e:
        _fail(f"materialize failed: {e}")

    for tx in outcome.created:
        print(f"{tx.date:%Y-%m-%d}\t{tx.type.value}\t{_fmt_money(tx.amount)}\t{tx.description}")
    print(
        f"created={len(outcome.created)} persisted={outcome.persisted} failed={outcome.failed}"
    )
    if outcome.failed:
        print(
            f"Warning: {outcome.failed} transaction(s) could not be saved; "
            "run the command again to retry.",
            file=sys.stderr,
        )


@app.command("import-statement")
def import_statement_cmd(
    paths: Annotated[list[Path], typer.Argument(help="Statement files (.csv, .tsv, .txt, .xlsx).")],
    user: Annotated[str, USER_OPTION],
    categorize: Annotated[
        bool, typer.Option(help="Categorize rows with the LLM before summarizing.")
    ] = True,
    persist: Annotated[bool, typer.Option(help="Store the report in the database.")] = True,
    month_first: Annotated[
        bool, typer.Option(help="Read ambiguous dates as MM/DD instead of DD/MM.")
    ] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Import bank statements and print the summary report."""

    from sqlalchemy.exc import SQLAlchemyError

    from .errors import MidasError
    from .ledger import import_statement

    settings = _settings(database_url)
    try:
        if categorize:
            settings.require_openai()
        if persist:
            settings.require_database()
        result = import_statement(
            user,
            paths,
            reference_date=date.today(),
            categorize=categorize,
            persist=persist,
            day_first=not month_first,
            database_url=settings.database_url,
            settings=settings,
        )
    except (MidasError, ValueError) as e:
        _fail(str(e))
    except SQLAlchemyError as e:
        _fail(f"persistence failed: {e}")

    report = result.report
    print(f"report\t{result.file_name}\t{report.period_start}..{report.period_end}")
    print(f"income\t{_fmt_money(report.total_income)}")
    print(f"expense\t{_fmt_money(report.total_expense)}")
    for cat, total in sorted(report.categories.items(), key=lambda kv: kv[1], reverse=True):
        print(f"category\t{cat}\t{_fmt_money(total)}")
    if report.banks:
        print(f"banks\t{', '.join(report.banks)}")
    if report.advice:
        print("advice")
        print(report.advice)
    if result.report_id is not None:
        print(f"saved\t{result.report_id}")


@app.command("report")
def report_cmd(
    user: Annotated[str, USER_OPTION],
    year: Annotated[int, typer.Option(help="Report year.")],
    month: Annotated[int, typer.Option(help="Report calendar month (1-12).")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Print monthly totals, category shares and budget usage."""

    from sqlalchemy.exc import SQLAlchemyError

    from .ledger import monthly_report

    month_index = _month_index(month)
    url = _database_url(database_url)
    try:
        rep = monthly_report(user, year, month_index, database_url=url)
    except (SQLAlchemyError, RuntimeError) as e:
        _fail(f"report failed: {e}")

    print(f"month\t{year:04d}-{month:02d}")
    print(f"income\t{_fmt_money(rep.stats.total_income)}")
    print(f"expense\t{_fmt_money(rep.stats.total_expense)}")
    print(f"balance\t{_fmt_money(rep.stats.balance)}")
    for group, b in rep.breakdown.items():
        print(f"group\t{group.value}\t{_fmt_money(b.total)}\tpaid={b.paid_count}/{b.count}")
    for c in rep.categories:
        print(f"category\t{c.category}\t{_fmt_money(c.amount)}\t{c.percentage:.1f}%")
    for line in rep.budget:
        print(
            f"budget\t{line.category}\ttarget={line.target_percentage}%"
            f"\tbudget={_fmt_money(line.budget_amount)}\tactual={_fmt_money(line.actual_amount)}"
            f"\tusage={line.usage_percent:.1f}%"
        )


@app.command("set-budget")
def set_budget_cmd(
    category: Annotated[str, typer.Argument(help="Category name.")],
    percentage: Annotated[str, typer.Argument(help="Share of monthly income (0-100).")],
    user: Annotated[str, USER_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Set the budget goal of a category as a share of income."""

    from sqlalchemy.exc import SQLAlchemyError

    from .ledger import set_budget

    pct = _parse_decimal(percentage, name="percentage")
    url = _database_url(database_url)
    try:
        goal = set_budget(user, category, pct, database_url=url)
    except ValueError as e:
        _fail(str(e))
    except (SQLAlchemyError, RuntimeError) as e:
        _fail(f"persistence failed: {e}")
    print(f"{goal.category}\t{goal.target_percentage}%")


@app.command("add-recurring")
def add_recurring_cmd(
    name: Annotated[str, typer.Argument(help="Template name, used as description.")],
    amount: Annotated[str, typer.Argument(help="Monthly amount.")],
    user: Annotated[str, USER_OPTION],
    day: Annotated[int, typer.Option(help="Day of month (1-31); clamped in short months.")],
    category: Annotated[str, typer.Option(help="Category name.")] = "Outros",
    income: Annotated[bool, typer.Option(help="Mark as income instead of expense.")] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Add a monthly recurring income or expense."""

    from sqlalchemy.exc import SQLAlchemyError

    from .ledger import add_recurring
    from .models import TransactionType

    value = _parse_decimal(amount, name="amount")
    url = _database_url(database_url)
    try:
        template = add_recurring(
            user,
            name=name,
            amount=value,
            category=category,
            type=TransactionType.INCOME if income else TransactionType.EXPENSE,
            day_of_month=day,
            database_url=url,
        )
    except ValueError as e:
        _fail(str(e))
    except (SQLAlchemyError, RuntimeError) as e:
        _fail(f"persistence failed: {e}")
    print(f"{template.id}\t{template.name}\tday={template.day_of_month}")


@app.command("add-text")
def add_text_cmd(
    text: Annotated[str, typer.Argument(help='Free text, e.g. "gastei 50 no ifood".')],
    user: Annotated[str, USER_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Record a transaction described in free text (LLM assisted)."""

    from sqlalchemy.exc import SQLAlchemyError

    from .errors import MidasError
    from .ledger import record_text_transaction

    settings = _settings(database_url)
    try:
        settings.require_openai()
        url = settings.require_database()
        result, txs = record_text_transaction(
            user, text, today=date.today(), database_url=url, settings=settings
        )
    except (MidasError, ValueError) as e:
        _fail(str(e))
    except SQLAlchemyError as e:
        _fail(f"persistence failed: {e}")

    for tx in txs:
        print(f"{tx.date:%Y-%m-%d}\t{tx.type.value}\t{_fmt_money(tx.amount)}\t{tx.description}")
    if result.message:
        print(result.message)


@app.command("delete")
def delete_cmd(
    transaction_id: Annotated[str, typer.Argument(help="Transaction id.")],
    user: Annotated[str, USER_OPTION],
    installments: Annotated[
        bool, typer.Option(help="Also delete the other installments of the same purchase.")
    ] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete a transaction (or a whole installment purchase)."""

    from sqlalchemy.exc import SQLAlchemyError

    from .ledger import delete_transaction

    url = _database_url(database_url)
    try:
        removed = delete_transaction(
            user, transaction_id, include_installments=installments, database_url=url
        )
    except SQLAlchemyError as e:
        _fail(f"persistence failed: {e}")
    if not removed:
        _fail(f"no transaction {transaction_id!r} for user {user!r}")
    print(f"deleted={removed}")


@app.command("set-category")
def set_category_cmd(
    transaction_id: Annotated[str, typer.Argument(help="Transaction id.")],
    category: Annotated[str, typer.Argument(help="New category name.")],
    user: Annotated[str, USER_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Move a transaction to another category."""

    from sqlalchemy.exc import SQLAlchemyError

    from .ledger import recategorize_transaction

    url = _database_url(database_url)
    try:
        found = recategorize_transaction(user, transaction_id, category, database_url=url)
    except ValueError as e:
        _fail(str(e))
    except SQLAlchemyError as e:
        _fail(f"persistence failed: {e}")
    if not found:
        _fail(f"no transaction {transaction_id!r} for user {user!r}")
    print(f"{transaction_id}\t{category.strip()}")


@app.command("mark-paid")
def mark_paid_cmd(
    transaction_id: Annotated[str, typer.Argument(help="Transaction id.")],
    user: Annotated[str, USER_OPTION],
    paid: Annotated[bool, typer.Option("--paid/--unpaid", help="New paid state.")] = True,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Mark a bill paid (stamped with the current time) or unpaid."""

    from sqlalchemy.exc import SQLAlchemyError

    from .ledger import mark_paid

    url = _database_url(database_url)
    paid_at = datetime.now().replace(microsecond=0) if paid else None
    try:
        found = mark_paid(user, transaction_id, paid=paid, paid_at=paid_at, database_url=url)
    except SQLAlchemyError as e:
        _fail(f"persistence failed: {e}")
    if not found:
        _fail(f"no transaction {transaction_id!r} for user {user!r}")
    print(f"{transaction_id}\t{'paid' if paid else 'unpaid'}")


@app.command("remove-recurring")
def remove_recurring_cmd(
    recurring_id: Annotated[str, typer.Argument(help="Recurring template id.")],
    user: Annotated[str, USER_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete a recurring template together with the transactions it created."""

    from sqlalchemy.exc import SQLAlchemyError

    from .ledger import remove_recurring

    url = _database_url(database_url)
    try:
        removed = remove_recurring(user, recurring_id, database_url=url)
    except SQLAlchemyError as e:
        _fail(f"persistence failed: {e}")
    print(f"removed={removed}")


@app.callback()
def _root(
    log_level: Annotated[
        str | None, typer.Option(help="Log level (defaults to MIDAS_LOG_LEVEL or INFO).")
    ] = None,
) -> None:
    """Load ``.env`` from the current directory and configure logging."""

    # Keep already-set environment variables.
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level or _settings().log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
