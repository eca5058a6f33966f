from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import pytest

from midas_finance.models import ParsedStatementRow, StatementReport
from midas_finance.prompting import (
    DEFAULT_CATEGORIES,
    build_advice_response_format,
    build_advice_user_content,
    build_statement_response_format,
    build_statement_user_content,
    build_text_response_format,
    build_text_user_content,
    serialize_statement_rows,
)
from tests.helpers.openai_stub import extract_items_from_user_content


def test_statement_content_embeds_rows_and_categories() -> None:
    rows = [ParsedStatementRow("01/03/2024", "Padaria São João", Decimal("-7.5"))]

    content = build_statement_user_content(serialize_statement_rows(rows), DEFAULT_CATEGORIES)

    assert extract_items_from_user_content(content) == [
        {"idx": 0, "description": "Padaria São João", "amount": "7.50"}
    ]
    for cat in DEFAULT_CATEGORIES:
        assert f"- {cat}" in content


def test_response_formats_dedupe_and_require_categories() -> None:
    fmt = build_statement_response_format([" Lazer", "Lazer", "Outros", ""])

    enum = fmt["schema"]["properties"]["results"]["items"]["properties"]["category"]["enum"]
    assert enum == ["Lazer", "Outros"]
    with pytest.raises(ValueError):
        build_text_response_format(["  "])


def test_text_content_is_anchored_to_today() -> None:
    content = build_text_user_content('comprei "tênis" 300', ["Compras"], today=date(2024, 3, 15))

    assert "Today is 2024-03-15" in content
    assert "[Compras]" in content
    assert json.dumps('comprei "tênis" 300', ensure_ascii=False) in content


def test_advice_content_summarizes_the_report() -> None:
    report = StatementReport(
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        total_income=Decimal("4200"),
        total_expense=Decimal("-245.8"),
        categories={"Lazer": Decimal("45.9"), "Compras": Decimal("199.9")},
        banks=["Itaú"],
        transactions=[ParsedStatementRow("01/03/2024", "MERCADO LIVRE", Decimal("-199.9"))],
    )

    content = build_advice_user_content(report)

    assert "Period: 2024-03-01 to 2024-03-31" in content
    assert "Total expense: 245.80" in content
    assert content.index("- Compras: 199.90") < content.index("- Lazer: 45.90")
    assert "MERCADO LIVRE" not in content
    fmt = build_advice_response_format()
    assert fmt["strict"] is True
    assert fmt["schema"]["required"] == ["advice"]
