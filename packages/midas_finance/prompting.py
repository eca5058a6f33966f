"""Prompt construction and payload serialization for the LLM oracles.

This module builds, for both statement categorization and free-text entry:

- The system instructions and user content sent to the OpenAI Responses API.
- The strict ``text.format`` JSON Schema the model output must conform to.

The statement advice prompt sees only the summarized report (period, totals
and category totals), never the individual rows.

Statement rows are serialized with page-relative ``idx`` values and the
amount magnitude only; direction is part of what the model decides.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import date
from typing import Any, Final

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

from .models import ParsedStatementRow, StatementReport

DEFAULT_CATEGORIES: Final[tuple[str, ...]] = (
    "Alimentação",
    "Transporte",
    "Moradia",
    "Lazer",
    "Compras",
    "Saúde",
    "Educação",
    "Receitas",
    "Outros",
)
FALLBACK_CATEGORY: Final[str] = "Outros"

# Short hints shown next to the default categories in the prompt.
_CATEGORY_HINTS: Final[dict[str, str]] = {
    "Alimentação": "restaurantes, supermercado, delivery, ifood, padaria, lanchonete",
    "Transporte": "uber, gasolina, estacionamento, passagem",
    "Moradia": "aluguel, condomínio, luz, água, gás, internet",
    "Lazer": "netflix, spotify, cinema, viagem, bar",
    "Compras": "roupas, eletrônicos, presentes",
    "Saúde": "médico, farmácia, academia",
    "Educação": "cursos, livros, faculdade",
    "Receitas": "APENAS para entradas: salário, freelance, vendas, recebimentos",
    "Outros": "não se encaixa nas anteriores",
}

_STATEMENT_RULES: Final[str] = """\
Rules:
- Payments at shops, restaurants and services are expenses.
- Salary, freelance work, received PIX transfers, "pagamento recebido" and sales are income.
- Subscriptions (Netflix, Spotify, ...) are expenses.
- Outgoing transfers are expenses.
- When unsure whether something is a purchase or payment, treat it as an expense.
"""


# ---------------------------------------------------------------------------
# Statement categorization
# ---------------------------------------------------------------------------


def serialize_statement_rows(rows: Sequence[ParsedStatementRow]) -> str:
    """Serialize a page of rows as a JSON array with page-relative ``idx``.

    Each object carries exactly ``idx, description, amount`` where ``amount``
    is the magnitude formatted with two decimals.
    """

    arr: list[dict[str, Any]] = [
        {"idx": i, "description": r.description, "amount": f"{abs(r.value):.2f}"}
        for i, r in enumerate(rows)
    ]
    return json.dumps(arr, ensure_ascii=False)


def build_statement_instructions() -> str:
    return (
        "You are a personal finance specialist. Analyze bank statement transactions, decide "
        "whether each one is money received (income) or money spent (expense), and assign "
        "exactly one category from the provided list. Never invent categories. Output JSON "
        "only that conforms to the specified schema."
    )


def _category_lines(categories: Sequence[str]) -> list[str]:
    lines: list[str] = []
    for c in categories:
        hint = _CATEGORY_HINTS.get(c)
        lines.append(f"- {c} ({hint})" if hint else f"- {c}")
    return lines


def build_statement_user_content(rows_json: str, categories: Sequence[str]) -> str:
    """Build the user content for one page of statement rows.

    Transactions are delimited by BEGIN_/END_ markers; the model must return
    one result per ``idx``.
    """

    parts = [
        "For each transaction below determine its CATEGORY and whether it is INCOME.",
        "",
        _STATEMENT_RULES,
        "Categories:",
        *_category_lines(categories),
        "",
        "Return one result per transaction with the same idx.",
        "BEGIN_TRANSACTIONS_JSON",
        rows_json,
        "END_TRANSACTIONS_JSON",
    ]
    return "\n".join(parts)


def build_statement_response_format(
    categories: Sequence[str],
) -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema for statement categorization results.

    Shape: ``{"results": [{"idx": int, "category": <enum>, "is_income": bool}]}``.
    """

    codes = [c for c in dict.fromkeys(s.strip() for s in categories) if c]
    if not codes:
        raise ValueError("categories must contain at least one non-blank name")

    return {
        "type": "json_schema",
        "name": "statement_categories",
        "schema": {
            "type": "object",
            "properties": {
                "results": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "idx": {"type": "integer"},
                            "category": {"type": "string", "enum": codes},
                            "is_income": {"type": "boolean"},
                        },
                        "required": ["idx", "category", "is_income"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["results"],
            "additionalProperties": False,
        },
        "strict": True,
    }


# ---------------------------------------------------------------------------
# Statement advice
# ---------------------------------------------------------------------------

_ADVICE_LAYOUT: Final[str] = """\
📊 RESUMO: [análise geral dos gastos]

💡 OPORTUNIDADES DE ECONOMIA:
• [dica específica 1 baseada nos dados]
• [dica específica 2]
• [dica específica 3]

⚠️ ATENÇÃO: [maior gasto ou categoria preocupante]

✅ PRÓXIMOS PASSOS: [1-2 ações concretas para economizar]
"""


def build_advice_instructions() -> str:
    return (
        "You are a personal finance specialist. Read the summary of a categorized bank "
        "statement and write practical savings advice in Brazilian Portuguese, grounded only "
        "in the figures given. Output JSON only that conforms to the specified schema."
    )


def build_advice_user_content(report: StatementReport) -> str:
    """Summarize ``report`` for the advice prompt, largest category first."""

    ranked = sorted(report.categories.items(), key=lambda kv: kv[1], reverse=True)
    parts = [
        f"Period: {report.period_start.isoformat()} to {report.period_end.isoformat()}",
        f"Total income: {report.total_income:.2f}",
        f"Total expense: {abs(report.total_expense):.2f}",
        f"Transactions: {len(report.transactions)}",
        "",
        "Totals by category:",
        *(f"- {name}: {total:.2f}" for name, total in ranked),
        "",
        "Write the advice with this layout, keeping the line breaks:",
        _ADVICE_LAYOUT,
    ]
    return "\n".join(parts)


def build_advice_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    return {
        "type": "json_schema",
        "name": "statement_advice",
        "schema": {
            "type": "object",
            "properties": {"advice": {"type": "string"}},
            "required": ["advice"],
            "additionalProperties": False,
        },
        "strict": True,
    }


# ---------------------------------------------------------------------------
# Free-text entry
# ---------------------------------------------------------------------------


def build_text_instructions() -> str:
    return "You are a helpful financial assistant. Output JSON only."


def build_text_user_content(text: str, categories: Sequence[str], *, today: date) -> str:
    """Build the prompt for reading a free-text (Portuguese) entry.

    ``today`` anchors relative dates such as "ontem"; it is passed in rather
    than read from the clock.
    """

    cats = ", ".join(categories)
    return f"""\
Analyze the Portuguese text. Today is {today.isoformat()}.

1. DETERMINE GOAL:
   - If it is a transaction (spending or receiving money), set is_transaction to true.
   - If it is a question, advice request or random chat, set is_transaction to false.

2. IF TRANSACTION:
   - Extract amount, description, type and date (YYYY-MM-DD).
   - CATEGORY MATCHING: map to one of: [{cats}].
   - INSTALLMENTS: look for patterns like "em X vezes", "X parcelas", "10x",
     "parcelado em X". "1200 em 10x" means amount 1200 and installments 10.
     Use 1 when none is given.
   - "message": a short, friendly confirmation (for example "Entendido, R$ 50 em Alimentação.").

3. IF NOT TRANSACTION:
   - "message": answer the question concisely.
   - Leave amount, description, category, type, date and installments null.

Input: {json.dumps(text, ensure_ascii=False)}
"""


def build_text_response_format(
    categories: Sequence[str],
) -> ResponseFormatTextJSONSchemaConfigParam:
    codes = [c for c in dict.fromkeys(s.strip() for s in categories) if c]
    if not codes:
        raise ValueError("categories must contain at least one non-blank name")

    return {
        "type": "json_schema",
        "name": "text_transaction",
        "schema": {
            "type": "object",
            "properties": {
                "is_transaction": {"type": "boolean"},
                "amount": {"type": ["number", "null"]},
                "description": {"type": ["string", "null"]},
                "category": {"type": ["string", "null"], "enum": codes + [None]},
                "type": {"type": ["string", "null"], "enum": ["INCOME", "EXPENSE", None]},
                "date": {"type": ["string", "null"]},
                "installments": {"type": ["integer", "null"]},
                "message": {"type": "string"},
            },
            "required": [
                "is_transaction",
                "amount",
                "description",
                "category",
                "type",
                "date",
                "installments",
                "message",
            ],
            "additionalProperties": False,
        },
        "strict": True,
    }


__all__ = [
    "DEFAULT_CATEGORIES",
    "FALLBACK_CATEGORY",
    "serialize_statement_rows",
    "build_statement_instructions",
    "build_statement_user_content",
    "build_statement_response_format",
    "build_advice_instructions",
    "build_advice_user_content",
    "build_advice_response_format",
    "build_text_instructions",
    "build_text_user_content",
    "build_text_response_format",
]
