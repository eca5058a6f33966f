"""Column-name pattern table for bank statement field detection.

The table is data: one ``(field, regex)`` entry per canonical field, evaluated
in the listed order. Each regex is matched case-insensitively as a substring
of a column name. Accented and unaccented spellings are both listed since
exports from Brazilian banks use either.
"""

from __future__ import annotations

import re
from typing import Final, Literal

type FieldName = Literal["date", "amount", "description", "bank", "category"]

FIELD_PATTERNS: Final[tuple[tuple[FieldName, re.Pattern[str]], ...]] = (
    (
        "date",
        re.compile(
            r"data|date|dt|lançamento|lancamento|transação|transacao|movimento|vencimento",
            re.IGNORECASE,
        ),
    ),
    (
        "amount",
        re.compile(
            r"valor|value|amount|quantia|importância|importancia|saldo|credito|debito"
            r"|crédito|débito|r\$|reais|montante",
            re.IGNORECASE,
        ),
    ),
    (
        "description",
        re.compile(
            r"descri|description|memo|histórico|historico|detalhe|observ|lançamento"
            r"|lancamento|nome|titulo|título|origem|destino|favorecido|pagador|estabelecimento",
            re.IGNORECASE,
        ),
    ),
    ("bank", re.compile(r"banco|bank|instituição|instituicao|conta", re.IGNORECASE)),
    (
        "category",
        re.compile(
            r"categoria|category|tipo|natureza|classificação|classificacao", re.IGNORECASE
        ),
    ),
)

# Header inference tokens, matched against the lower-cased joined cells of a row.
HEADER_DATE_TOKENS: Final[tuple[str, ...]] = ("data",)
HEADER_AMOUNT_TOKENS: Final[tuple[str, ...]] = ("valor",)
HEADER_DESCRIPTION_TOKENS: Final[tuple[str, ...]] = ("descrição", "descricao")
HEADER_TRANSACTION_TOKENS: Final[tuple[str, ...]] = ("transação", "transacao")

# Only this many leading rows are considered when looking for the header.
HEADER_SCAN_LIMIT: Final[int] = 20


__all__ = [
    "FieldName",
    "FIELD_PATTERNS",
    "HEADER_DATE_TOKENS",
    "HEADER_AMOUNT_TOKENS",
    "HEADER_DESCRIPTION_TOKENS",
    "HEADER_TRANSACTION_TOKENS",
    "HEADER_SCAN_LIMIT",
]
