"""LLM-backed categorization of statement rows and free-text entries.

Public API:
    - :func:`categorize_statement_rows`
    - :func:`advise_on_statement`
    - :func:`parse_text_transaction`

All call the OpenAI Responses API with a strict JSON schema. HTTP 429 and 5xx
errors are retried with jittered backoff; anything else (including parse and
validation failures, which surface as ``ValueError``) is terminal. No side
effects occur at import time.
"""

from __future__ import annotations

import json
import math
import random
import time
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Any, NamedTuple

from openai import OpenAI
from openai.types.responses import ResponseTextConfigParam

from . import prompting
from .categorization import apply_decisions, parse_and_align_decisions
from .config import Settings
from .errors import CategorizationError
from .logging_setup import get_logger
from .models import (
    ParsedStatementRow,
    StatementAdvice,
    StatementDecision,
    StatementReport,
    TextParseResult,
)
from .pmap import p_map

_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20

_logger = get_logger("midas_finance.categorize")


# ---- Internal helpers --------------------------------------------------------


def _extract_response_json_mapping(resp: Any) -> Mapping[str, Any]:
    """Decode the JSON mapping from an OpenAI Responses SDK result.

    Prefers ``resp.output_text`` and falls back to
    ``resp.output[0].content[0].text``. Raises ``ValueError`` when no text is
    found or it is not valid JSON.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        output = getattr(resp, "output", None)
        first = output[0] if output else None
        content = getattr(first, "content", None)
        if content:
            txt_obj = getattr(content[0], "text", None)
            if isinstance(txt_obj, str):
                text = txt_obj
            else:
                maybe_val = getattr(txt_obj, "value", None)
                if isinstance(maybe_val, str):
                    text = maybe_val
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON per the requested schema") from e
    if not isinstance(decoded, Mapping):
        raise ValueError("Invalid response: expected a JSON object at top level")
    return decoded


def _paginate(n_total: int, page_size: int) -> Iterable[tuple[int, int, int]]:
    """Yield ``(page_index, base, end)`` half-open ranges covering ``n_total`` items."""

    pages_total = math.ceil(n_total / page_size)
    for k in range(pages_total):
        base = k * page_size
        yield (k, base, min(base + page_size, n_total))


def _create_client(settings: Settings) -> OpenAI:
    return OpenAI(api_key=settings.require_openai())


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors."""

    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    idx = min(attempt_no - 1, len(_BACKOFF_SCHEDULE_SEC) - 1)
    base = _BACKOFF_SCHEDULE_SEC[idx]
    jitter = base * _JITTER_PCT
    time.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


def _call_with_retries(
    client: Any,
    *,
    label: str,
    model: str,
    instructions: str,
    user_content: str,
    text_cfg: ResponseTextConfigParam,
) -> Mapping[str, Any]:
    """Run one Responses API call with the retry policy and decode its JSON."""

    attempt = 1
    while True:
        t0 = time.perf_counter()
        try:
            resp = client.responses.create(
                model=model,
                instructions=instructions,
                input=user_content,
                text=text_cfg,
            )
            return _extract_response_json_mapping(resp)
        except Exception as e:  # noqa: BLE001
            dt_ms = (time.perf_counter() - t0) * 1000.0
            if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                _logger.error(
                    "%s:failed_terminal latency_ms=%.2f attempt=%d error=%s",
                    label,
                    dt_ms,
                    attempt,
                    e.__class__.__name__,
                )
                if isinstance(e, ValueError):
                    raise
                raise CategorizationError(f"{label} failed after {attempt} attempt(s): {e}") from e
            _logger.warning(
                "%s:retry latency_ms=%.2f attempt=%d error=%s",
                label,
                dt_ms,
                attempt,
                e.__class__.__name__,
            )
            _sleep_backoff(attempt)
            attempt += 1


class PageResult(NamedTuple):
    page_index: int
    base: int
    decisions: list[StatementDecision]


def _categorize_page(
    page: tuple[int, int, int],
    *,
    rows: Sequence[ParsedStatementRow],
    client: Any,
    model: str,
    categories: Sequence[str],
    text_cfg: ResponseTextConfigParam,
) -> PageResult:
    page_index, base, end = page
    page_rows = rows[base:end]
    user_content = prompting.build_statement_user_content(
        prompting.serialize_statement_rows(page_rows), categories
    )
    _logger.info(
        "categorize_statement:page_llm page_index=%d num_transactions=%d",
        page_index,
        len(page_rows),
    )
    t0 = time.perf_counter()
    decoded = _call_with_retries(
        client,
        label=f"categorize_statement:page_{page_index}",
        model=model,
        instructions=prompting.build_statement_instructions(),
        user_content=user_content,
        text_cfg=text_cfg,
    )
    decisions = parse_and_align_decisions(
        decoded, num_items=len(page_rows), allowed_categories=categories
    )
    _logger.info(
        "categorize_statement:page_done page_index=%d num_transactions=%d latency_ms=%.2f",
        page_index,
        len(decisions),
        (time.perf_counter() - t0) * 1000.0,
    )
    return PageResult(page_index=page_index, base=base, decisions=decisions)


# ---- Public API --------------------------------------------------------------


def categorize_statement_rows(
    rows: Sequence[ParsedStatementRow],
    categories: Sequence[str] = prompting.DEFAULT_CATEGORIES,
    *,
    settings: Settings | None = None,
    client: Any | None = None,
) -> list[ParsedStatementRow]:
    """Categorize statement rows and correct their sign from direction.

    Rows are sent in pages of ``settings.categorize_page_size`` with at most
    ``settings.categorize_concurrency`` pages in flight. Each page carries
    page-relative ``idx`` values; results are stitched back in input order.

    Parameters
    ----------
    rows:
        Normalized statement rows.
    categories:
        Allow-list offered to the model. Must include the fallback category
        (``"Outros"``) so out-of-list answers stay within it.
    settings:
        Runtime settings; read from the environment when omitted.
    client:
        An ``openai.OpenAI``-shaped client; created from settings when omitted.

    Returns
    -------
    list[ParsedStatementRow]
        Same length and order as ``rows`` with ``category`` set and ``value``
        positive for income, negative for expense.
    """

    if not rows:
        return []
    if prompting.FALLBACK_CATEGORY not in categories:
        raise ValueError(f"categories must include {prompting.FALLBACK_CATEGORY!r}")

    settings = settings or Settings.from_env()
    client = client if client is not None else _create_client(settings)
    text_cfg: ResponseTextConfigParam = {
        "format": prompting.build_statement_response_format(categories)
    }
    pages = list(_paginate(len(rows), settings.categorize_page_size))
    _logger.info(
        "categorize_statement:start num_transactions=%d pages=%d",
        len(rows),
        len(pages),
    )

    results = p_map(
        pages,
        lambda page: _categorize_page(
            page,
            rows=rows,
            client=client,
            model=settings.openai_model,
            categories=categories,
            text_cfg=text_cfg,
        ),
        concurrency=min(settings.categorize_concurrency, len(pages)),
    )
    decisions = [d for page in sorted(results, key=lambda r: r.base) for d in page.decisions]
    return apply_decisions(rows, decisions)


def advise_on_statement(
    report: StatementReport,
    *,
    settings: Settings | None = None,
    client: Any | None = None,
) -> str:
    """Ask the model for savings advice on a categorized statement report.

    One call per report, made after categorization so the prompt sees final
    category totals. Returns the advice text, stripped.
    """

    settings = settings or Settings.from_env()
    client = client if client is not None else _create_client(settings)
    text_cfg: ResponseTextConfigParam = {"format": prompting.build_advice_response_format()}
    decoded = _call_with_retries(
        client,
        label="statement_advice",
        model=settings.openai_model,
        instructions=prompting.build_advice_instructions(),
        user_content=prompting.build_advice_user_content(report),
        text_cfg=text_cfg,
    )
    advice = StatementAdvice.model_validate(decoded).advice
    _logger.info("statement_advice:done chars=%d", len(advice))
    return advice


def parse_text_transaction(
    text: str,
    categories: Sequence[str],
    *,
    today: date,
    settings: Settings | None = None,
    client: Any | None = None,
) -> TextParseResult:
    """Read a free-text entry such as ``"gastei 50 no ifood ontem"``.

    Returns a :class:`TextParseResult`. When the model decides the text is not
    a transaction, only ``message`` is meaningful. A category outside
    ``categories`` is dropped (set to ``None``) so the caller can apply its
    own default.
    """

    if not text.strip():
        raise ValueError("text must be non-empty")
    settings = settings or Settings.from_env()
    client = client if client is not None else _create_client(settings)
    text_cfg: ResponseTextConfigParam = {
        "format": prompting.build_text_response_format(categories)
    }
    decoded = _call_with_retries(
        client,
        label="parse_text",
        model=settings.openai_model,
        instructions=prompting.build_text_instructions(),
        user_content=prompting.build_text_user_content(text, categories, today=today),
        text_cfg=text_cfg,
    )
    result = TextParseResult.model_validate(decoded)
    if result.category is not None and result.category not in categories:
        result = result.model_copy(update={"category": None})
    _logger.info(
        "parse_text:done is_transaction=%s installments=%s",
        result.is_transaction,
        result.installments,
    )
    return result


__all__ = ["categorize_statement_rows", "advise_on_statement", "parse_text_transaction"]
