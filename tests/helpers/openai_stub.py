"""Test helpers to stub the OpenAI Responses client used by categorize.py.

``StatementOpenAIStub`` parses the user-content payload to extract the
embedded transactions JSON array and answers with one decision per item, as
chosen by a ``decide`` callable. Advice requests get the canned ``advice``.
``FixedOpenAIStub`` replays canned responses (or raises canned errors) in
order.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Sequence
from typing import Any

BEGIN = "BEGIN_TRANSACTIONS_JSON\n"
END = "\nEND_TRANSACTIONS_JSON"


def extract_items_from_user_content(user_content: str) -> list[dict[str, Any]]:
    b = user_content.find(BEGIN)
    e = user_content.rfind(END)
    if b == -1 or e == -1 or e <= b:
        raise AssertionError("categorize: user content missing embedded transactions JSON block")
    return json.loads(user_content[b + len(BEGIN) : e])


class _Resp:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text


class StatementOpenAIStub:
    """Minimal stub matching ``openai.OpenAI`` shape for statement pages.

    Parameters
    ----------
    decide:
        Receives one serialized item (``idx``, ``description``, ``amount``)
        and returns ``(category, is_income)``, or ``None`` to leave the item
        out of the response.
    advice:
        Text returned for the statement advice request.
    """

    def __init__(
        self,
        decide: Callable[[dict[str, Any]], tuple[str, bool] | None],
        *,
        advice: str = "",
    ) -> None:
        self._decide = decide
        self._advice = advice
        self.calls: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        outer = self

        class _Responses:
            def create(self, **kwargs: Any) -> _Resp:
                with outer._lock:
                    outer.calls.append(kwargs)
                if kwargs["text"]["format"]["name"] == "statement_advice":
                    return _Resp(json.dumps({"advice": outer._advice}))
                results = []
                for item in extract_items_from_user_content(kwargs["input"]):
                    decision = outer._decide(item)
                    if decision is None:
                        continue
                    category, is_income = decision
                    results.append(
                        {"idx": item["idx"], "category": category, "is_income": is_income}
                    )
                return _Resp(json.dumps({"results": results}))

        self.responses = _Responses()


class FixedOpenAIStub:
    """Replays ``outcomes`` in order: dicts are returned as JSON, exceptions raised."""

    def __init__(self, outcomes: Sequence[dict[str, Any] | BaseException]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []
        outer = self

        class _Responses:
            def create(self, **kwargs: Any) -> _Resp:
                outer.calls.append(kwargs)
                outcome = outer._outcomes.pop(0)
                if isinstance(outcome, BaseException):
                    raise outcome
                return _Resp(json.dumps(outcome))

        self.responses = _Responses()


class HTTPStatusError(Exception):
    """Stand-in for an SDK error carrying ``status_code``."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
