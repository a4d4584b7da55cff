"""Language-model parser adapter.

Free text ("вчера кофе 60, такси 150") goes to the OpenAI Responses API with a
JSON-only instruction prompt. The answer is untrusted: it is decoded into a
plain mapping, each candidate is coerced into a loose item dict and only
becomes a draft after passing the strict validator in :mod:`.validation`.
"""

from __future__ import annotations

import json
import os
import time
from collections.abc import Mapping
from datetime import date
from typing import Any

from openai import OpenAI
from sqlalchemy.orm import Session

from .categories import CATEGORY_IDS, normalize_category_id
from .drafts import create_draft
from .errors import ValidationError
from .logging_setup import get_logger, log_event
from .models import DraftDetails, ParseResult
from .settings import load_settings

_logger = get_logger("finance_ledger.parsing")


class MissingApiKeyError(RuntimeError):
    """``OPENAI_API_KEY`` is not configured."""

    def __init__(self) -> None:
        super().__init__("OPENAI_API_KEY is not configured")


def build_parser_instructions(today: date) -> str:
    categories = "|".join(CATEGORY_IDS)
    return (
        "You are a personal finance parser. Reply with valid JSON only, no prose.\n"
        "Schema:\n"
        "{\n"
        '  "recognizedText": "the original text",\n'
        '  "transactions": [\n'
        '    {"date": "YYYY-MM-DD", "amount": number, "currency": "UAH", '
        f'"category": "{categories}", "description": "short", '
        '"type": "expense|income"}\n'
        "  ],\n"
        '  "warnings": ["strings"],\n'
        '  "questions": ["strings"]\n'
        "}\n"
        f"Dates: when the text names no date use today ({today.isoformat()}). Understand "
        '"today", "yesterday" and "on the weekend" (the most recent past weekend) in '
        "English, Russian and Ukrainian.\n"
        "Never invent transactions; use only what the text says. If the category is "
        'unclear use "other" and explain it in warnings. Amounts are always positive; '
        'use "type" for the direction of money.'
    )


def _create_client() -> OpenAI:
    if not (os.getenv("OPENAI_API_KEY") or "").strip():
        raise MissingApiKeyError()
    return OpenAI()


def _extract_response_json_mapping(resp: Any) -> Mapping[str, Any]:
    """Decode the JSON object from a Responses API result.

    Prefers ``resp.output_text`` and falls back to
    ``resp.output[0].content[0].text``.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        output = getattr(resp, "output", None)
        content = getattr(output[0], "content", None) if output else None
        if content:
            txt_obj = getattr(content[0], "text", None)
            text = txt_obj if isinstance(txt_obj, str) else getattr(txt_obj, "value", None)
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON") from e
    if not isinstance(decoded, Mapping):
        raise ValueError("Model output was not a JSON object")
    return decoded


def _coerce_candidate(raw: Mapping[str, Any], *, today: date, source: str) -> dict[str, Any]:
    """Loose, lossless-where-possible shaping of one model candidate.

    Nothing here guarantees validity; the strict validator decides later.
    """

    amount = raw.get("amount")
    if isinstance(amount, str):
        amount = amount.replace(",", ".").replace(" ", "")
    return {
        "date": raw.get("date") if isinstance(raw.get("date"), str) else today.isoformat(),
        "amount": amount,
        "currency": raw.get("currency") if isinstance(raw.get("currency"), str) else None,
        "category": normalize_category_id(raw.get("category")),
        "description": raw.get("description") if isinstance(raw.get("description"), str) else "",
        "source": source,
        "type": raw.get("type") if isinstance(raw.get("type"), str) else None,
    }


def _str_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value if isinstance(v, str) and v.strip())


def parse_text(
    text: str, *, today: date, client: Any | None = None, source: str = "ai-text"
) -> ParseResult:
    """Ask the model to extract candidate transactions from ``text``.

    Parameters
    ----------
    text:
        User statement; must be non-empty.
    today:
        Day used when the text names no date (also embedded in the prompt).
    client:
        Optional OpenAI-compatible client exposing ``responses.create``.
        Defaults to ``openai.OpenAI()``; raises :class:`MissingApiKeyError`
        when ``OPENAI_API_KEY`` is unset.
    source:
        Provenance tag stamped on every candidate.
    """

    if not isinstance(text, str) or not text.strip():
        raise ValidationError("is required", path="text")
    settings = load_settings()
    client = client if client is not None else _create_client()

    t0 = time.perf_counter()
    resp = client.responses.create(
        model=settings.llm_model,
        instructions=build_parser_instructions(today),
        input=text,
    )
    decoded = _extract_response_json_mapping(resp)
    dt_ms = (time.perf_counter() - t0) * 1000.0

    raw_items = decoded.get("transactions")
    candidates = tuple(
        _coerce_candidate(t, today=today, source=source)
        for t in (raw_items if isinstance(raw_items, list) else [])
        if isinstance(t, Mapping)
    )
    recognized = decoded.get("recognizedText")
    log_event(
        _logger,
        "parse_text:done",
        text_length=len(text),
        transactions=len(candidates),
        latency_ms=f"{dt_ms:.2f}",
    )
    return ParseResult(
        recognized_text=recognized if isinstance(recognized, str) and recognized else text,
        transactions=candidates,
        warnings=_str_list(decoded.get("warnings")),
        questions=_str_list(decoded.get("questions")),
    )


def draft_from_parse(
    session: Session,
    *,
    owner_id: str,
    parsed: ParseResult,
    source: str = "ai-text",
    lang: str | None = None,
    title: str | None = None,
) -> DraftDetails:
    """Store parser candidates as a new draft after strict validation."""

    return create_draft(
        session,
        owner_id=owner_id,
        source=source,
        items=list(parsed.transactions),
        lang=lang,
        title=title,
    )


__all__ = [
    "MissingApiKeyError",
    "build_parser_instructions",
    "draft_from_parse",
    "parse_text",
]
