"""CLI for the ``finance_ledger`` package.

Command handlers (``cmd_*``) return a process exit code and print JSON on
stdout; errors go to stderr as ``Error: ...`` with exit code 1. The Typer
console interface loads ``.env`` from the working directory with
``python-dotenv`` and configures logging before delegating to the handlers.
Business logic lives in :mod:`finance_ledger.api`.
"""

from __future__ import annotations

import json
import sys
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .errors import LedgerError
from .logging_setup import configure_logging
from .parsing import MissingApiKeyError

# Errors reported to the user as a one-line message instead of a traceback.
_USER_ERRORS: tuple[type[BaseException], ...] = (
    LedgerError,
    MissingApiKeyError,
    RuntimeError,
    OSError,
    ValueError,
)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _parse_now(raw: str | None) -> datetime:
    if not raw:
        return datetime.now(UTC)
    value = datetime.fromisoformat(raw)
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def cmd_resolve_period(phrase: str, *, now: str | None = None) -> int:
    from .api import resolve_period

    try:
        period = resolve_period(phrase, _parse_now(now))
    except ValueError as e:
        return _fail(str(e))
    _print_json(period.as_dict())
    return 0


def cmd_create_draft(
    items_file: str,
    *,
    owner_id: str,
    source: str = "manual",
    lang: str | None = None,
    title: str | None = None,
    database_url: str | None = None,
) -> int:
    """Create a draft from a JSON file holding an array of items."""

    from .api import create_draft, get_draft

    try:
        with open(items_file, encoding="utf-8") as f:
            items = json.load(f)
        draft_id = create_draft(
            owner_id, source, items, lang=lang, title=title, database_url=database_url
        )
        draft = get_draft(draft_id, owner_id, database_url=database_url)
    except _USER_ERRORS as e:
        return _fail(str(e))
    _print_json(draft.to_dict())
    return 0


def cmd_list_drafts(
    *, owner_id: str, limit: int = 20, database_url: str | None = None
) -> int:
    from .api import list_drafts

    try:
        rows = list_drafts(owner_id, limit, database_url=database_url)
    except _USER_ERRORS as e:
        return _fail(str(e))
    _print_json([r.to_dict() for r in rows])
    return 0


def cmd_show_draft(draft_id: str, *, owner_id: str, database_url: str | None = None) -> int:
    from .api import get_draft

    try:
        draft = get_draft(draft_id, owner_id, database_url=database_url)
    except _USER_ERRORS as e:
        return _fail(str(e))
    _print_json(draft.to_dict())
    return 0


def cmd_apply_draft(draft_id: str, *, owner_id: str, database_url: str | None = None) -> int:
    from .api import apply_draft

    try:
        result = apply_draft(draft_id, owner_id, database_url=database_url)
    except _USER_ERRORS as e:
        return _fail(str(e))
    _print_json(result.to_dict())
    return 0


def cmd_discard_draft(draft_id: str, *, owner_id: str, database_url: str | None = None) -> int:
    from .api import discard_draft, get_draft

    try:
        discard_draft(draft_id, owner_id, database_url=database_url)
        draft = get_draft(draft_id, owner_id, database_url=database_url)
    except _USER_ERRORS as e:
        return _fail(str(e))
    _print_json(draft.summary().to_dict())
    return 0


def cmd_summary(
    *,
    owner_id: str,
    date_from: str | None = None,
    date_to: str | None = None,
    period: str | None = None,
    type: str | None = None,
    now: str | None = None,
    database_url: str | None = None,
) -> int:
    """Summarize an explicit range, or the range a ``period`` phrase resolves to."""

    from .api import resolve_period, summarize

    try:
        if date_from and date_to:
            d_from: date | str = date_from
            d_to: date | str = date_to
        elif date_from or date_to:
            return _fail("--from and --to must be given together")
        else:
            resolved = resolve_period(period, _parse_now(now))
            d_from, d_to = resolved.date_from, resolved.date_to
        summary = summarize(owner_id, d_from, d_to, type, database_url=database_url)
    except _USER_ERRORS as e:
        return _fail(str(e))
    _print_json(summary.to_dict())
    return 0


def cmd_ask(
    message: str,
    *,
    owner_id: str,
    lang: str = "en",
    now: str | None = None,
    database_url: str | None = None,
) -> int:
    from .api import answer_question

    try:
        answer = answer_question(
            owner_id, message, now=_parse_now(now), lang=lang, database_url=database_url
        )
    except _USER_ERRORS as e:
        return _fail(str(e))
    _print_json(answer.to_dict())
    return 0


def cmd_parse_text(
    text: str,
    *,
    owner_id: str,
    save: bool = False,
    lang: str | None = None,
    database_url: str | None = None,
) -> int:
    """Parse free text with the language model; optionally store it as a draft."""

    from .api import create_draft_from_text, parse_text

    try:
        if save:
            draft, parsed = create_draft_from_text(
                owner_id, text, lang=lang, database_url=database_url
            )
        else:
            draft, parsed = None, parse_text(text)
    except _USER_ERRORS as e:
        return _fail(str(e))
    _print_json(
        {
            "recognized_text": parsed.recognized_text,
            "transactions": list(parsed.transactions),
            "warnings": list(parsed.warnings),
            "questions": list(parsed.questions),
            "draft": draft.to_dict() if draft is not None else None,
        }
    )
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Drafts, idempotent ledger commits and spending summaries. "
        "Loads DATABASE_URL and OPENAI_API_KEY from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
OWNER_OPTION: OptionInfo = typer.Option(..., "--owner", help="Owner (user) id.")
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
NOW_OPTION: OptionInfo = typer.Option(
    None, "--now", help="Reference instant (ISO 8601); defaults to the current UTC time."
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("resolve-period")
def resolve_period_cmd(
    phrase: Annotated[str, typer.Argument(help="Relative phrase, e.g. 'last week'.")],
    now: str | None = NOW_OPTION,
) -> None:
    """Print the absolute date range for a relative phrase."""

    _exit(cmd_resolve_period(phrase, now=now))


@app.command("create-draft")
def create_draft_cmd(
    items_file: Annotated[Path, typer.Option(..., "--items-file", help="JSON array of items.")],
    owner: Annotated[str, OWNER_OPTION],
    source: Annotated[str, typer.Option(help="ai-text, ai-voice or manual.")] = "manual",
    lang: Annotated[str | None, typer.Option(help="en, ru or uk.")] = None,
    title: Annotated[str | None, typer.Option(help="Optional draft title.")] = None,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    _exit(
        cmd_create_draft(
            str(items_file),
            owner_id=owner,
            source=source,
            lang=lang,
            title=title,
            database_url=database_url,
        )
    )


@app.command("list-drafts")
def list_drafts_cmd(
    owner: Annotated[str, OWNER_OPTION],
    limit: Annotated[int, typer.Option(help="1..100, most recent first.")] = 20,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    _exit(cmd_list_drafts(owner_id=owner, limit=limit, database_url=database_url))


@app.command("show-draft")
def show_draft_cmd(
    draft_id: Annotated[str, typer.Argument()],
    owner: Annotated[str, OWNER_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    _exit(cmd_show_draft(draft_id, owner_id=owner, database_url=database_url))


@app.command("apply-draft")
def apply_draft_cmd(
    draft_id: Annotated[str, typer.Argument()],
    owner: Annotated[str, OWNER_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Commit a draft to the ledger (safe to repeat)."""

    _exit(cmd_apply_draft(draft_id, owner_id=owner, database_url=database_url))


@app.command("discard-draft")
def discard_draft_cmd(
    draft_id: Annotated[str, typer.Argument()],
    owner: Annotated[str, OWNER_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    _exit(cmd_discard_draft(draft_id, owner_id=owner, database_url=database_url))


@app.command("summary")
def summary_cmd(
    owner: Annotated[str, OWNER_OPTION],
    date_from: Annotated[str | None, typer.Option("--from", help="YYYY-MM-DD")] = None,
    date_to: Annotated[str | None, typer.Option("--to", help="YYYY-MM-DD")] = None,
    period: Annotated[
        str | None, typer.Option(help="Relative phrase used when --from/--to are omitted.")
    ] = None,
    type: Annotated[str | None, typer.Option("--type", help="income, expense or all.")] = None,
    now: str | None = NOW_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Income, expense and balance with breakdowns by category and date."""

    _exit(
        cmd_summary(
            owner_id=owner,
            date_from=date_from,
            date_to=date_to,
            period=period,
            type=type,
            now=now,
            database_url=database_url,
        )
    )


@app.command("ask")
def ask_cmd(
    message: Annotated[str, typer.Argument(help="Question about spending.")],
    owner: Annotated[str, OWNER_OPTION],
    lang: Annotated[str, typer.Option(help="Answer language: en, ru or uk.")] = "en",
    now: str | None = NOW_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    _exit(cmd_ask(message, owner_id=owner, lang=lang, now=now, database_url=database_url))


@app.command("parse-text")
def parse_text_cmd(
    text: Annotated[str, typer.Argument(help="Free-form statement about money movements.")],
    owner: Annotated[str, OWNER_OPTION],
    save: Annotated[bool, typer.Option(help="Store the result as a draft.")] = False,
    lang: Annotated[str | None, typer.Option(help="en, ru or uk.")] = None,
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Parse text with the language model (requires OPENAI_API_KEY)."""

    _exit(
        cmd_parse_text(text, owner_id=owner, save=save, lang=lang, database_url=database_url)
    )


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()
