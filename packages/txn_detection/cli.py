# ruff: noqa: I001
"""Diagnostics CLI for the ``txn_detection`` package.

Commands parse one message from the command line and print the detected
transaction as JSON, drive the chat path, inspect the seen-set and walk the
pending review queue interactively. Environment variables (``DATABASE_URL``,
``OPENAI_API_KEY``, ``TXN_DETECTION_*``) are loaded from a local ``.env`` with
``python-dotenv`` before any command runs.
"""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path

import typer
from dotenv import load_dotenv

from .config import Settings
from .logging_setup import configure_logging
from .models import (
    ChatUserMessage,
    IncomingEmail,
    IncomingNotification,
    IncomingSMS,
    ParsedTransaction,
    RawMessage,
)


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Detect financial transactions in bank SMS, emails, notifications and chat text.",
)
seen_app = typer.Typer(no_args_is_help=True, help="Inspect or clear the seen-message fingerprints.")
pending_app = typer.Typer(no_args_is_help=True, help="List or resolve pending transactions.")
app.add_typer(seen_app, name="seen")
app.add_typer(pending_app, name="pending")


# ---- helpers -------------------------------------------------------------------


def _settings(database_url: str | None = None) -> Settings:
    overrides: dict[str, object] = {}
    if database_url:
        overrides["database_url"] = database_url
    try:
        return Settings.from_env(**overrides)
    except ValueError as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(1) from e


def _now_ms() -> int:
    return int(time.time() * 1000)


def _echo_tx(tx: ParsedTransaction | None, *, pending_id: str | None = None) -> None:
    if tx is None:
        typer.echo("No transaction detected.")
        return
    payload: dict[str, object] = dict(tx.to_payload())
    payload.pop("raw_text", None)
    if pending_id is not None:
        payload["pending_id"] = pending_id
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _engine(settings: Settings):
    # Deferred so pure parse commands do not need a database.
    from .engine import DetectionEngine

    if not settings.database_url:
        typer.echo("Error: DATABASE_URL is not set (use --database-url).", err=True)
        raise typer.Exit(1)
    return DetectionEngine.from_settings(settings)


# ---- parse commands ------------------------------------------------------------


@app.command("parse-sms")
def parse_sms_cmd(
    sender: str = typer.Option(..., help="SMS sender id, e.g. VIETCOMBANK."),
    body: str = typer.Option(..., help="SMS text."),
    received_at_ms: int | None = typer.Option(None, help="Receive time (epoch ms); defaults to now."),
    persist: bool = typer.Option(
        False, help="Run the full pipeline (dedup + pending review row) instead of a dry parse."
    ),
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
) -> None:
    """Parse one bank SMS."""

    settings = _settings(database_url)
    sms = IncomingSMS(sender=sender, body=body, received_at_epoch_ms=received_at_ms or _now_ms())
    if persist:
        event = asyncio.run(_engine(settings).handle_sms(sms))
        if event is None:
            typer.echo("No transaction detected (or already seen).")
            return
        _echo_tx(event.transaction, pending_id=event.pending_id)
        return

    from .parsers import sms_parser

    parser = sms_parser(home_currency=settings.home_currency, default_category=settings.sms_default_category)
    _echo_tx(parser.parse(RawMessage.from_sms(sms)))


@app.command("parse-email")
def parse_email_cmd(
    sender: str = typer.Option(..., help="From address."),
    subject: str = typer.Option("", help="Email subject."),
    body: str = typer.Option(..., help="Plain-text email body."),
    received_at_ms: int | None = typer.Option(None, help="Receive time (epoch ms); defaults to now."),
    persist: bool = typer.Option(False, help="Run the full pipeline instead of a dry parse."),
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
) -> None:
    """Parse one bank or e-wallet email."""

    settings = _settings(database_url)
    email = IncomingEmail(
        subject=subject, body=body, sender=sender, received_at_epoch_ms=received_at_ms or _now_ms()
    )
    if persist:
        event = asyncio.run(_engine(settings).handle_email(email))
        if event is None:
            typer.echo("No transaction detected (or already seen).")
            return
        _echo_tx(event.transaction, pending_id=event.pending_id)
        return

    from .parsers import EmailParser

    parser = EmailParser(home_currency=settings.home_currency, default_category=settings.email_default_category)
    _echo_tx(parser.parse(RawMessage.from_email(email)))


@app.command("parse-notification")
def parse_notification_cmd(
    package: str = typer.Option(..., help="Posting app package, e.g. com.acb."),
    text: str = typer.Option(..., help="Notification text."),
    title: str = typer.Option("", help="Notification title."),
    persist: bool = typer.Option(False, help="Run the full pipeline instead of a dry parse."),
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
) -> None:
    """Parse one bank push notification (grouped summaries print one object per line item)."""

    settings = _settings(database_url)
    note = IncomingNotification(package_name=package, title=title, text=text, received_at_epoch_ms=_now_ms())
    if persist:
        events = asyncio.run(_engine(settings).handle_notification(note))
        if not events:
            typer.echo("No transaction detected (or duplicate).")
        for event in events:
            _echo_tx(event.transaction, pending_id=event.pending_id)
        return

    from .parsers import NotificationParser

    txs = NotificationParser(home_currency=settings.home_currency).parse_all(RawMessage.from_notification(note))
    if not txs:
        _echo_tx(None)
    for tx in txs:
        _echo_tx(tx)


@app.command("chat")
def chat_cmd(
    text: str = typer.Argument(..., help="Chat message, e.g. 'spent 50000₫ on groceries'."),
    user_id: str = typer.Option("local", help="User id recorded on the pending transaction."),
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
) -> None:
    """Send one chat message through oracle, chat cascade and canned replies."""

    engine = _engine(_settings(database_url))
    reply = asyncio.run(engine.handle_chat(ChatUserMessage(text=text, user_id=user_id)))
    typer.echo(reply.message)
    if reply.transaction is not None:
        _echo_tx(reply.transaction, pending_id=reply.pending_id)


# ---- seen-set ----------------------------------------------------------------


@seen_app.command("list")
def seen_list_cmd(
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
) -> None:
    from .identity import FingerprintStore

    for fid in FingerprintStore(_settings(database_url).database_url).list_ids():
        typer.echo(fid)


@seen_app.command("clear")
def seen_clear_cmd(
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
    yes: bool = typer.Option(False, "--yes", help="Do not ask for confirmation."),
) -> None:
    """Forget every seen fingerprint (messages will be processed again)."""

    from .identity import FingerprintStore

    if not yes and not typer.confirm("Clear all seen-message fingerprints?"):
        raise typer.Exit(1)
    removed = FingerprintStore(_settings(database_url).database_url).clear()
    typer.echo(f"Removed {removed} fingerprint(s).")


# ---- pending review ------------------------------------------------------------


def _fmt_pending(p) -> str:
    tx = p.transaction
    return (
        f"{p.pending_id}  {tx.type.value:<7} {tx.amount} {tx.currency}  "
        f"[{tx.category}]  {tx.description}  ({tx.provider}, {tx.source_channel.value})"
    )


@pending_app.command("list")
def pending_list_cmd(
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
) -> None:
    from .review import PendingReviewBook

    items = PendingReviewBook(_settings(database_url).database_url).list_open()
    if not items:
        typer.echo("No pending transactions.")
    for p in items:
        typer.echo(_fmt_pending(p))


@pending_app.command("resolve")
def pending_resolve_cmd(
    user_id: str = typer.Option("local", help="User id the saved transactions belong to."),
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
) -> None:
    """Walk open pending transactions: save, skip, change category or leave for later."""

    from .categories import PICKER_CATEGORIES
    from .review import PersistenceFailure
    from .term_ui import prompt_review_action, select_category

    engine = _engine(_settings(database_url))
    items = engine.review.list_open()
    if not items:
        typer.echo("No pending transactions.")
        return
    for p in items:
        typer.echo(_fmt_pending(p))
        while True:
            action = prompt_review_action()
            if action == "later":
                break
            if action == "category":
                choices = list(dict.fromkeys([*PICKER_CATEGORIES, p.transaction.category]))
                category = select_category(choices, default=p.transaction.category)
                p = asyncio.run(engine.change_category(p.pending_id, category))
                typer.echo(f"Category set to {p.transaction.category}.")
                continue
            try:
                if action == "save":
                    res = asyncio.run(engine.save(p.pending_id, user_id=user_id))
                else:
                    res = asyncio.run(engine.skip(p.pending_id))
            except PersistenceFailure as e:
                typer.echo(f"Error: {e.user_message}", err=True)
                continue
            typer.echo(res.message)
            break


# ---- database ----------------------------------------------------------------


@app.command("init-db")
def init_db_cmd(
    database_url: str | None = typer.Option(None, help="Override DATABASE_URL (falls back to env var)."),
) -> None:
    """Create the detection tables directly (development; use Alembic elsewhere)."""

    from db import Base
    from db.client import get_engine

    try:
        engine = get_engine(database_url=_settings(database_url).database_url)
    except RuntimeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    Base.metadata.create_all(bind=engine)
    typer.echo("Detection tables are ready.")


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()
