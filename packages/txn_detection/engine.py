# ruff: noqa: I001
"""Detection engine: wires parsers, identity, review and the chat oracle.

One :class:`DetectionEngine` is built per process and handed to whatever
delivers inbound messages. It owns no module-level state.

Feed messages (SMS, email, notifications) go through::

    fingerprint -> seen? -> parse -> open pending -> mark seen -> emit

A message that was already seen or that carries no transaction stops early
and produces no event. Chat messages are never de-duplicated; they go to the
oracle first (when configured), then the deterministic chat cascade, and
finally get a canned reply when neither finds a transaction.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from .categories import CHAT_CATEGORIES, CHAT_EXPENSE_DEFAULT, CHAT_INCOME_DEFAULT, TAXONOMY, classify
from .config import Settings
from .descriptions import chat_description, narrative_clause
from .identity import FingerprintStore, fingerprint, notification_fingerprint
from .logging_setup import get_logger
from .models import (
    ChatUserMessage,
    EngineEvent,
    IncomingEmail,
    IncomingNotification,
    IncomingSMS,
    OracleIntent,
    ParsedTransaction,
    RawMessage,
    SourceChannel,
    TransactionDetected,
    TransactionResolved,
    TransactionType,
)
from .money import detect_currency
from .oracle import ChatOracle
from .parsers import (
    ChatParser,
    EmailParser,
    NotificationParser,
    TransactionParser,
    canned_reply,
    sms_parser,
)
from .persistence import TransactionSink
from .poller import Fetch, MessagePoller
from .review import PendingReviewBook, PendingTransaction, Resolution

_logger = get_logger("txn_detection.engine")

type Listener = Callable[[EngineEvent], None]

CHAT_FOUND_MESSAGE = (
    "I found a {type} transaction. Please review the details below and confirm if you want to save it."
)


@dataclass(frozen=True, slots=True)
class ChatReply:
    """Bot answer to one chat message; ``transaction`` is set for previews."""

    message: str
    transaction: ParsedTransaction | None = None
    pending_id: str | None = None


class DetectionEngine:
    def __init__(
        self,
        settings: Settings,
        *,
        fingerprints: FingerprintStore,
        review: PendingReviewBook,
        oracle: ChatOracle | None = None,
    ) -> None:
        self.settings = settings
        self.fingerprints = fingerprints
        self.review = review
        self.oracle = oracle
        home = settings.home_currency
        self.sms = sms_parser(home_currency=home, default_category=settings.sms_default_category)
        self.email = EmailParser(home_currency=home, default_category=settings.email_default_category)
        self.notification = NotificationParser(home_currency=home)
        self.chat = ChatParser(home_currency=home)
        self._listeners: list[Listener] = []

    @classmethod
    def from_settings(cls, settings: Settings, *, sink: TransactionSink | None = None) -> DetectionEngine:
        """Build an engine whose stores share ``settings.database_url``."""

        oracle = None
        if settings.oracle_enabled:
            oracle = ChatOracle(model=settings.oracle_model, home_currency=settings.home_currency)
        return cls(
            settings,
            fingerprints=FingerprintStore(settings.database_url),
            review=PendingReviewBook(settings.database_url, sink=sink),
            oracle=oracle,
        )

    # ---- events ----------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, event: EngineEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - a listener must not break the pipeline
                _logger.exception("engine:listener_failed event=%s", type(event).__name__)

    # ---- feed channels -----------------------------------------------------------

    async def handle_sms(self, sms: IncomingSMS) -> TransactionDetected | None:
        return self._process(RawMessage.from_sms(sms), self.sms)

    async def handle_email(self, email: IncomingEmail) -> TransactionDetected | None:
        message = RawMessage.from_email(email)
        return self._process(message, self.email.parser_for(message))

    async def handle_notification(self, note: IncomingNotification) -> list[TransactionDetected]:
        """Handle a bank push notification; grouped summaries may yield several events."""

        message = RawMessage.from_notification(note)
        fid = notification_fingerprint(note.package_name, message.body)
        window = self.settings.notification_duplicate_window_seconds
        if self.fingerprints.seen(fid, window=window):
            _logger.debug("engine:duplicate channel=notification fingerprint=%s", fid)
            return []
        txs = self.notification.parse_all(message)
        if not txs:
            _logger.debug("engine:no_match channel=notification sender=%s", note.package_name)
            return []
        events = [
            TransactionDetected(transaction=tx, pending_id=self.review.open(tx, fingerprint=fid))
            for tx in txs
        ]
        self.fingerprints.mark_seen(fid, channel=message.channel.value)
        for event in events:
            self._detected(event)
        return events

    def _process(self, message: RawMessage, parser: TransactionParser) -> TransactionDetected | None:
        fid = fingerprint(message)
        if self.fingerprints.seen(fid):
            _logger.debug("engine:duplicate channel=%s fingerprint=%s", message.channel.value, fid)
            return None
        tx = parser.parse(message)
        if tx is None:
            _logger.debug("engine:no_match channel=%s sender=%s", message.channel.value, message.sender)
            return None
        pending_id = self.review.open(tx, fingerprint=fid)
        self.fingerprints.mark_seen(fid, channel=message.channel.value)
        event = TransactionDetected(transaction=tx, pending_id=pending_id)
        self._detected(event)
        return event

    def _detected(self, event: TransactionDetected) -> None:
        tx = event.transaction
        _logger.info(
            "engine:detected pending_id=%s source=%s rule=%s amount=%s currency=%s type=%s category=%s",
            event.pending_id,
            tx.source_channel.value,
            tx.pattern,
            tx.amount,
            tx.currency,
            tx.type.value,
            tx.category,
        )
        self._emit(event)

    # ---- chat ------------------------------------------------------------------

    async def handle_chat(self, chat: ChatUserMessage) -> ChatReply:
        text = chat.text.strip()
        tx: ParsedTransaction | None = None
        if text and self.oracle is not None:
            intent = await self._ask_oracle(text)
            if intent is not None and intent.accepted:
                tx = self._from_intent(text, intent)
        if tx is None and text:
            tx = self.chat.parse(RawMessage.from_chat(chat))
        if tx is None:
            return ChatReply(message=canned_reply(text))

        pending_id = self.review.open(tx, user_id=chat.user_id)
        event = TransactionDetected(transaction=tx, pending_id=pending_id)
        self._detected(event)
        return ChatReply(
            message=CHAT_FOUND_MESSAGE.format(type=tx.type.value),
            transaction=tx,
            pending_id=pending_id,
        )

    async def _ask_oracle(self, text: str) -> OracleIntent | None:
        if self.oracle is None:
            return None
        timeout = self.settings.oracle_timeout_seconds
        try:
            return await asyncio.wait_for(self.oracle.detect(text), timeout=timeout)
        except TimeoutError:
            _logger.info("engine:oracle_timeout timeout_s=%.1f", timeout)
            return None

    def _from_intent(self, text: str, intent: OracleIntent) -> ParsedTransaction | None:
        if intent.amount is None or intent.type is None:
            return None
        if intent.category in TAXONOMY:
            category = intent.category
        else:
            default = CHAT_INCOME_DEFAULT if intent.type is TransactionType.INCOME else CHAT_EXPENSE_DEFAULT
            category = classify(text, CHAT_CATEGORIES, default=default)
        description = narrative_clause(text) or intent.description or chat_description(text)
        try:
            return ParsedTransaction(
                amount=intent.amount,
                type=intent.type,
                currency=intent.currency or detect_currency(text) or self.settings.home_currency,
                description=description,
                category=category,
                provider="Chat",
                source_channel=SourceChannel.CHAT,
                pattern="oracle",
                raw_text=text,
            )
        except ValueError:
            _logger.debug("engine:oracle_intent_rejected", exc_info=True)
            return None

    # ---- review ----------------------------------------------------------------

    async def change_category(self, pending_id: str, category: str) -> PendingTransaction:
        return self.review.change_category(pending_id, category)

    async def save(self, pending_id: str, *, user_id: str | None = None) -> Resolution:
        return self._resolved(self.review.save(pending_id, user_id=user_id))

    async def skip(self, pending_id: str) -> Resolution:
        return self._resolved(self.review.skip(pending_id))

    async def dismiss(self, pending_id: str) -> Resolution:
        return self._resolved(self.review.dismiss(pending_id))

    def _resolved(self, resolution: Resolution) -> Resolution:
        if resolution.applied and resolution.outcome is not None:
            self._emit(TransactionResolved(pending_id=resolution.pending_id, outcome=resolution.outcome))
        return resolution

    # ---- polling ---------------------------------------------------------------

    def sms_poller(self, fetch: Fetch) -> MessagePoller:
        return MessagePoller(fetch, self.handle_sms, interval=self.settings.poll_interval_seconds, name="sms")

    def email_poller(self, fetch: Fetch) -> MessagePoller:
        return MessagePoller(
            fetch, self.handle_email, interval=self.settings.poll_interval_seconds, name="email"
        )


__all__ = ["CHAT_FOUND_MESSAGE", "ChatReply", "DetectionEngine", "Listener"]
