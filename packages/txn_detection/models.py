"""Data models for ``txn_detection``.

Inbound events mirror what the host's listeners deliver (SMS, email, chat,
bank app notifications). ``RawMessage`` is the channel-neutral view that the
parsers and the identity store consume. ``ParsedTransaction`` is the engine's
structured output; it is immutable and a category override produces a new
instance via :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Channel(StrEnum):
    SMS = "sms"
    EMAIL = "email"
    CHAT = "chat"
    NOTIFICATION = "notification"


class SourceChannel(StrEnum):
    """Provenance tag carried on every parsed transaction."""

    SMS = "sms"
    EMAIL_BANK = "email-bank"
    EMAIL_WALLET = "email-wallet"
    CHAT = "chat"
    NOTIFICATION = "notification"


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class Outcome(StrEnum):
    """Terminal outcomes of a pending transaction."""

    SAVED = "saved"
    SAVED_WITH_OVERRIDE_CATEGORY = "saved_with_override_category"
    SKIPPED = "skipped"


# ---------------------------------------------------------------------------
# Inbound events
# ---------------------------------------------------------------------------


def _from_epoch_ms(value: int | float) -> datetime:
    return datetime.fromtimestamp(float(value) / 1000.0, tz=UTC)


@dataclass(frozen=True, slots=True)
class IncomingSMS:
    sender: str
    body: str
    received_at_epoch_ms: int


@dataclass(frozen=True, slots=True)
class IncomingEmail:
    subject: str
    body: str
    sender: str
    received_at_epoch_ms: int


@dataclass(frozen=True, slots=True)
class IncomingNotification:
    """A push notification posted by a banking app on the device."""

    package_name: str
    title: str
    text: str
    received_at_epoch_ms: int


@dataclass(frozen=True, slots=True)
class ChatUserMessage:
    text: str
    user_id: str


@dataclass(frozen=True, slots=True)
class RawMessage:
    """Channel-neutral view of an inbound message.

    ``subject`` is only populated for email. For notifications ``sender`` holds
    the posting app's package name and ``body`` the notification text (or the
    title when the text is empty).
    """

    channel: Channel
    sender: str
    body: str
    received_at: datetime
    subject: str | None = None

    @classmethod
    def from_sms(cls, sms: IncomingSMS) -> RawMessage:
        return cls(
            channel=Channel.SMS,
            sender=sms.sender,
            body=sms.body,
            received_at=_from_epoch_ms(sms.received_at_epoch_ms),
        )

    @classmethod
    def from_email(cls, email: IncomingEmail) -> RawMessage:
        return cls(
            channel=Channel.EMAIL,
            sender=email.sender,
            body=email.body,
            subject=email.subject,
            received_at=_from_epoch_ms(email.received_at_epoch_ms),
        )

    @classmethod
    def from_notification(cls, note: IncomingNotification) -> RawMessage:
        return cls(
            channel=Channel.NOTIFICATION,
            sender=note.package_name,
            body=note.text or note.title or "",
            received_at=_from_epoch_ms(note.received_at_epoch_ms),
        )

    @classmethod
    def from_chat(cls, chat: ChatUserMessage, *, received_at: datetime | None = None) -> RawMessage:
        return cls(
            channel=Channel.CHAT,
            sender=chat.user_id,
            body=chat.text,
            received_at=received_at or datetime.now(UTC),
        )

    @property
    def full_text(self) -> str:
        """Body plus subject, used for keyword scans that cover both."""

        if self.subject:
            return f"{self.subject}\n{self.body}"
        return self.body


# ---------------------------------------------------------------------------
# Parsed output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParsedTransaction:
    """A structured transaction extracted from one message.

    Attributes
    ----------
    amount:
        Strictly positive magnitude; direction lives in ``type``.
    currency:
        Three-letter code; the configured home currency when undetectable.
    description:
        Never empty; parsers fall back to a channel label.
    category:
        A member of :data:`txn_detection.categories.TAXONOMY`.
    provider:
        Best-effort bank or wallet name derived from the sender identity.
    pattern:
        Name of the rule that matched (``"oracle"`` for chat oracle intents).
    """

    amount: Decimal
    type: TransactionType
    currency: str
    description: str
    category: str
    provider: str
    source_channel: SourceChannel
    pattern: str = ""
    raw_text: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not self.amount.is_finite() or self.amount <= 0:
            raise ValueError(f"ParsedTransaction.amount must be positive, got {self.amount}")
        if not self.description.strip():
            raise ValueError("ParsedTransaction.description must be non-empty")

    def with_category(self, category: str) -> ParsedTransaction:
        return replace(self, category=category)

    def to_payload(self) -> dict[str, str]:
        """JSON-safe mapping used for the pending store and CLI output."""

        return {
            "amount": str(self.amount),
            "type": self.type.value,
            "currency": self.currency,
            "description": self.description,
            "category": self.category,
            "provider": self.provider,
            "source_channel": self.source_channel.value,
            "pattern": self.pattern,
            "raw_text": self.raw_text,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, str]) -> ParsedTransaction:
        return cls(
            amount=Decimal(payload["amount"]),
            type=TransactionType(payload["type"]),
            currency=payload["currency"],
            description=payload["description"],
            category=payload["category"],
            provider=payload["provider"],
            source_channel=SourceChannel(payload["source_channel"]),
            pattern=payload.get("pattern", ""),
            raw_text=payload.get("raw_text", ""),
        )


# ---------------------------------------------------------------------------
# Outbound events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionDetected:
    transaction: ParsedTransaction
    pending_id: str


@dataclass(frozen=True, slots=True)
class TransactionResolved:
    pending_id: str
    outcome: Outcome


type EngineEvent = TransactionDetected | TransactionResolved


# ---------------------------------------------------------------------------
# Oracle DTO
# ---------------------------------------------------------------------------


class OracleIntent(BaseModel):
    """Validated transaction intent returned by the chat oracle.

    ``is_transaction`` false means the oracle declined; the remaining fields
    are then ignored. When true, ``amount`` must be a positive finite number
    and ``type`` one of ``income``/``expense``.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    is_transaction: bool
    type: TransactionType | None = None
    amount: Decimal | None = None
    currency: str | None = None
    category: str | None = None
    description: str | None = None

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: Decimal | None) -> Decimal | None:
        if v is None:
            return None
        if not v.is_finite() or v <= 0:
            raise ValueError("amount must be a positive finite number")
        return v

    @field_validator("currency")
    @classmethod
    def _currency_code(cls, v: str | None) -> str | None:
        if v is None or not v:
            return None
        code = v.upper()
        if len(code) != 3 or not code.isalpha():
            return None
        return code

    @field_validator("category", "description")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v

    @property
    def accepted(self) -> bool:
        return self.is_transaction and self.amount is not None and self.type is not None


__all__ = [
    "Channel",
    "SourceChannel",
    "TransactionType",
    "Outcome",
    "IncomingSMS",
    "IncomingEmail",
    "IncomingNotification",
    "ChatUserMessage",
    "RawMessage",
    "ParsedTransaction",
    "TransactionDetected",
    "TransactionResolved",
    "EngineEvent",
    "OracleIntent",
]
