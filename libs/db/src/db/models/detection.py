from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    CHAR,
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


# SQLite only autoincrements INTEGER PRIMARY KEY columns.
_BIGINT_PK = BigInteger().with_variant(Integer, "sqlite")


# ---------------------------
# Identity: dt_seen_messages
# ---------------------------


class DtSeenMessage(Base):
    """Fingerprints of inbound messages already processed on this install."""

    __tablename__ = "dt_seen_messages"

    fingerprint: Mapped[str] = mapped_column(String(64), primary_key=True)
    channel: Mapped[str] = mapped_column(String, nullable=False)
    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    # Refreshed on re-delivery; the notification duplicate window is measured
    # from here.
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


# ---------------------------
# Review: dt_pending_transactions
# ---------------------------


PENDING_STATUSES = ("detected", "saved", "saved_with_override_category", "skipped")


class DtPendingTransaction(Base):
    __tablename__ = "dt_pending_transactions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('detected','saved','saved_with_override_category','skipped')",
            name="ck_dt_pending_status",
        ),
        Index("ix_dt_pending_status", "status"),
    )

    pending_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source_channel: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="detected")
    # ParsedTransaction as detected (original category included).
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    override_category: Mapped[str | None] = mapped_column(String, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    record_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------
# Core: dt_transactions
# ---------------------------


class DtTransaction(Base):
    """Transactions the user confirmed; written by the SQL transaction sink."""

    __tablename__ = "dt_transactions"
    __table_args__ = (
        CheckConstraint("type IN ('income','expense')", name="ck_dt_tx_type"),
        CheckConstraint("amount > 0", name="ck_dt_tx_amount_positive"),
        Index("ix_dt_tx_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(_BIGINT_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency_code: Mapped[str] = mapped_column(CHAR(3), nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    provider: Mapped[str] = mapped_column(String, nullable=False)
    source_channel: Mapped[str] = mapped_column(String, nullable=False)
    raw_record: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
