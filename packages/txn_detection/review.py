# ruff: noqa: I001
"""Pending-transaction review state machine.

Every detected transaction is opened as a row in ``dt_pending_transactions``
with status ``detected``. From there exactly one terminal transition is
allowed:

- ``save`` hands the transaction to the :class:`TransactionSink` and ends in
  ``saved`` or, when the category was changed first,
  ``saved_with_override_category``;
- ``skip`` ends in ``skipped`` without a persistence call;
- ``dismiss`` (chat previews closed without action) also ends in
  ``skipped`` but carries no confirmation message.

``change_category`` is not terminal and may be repeated while the row is
open. Any action on a terminal row is a no-op that returns a non-applied
:class:`Resolution`; the sink is never called twice for one pending id.

Rows live in the database rather than in whatever surface shows them, so a
pending item survives the surface being torn down.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select, update

from db.client import session_scope
from db.models.detection import DtPendingTransaction

from .categories import TAXONOMY
from .logging_setup import get_logger
from .models import Outcome, ParsedTransaction, SourceChannel
from .persistence import SqlTransactionSink, TransactionSink

_logger = get_logger("txn_detection.review")

DETECTED = "detected"

SAVED_MESSAGE = "Transaction added successfully!"
SKIPPED_MESSAGE = "Transaction skipped."
ALREADY_RESOLVED_MESSAGE = "This transaction was already handled."
SAVE_FAILED_MESSAGE = "Failed to save transaction. Please try again."


class PersistenceFailure(RuntimeError):
    """Saving failed; the item stays pending and ``save`` may be retried."""

    def __init__(self, pending_id: str, message: str = SAVE_FAILED_MESSAGE) -> None:
        super().__init__(message)
        self.pending_id = pending_id
        self.user_message = message


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    pending_id: str
    transaction: ParsedTransaction
    original_category: str
    status: str
    user_id: str | None
    created_at: datetime
    resolved_at: datetime | None = None
    record_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status == DETECTED

    @property
    def outcome(self) -> Outcome | None:
        return None if self.is_open else Outcome(self.status)

    @property
    def category_overridden(self) -> bool:
        return self.transaction.category != self.original_category


@dataclass(frozen=True, slots=True)
class Resolution:
    """Result of a save/skip/dismiss call.

    ``applied`` is False when the pending id was already terminal; ``outcome``
    then reports the earlier outcome.
    """

    pending_id: str
    outcome: Outcome | None
    applied: bool
    message: str
    record_id: str | None = None


def _snapshot(row: DtPendingTransaction) -> PendingTransaction:
    original = ParsedTransaction.from_payload(row.payload)
    effective = original.with_category(row.override_category) if row.override_category else original
    return PendingTransaction(
        pending_id=row.pending_id,
        transaction=effective,
        original_category=original.category,
        status=row.status,
        user_id=row.user_id,
        created_at=row.created_at,
        resolved_at=row.resolved_at,
        record_id=row.record_id,
    )


class PendingReviewBook:
    def __init__(self, database_url: str | None = None, *, sink: TransactionSink | None = None) -> None:
        self._database_url = database_url
        self._sink: TransactionSink = sink if sink is not None else SqlTransactionSink(database_url)

    # ---- queries -------------------------------------------------------------

    def get(self, pending_id: str) -> PendingTransaction:
        with session_scope(database_url=self._database_url) as s:
            row = s.get(DtPendingTransaction, pending_id)
            if row is None:
                raise KeyError(pending_id)
            return _snapshot(row)

    def list_open(self) -> list[PendingTransaction]:
        with session_scope(database_url=self._database_url) as s:
            stmt = (
                select(DtPendingTransaction)
                .where(DtPendingTransaction.status == DETECTED)
                .order_by(DtPendingTransaction.created_at, DtPendingTransaction.pending_id)
            )
            return [_snapshot(row) for row in s.scalars(stmt).all()]

    # ---- transitions -----------------------------------------------------------

    def open(
        self,
        tx: ParsedTransaction,
        *,
        fingerprint: str | None = None,
        user_id: str | None = None,
    ) -> str:
        pending_id = uuid.uuid4().hex
        with session_scope(database_url=self._database_url) as s:
            s.add(
                DtPendingTransaction(
                    pending_id=pending_id,
                    fingerprint=fingerprint,
                    source_channel=tx.source_channel.value,
                    status=DETECTED,
                    payload=tx.to_payload(),
                    user_id=user_id,
                )
            )
        _logger.info(
            "review:open pending_id=%s source=%s category=%s",
            pending_id,
            tx.source_channel.value,
            tx.category,
        )
        return pending_id

    def change_category(self, pending_id: str, category: str) -> PendingTransaction:
        """Select a different category; the row stays open until save/skip."""

        if category not in TAXONOMY:
            raise ValueError(f"unknown category: {category!r}")
        with session_scope(database_url=self._database_url) as s:
            row = s.get(DtPendingTransaction, pending_id)
            if row is None:
                raise KeyError(pending_id)
            if row.status != DETECTED:
                _logger.info("review:change_category_ignored pending_id=%s status=%s", pending_id, row.status)
                return _snapshot(row)
            original = row.payload.get("category")
            row.override_category = None if category == original else category
            s.flush()
            snap = _snapshot(row)
        _logger.info("review:change_category pending_id=%s category=%s", pending_id, category)
        return snap

    def save(self, pending_id: str, *, user_id: str | None = None) -> Resolution:
        current = self.get(pending_id)
        if not current.is_open:
            return self._already_resolved(current)
        owner = user_id or current.user_id
        if not owner:
            raise ValueError("user_id is required to save a transaction")

        outcome = (
            Outcome.SAVED_WITH_OVERRIDE_CATEGORY if current.category_overridden else Outcome.SAVED
        )
        try:
            record_id = self._sink.persist_transaction(
                owner, current.transaction, idempotency_key=pending_id
            )
        except Exception as e:  # noqa: BLE001
            _logger.error(
                "review:save_failed pending_id=%s error=%s", pending_id, e.__class__.__name__
            )
            raise PersistenceFailure(pending_id) from e

        if not self._finish(pending_id, outcome, user_id=owner, record_id=record_id):
            _logger.warning("review:save_lost_race pending_id=%s record_id=%s", pending_id, record_id)
            return self._already_resolved(self.get(pending_id))
        _logger.info(
            "review:save pending_id=%s outcome=%s record_id=%s", pending_id, outcome.value, record_id
        )
        return Resolution(
            pending_id=pending_id,
            outcome=outcome,
            applied=True,
            message=SAVED_MESSAGE,
            record_id=record_id,
        )

    def skip(self, pending_id: str) -> Resolution:
        return self._skip(pending_id, message=SKIPPED_MESSAGE)

    def dismiss(self, pending_id: str) -> Resolution:
        """Close a chat preview without action (resolves as skipped, silently)."""

        current = self.get(pending_id)
        if current.transaction.source_channel is not SourceChannel.CHAT:
            raise ValueError("only chat previews can be dismissed")
        return self._skip(pending_id, message="")

    # ---- internals -------------------------------------------------------------

    def _skip(self, pending_id: str, *, message: str) -> Resolution:
        current = self.get(pending_id)
        if not current.is_open:
            return self._already_resolved(current)
        if not self._finish(pending_id, Outcome.SKIPPED):
            return self._already_resolved(self.get(pending_id))
        _logger.info("review:skip pending_id=%s", pending_id)
        return Resolution(pending_id=pending_id, outcome=Outcome.SKIPPED, applied=True, message=message)

    def _finish(
        self,
        pending_id: str,
        outcome: Outcome,
        *,
        user_id: str | None = None,
        record_id: str | None = None,
    ) -> bool:
        """Move an open row to ``outcome``; False when another caller got there first."""

        values: dict[str, object] = {
            "status": outcome.value,
            "resolved_at": datetime.now(UTC),
            "record_id": record_id,
        }
        if user_id is not None:
            values["user_id"] = user_id
        with session_scope(database_url=self._database_url) as s:
            result = s.execute(
                update(DtPendingTransaction)
                .where(
                    DtPendingTransaction.pending_id == pending_id,
                    DtPendingTransaction.status == DETECTED,
                )
                .values(**values)
            )
            return result.rowcount == 1

    def _already_resolved(self, current: PendingTransaction) -> Resolution:
        _logger.info(
            "review:already_resolved pending_id=%s status=%s", current.pending_id, current.status
        )
        return Resolution(
            pending_id=current.pending_id,
            outcome=current.outcome,
            applied=False,
            message=ALREADY_RESOLVED_MESSAGE,
            record_id=current.record_id,
        )


__all__ = [
    "PendingReviewBook",
    "PendingTransaction",
    "PersistenceFailure",
    "Resolution",
    "SAVED_MESSAGE",
    "SKIPPED_MESSAGE",
]
