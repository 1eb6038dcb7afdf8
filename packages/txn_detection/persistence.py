# ruff: noqa: I001
"""Persistence collaborator for confirmed transactions.

The review book hands a confirmed :class:`~txn_detection.models.ParsedTransaction`
to a :class:`TransactionSink`. Hosts may plug in any store; the bundled
:class:`SqlTransactionSink` writes ``dt_transactions`` through ``db.client``.

Idempotency: when an ``idempotency_key`` is given (the review book passes the
pending id) a second write with the same key returns the existing record id
instead of inserting again.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from sqlalchemy import select

from db.client import session_scope
from db.models.detection import DtTransaction

from .logging_setup import get_logger
from .models import ParsedTransaction

_logger = get_logger("txn_detection.persistence")


class TransactionSink(Protocol):
    def persist_transaction(
        self, user_id: str, tx: ParsedTransaction, *, idempotency_key: str | None = None
    ) -> str: ...


def _to_decimal_2(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class SqlTransactionSink:
    def __init__(self, database_url: str | None = None) -> None:
        self._database_url = database_url

    def persist_transaction(
        self, user_id: str, tx: ParsedTransaction, *, idempotency_key: str | None = None
    ) -> str:
        with session_scope(database_url=self._database_url) as s:
            if idempotency_key is not None:
                existing = s.scalars(
                    select(DtTransaction.id).where(DtTransaction.idempotency_key == idempotency_key)
                ).first()
                if existing is not None:
                    _logger.info(
                        "persistence:idempotent_hit key=%s record_id=%s", idempotency_key, existing
                    )
                    return str(existing)
            row = DtTransaction(
                user_id=user_id,
                idempotency_key=idempotency_key,
                amount=_to_decimal_2(tx.amount),
                currency_code=tx.currency,
                type=tx.type.value,
                category=tx.category,
                description=tx.description,
                provider=tx.provider,
                source_channel=tx.source_channel.value,
                raw_record=tx.to_payload(),
            )
            s.add(row)
            s.flush()
            record_id = str(row.id)
        _logger.info(
            "persistence:insert record_id=%s user_id=%s category=%s", record_id, user_id, tx.category
        )
        return record_id


__all__ = ["SqlTransactionSink", "TransactionSink"]
