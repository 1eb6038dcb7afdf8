# ruff: noqa: I001
"""Message fingerprints and the persistent seen-set.

A fingerprint is a truncated SHA-256 over the identity fields of a
:class:`~txn_detection.models.RawMessage`. The seen-set lives in the shared
database (``dt_seen_messages``) so duplicate suppression survives restarts.

Bank apps re-post the same push notification (edits, group summaries), each
time with a new timestamp. :func:`notification_fingerprint` therefore hashes
the package name and a normalized text with dates, times and balance tails
removed, and the engine only treats a hit as a duplicate inside a short
window measured from the last time the fingerprint was seen.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select

from db.client import session_scope
from db.models.detection import DtSeenMessage

from .logging_setup import get_logger
from .models import RawMessage

FINGERPRINT_LENGTH = 40

_logger = get_logger("txn_detection.identity")

_DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}(?:[/-]\d{2,4})?\b")
_TIME_RE = re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?\b")
_BALANCE_TAIL_RE = re.compile(r"(?:so du|số dư|balance|(?<![\w])SD)\b.*$", re.IGNORECASE | re.DOTALL)
_WS_RE = re.compile(r"\s+")


def _digest(payload: dict[str, str | None]) -> str:
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def fingerprint(message: RawMessage) -> str:
    """Stable id for ``message``: same channel, sender, subject, body and timestamp hash equal."""

    return _digest(
        {
            "channel": message.channel.value,
            "sender": message.sender,
            "subject": message.subject,
            "body": message.body,
            "received_at": message.received_at.isoformat(),
        }
    )


def normalize_notification_text(text: str) -> str:
    out = _BALANCE_TAIL_RE.sub("", text or "")
    out = _DATE_RE.sub("", out)
    out = _TIME_RE.sub("", out)
    return _WS_RE.sub(" ", out).strip().lower()


def notification_fingerprint(package_name: str, text: str) -> str:
    """Timestamp-free id so that a re-posted notification hashes identically."""

    return _digest(
        {
            "channel": "notification",
            "sender": (package_name or "").strip().lower(),
            "body": normalize_notification_text(text),
        }
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FingerprintStore:
    """SQL-backed seen-set. Entries are only ever added, refreshed or bulk-cleared."""

    def __init__(
        self,
        database_url: str | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._database_url = database_url
        self._clock = clock

    def seen(self, fingerprint_id: str, *, window: float | None = None) -> bool:
        """Return True when ``fingerprint_id`` was marked seen.

        With ``window`` (seconds) the hit only counts when the fingerprint was
        last seen no more than ``window`` seconds ago.
        """

        with session_scope(database_url=self._database_url) as s:
            row = s.get(DtSeenMessage, fingerprint_id)
            if row is None:
                return False
            if window is None:
                return True
            age = self._clock() - _as_utc(row.last_seen_at)
            return age <= timedelta(seconds=window)

    def mark_seen(self, fingerprint_id: str, *, channel: str) -> None:
        now = self._clock()
        with session_scope(database_url=self._database_url) as s:
            row = s.get(DtSeenMessage, fingerprint_id)
            if row is None:
                s.add(
                    DtSeenMessage(
                        fingerprint=fingerprint_id,
                        channel=channel,
                        first_seen_at=now,
                        last_seen_at=now,
                    )
                )
            else:
                row.last_seen_at = now
        _logger.debug("identity:mark_seen fingerprint=%s channel=%s", fingerprint_id, channel)

    def clear(self) -> int:
        with session_scope(database_url=self._database_url) as s:
            removed = s.execute(delete(DtSeenMessage)).rowcount or 0
        _logger.info("identity:clear removed=%d", removed)
        return removed

    def list_ids(self) -> list[str]:
        with session_scope(database_url=self._database_url) as s:
            stmt = select(DtSeenMessage.fingerprint).order_by(
                DtSeenMessage.first_seen_at, DtSeenMessage.fingerprint
            )
            return list(s.scalars(stmt).all())

    # Persistence-collaborator spellings used by host integrations.
    def is_duplicate_fingerprint(self, fingerprint_id: str) -> bool:
        return self.seen(fingerprint_id)

    def mark_fingerprint_seen(self, fingerprint_id: str, *, channel: str = "unknown") -> None:
        self.mark_seen(fingerprint_id, channel=channel)


__all__ = [
    "FINGERPRINT_LENGTH",
    "FingerprintStore",
    "fingerprint",
    "normalize_notification_text",
    "notification_fingerprint",
]
