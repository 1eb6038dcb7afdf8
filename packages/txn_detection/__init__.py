"""Transaction detection for bank SMS, emails, push notifications and chat.

The public surface is the :class:`DetectionEngine` plus the data models it
consumes and emits. Parsers, the category tables and the amount normalizer
are importable from their modules for hosts that only need a dry parse.
"""

from __future__ import annotations

from .config import Settings
from .engine import ChatReply, DetectionEngine
from .identity import FingerprintStore, fingerprint, notification_fingerprint
from .models import (
    Channel,
    ChatUserMessage,
    IncomingEmail,
    IncomingNotification,
    IncomingSMS,
    Outcome,
    ParsedTransaction,
    RawMessage,
    SourceChannel,
    TransactionDetected,
    TransactionResolved,
    TransactionType,
)
from .persistence import SqlTransactionSink, TransactionSink
from .poller import MessagePoller
from .review import PendingReviewBook, PendingTransaction, PersistenceFailure, Resolution

__all__ = [
    "Channel",
    "ChatReply",
    "ChatUserMessage",
    "DetectionEngine",
    "FingerprintStore",
    "IncomingEmail",
    "IncomingNotification",
    "IncomingSMS",
    "MessagePoller",
    "Outcome",
    "ParsedTransaction",
    "PendingReviewBook",
    "PendingTransaction",
    "PersistenceFailure",
    "RawMessage",
    "Resolution",
    "Settings",
    "SourceChannel",
    "SqlTransactionSink",
    "TransactionDetected",
    "TransactionResolved",
    "TransactionSink",
    "TransactionType",
    "fingerprint",
    "notification_fingerprint",
]
