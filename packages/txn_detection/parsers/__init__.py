"""Channel parsers built on the shared rule engine in :mod:`.base`."""

from __future__ import annotations

from .base import Candidate, ChannelProfile, PatternRule, TransactionParser, resolve_type, rule
from .chat import ChatParser, canned_reply
from .email import EmailParser
from .notification import NotificationParser
from .sms import sms_parser

__all__ = [
    "Candidate",
    "ChannelProfile",
    "ChatParser",
    "EmailParser",
    "NotificationParser",
    "PatternRule",
    "TransactionParser",
    "canned_reply",
    "resolve_type",
    "rule",
    "sms_parser",
]
