"""Chat messages: deterministic transaction commands and canned replies.

Free-form chat goes to the oracle first (see :mod:`txn_detection.oracle`).
This module is the deterministic side: a small cascade that only recognises
explicit bookkeeping commands anchored at the start of the message

- ``+50,000 VND lunch`` / ``-$12 parking``
- ``add expense 120,000 VND team dinner`` / ``add me €100 expense clothes``
- ``spent 50000₫ on groceries`` / ``received 1000 VND from friend``

and the keyword-triggered replies used when nothing is detected. Narrative
sentences ("my mom just gave me $10 for lunch") are left to the oracle.
"""

from __future__ import annotations

import re
from dataclasses import replace

from ..categories import CHAT_CATEGORIES, CHAT_EXPENSE_DEFAULT, CHAT_INCOME_DEFAULT
from ..descriptions import MIN_LENGTH, chat_description, clean, narrative_clause
from ..models import ParsedTransaction, RawMessage, SourceChannel, TransactionType
from ..money import AMOUNT_PATTERN as AMT
from ..money import CODE_PATTERN, SYMBOL_PATTERN
from .base import Candidate, ChannelProfile, TransactionParser, rule

_MONEY = (
    rf"(?P<symbol>{SYMBOL_PATTERN})?\s*(?P<amount>{AMT})"
    rf"\s*(?P<currency>(?:{CODE_PATTERN})(?![A-Za-z])|{SYMBOL_PATTERN})?"
)

CHAT_RULES = (
    rule("signed_amount", rf"^\s*(?P<sign>[+-])\s*{_MONEY}"),
    rule(
        "add_command",
        r"^\s*(?:add|log|record|ghi|them|thêm)\b(?:\s+(?:an?|me|my|one|new|mot|một)\b)*\s+"
        rf"(?:(?P<kind>income|expense|thu|chi)\s+(?:of\s+|for\s+)?)?(?P<sign>[+-]?)\s*{_MONEY}",
    ),
    rule(
        "verb_amount",
        r"^\s*(?:i\s+)?(?:just\s+)?(?P<kind>spent|paid|bought|received|earned|chi|thu|nhận|nhan)\b"
        rf"[^\d$€£¥₹₫]{{0,40}}?(?P<sign>[+-]?)\s*{_MONEY}",
    ),
)

CHAT_KIND_MAP = {
    "income": TransactionType.INCOME,
    "received": TransactionType.INCOME,
    "earned": TransactionType.INCOME,
    "thu": TransactionType.INCOME,
    "nhận": TransactionType.INCOME,
    "nhan": TransactionType.INCOME,
    "expense": TransactionType.EXPENSE,
    "spent": TransactionType.EXPENSE,
    "paid": TransactionType.EXPENSE,
    "bought": TransactionType.EXPENSE,
    "chi": TransactionType.EXPENSE,
}

CHAT_INCOME_KEYWORDS = ("income", "received", "earned", "salary", "refund", "got paid", "thu nhap", "luong")
CHAT_EXPENSE_KEYWORDS = ("expense", "spent", "paid", "bought", "purchase", "cost")

_LEADING_FILLER_RE = re.compile(
    r"^(?:(?:income|expense|for|on|from|at|to|of|buying|bought|cho|vao|vào|tien|tiền)\s+)+",
    re.IGNORECASE,
)


def _describe(message: RawMessage) -> str:
    return chat_description(message.body)


CHAT_PROFILE = ChannelProfile(
    name="chat",
    source_channel=SourceChannel.CHAT,
    rules=CHAT_RULES,
    income_keywords=CHAT_INCOME_KEYWORDS,
    expense_keywords=CHAT_EXPENSE_KEYWORDS,
    categories=CHAT_CATEGORIES,
    describe=_describe,
    provider_fallback="Chat",
    kind_map=CHAT_KIND_MAP,
)


class ChatParser(TransactionParser):
    """Deterministic chat cascade; any sender is accepted."""

    def __init__(self, *, home_currency: str = "VND") -> None:
        super().__init__(CHAT_PROFILE, home_currency=home_currency)

    def accepts(self, message: RawMessage) -> bool:
        return bool(message.body.strip())

    def default_category_for(self, tx_type: TransactionType) -> str | None:
        return CHAT_INCOME_DEFAULT if tx_type is TransactionType.INCOME else CHAT_EXPENSE_DEFAULT

    def build(self, message: RawMessage, cand: Candidate) -> ParsedTransaction | None:
        tx = super().build(message, cand)
        if tx is None:
            return None
        remainder = self.remainder_description(message.body, cand)
        if remainder is None:
            return tx
        return replace(tx, description=remainder)

    @staticmethod
    def remainder_description(text: str, cand: Candidate) -> str | None:
        """Text after the matched command, e.g. ``groceries`` in ``spent 5$ on groceries``."""

        if narrative_clause(text) is not None:
            return None
        rest = clean(_LEADING_FILLER_RE.sub("", text[cand.end :].strip()))
        rest = _LEADING_FILLER_RE.sub("", rest).strip()
        if len(rest) >= MIN_LENGTH:
            return rest
        return None


# ---------------------------------------------------------------------------
# Canned replies
# ---------------------------------------------------------------------------

CANNED_REPLIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("budget", "spending"),
        "Here are some budgeting tips: 1) Track your expenses for a month, 2) Use the "
        "50/30/20 rule (50% needs, 30% wants, 20% savings), 3) Set specific savings goals, "
        "4) Review and adjust monthly.",
    ),
    (
        ("save", "saving"),
        "Great question about saving! Try these strategies: 1) Start with an emergency fund "
        "(3-6 months expenses), 2) Automate your savings, 3) Cut unnecessary subscriptions, "
        "4) Consider high-yield savings accounts.",
    ),
    (
        ("invest", "investment"),
        "Investment basics: 1) Start early to benefit from compound interest, 2) Diversify "
        "your portfolio, 3) Consider index funds for beginners, 4) Only invest money you "
        "won't need for 5+ years. Always do your research!",
    ),
    (
        ("debt", "loan"),
        "For debt management: 1) List all debts with interest rates, 2) Pay minimums on all, "
        "extra on highest rate debt, 3) Consider debt consolidation if beneficial, 4) Avoid "
        "taking on new debt.",
    ),
)

DEFAULT_REPLY = (
    "Hi there! I'm here to help with anything related to your money, whether it's "
    "budgeting, saving, investing, or managing debt. What would you like to talk about today?"
)


def canned_reply(text: str) -> str:
    lowered = (text or "").lower()
    for keywords, reply in CANNED_REPLIES:
        if any(k in lowered for k in keywords):
            return reply
    return DEFAULT_REPLY


__all__ = [
    "CANNED_REPLIES",
    "CHAT_PROFILE",
    "CHAT_RULES",
    "ChatParser",
    "DEFAULT_REPLY",
    "canned_reply",
]
