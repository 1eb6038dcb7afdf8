"""Human-readable descriptions from raw message text.

``extract`` strips boilerplate (labels, balances, amounts, dates, times) and
never returns an empty or near-empty string: anything shorter than
``MIN_LENGTH`` characters becomes the caller's fallback label.

Channel helpers first look for a clause that usually carries the merchant or
narrative (``tai GRAB``, ``Nội dung: ...``, ``ND: ...``) and only fall back to
the generic strip when no clause is found. A clause only has to reach
``min_clause_length`` so short merchant names (``Zara``, ``GRAB``) survive.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from .money import AMOUNT_PATTERN, CODE_PATTERN, SYMBOL_PATTERN

MIN_LENGTH = 5
NARRATIVE_MIN_TEXT = 80

SMS_FALLBACK = "SMS Bank Transaction"
EMAIL_FALLBACK = "Email transaction"
NOTIFICATION_FALLBACK = "Bank Transaction"
WALLET_FALLBACK = "Wallet transaction"
CHAT_FALLBACK = "Chat transaction"

_I = re.IGNORECASE

_BALANCE_RE = re.compile(
    rf"(?<![\w])(?:So du|Số dư|SD|Balance|Avail(?:able)? bal(?:ance)?)\s*[:\-]?\s*"
    rf"(?:{CODE_PATTERN}|{SYMBOL_PATTERN})?\s*[+-]?\s*(?:{AMOUNT_PATTERN})\s*(?:{CODE_PATTERN}|{SYMBOL_PATTERN})?",
    _I,
)
_AMOUNT_RE = re.compile(
    rf"\(?[+-]?\s*(?:(?:{SYMBOL_PATTERN})\s*(?:{AMOUNT_PATTERN})|(?:{AMOUNT_PATTERN})\s*(?:{CODE_PATTERN}|{SYMBOL_PATTERN})(?![A-Za-z]))\)?",
    _I,
)
_LABEL_RE = re.compile(
    r"(?<![\w])(?:GD|Giao dich|Giao dịch|Transaction|TXN|Payment|So du|Số dư|Balance|So tien|Số tiền|Amount|Noi dung|Nội dung)\s*:",
    _I,
)
_DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")
_TIME_RE = re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?\b")
_DANGLING_RE = re.compile(r"(?:\s+|^)(?:luc|lúc|ngay|ngày|on|at|vao|vào)\s*$", _I)
_EDGE_PUNCT = " \t\r\n-:;,.|"

SMS_CLAUSES: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?<![\w])(?:tai|tại|at|from)\s+([^.\n]+)", _I),
    re.compile(r"(?:merchant|vendor)[-:\s]*([^.\n]+)", _I),
)
EMAIL_CLAUSES: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:nội dung|noi dung|content|description|memo)\s*[:\-]\s*([^\n]+)", _I),
    re.compile(r"(?:merchant|tại|location|(?<![\w])at)\s*[:\-]\s*([^\n]+)", _I),
    re.compile(r"(?:reference|ref)\s*[:\-]\s*([^\n]+)", _I),
)
NOTIFICATION_CLAUSES: tuple[re.Pattern[str], ...] = (re.compile(r"(?<![\w])ND:\s*(.+?)(?:\.|$)", _I),)
NARRATIVE_CLAUSES: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?:nội dung|noi dung|(?<![\w])ND|content|memo|message|lời nhắn|loi nhan)\s*[:\-]\s*(.+)",
        _I | re.DOTALL,
    ),
)


def clean(text: str) -> str:
    """Strip boilerplate tokens and collapse whitespace."""

    s = text or ""
    s = _BALANCE_RE.sub(" ", s)
    s = _AMOUNT_RE.sub(" ", s)
    s = _LABEL_RE.sub(" ", s)
    s = _DATE_RE.sub(" ", s)
    s = _TIME_RE.sub(" ", s)
    s = " ".join(s.split())
    prev = None
    while prev != s:
        prev = s
        s = _DANGLING_RE.sub("", s).strip(_EDGE_PUNCT)
    return s


def extract(text: str, *, fallback: str = NOTIFICATION_FALLBACK, min_length: int = MIN_LENGTH) -> str:
    """Return a cleaned description of ``text`` or ``fallback`` when too short."""

    cleaned = clean(text)
    return cleaned if len(cleaned) >= min_length else fallback


def extract_clause(
    text: str,
    clauses: Sequence[re.Pattern[str]],
    *,
    fallback: str,
    min_clause_length: int = 4,
) -> str:
    """Return the first matching clause (cleaned), else the generic extract."""

    for pattern in clauses:
        m = pattern.search(text or "")
        if not m:
            continue
        candidate = clean(m.group(1))
        if len(candidate) >= min_clause_length:
            return candidate
    return extract(text, fallback=fallback)


def sms_description(body: str) -> str:
    return extract_clause(body, SMS_CLAUSES, fallback=SMS_FALLBACK)


def email_description(body: str, subject: str | None = None) -> str:
    fallback = (subject or "").strip() or EMAIL_FALLBACK
    return extract_clause(body, EMAIL_CLAUSES, fallback=fallback)


def wallet_description(body: str) -> str:
    return extract_clause(body, EMAIL_CLAUSES, fallback=WALLET_FALLBACK)


def notification_description(text: str) -> str:
    return extract_clause(text, NOTIFICATION_CLAUSES, fallback=NOTIFICATION_FALLBACK)


def narrative_clause(text: str) -> str | None:
    """Return the clause after a transfer-narrative marker for long texts."""

    if len(text or "") <= NARRATIVE_MIN_TEXT:
        return None
    for pattern in NARRATIVE_CLAUSES:
        m = pattern.search(text)
        if m:
            candidate = clean(m.group(1))
            if len(candidate) >= MIN_LENGTH:
                return candidate
    return None


def chat_description(text: str) -> str:
    narrative = narrative_clause(text)
    if narrative is not None:
        return narrative
    return extract(text, fallback=CHAT_FALLBACK)


__all__ = [
    "CHAT_FALLBACK",
    "EMAIL_FALLBACK",
    "MIN_LENGTH",
    "NOTIFICATION_FALLBACK",
    "SMS_FALLBACK",
    "WALLET_FALLBACK",
    "chat_description",
    "clean",
    "email_description",
    "extract",
    "extract_clause",
    "narrative_clause",
    "notification_description",
    "sms_description",
    "wallet_description",
]
