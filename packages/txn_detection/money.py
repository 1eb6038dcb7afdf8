"""Amount and currency normalization.

Bank messages format amounts in several locales: ``150,000`` and
``1.500.000`` for VND, ``25.50`` and ``1,234.56`` for USD, ``1.234,56`` for
EUR. :func:`parse_amount` decides between grouping and decimal separators
from the token's shape alone:

- a separator that occurs more than once is grouping (``1.500.000``);
- with both separators present, the right-most one is the decimal mark;
- a single separator followed by exactly three digits is grouping
  (``150,000``), otherwise it is the decimal mark (``25.50``).

Currency symbols map to codes with longest-match-wins, so ``A$`` resolves to
AUD before the bare ``$`` can claim USD.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

SUPPORTED_CURRENCIES: frozenset[str] = frozenset(
    {"VND", "USD", "EUR", "GBP", "JPY", "CNY", "INR", "AUD", "CAD", "SGD", "CHF", "KRW", "THB"}
)

# Ordered longest-first; order matters for alternation in regexes built below.
CURRENCY_SYMBOLS: tuple[tuple[str, str], ...] = tuple(
    sorted(
        (
            ("A$", "AUD"),
            ("C$", "CAD"),
            ("S$", "SGD"),
            ("$", "USD"),
            ("€", "EUR"),
            ("£", "GBP"),
            ("₫", "VND"),
            ("đ", "VND"),
            ("¥", "JPY"),
            ("₹", "INR"),
        ),
        key=lambda pair: -len(pair[0]),
    )
)

_CODE_ALIASES: dict[str, str] = {"VNĐ": "VND"}

# Regex fragments shared by the channel rule tables.
AMOUNT_PATTERN = r"\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?"
SYMBOL_PATTERN = "|".join(re.escape(sym) for sym, _ in CURRENCY_SYMBOLS)
CODE_PATTERN = "|".join(sorted(SUPPORTED_CURRENCIES | set(_CODE_ALIASES), key=len, reverse=True))

_CODE_RE = re.compile(rf"(?<![A-Za-z])({CODE_PATTERN})(?![A-Za-z])", re.IGNORECASE)
# Symbols only count when attached to a number so that Vietnamese words
# containing "đ" (e.g. "đã") are not read as a currency marker.
_SYMBOL_RE = re.compile(
    rf"(?:(?P<pre>{SYMBOL_PATTERN})\s?\d)|(?:\d\s?(?P<post>{SYMBOL_PATTERN}))"
)
_NUMERIC_RE = re.compile(r"[\d.,]+")


@dataclass(frozen=True, slots=True)
class Money:
    """A normalized amount.

    ``amount`` is always the positive magnitude; ``negative`` records whether
    the numeric token itself carried a minus sign (or accounting parentheses).
    """

    amount: Decimal
    currency: str
    negative: bool = False


def currency_from_token(token: str | None) -> str | None:
    """Map a captured currency token (code or symbol) to a 3-letter code."""

    if token is None:
        return None
    t = token.strip()
    if not t:
        return None
    for sym, code in CURRENCY_SYMBOLS:
        if t == sym:
            return code
    upper = t.upper()
    if upper in SUPPORTED_CURRENCIES:
        return upper
    return _CODE_ALIASES.get(upper)


def detect_currency(text: str) -> str | None:
    """Return the first explicit currency marker found anywhere in ``text``."""

    candidates: list[tuple[int, str]] = []
    code_match = _CODE_RE.search(text)
    if code_match:
        code = currency_from_token(code_match.group(1))
        if code:
            candidates.append((code_match.start(), code))
    sym_match = _SYMBOL_RE.search(text)
    if sym_match:
        sym = sym_match.group("pre") or sym_match.group("post")
        code = currency_from_token(sym)
        if code:
            candidates.append((sym_match.start(), code))
    if not candidates:
        return None
    return min(candidates)[1]


def _split_sign(token: str) -> tuple[bool, str]:
    s = token.strip().replace("\u00a0", "").replace(" ", "")
    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    if s[:1] in ("+", "-"):
        negative = negative or s[0] == "-"
        s = s[1:]
    return negative, s


def _strip_grouping(digits: str) -> str:
    commas = digits.count(",")
    dots = digits.count(".")
    if commas and dots:
        decimal_mark = "," if digits.rfind(",") > digits.rfind(".") else "."
        grouping = "." if decimal_mark == "," else ","
        return digits.replace(grouping, "").replace(",", ".")
    if not commas and not dots:
        return digits
    sep = "," if commas else "."
    if commas + dots > 1:
        return digits.replace(sep, "")
    head, tail = digits.split(sep)
    if len(tail) == 3 and head:
        return head + tail
    return f"{head or '0'}.{tail}"


def parse_amount(token: str) -> Decimal | None:
    """Parse a locale-formatted numeric token into a signed ``Decimal``.

    Returns ``None`` for anything that is not a finite number.
    """

    if not token:
        return None
    negative, digits = _split_sign(token)
    if not digits or not _NUMERIC_RE.fullmatch(digits) or not any(c.isdigit() for c in digits):
        return None
    try:
        value = Decimal(_strip_grouping(digits))
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return -value if negative else value


def normalize(
    numeric_token: str,
    currency_token: str | None = None,
    *,
    text: str | None = None,
    home_currency: str = "VND",
) -> Money | None:
    """Normalize an ``(amount, currency)`` pair.

    Parameters
    ----------
    numeric_token:
        The captured amount, possibly signed (``"-150,000"``).
    currency_token:
        The captured currency code or symbol, if the matching rule had one.
    text:
        The full message; searched for an explicit currency code or symbol
        when ``currency_token`` is missing.
    home_currency:
        Returned as the currency when no marker is found anywhere.

    Returns ``None`` when the magnitude is zero or does not parse.
    """

    value = parse_amount(numeric_token)
    if value is None or value == 0:
        return None
    currency = currency_from_token(currency_token)
    if currency is None and text:
        currency = detect_currency(text)
    return Money(amount=abs(value), currency=currency or home_currency.upper(), negative=value < 0)


__all__ = [
    "AMOUNT_PATTERN",
    "CODE_PATTERN",
    "CURRENCY_SYMBOLS",
    "SUPPORTED_CURRENCIES",
    "SYMBOL_PATTERN",
    "Money",
    "currency_from_token",
    "detect_currency",
    "normalize",
    "parse_amount",
]
