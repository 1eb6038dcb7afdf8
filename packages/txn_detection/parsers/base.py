# ruff: noqa: I001
"""Shared rule engine behind every channel parser.

A channel is described by a :class:`ChannelProfile`: an ordered tuple of
:class:`PatternRule` objects plus the keyword lists, category table, provider
lookup and description strategy for that channel. :class:`TransactionParser`
evaluates the rules in order and the first rule that matches wins, so the
tuple order is the precedence between overlapping shapes (labelled amounts
before the generic ``amount + currency`` catch-all).

Rule regexes communicate through named groups:

``amount``
    Required. The numeric token, optionally signed.
``sign``
    Optional explicit ``+``/``-`` captured before the amount.
``currency`` / ``symbol``
    Optional currency code or symbol (after / before the amount).
``kind``
    Optional direction word (``spent``, ``received``, ``thu``, ``chi``...)
    mapped through the profile's ``kind_map``.

Parsing never raises: most inbound text is not a transaction, and a single
malformed message must not stop a host processing a stream of them.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from ..categories import CategoryTable
from ..logging_setup import get_logger
from ..models import ParsedTransaction, RawMessage, SourceChannel, TransactionType
from ..money import normalize

_logger = get_logger("txn_detection.parsers")


@dataclass(frozen=True, slots=True)
class Candidate:
    """The raw ``(sign, amount, currency)`` triple produced by one rule."""

    rule: str
    amount: str
    sign: str = ""
    currency: str | None = None
    kind: str | None = None
    end: int = 0


@dataclass(frozen=True, slots=True)
class PatternRule:
    name: str
    pattern: re.Pattern[str]
    currency: str | None = None

    def match(self, text: str) -> Candidate | None:
        m = self.pattern.search(text)
        if m is None:
            return None
        groups = m.groupdict()
        return Candidate(
            rule=self.name,
            amount=groups["amount"],
            sign=(groups.get("sign") or "").strip(),
            currency=groups.get("currency") or groups.get("symbol") or self.currency,
            kind=(groups.get("kind") or None),
            end=m.end(),
        )


def rule(name: str, regex: str, *, currency: str | None = None, flags: int = re.IGNORECASE) -> PatternRule:
    """Compile a :class:`PatternRule`; ``currency`` is implied when the regex has none."""

    compiled = re.compile(regex, flags)
    if "amount" not in compiled.groupindex:
        raise ValueError(f"rule {name!r} must define an 'amount' group")
    return PatternRule(name=name, pattern=compiled, currency=currency)


def first_match(rules: tuple[PatternRule, ...], text: str) -> Candidate | None:
    for r in rules:
        cand = r.match(text)
        if cand is not None:
            return cand
    return None


def resolve_type(
    sign: str,
    text: str,
    income_keywords: tuple[str, ...],
    expense_keywords: tuple[str, ...],
    *,
    kind: TransactionType | None = None,
    negative_token: bool = False,
) -> TransactionType:
    """Combine sign, direction words and keyword hits into a transaction type.

    Precedence: explicit sign, then the rule's direction word, then income
    keywords, then expense keywords, then expense. A negative numeric token
    forces expense regardless of the rest.
    """

    if negative_token:
        return TransactionType.EXPENSE
    if sign == "+":
        return TransactionType.INCOME
    if sign == "-":
        return TransactionType.EXPENSE
    if kind is not None:
        return kind
    lowered = text.lower()
    if any(k in lowered for k in income_keywords):
        return TransactionType.INCOME
    if any(k in lowered for k in expense_keywords):
        return TransactionType.EXPENSE
    return TransactionType.EXPENSE


@dataclass(frozen=True, slots=True)
class ChannelProfile:
    """Everything that differs between channels, as data.

    Attributes
    ----------
    sender_signals / body_signals:
        Identity and vocabulary gates. A message passes when either hits,
        unless ``exclusive_whitelist`` is set, in which case only the sender
        identity counts.
    providers:
        Ordered ``(needle, label)`` pairs matched as substrings of the
        upper-cased sender; the first hit wins.
    provider_fallback:
        Label when no provider matches; ``None`` means the raw sender.
    classify_description:
        Classify the extracted description instead of the full text.
    """

    name: str
    source_channel: SourceChannel
    rules: tuple[PatternRule, ...]
    income_keywords: tuple[str, ...]
    expense_keywords: tuple[str, ...]
    categories: CategoryTable
    describe: Callable[[RawMessage], str]
    sender_signals: tuple[str, ...] = ()
    body_signals: tuple[str, ...] = ()
    exclusive_whitelist: bool = False
    providers: tuple[tuple[str, str], ...] = ()
    provider_fallback: str | None = None
    classify_description: bool = False
    kind_map: Mapping[str, TransactionType] = field(default_factory=dict)


class TransactionParser:
    """Parse one channel's messages with a :class:`ChannelProfile`."""

    def __init__(
        self,
        profile: ChannelProfile,
        *,
        home_currency: str = "VND",
        default_category: str | None = None,
    ) -> None:
        self.profile = profile
        self.home_currency = home_currency
        self.default_category = default_category

    # ---- gates and lookups -------------------------------------------------

    def sender_matches(self, message: RawMessage) -> bool:
        haystack = f"{message.sender} {message.subject or ''}".upper()
        return any(s.upper() in haystack for s in self.profile.sender_signals)

    def body_matches(self, message: RawMessage) -> bool:
        lowered = message.full_text.lower()
        return any(k in lowered for k in self.profile.body_signals)

    def accepts(self, message: RawMessage) -> bool:
        if self.sender_matches(message):
            return True
        if self.profile.exclusive_whitelist:
            return False
        return self.body_matches(message)

    def provider_for(self, sender: str) -> str:
        s = (sender or "").strip()
        upper = s.upper()
        for needle, label in self.profile.providers:
            if needle.upper() in upper:
                return label
        if self.profile.provider_fallback is not None:
            return self.profile.provider_fallback
        return s or "Bank"

    def match(self, text: str) -> Candidate | None:
        return first_match(self.profile.rules, text)

    # ---- parse -------------------------------------------------------------

    def parse(self, message: RawMessage) -> ParsedTransaction | None:
        """Return a :class:`ParsedTransaction` or ``None`` when none is present."""

        try:
            return self._parse(message)
        except Exception:  # noqa: BLE001 - parse failures are a NoMatch
            _logger.debug(
                "parse:error channel=%s sender=%s",
                self.profile.name,
                message.sender,
                exc_info=True,
            )
            return None

    def _parse(self, message: RawMessage) -> ParsedTransaction | None:
        if not self.accepts(message):
            _logger.debug("parse:gate_rejected channel=%s sender=%s", self.profile.name, message.sender)
            return None
        cand = self.match(message.body)
        if cand is None:
            _logger.debug("parse:no_match channel=%s sender=%s", self.profile.name, message.sender)
            return None
        return self.build(message, cand)

    def build(self, message: RawMessage, cand: Candidate) -> ParsedTransaction | None:
        money = normalize(
            cand.amount,
            cand.currency,
            text=message.full_text,
            home_currency=self.home_currency,
        )
        if money is None:
            _logger.debug(
                "parse:amount_rejected channel=%s rule=%s token=%r",
                self.profile.name,
                cand.rule,
                cand.amount,
            )
            return None

        kind = self.profile.kind_map.get(cand.kind.lower()) if cand.kind else None
        tx_type = resolve_type(
            cand.sign,
            message.full_text,
            self.profile.income_keywords,
            self.profile.expense_keywords,
            kind=kind,
            negative_token=money.negative,
        )
        description = self.profile.describe(message)
        category_text = description if self.profile.classify_description else message.full_text
        category = self.profile.categories.classify(
            category_text, default=self.default_category_for(tx_type)
        )
        tx = ParsedTransaction(
            amount=money.amount,
            type=tx_type,
            currency=money.currency,
            description=description,
            category=category,
            provider=self.provider_for(message.sender),
            source_channel=self.profile.source_channel,
            pattern=cand.rule,
            raw_text=message.body,
        )
        _logger.debug(
            "parse:matched channel=%s rule=%s amount=%s currency=%s type=%s category=%s",
            self.profile.name,
            cand.rule,
            tx.amount,
            tx.currency,
            tx.type.value,
            tx.category,
        )
        return tx

    def default_category_for(self, tx_type: TransactionType) -> str | None:
        return self.default_category


__all__ = [
    "Candidate",
    "ChannelProfile",
    "PatternRule",
    "TransactionParser",
    "first_match",
    "resolve_type",
    "rule",
]
