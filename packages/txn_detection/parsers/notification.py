"""Push notifications posted by banking apps.

Unlike SMS and email the package whitelist is exclusive: only notifications
from known banking apps are considered. Some apps post a single grouped
summary ("Summary of 3 transactions") whose lines are parsed individually.
"""

from __future__ import annotations

import re

from ..categories import NOTIFICATION_CATEGORIES
from ..descriptions import notification_description
from ..models import ParsedTransaction, RawMessage, SourceChannel
from ..money import AMOUNT_PATTERN as AMT
from .base import ChannelProfile, TransactionParser, rule
from .sms import SMS_EXPENSE_KEYWORDS, SMS_INCOME_KEYWORDS

_SEP = r"\s*[-:]??\s*"

NOTIFICATION_RULES = (
    rule(
        "acb_account",
        rf"ACB:\s*TK\s*\d+\s*\((?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>VND)\)",
    ),
    rule("giao_dich", rf"(?:Giao dich|(?<![\w])GD){_SEP}(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>VND)"),
    rule("transaction", rf"(?:Transaction|TXN){_SEP}(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>VND)"),
    rule(
        "usd_label",
        rf"(?:Transaction|Payment|Debit|Credit){_SEP}(?P<sign>[+-]?)\s*(?P<symbol>A\$|C\$|S\$|\$)\s*(?P<amount>{AMT})",
    ),
    rule("eur_label", rf"(?:Transaction|Payment|Debit|Credit){_SEP}(?P<sign>[+-]?)\s*(?P<symbol>€)\s*(?P<amount>{AMT})"),
    rule("gbp_label", rf"(?:Transaction|Payment|Debit|Credit){_SEP}(?P<sign>[+-]?)\s*(?P<symbol>£)\s*(?P<amount>{AMT})"),
)

BANK_PACKAGES = (
    "com.vietcombank",
    "com.techcombank",
    "com.mb.mbanking",
    "com.vnpay.mbanking",
    "com.acb",
    "com.bidv",
    "com.vietinbank",
    "com.sacombank",
    "com.vpbank",
    "com.agribank",
    "com.chase.sig.android",
    "com.bankofamerica.digitalbanking",
    "com.wellsfargo.mobile",
    "com.citibank.mobile",
)

PACKAGE_PROVIDERS = (
    ("com.vietcombank", "Vietcombank"),
    ("com.techcombank", "Techcombank"),
    ("com.mb.mbanking", "MB Bank"),
    ("com.acb", "ACB Bank"),
    ("com.bidv", "BIDV"),
    ("com.vietinbank", "VietinBank"),
    ("com.sacombank", "Sacombank"),
    ("com.vpbank", "VPBank"),
    ("com.agribank", "Agribank"),
    ("com.chase", "Chase Bank"),
    ("com.bankofamerica", "Bank of America"),
    ("com.wellsfargo", "Wells Fargo"),
    ("com.citibank", "Citibank"),
)

_GROUPED_RE = (
    re.compile(r"transactions?\s+\d+\s+items?", re.IGNORECASE),
    re.compile(r"summary\s+of\s+\d+\s+transactions?", re.IGNORECASE),
    re.compile(r"multiple\s+transactions?", re.IGNORECASE),
)
_LINE_SPLIT_RE = re.compile(r"\n|;")


def _describe(message: RawMessage) -> str:
    return notification_description(message.body)


NOTIFICATION_PROFILE = ChannelProfile(
    name="notification",
    source_channel=SourceChannel.NOTIFICATION,
    rules=NOTIFICATION_RULES,
    income_keywords=SMS_INCOME_KEYWORDS,
    expense_keywords=SMS_EXPENSE_KEYWORDS,
    categories=NOTIFICATION_CATEGORIES,
    describe=_describe,
    sender_signals=BANK_PACKAGES,
    exclusive_whitelist=True,
    providers=PACKAGE_PROVIDERS,
    provider_fallback="Bank",
)


def is_grouped(text: str) -> bool:
    return any(p.search(text or "") for p in _GROUPED_RE)


class NotificationParser(TransactionParser):
    """Notification parser; :meth:`parse_all` also handles grouped summaries."""

    def __init__(self, *, home_currency: str = "VND", default_category: str | None = None) -> None:
        super().__init__(
            NOTIFICATION_PROFILE, home_currency=home_currency, default_category=default_category
        )

    def parse_all(self, message: RawMessage) -> list[ParsedTransaction]:
        if not self.accepts(message):
            return []
        if not is_grouped(message.body):
            tx = self.parse(message)
            return [tx] if tx is not None else []
        out: list[ParsedTransaction] = []
        for line in _LINE_SPLIT_RE.split(message.body):
            line = line.strip()
            if not line:
                continue
            tx = self.parse(
                RawMessage(
                    channel=message.channel,
                    sender=message.sender,
                    body=line,
                    received_at=message.received_at,
                )
            )
            if tx is not None:
                out.append(tx)
        return out


__all__ = [
    "BANK_PACKAGES",
    "NOTIFICATION_PROFILE",
    "NOTIFICATION_RULES",
    "NotificationParser",
    "is_grouped",
]
