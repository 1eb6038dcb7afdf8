"""Bank SMS parsing.

Rules run most-specific first: labelled Vietnamese/English amounts, transfer
narratives (``da chuyen``, ``nhan duoc``), the ``$`` forms used by US banks and
finally a bare ``amount + currency`` catch-all.
"""

from __future__ import annotations

from ..categories import SMS_CATEGORIES
from ..descriptions import sms_description
from ..models import RawMessage, SourceChannel
from ..money import AMOUNT_PATTERN as AMT
from .base import ChannelProfile, TransactionParser, rule

_SEP = r"[-:\s]*?"
_SIGNED = rf"(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>VND|USD|EUR|GBP)"
_DOLLAR = r"(?P<symbol>A\$|C\$|S\$|\$)"

SMS_RULES = (
    rule("labelled_transaction", rf"(?<![\w])(?:GD|Giao dich|Transaction){_SEP}{_SIGNED}"),
    rule("withdrawal", rf"(?<![\w])(?:Rut tien|Withdrawal|ATM){_SEP}{_SIGNED}"),
    rule("transfer", rf"(?<![\w])(?:Chuyen khoan|Transfer|Payment){_SEP}{_SIGNED}"),
    rule("purchase", rf"(?<![\w])(?:Thanh toan|Purchase|Buy){_SEP}{_SIGNED}"),
    rule("deposit", rf"(?<![\w])(?:Nap tien|Deposit|Credit){_SEP}{_SIGNED}"),
    rule("sent", rf"(?<![\w])(?:da chuyen|has transferred|chuyen){_SEP}{_SIGNED}"),
    rule("received", rf"(?<![\w])(?:nhan duoc|received|nhan){_SEP}{_SIGNED}"),
    rule("account_transfer", rf"TK\s*\d+.*?(?:da chuyen|chuyen){_SEP}{_SIGNED}"),
    rule("intl_debit", rf"(?<![\w])(?:Debit|Charge|Withdrawal){_SEP}(?P<sign>[+-]?)\s*{_DOLLAR}\s*(?P<amount>{AMT})"),
    rule(
        "intl_credit",
        rf"(?<![\w])(?:Credit|Deposit|Payment received){_SEP}(?P<sign>[+-]?)\s*{_DOLLAR}\s*(?P<amount>{AMT})",
    ),
    rule("intl_purchase", rf"(?<![\w])(?:Purchase|Transaction){_SEP}(?P<sign>[+-]?)\s*{_DOLLAR}\s*(?P<amount>{AMT})"),
    rule("generic", rf"(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>VND|USD|EUR|GBP|\$|€|£)"),
)

SMS_SENDERS = (
    "VIETCOMBANK", "VCB", "TECHCOMBANK", "TCB", "MBBANK", "MB", "ACBBANK", "ACB", "BIDV",
    "VPBANK", "SACOMBANK", "STB", "AGRIBANK", "VTB", "EXIMBANK", "EIB", "HDBANK", "LPB",
    "CHASE", "BANKOFAMERICA", "BOA", "WELLS", "CITI", "CAPITAL", "BANK", "CREDIT", "DEBIT",
    "TRANSACTION", "PAYMENT",
)

SMS_VOCABULARY = (
    "giao dich", "gd:", "tai khoan", "so du", "rut tien", "chuyen khoan", "thanh toan",
    "nap tien", "phi dich vu", "transaction", "balance", "withdrawal", "deposit", "transfer",
    "payment", "purchase", "charge", "fee", "atm", "vnd", "usd", "eur", "gbp", "$", "€", "£",
)

SMS_INCOME_KEYWORDS = (
    "credit", "deposit", "nap tien", "chuyen den", "receive", "salary", "luong", "nhan duoc", "nhan",
)
SMS_EXPENSE_KEYWORDS = (
    "debit", "withdrawal", "rut tien", "purchase", "thanh toan", "charge", "fee", "da chuyen",
    "chuyen khoan",
)

# Substring match against the upper-cased sender, first hit wins: full bank
# names precede the short codes they contain ("MB" occurs in SACOMBANK).
SMS_PROVIDERS = (
    ("VIETCOMBANK", "Vietcombank"),
    ("VCB", "Vietcombank"),
    ("TECHCOMBANK", "Techcombank"),
    ("TCB", "Techcombank"),
    ("SACOMBANK", "Sacombank"),
    ("EXIMBANK", "Eximbank"),
    ("MBBANK", "MB Bank"),
    ("MB", "MB Bank"),
    ("ACBBANK", "ACB Bank"),
    ("ACB", "ACB Bank"),
    ("BIDV", "BIDV"),
    ("CHASE", "Chase Bank"),
    ("BOA", "Bank of America"),
    ("WELLS", "Wells Fargo"),
)


def _describe(message: RawMessage) -> str:
    return sms_description(message.body)


SMS_PROFILE = ChannelProfile(
    name="sms",
    source_channel=SourceChannel.SMS,
    rules=SMS_RULES,
    income_keywords=SMS_INCOME_KEYWORDS,
    expense_keywords=SMS_EXPENSE_KEYWORDS,
    categories=SMS_CATEGORIES,
    describe=_describe,
    sender_signals=SMS_SENDERS,
    body_signals=SMS_VOCABULARY,
    providers=SMS_PROVIDERS,
)


def sms_parser(*, home_currency: str = "VND", default_category: str | None = None) -> TransactionParser:
    return TransactionParser(SMS_PROFILE, home_currency=home_currency, default_category=default_category)


__all__ = ["SMS_PROFILE", "SMS_RULES", "sms_parser"]
