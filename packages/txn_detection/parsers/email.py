"""Bank and e-wallet notification emails.

Wallet providers (MoMo, ZaloPay, ...) send receipts whose amounts rarely carry
a transaction label, so they get their own profile and category table. An
email is routed to the wallet profile when the sender or subject names a
wallet; everything else goes through the bank profile.
"""

from __future__ import annotations

from ..categories import EMAIL_CATEGORIES, WALLET_CATEGORIES
from ..descriptions import email_description, wallet_description
from ..models import ParsedTransaction, RawMessage, SourceChannel
from ..money import AMOUNT_PATTERN as AMT
from .base import ChannelProfile, PatternRule, TransactionParser, rule

_SEP = r"[-:\s]*?"
_VND = r"(?P<currency>VNĐ|VND|đ|₫)"
_SIGNED_VND = rf"(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*{_VND}"
_LABELS = r"(?<![\w])(?:Amount|Transaction|Payment|Debit|Credit)"


def _symbol_rule(name: str, symbol: str) -> PatternRule:
    return rule(name, rf"{_LABELS}{_SEP}(?P<sign>[+-]?)\s*(?P<symbol>{symbol})\s*(?P<amount>{AMT})")


BANK_EMAIL_RULES = (
    rule("amount_label", rf"(?:Số tiền|So tien|Amount|Tiền|Tien|Money){_SEP}{_SIGNED_VND}"),
    rule("transaction_label", rf"(?:Giao dịch|Giao dich|Transaction|(?<![\w])GD){_SEP}{_SIGNED_VND}"),
    rule("withdrawal", rf"(?:Rút tiền|Rut tien|Withdrawal|(?<![\w])ATM){_SEP}{_SIGNED_VND}"),
    rule("transfer", rf"(?:Chuyển khoản|Chuyen khoan|Transfer|Payment){_SEP}{_SIGNED_VND}"),
    rule("payment", rf"(?:Thanh toán|Thanh toan|Payment|(?<![\w])Pay){_SEP}{_SIGNED_VND}"),
    _symbol_rule("usd_label", r"A\$|C\$|S\$|\$"),
    _symbol_rule("eur_label", "€"),
    _symbol_rule("gbp_label", "£"),
    rule(
        "code_label",
        rf"{_LABELS}{_SEP}(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>USD|EUR|GBP)",
    ),
    rule(
        "generic",
        rf"(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>VNĐ|VND|USD|EUR|GBP|đ|₫|\$|€|£)",
    ),
)

WALLET_EMAIL_RULES = (
    rule(
        "wallet_amount",
        rf"(?:Số tiền|So tien|Tổng tiền|Tong tien|Giá trị|Gia tri|Amount|Total|Value){_SEP}"
        rf"(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>VNĐ|VND|đ|₫)?",
    ),
    rule("wallet_generic", rf"(?P<sign>[+-]?)\s*(?P<amount>{AMT})\s*(?P<currency>VNĐ|VND|đ|₫)"),
)

BANK_EMAIL_SENDERS = (
    "vietcombank", "vcb", "techcombank", "tcb", "acb", "bidv", "vietinbank", "sacombank",
    "mbbank", "mb bank", "vpbank", "vp bank", "agribank", "hdbank", "hd bank", "chase",
    "bankofamerica", "wellsfargo", "wells", "citibank", "bank",
)
BANK_EMAIL_VOCABULARY = (
    "giao dịch", "giao dich", "số tiền", "so tien", "số dư", "so du", "thanh toán",
    "chuyển khoản", "transaction", "amount", "balance", "debit", "credit", "payment",
)

EMAIL_INCOME_KEYWORDS = (
    "credit", "deposit", "nap tien", "chuyen den", "receive", "salary", "luong", "nhan duoc",
    "nhan", "incoming", "transfer in", "refund", "ghi có", "ghi co",
)
EMAIL_EXPENSE_KEYWORDS = (
    "debit", "withdrawal", "rut tien", "purchase", "thanh toan", "charge", "fee", "da chuyen",
    "chuyen khoan", "payment", "spending", "atm", "pos", "ghi nợ", "ghi no",
)

BANK_EMAIL_PROVIDERS = (
    ("vietcombank", "Vietcombank"),
    ("techcombank", "Techcombank"),
    ("acb.com", "ACB Bank"),
    ("mbbank", "MB Bank"),
    ("bidv", "BIDV"),
    ("vietinbank", "VietinBank"),
    ("sacombank", "Sacombank"),
    ("vpbank", "VPBank"),
    ("agribank", "Agribank"),
    ("hdbank", "HDBank"),
    ("chase.com", "Chase Bank"),
    ("bankofamerica", "Bank of America"),
    ("wells", "Wells Fargo"),
    ("citibank", "Citibank"),
)

WALLET_PROVIDERS = (
    ("momo", "MoMo"),
    ("zalopay", "ZaloPay"),
    ("viettelpay", "ViettelPay"),
    ("vnpay", "VNPay"),
    ("airpay", "AirPay"),
    ("shopeepay", "ShopeePay"),
    ("grabpay", "GrabPay"),
    ("vietqr", "VietQR"),
)

WALLET_INCOME_KEYWORDS = ("nhận tiền", "nhan tien", "received", "refund", "hoàn tiền", "hoan tien", "cashback")
WALLET_EXPENSE_KEYWORDS = ("thanh toán", "thanh toan", "payment", "paid", "chuyển tiền", "chuyen tien", "purchase")


def _describe_bank(message: RawMessage) -> str:
    return email_description(message.body, message.subject)


def _describe_wallet(message: RawMessage) -> str:
    return wallet_description(message.body)


BANK_EMAIL_PROFILE = ChannelProfile(
    name="email-bank",
    source_channel=SourceChannel.EMAIL_BANK,
    rules=BANK_EMAIL_RULES,
    income_keywords=EMAIL_INCOME_KEYWORDS,
    expense_keywords=EMAIL_EXPENSE_KEYWORDS,
    categories=EMAIL_CATEGORIES,
    describe=_describe_bank,
    sender_signals=BANK_EMAIL_SENDERS,
    body_signals=BANK_EMAIL_VOCABULARY,
    providers=BANK_EMAIL_PROVIDERS,
    provider_fallback="Bank",
)

WALLET_EMAIL_PROFILE = ChannelProfile(
    name="email-wallet",
    source_channel=SourceChannel.EMAIL_WALLET,
    rules=WALLET_EMAIL_RULES,
    income_keywords=WALLET_INCOME_KEYWORDS,
    expense_keywords=WALLET_EXPENSE_KEYWORDS,
    categories=WALLET_CATEGORIES,
    describe=_describe_wallet,
    sender_signals=tuple(needle for needle, _ in WALLET_PROVIDERS),
    exclusive_whitelist=True,
    providers=WALLET_PROVIDERS,
    provider_fallback="Wallet",
    classify_description=True,
)


class EmailParser:
    """Route an email to the wallet or bank profile and parse it."""

    def __init__(self, *, home_currency: str = "VND", default_category: str | None = None) -> None:
        self.bank = TransactionParser(
            BANK_EMAIL_PROFILE, home_currency=home_currency, default_category=default_category
        )
        self.wallet = TransactionParser(WALLET_EMAIL_PROFILE, home_currency=home_currency)

    def parser_for(self, message: RawMessage) -> TransactionParser:
        if self.wallet.sender_matches(message):
            return self.wallet
        return self.bank

    def parse(self, message: RawMessage) -> ParsedTransaction | None:
        return self.parser_for(message).parse(message)


__all__ = [
    "BANK_EMAIL_PROFILE",
    "BANK_EMAIL_RULES",
    "EmailParser",
    "WALLET_EMAIL_PROFILE",
    "WALLET_EMAIL_RULES",
]
