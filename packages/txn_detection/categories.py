"""Keyword category tables and the classifier.

Each channel classifies with its own ordered table. Matching is a
case-insensitive substring test and the first row with any hit wins, so row
order is the tie-break between overlapping keywords (``grab food`` is Food &
Dining because that row precedes Transport's ``grab``).

The channels intentionally disagree on some labels (``Transport`` vs
``Transportation``, ``ATM`` vs ``ATM/Cash``) and on the fallback (``Other``
for SMS and notifications, ``General`` for bank email, ``Digital Payment`` for
wallets). Those differences are kept as table configuration.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CategoryTable:
    name: str
    rows: tuple[tuple[str, tuple[str, ...]], ...]
    default: str

    def classify(self, text: str, *, default: str | None = None) -> str:
        lowered = (text or "").lower()
        for category, keywords in self.rows:
            if any(k in lowered for k in keywords):
                return category
        return default or self.default

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(c for c, _ in self.rows) + (self.default,)


SMS_CATEGORIES = CategoryTable(
    name="sms",
    rows=(
        ("Food & Dining", ("restaurant", "food", "cafe", "coffee", "dining", "eat", "grab food", "delivery")),
        ("Transport", ("taxi", "uber", "grab", "bus", "transport", "fuel", "gas", "parking", "toll")),
        ("Shopping", ("shop", "market", "store", "mall", "purchase", "buy", "amazon", "lazada")),
        ("Bills & Utilities", ("electric", "water", "internet", "phone", "bill", "utility", "eva", "vnpt")),
        ("Entertainment", ("cinema", "movie", "game", "entertainment", "netflix", "spotify")),
        ("Health & Medical", ("hospital", "clinic", "pharmacy", "medical", "doctor", "medicine")),
        ("ATM", ("atm", "rut tien", "withdrawal", "cash")),
        # Salary precedes Transfer: payroll SMS read "Salary transfer from ...".
        ("Salary", ("salary", "luong", "wage", "payroll", "income")),
        ("Transfer", ("chuyen khoan", "transfer", "send money", "remittance")),
    ),
    default="Other",
)

EMAIL_CATEGORIES = CategoryTable(
    name="email-bank",
    rows=(
        (
            "Food & Dining",
            (
                "coffee", "restaurant", "cafe", "food", "dining", "grab food", "highlands",
                "starbucks", "mcdonalds", "kfc", "pizza", "quan an", "an uong",
            ),
        ),
        (
            "Transport",
            (
                "grab", "uber", "taxi", "fuel", "gas", "petrol", "parking", "toll", "metro",
                "bus", "xe bus", "di chuyen", "gas station",
            ),
        ),
        ("Shopping", ("shopping", "store", "mall", "market", "amazon", "shopee", "lazada", "mua sam", "shop")),
        ("Entertainment", ("cinema", "movie", "game", "spotify", "netflix", "entertainment", "giai tri")),
        ("Health & Medical", ("hospital", "pharmacy", "medical", "doctor", "clinic", "benh vien", "y te")),
        ("Utilities", ("electric", "water", "internet", "phone", "utility", "bill", "dien", "nuoc")),
        ("ATM/Cash", ("atm", "withdrawal", "cash", "rut tien")),
        ("Salary", ("salary", "luong", "payroll", "wage")),
        ("Transfer", ("transfer", "chuyen khoan", "chuyen tien")),
    ),
    default="General",
)

NOTIFICATION_CATEGORIES = CategoryTable(
    name="notification",
    rows=(
        ("Food & Dining", ("restaurant", "food", "cafe", "dining", "eat", "quan an", "nha hang")),
        ("Transport", ("taxi", "uber", "grab", "bus", "transport", "fuel", "gas", "xang", "di chuyen")),
        ("Shopping", ("shop", "market", "store", "mall", "purchase", "mua sam", "sieu thi", "cua hang")),
        (
            "Bills & Utilities",
            (
                "electric", "water", "internet", "phone", "bill", "hoa don", "tien dien",
                "tien nuoc", "dien thoai", "dien", "nuoc",
            ),
        ),
        ("Entertainment", ("cinema", "movie", "game", "entertainment", "rap chieu phim", "giai tri")),
        ("Health & Medical", ("hospital", "clinic", "pharmacy", "medical", "benh vien", "phong kham", "thuoc")),
    ),
    default="Other",
)

WALLET_CATEGORIES = CategoryTable(
    name="email-wallet",
    rows=(
        ("Transportation", ("grab", "taxi", "xe")),
        ("Shopping", ("shopee", "lazada", "tiki")),
        ("Food & Dining", ("food", "baemin", "now")),
        ("Bills & Utilities", ("mobile", "phone", "data")),
        ("Entertainment", ("game", "entertainment")),
    ),
    default="Digital Payment",
)

# Chat reuses the SMS vocabulary; its fallback depends on the direction.
CHAT_CATEGORIES = CategoryTable(name="chat", rows=SMS_CATEGORIES.rows, default="General Expense")
CHAT_INCOME_DEFAULT = "General Income"
CHAT_EXPENSE_DEFAULT = "General Expense"

ALL_TABLES: tuple[CategoryTable, ...] = (
    SMS_CATEGORIES,
    EMAIL_CATEGORIES,
    NOTIFICATION_CATEGORIES,
    WALLET_CATEGORIES,
    CHAT_CATEGORIES,
)


def _collect(tables: Iterable[CategoryTable], extra: Iterable[str]) -> frozenset[str]:
    out: set[str] = set(extra)
    for t in tables:
        out.update(t.labels)
    return frozenset(out)


TAXONOMY: frozenset[str] = _collect(
    ALL_TABLES, (CHAT_INCOME_DEFAULT, CHAT_EXPENSE_DEFAULT, "Other", "General")
)

# Fixed list offered by the recategorize picker, in display order.
PICKER_CATEGORIES: tuple[str, ...] = (
    "Food & Dining",
    "Transport",
    "Shopping",
    "Bills & Utilities",
    "Entertainment",
    "Health & Medical",
    "ATM/Cash",
    "Transfer",
    "Salary",
    "Digital Payment",
    "General Income",
    "General Expense",
    "Other",
)


def classify(text: str, table: CategoryTable = SMS_CATEGORIES, *, default: str | None = None) -> str:
    """Return the first category in ``table`` whose keywords occur in ``text``.

    Falls back to ``default`` (when given) or the table's own default label.
    The result is always a member of :data:`TAXONOMY`.
    """

    if default is not None and default not in TAXONOMY:
        raise ValueError(f"default category {default!r} is not in the taxonomy")
    return table.classify(text, default=default)


def is_known_category(name: str) -> bool:
    return name in TAXONOMY


__all__ = [
    "ALL_TABLES",
    "CHAT_CATEGORIES",
    "CHAT_EXPENSE_DEFAULT",
    "CHAT_INCOME_DEFAULT",
    "CategoryTable",
    "EMAIL_CATEGORIES",
    "NOTIFICATION_CATEGORIES",
    "PICKER_CATEGORIES",
    "SMS_CATEGORIES",
    "TAXONOMY",
    "WALLET_CATEGORIES",
    "classify",
    "is_known_category",
]
