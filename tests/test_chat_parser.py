from decimal import Decimal

import pytest

from txn_detection.models import ChatUserMessage, RawMessage, SourceChannel, TransactionType
from txn_detection.parsers import ChatParser, canned_reply
from txn_detection.parsers.chat import CANNED_REPLIES, DEFAULT_REPLY


def _parse(text: str, **kw):
    return ChatParser(**kw).parse(RawMessage.from_chat(ChatUserMessage(text=text, user_id="u1")))


@pytest.mark.parametrize(
    ("text", "amount", "currency", "tx_type", "description", "category"),
    [
        ("spent 50000₫ on groceries", "50000", "VND", TransactionType.EXPENSE, "groceries", "General Expense"),
        ("received 1000 VND from friend", "1000", "VND", TransactionType.INCOME, "friend", "General Income"),
        ("add me €100 expense buying clothes", "100", "EUR", TransactionType.EXPENSE, "clothes", "Shopping"),
        (
            "add expense 120,000 VND team dinner",
            "120000",
            "VND",
            TransactionType.EXPENSE,
            "team dinner",
            "General Expense",
        ),
    ],
)
def test_chat_commands(text, amount, currency, tx_type, description, category):
    tx = _parse(text)
    assert tx is not None
    assert tx.amount == Decimal(amount)
    assert tx.currency == currency
    assert tx.type is tx_type
    assert tx.description == description
    assert tx.category == category
    assert tx.provider == "Chat"
    assert tx.source_channel is SourceChannel.CHAT


def test_signed_amount_without_currency_uses_home_currency():
    tx = _parse("+250 freelance gig", home_currency="USD")
    assert tx is not None
    assert tx.type is TransactionType.INCOME
    assert tx.currency == "USD"
    assert tx.description == "freelance gig"


@pytest.mark.parametrize(
    "text",
    [
        "my mom just gave me $10 for lunch",
        "How much did I spend this month?",
        "",
        "add expense",
    ],
)
def test_narratives_and_questions_are_not_commands(text):
    assert _parse(text) is None


def test_canned_reply_matches_keywords_then_default():
    assert canned_reply("help me with my budget") == CANNED_REPLIES[0][1]
    assert canned_reply("how do I start investing?") == CANNED_REPLIES[2][1]
    assert canned_reply("hello") == DEFAULT_REPLY


def test_negative_amount_overrides_income_verb():
    tx = _parse("received -50,000 VND from friend")
    assert tx is not None
    assert tx.amount == Decimal("50000")
    assert tx.type is TransactionType.EXPENSE
    assert tx.description == "friend"


def test_negative_amount_overrides_income_kind_in_add_command():
    tx = _parse("add income -50000 VND")
    assert tx is not None
    assert tx.amount == Decimal("50000")
    assert tx.type is TransactionType.EXPENSE
    assert tx.pattern == "add_command"
