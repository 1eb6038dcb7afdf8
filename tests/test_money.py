from decimal import Decimal

import pytest

from txn_detection.money import detect_currency, normalize, parse_amount


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("150,000", Decimal("150000")),
        ("1.500.000", Decimal("1500000")),
        ("25.50", Decimal("25.50")),
        ("1,234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("50000", Decimal("50000")),
        ("-150,000", Decimal("-150000")),
        ("+5,000,000", Decimal("5000000")),
        ("(1,000)", Decimal("-1000")),
    ],
)
def test_parse_amount_handles_locale_shapes(token: str, expected: Decimal) -> None:
    assert parse_amount(token) == expected


@pytest.mark.parametrize("token", ["", "abc", "-", "1,2,x"])
def test_parse_amount_rejects_non_numbers(token: str) -> None:
    assert parse_amount(token) is None


def test_normalize_zero_is_not_a_transaction() -> None:
    assert normalize("0", "VND") is None
    assert normalize("0.00", "$") is None


def test_normalize_defaults_to_home_currency_when_no_marker() -> None:
    money = normalize("120", None, text="paid 120 for parking", home_currency="vnd")
    assert money is not None
    assert money.currency == "VND"
    assert money.amount == Decimal("120")


def test_normalize_reads_currency_from_text_when_token_missing() -> None:
    money = normalize("12", None, text="Card charge 12 EUR at Lidl", home_currency="VND")
    assert money is not None and money.currency == "EUR"


def test_normalize_negative_token_keeps_positive_magnitude() -> None:
    money = normalize("-45,000", "VND")
    assert money is not None
    assert money.amount == Decimal("45000")
    assert money.negative is True


def test_symbol_longest_match_wins() -> None:
    assert normalize("10", "A$").currency == "AUD"  # type: ignore[union-attr]
    assert normalize("10", "$").currency == "USD"  # type: ignore[union-attr]
    assert normalize("10", "VNĐ").currency == "VND"  # type: ignore[union-attr]


def test_detect_currency_ignores_vietnamese_d_in_words() -> None:
    assert detect_currency("Quý khách đã thanh toán thành công") is None
    assert detect_currency("đã thanh toán 50.000đ") == "VND"
    assert detect_currency("paid $5 today") == "USD"
