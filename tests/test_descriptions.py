from txn_detection.descriptions import (
    CHAT_FALLBACK,
    NOTIFICATION_FALLBACK,
    SMS_FALLBACK,
    chat_description,
    clean,
    email_description,
    extract,
    narrative_clause,
    notification_description,
    sms_description,
)


def test_clean_strips_dates_times_and_dangling_prepositions():
    assert clean("Payment at STARBUCKS on 08/05/2025 10:30") == "Payment at STARBUCKS"


def test_extract_never_returns_boilerplate_only_text():
    assert extract("So du: 1,000,000 VND") == NOTIFICATION_FALLBACK
    assert extract("-150,000VND", fallback=SMS_FALLBACK) == SMS_FALLBACK


def test_sms_description_prefers_merchant_clause():
    body = (
        "TK 0123456789 GD: -150,000VND luc 10:30 08/08/2025 tai GRAB*TRIP Ho Chi Minh. "
        "So du: 2,000,000VND"
    )
    assert sms_description(body) == "GRAB*TRIP Ho Chi Minh"


def test_sms_description_merchant_clause_drops_trailing_date():
    assert sms_description("Chase: Debit $25.50 at STARBUCKS #1234 on 08/05/2025") == "STARBUCKS #1234"


def test_sms_description_falls_back_to_label():
    assert sms_description("-150,000VND") == SMS_FALLBACK


def test_email_description_uses_content_line():
    body = "Số tiền: -45,000 VND\nNội dung: QR Payment - Highlands Coffee\nSố dư: 1,200,000 VND"
    assert email_description(body, "Thông báo giao dịch") == "QR Payment - Highlands Coffee"


def test_email_description_falls_back_to_subject():
    assert email_description("-45,000 VND", "Card alert") == "Card alert"


def test_notification_description_reads_nd_clause():
    text = "ACB: TK 123456789 (-1,500,000 VND) luc 09/08/2025 19:55:12. ND: CHUYEN TIEN AN TRUA"
    assert notification_description(text) == "CHUYEN TIEN AN TRUA"


def test_narrative_clause_only_applies_to_long_text():
    assert narrative_clause("Noi dung: tien an trua") is None

    long_text = (
        "Chuyen tien thanh cong toi tai khoan 0123456789 tai ngan hang Vietcombank chi nhanh HCM. "
        "Noi dung: tien an trua thang 8 cho ca nhom"
    )
    assert narrative_clause(long_text) == "tien an trua thang 8 cho ca nhom"
    assert chat_description(long_text) == "tien an trua thang 8 cho ca nhom"


def test_chat_description_short_text_falls_back():
    assert chat_description("+50k") == CHAT_FALLBACK


def test_short_merchant_clause_is_kept():
    assert sms_description("Your card was charged 1.234,56 EUR at Zara") == "Zara"
    assert sms_description("TK 0123456789 GD: -45,000VND tai GRAB") == "GRAB"


def test_clean_strips_amount_labels():
    assert clean("Số tiền: -45,000 VND Highlands Coffee") == "Highlands Coffee"
    assert clean("So tien: 120,000 VND Baemin") == "Baemin"
    assert clean("Amount: $12.50 Uber trip") == "Uber trip"
