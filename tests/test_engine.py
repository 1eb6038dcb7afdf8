import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from txn_detection.config import Settings
from txn_detection.engine import CHAT_FOUND_MESSAGE, DetectionEngine
from txn_detection.identity import FingerprintStore
from txn_detection.models import (
    ChatUserMessage,
    IncomingEmail,
    IncomingNotification,
    IncomingSMS,
    OracleIntent,
    Outcome,
    TransactionDetected,
    TransactionResolved,
    TransactionType,
)
from txn_detection.oracle import ChatOracle
from txn_detection.parsers.chat import DEFAULT_REPLY
from txn_detection.review import PendingReviewBook
from tests.helpers.db import count_rows
from tests.helpers.openai_stub import AsyncOpenAIStub, intent_json
from tests.helpers.sinks import RecordingSink

VCB_SMS = IncomingSMS(
    sender="VIETCOMBANK",
    body="TK 0123456789 GD: -150,000VND luc 10:30 08/08/2025 tai GRAB*TRIP Ho Chi Minh. So du: 2,000,000VND",
    received_at_epoch_ms=1_723_100_000_000,
)
ACB_TEXT = "ACB: TK 123456789 (-1,500,000 VND) luc 09/08/2025 19:55:12. ND: CHUYEN TIEN AN TRUA"


def _build(database_url, *, oracle=None, sink=None, clock=None, **overrides):
    settings = Settings(database_url=database_url, **overrides)
    store = FingerprintStore(database_url, clock=clock) if clock else FingerprintStore(database_url)
    engine = DetectionEngine(
        settings,
        fingerprints=store,
        review=PendingReviewBook(database_url, sink=sink or RecordingSink()),
        oracle=oracle,
    )
    events: list = []
    engine.subscribe(events.append)
    return engine, events


def test_sms_is_detected_once(database_url):
    engine, events = _build(database_url)

    first = asyncio.run(engine.handle_sms(VCB_SMS))
    second = asyncio.run(engine.handle_sms(VCB_SMS))

    assert first is not None
    assert first.transaction.amount == Decimal("150000")
    assert first.transaction.category == "Transport"
    assert second is None
    assert events == [first]
    assert count_rows(database_url, "dt_pending_transactions") == 1
    assert len(engine.fingerprints.list_ids()) == 1


def test_non_transaction_is_not_marked_seen(database_url):
    engine, events = _build(database_url)
    otp = IncomingSMS(sender="VCB", body="Ma OTP cua ban la 123456.", received_at_epoch_ms=1)
    assert asyncio.run(engine.handle_sms(otp)) is None
    assert events == []
    assert engine.fingerprints.list_ids() == []


def test_email_routes_wallets_and_banks(database_url):
    engine, _ = _build(database_url)
    bank = IncomingEmail(
        subject="Thông báo giao dịch",
        body="Số tiền: -45,000 VND\nNội dung: QR Payment - Highlands Coffee",
        sender="VCB Digibank <info@vietcombank.com.vn>",
        received_at_epoch_ms=1_723_100_000_000,
    )
    wallet = IncomingEmail(
        subject="Giao dịch thành công",
        body="Thanh toán thành công\nSố tiền: 120.000đ\nNội dung: Baemin order 8812",
        sender="MoMo <no-reply@momo.vn>",
        received_at_epoch_ms=1_723_100_000_000,
    )
    bank_event = asyncio.run(engine.handle_email(bank))
    wallet_event = asyncio.run(engine.handle_email(wallet))
    assert bank_event is not None and bank_event.transaction.provider == "Vietcombank"
    assert wallet_event is not None and wallet_event.transaction.provider == "MoMo"
    assert wallet_event.transaction.source_channel.value == "email-wallet"


def test_reposted_notification_is_suppressed_inside_window(database_url):
    now = [datetime(2025, 8, 9, 12, 0, tzinfo=UTC)]
    engine, events = _build(database_url, clock=lambda: now[0])

    def note(ts_ms: int) -> IncomingNotification:
        return IncomingNotification(package_name="com.acb", title="ACB", text=ACB_TEXT, received_at_epoch_ms=ts_ms)

    assert len(asyncio.run(engine.handle_notification(note(1)))) == 1
    now[0] += timedelta(seconds=20)
    assert asyncio.run(engine.handle_notification(note(2))) == []
    now[0] += timedelta(seconds=120)
    assert len(asyncio.run(engine.handle_notification(note(3)))) == 1
    assert len(events) == 2


def test_grouped_notification_emits_each_line(database_url):
    engine, events = _build(database_url)
    text = "Summary of 2 transactions\nGD: -50,000 VND ND: Grab ride; GD: +200,000 VND ND: Refund"
    note = IncomingNotification(package_name="com.vietcombank", title="VCB", text=text, received_at_epoch_ms=1)
    detected = asyncio.run(engine.handle_notification(note))
    assert [d.transaction.type for d in detected] == [TransactionType.EXPENSE, TransactionType.INCOME]
    assert len({d.pending_id for d in detected}) == 2
    assert events == detected


def test_chat_command_without_oracle_opens_pending_for_user(database_url):
    sink = RecordingSink()
    engine, events = _build(database_url, sink=sink)

    reply = asyncio.run(engine.handle_chat(ChatUserMessage(text="spent 50000₫ on groceries", user_id="u1")))

    assert reply.message == CHAT_FOUND_MESSAGE.format(type="expense")
    assert reply.transaction is not None and reply.transaction.description == "groceries"
    assert reply.pending_id is not None
    assert isinstance(events[0], TransactionDetected)

    res = asyncio.run(engine.save(reply.pending_id))
    assert res.outcome is Outcome.SAVED
    assert sink.calls[0][0] == "u1"
    assert events[-1] == TransactionResolved(pending_id=reply.pending_id, outcome=Outcome.SAVED)


def test_chat_is_never_deduplicated(database_url):
    engine, _ = _build(database_url)
    msg = ChatUserMessage(text="spent 50000₫ on groceries", user_id="u1")
    a = asyncio.run(engine.handle_chat(msg))
    b = asyncio.run(engine.handle_chat(msg))
    assert a.pending_id != b.pending_id


def test_chat_without_transaction_gets_canned_reply(database_url):
    engine, events = _build(database_url)
    reply = asyncio.run(engine.handle_chat(ChatUserMessage(text="my mom just gave me $10 for lunch", user_id="u1")))
    assert reply.message == DEFAULT_REPLY
    assert reply.transaction is None and reply.pending_id is None
    assert events == []


def test_oracle_intent_wins_over_chat_rules(database_url):
    stub = AsyncOpenAIStub(
        lambda text: intent_json(
            is_transaction=True, type="income", amount=10, currency="USD", description="lunch money from mom"
        )
    )
    engine, _ = _build(database_url, oracle=ChatOracle(client=stub))  # type: ignore[arg-type]

    reply = asyncio.run(engine.handle_chat(ChatUserMessage(text="my mom just gave me $10 for lunch", user_id="u1")))

    tx = reply.transaction
    assert tx is not None
    assert (tx.amount, tx.currency, tx.type) == (Decimal("10"), "USD", TransactionType.INCOME)
    assert tx.category == "General Income"
    assert tx.description == "lunch money from mom"
    assert tx.pattern == "oracle"
    assert reply.message == CHAT_FOUND_MESSAGE.format(type="income")


def test_oracle_category_is_kept_when_known(database_url):
    stub = AsyncOpenAIStub(
        lambda text: intent_json(
            is_transaction=True, type="expense", amount=50000, currency=None, category="Food & Dining"
        )
    )
    engine, _ = _build(database_url, oracle=ChatOracle(client=stub))  # type: ignore[arg-type]
    reply = asyncio.run(engine.handle_chat(ChatUserMessage(text="spent 50000₫ on groceries", user_id="u1")))
    assert reply.transaction is not None
    assert reply.transaction.category == "Food & Dining"
    assert reply.transaction.currency == "VND"


@pytest.mark.parametrize(
    "stub",
    [
        AsyncOpenAIStub(delay=1.0),
        AsyncOpenAIStub(error=RuntimeError("rate limited")),
        AsyncOpenAIStub(lambda text: intent_json(is_transaction=False)),
    ],
    ids=["timeout", "api-error", "declined"],
)
def test_oracle_failures_fall_back_to_chat_rules(database_url, stub):
    engine, _ = _build(database_url, oracle=ChatOracle(client=stub), oracle_timeout_seconds=0.05)  # type: ignore[arg-type]
    reply = asyncio.run(engine.handle_chat(ChatUserMessage(text="spent 50000₫ on groceries", user_id="u1")))
    assert reply.transaction is not None
    assert reply.transaction.pattern == "verb_amount"


def test_listener_errors_do_not_break_detection_and_unsubscribe_works(database_url):
    engine, events = _build(database_url)

    def boom(event):
        raise RuntimeError("listener bug")

    unsubscribe = engine.subscribe(boom)
    assert asyncio.run(engine.handle_sms(VCB_SMS)) is not None
    unsubscribe()
    unsubscribe()
    assert len(events) == 1


def test_resolution_events_only_for_applied_actions(database_url):
    engine, events = _build(database_url)
    detected = asyncio.run(engine.handle_sms(VCB_SMS))
    assert detected is not None

    asyncio.run(engine.change_category(detected.pending_id, "Shopping"))
    first = asyncio.run(engine.skip(detected.pending_id))
    second = asyncio.run(engine.skip(detected.pending_id))

    assert first.applied and not second.applied
    resolved = [e for e in events if isinstance(e, TransactionResolved)]
    assert resolved == [TransactionResolved(pending_id=detected.pending_id, outcome=Outcome.SKIPPED)]


def test_dismiss_chat_preview(database_url):
    engine, events = _build(database_url)
    reply = asyncio.run(engine.handle_chat(ChatUserMessage(text="received 1000 VND from friend", user_id="u1")))
    assert reply.pending_id is not None
    res = asyncio.run(engine.dismiss(reply.pending_id))
    assert res.outcome is Outcome.SKIPPED and res.message == ""
    assert events[-1] == TransactionResolved(pending_id=reply.pending_id, outcome=Outcome.SKIPPED)


def test_from_settings_wires_shared_database(database_url):
    sink = RecordingSink()
    engine = DetectionEngine.from_settings(Settings(database_url=database_url), sink=sink)
    assert engine.oracle is None
    detected = asyncio.run(engine.handle_sms(VCB_SMS))
    assert detected is not None
    asyncio.run(engine.save(detected.pending_id, user_id="u1"))
    assert len(sink.calls) == 1

    with_oracle = DetectionEngine.from_settings(Settings(database_url=database_url, oracle_enabled=True))
    assert isinstance(with_oracle.oracle, ChatOracle)


def test_sms_poller_feeds_engine(database_url):
    engine, events = _build(database_url, poll_interval_seconds=5)

    async def fetch():
        return [VCB_SMS, VCB_SMS]

    poller = engine.sms_poller(fetch)
    assert poller.interval == 5
    assert asyncio.run(poller.tick()) is True
    assert len(events) == 1


def test_incomplete_oracle_intent_is_ignored(database_url):
    engine, _ = _build(database_url)
    assert asyncio.run(engine._ask_oracle("spent 50000₫ on groceries")) is None

    partial = OracleIntent(is_transaction=True, type=TransactionType.EXPENSE)
    assert engine._from_intent("spent 50000₫ on groceries", partial) is None
