from decimal import Decimal

import pytest

from txn_detection.models import Outcome, ParsedTransaction, SourceChannel, TransactionType
from txn_detection.persistence import SqlTransactionSink
from txn_detection.review import (
    SAVED_MESSAGE,
    SKIPPED_MESSAGE,
    PendingReviewBook,
    PersistenceFailure,
)
from tests.helpers.db import count_rows
from tests.helpers.sinks import RecordingSink


def _tx(*, source: SourceChannel = SourceChannel.SMS, category: str = "Transport") -> ParsedTransaction:
    return ParsedTransaction(
        amount=Decimal("150000"),
        type=TransactionType.EXPENSE,
        currency="VND",
        description="GRAB*TRIP Ho Chi Minh",
        category=category,
        provider="Vietcombank",
        source_channel=source,
        pattern="labelled_transaction",
        raw_text="GD: -150,000VND tai GRAB*TRIP Ho Chi Minh",
    )


def test_open_then_save_persists_once(database_url):
    sink = RecordingSink()
    book = PendingReviewBook(database_url, sink=sink)
    pid = book.open(_tx())
    assert [p.pending_id for p in book.list_open()] == [pid]

    res = book.save(pid, user_id="u1")

    assert res.applied and res.outcome is Outcome.SAVED
    assert res.message == SAVED_MESSAGE
    assert res.record_id == "rec-1"
    assert sink.calls[0][0] == "u1"
    assert sink.calls[0][2] == pid
    assert book.list_open() == []
    assert book.get(pid).record_id == "rec-1"


def test_terminal_rows_ignore_further_actions(database_url):
    sink = RecordingSink()
    book = PendingReviewBook(database_url, sink=sink)
    pid = book.open(_tx())
    book.save(pid, user_id="u1")

    again = book.save(pid, user_id="u1")
    skipped = book.skip(pid)
    changed = book.change_category(pid, "Shopping")

    assert not again.applied and again.outcome is Outcome.SAVED
    assert not skipped.applied and skipped.outcome is Outcome.SAVED
    assert changed.transaction.category == "Transport"
    assert len(sink.calls) == 1


def test_category_override_is_saved_with_override_outcome(database_url):
    sink = RecordingSink()
    book = PendingReviewBook(database_url, sink=sink)
    pid = book.open(_tx())

    snap = book.change_category(pid, "Shopping")
    assert snap.is_open and snap.category_overridden
    assert snap.original_category == "Transport"

    res = book.save(pid, user_id="u1")
    assert res.outcome is Outcome.SAVED_WITH_OVERRIDE_CATEGORY
    assert sink.calls[0][1].category == "Shopping"


def test_changing_back_to_original_is_not_an_override(database_url):
    book = PendingReviewBook(database_url, sink=RecordingSink())
    pid = book.open(_tx())
    book.change_category(pid, "Shopping")
    snap = book.change_category(pid, "Transport")
    assert not snap.category_overridden
    assert book.save(pid, user_id="u1").outcome is Outcome.SAVED


def test_change_category_validates_input(database_url):
    book = PendingReviewBook(database_url, sink=RecordingSink())
    pid = book.open(_tx())
    with pytest.raises(ValueError):
        book.change_category(pid, "Not A Category")
    with pytest.raises(KeyError):
        book.change_category("missing", "Shopping")


def test_skip_never_calls_the_sink(database_url):
    sink = RecordingSink()
    book = PendingReviewBook(database_url, sink=sink)
    pid = book.open(_tx())
    res = book.skip(pid)
    assert res.applied and res.outcome is Outcome.SKIPPED
    assert res.message == SKIPPED_MESSAGE
    assert sink.calls == []


def test_failed_save_keeps_item_pending_and_can_be_retried(database_url):
    sink = RecordingSink(fail_times=1)
    book = PendingReviewBook(database_url, sink=sink)
    pid = book.open(_tx())

    with pytest.raises(PersistenceFailure) as excinfo:
        book.save(pid, user_id="u1")
    assert excinfo.value.pending_id == pid
    assert excinfo.value.user_message == "Failed to save transaction. Please try again."
    assert book.get(pid).is_open

    res = book.save(pid, user_id="u1")
    assert res.applied and res.outcome is Outcome.SAVED
    assert len(sink.calls) == 1


def test_save_requires_an_owner(database_url):
    book = PendingReviewBook(database_url, sink=RecordingSink())
    pid = book.open(_tx())
    with pytest.raises(ValueError):
        book.save(pid)


def test_chat_rows_carry_their_user(database_url):
    sink = RecordingSink()
    book = PendingReviewBook(database_url, sink=sink)
    pid = book.open(_tx(source=SourceChannel.CHAT), user_id="chat-user")
    book.save(pid)
    assert sink.calls[0][0] == "chat-user"


def test_dismiss_is_a_silent_skip_for_chat_only(database_url):
    book = PendingReviewBook(database_url, sink=RecordingSink())
    chat_pid = book.open(_tx(source=SourceChannel.CHAT), user_id="u1")
    res = book.dismiss(chat_pid)
    assert res.applied and res.outcome is Outcome.SKIPPED
    assert res.message == ""

    sms_pid = book.open(_tx())
    with pytest.raises(ValueError):
        book.dismiss(sms_pid)


def test_unknown_pending_id_raises_key_error(database_url):
    book = PendingReviewBook(database_url, sink=RecordingSink())
    with pytest.raises(KeyError):
        book.get("nope")


def test_sql_sink_is_idempotent_per_key(database_url):
    sink = SqlTransactionSink(database_url)
    first = sink.persist_transaction("u1", _tx(), idempotency_key="k1")
    second = sink.persist_transaction("u1", _tx(), idempotency_key="k1")
    assert first == second
    assert count_rows(database_url, "dt_transactions") == 1


def test_default_sink_writes_transactions_table(database_url):
    book = PendingReviewBook(database_url)
    pid = book.open(_tx())
    res = book.save(pid, user_id="u1")
    assert res.record_id is not None
    assert count_rows(database_url, "dt_transactions") == 1


class _SkippingSink(RecordingSink):
    """Skips the pending row while the save is still in flight."""

    def __init__(self) -> None:
        super().__init__()
        self.book: PendingReviewBook | None = None

    def persist_transaction(self, user_id, tx, *, idempotency_key=None):
        record_id = super().persist_transaction(user_id, tx, idempotency_key=idempotency_key)
        assert self.book is not None and idempotency_key is not None
        self.book.skip(idempotency_key)
        return record_id


def test_save_reports_a_lost_race_as_not_applied(database_url):
    sink = _SkippingSink()
    book = PendingReviewBook(database_url, sink=sink)
    sink.book = book
    pid = book.open(_tx())

    res = book.save(pid, user_id="u1")

    assert not res.applied
    assert res.outcome is Outcome.SKIPPED
    assert book.get(pid).status == "skipped"
    assert book.list_open() == []
