import json

from typer.testing import CliRunner

from txn_detection.cli import app
from tests.helpers.db import count_rows

runner = CliRunner()

VCB_BODY = "TK 0123456789 GD: -150,000VND luc 10:30 08/08/2025 tai GRAB*TRIP Ho Chi Minh. So du: 2,000,000VND"


def test_parse_sms_dry_run_prints_transaction():
    result = runner.invoke(app, ["parse-sms", "--sender", "VIETCOMBANK", "--body", VCB_BODY])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["amount"] == "150000"
    assert payload["category"] == "Transport"
    assert payload["provider"] == "Vietcombank"
    assert "raw_text" not in payload


def test_parse_sms_without_transaction():
    result = runner.invoke(app, ["parse-sms", "--sender", "VCB", "--body", "Ma OTP cua ban la 123456."])
    assert result.exit_code == 0
    assert "No transaction detected." in result.output


def test_parse_notification_grouped():
    text = "Summary of 2 transactions\nGD: -50,000 VND ND: Grab ride; GD: +200,000 VND ND: Refund"
    result = runner.invoke(app, ["parse-notification", "--package", "com.vietcombank", "--text", text])
    assert result.exit_code == 0, result.output
    assert result.output.count('"source_channel": "notification"') == 2


def test_persist_then_list_and_clear(database_url):
    result = runner.invoke(
        app,
        [
            "parse-sms",
            "--sender",
            "VIETCOMBANK",
            "--body",
            VCB_BODY,
            "--received-at-ms",
            "1723100000000",
            "--persist",
            "--database-url",
            database_url,
        ],
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["pending_id"]

    listed = runner.invoke(app, ["pending", "list", "--database-url", database_url])
    assert "GRAB*TRIP Ho Chi Minh" in listed.output

    seen = runner.invoke(app, ["seen", "list", "--database-url", database_url])
    assert len(seen.output.split()) == 1

    cleared = runner.invoke(app, ["seen", "clear", "--yes", "--database-url", database_url])
    assert "Removed 1 fingerprint(s)." in cleared.output


def test_chat_command(database_url):
    result = runner.invoke(app, ["chat", "spent 50000₫ on groceries", "--database-url", database_url])
    assert result.exit_code == 0, result.output
    assert result.output.startswith("I found a expense transaction.")
    assert count_rows(database_url, "dt_pending_transactions") == 1


def test_chat_requires_database():
    result = runner.invoke(app, ["chat", "hello"])
    assert result.exit_code == 1


def test_invalid_configuration_exits(monkeypatch):
    monkeypatch.setenv("TXN_DETECTION_HOME_CURRENCY", "XYZ")
    result = runner.invoke(app, ["parse-sms", "--sender", "VCB", "--body", "GD: -1,000 VND"])
    assert result.exit_code == 1


def test_init_db_creates_tables(tmp_path):
    url = f"sqlite+pysqlite:///{tmp_path / 'fresh.db'}"
    result = runner.invoke(app, ["init-db", "--database-url", url])
    assert result.exit_code == 0, result.output
    assert count_rows(url, "dt_transactions") == 0
