import pytest
from pydantic import ValidationError

from txn_detection.config import Settings


def test_defaults_without_environment():
    s = Settings.from_env({})
    assert s.home_currency == "VND"
    assert s.oracle_enabled is False
    assert s.sms_default_category == "Other"
    assert s.email_default_category == "General"
    assert s.database_url is None


def test_reads_prefixed_variables_and_api_key():
    s = Settings.from_env(
        {
            "TXN_DETECTION_HOME_CURRENCY": "usd",
            "TXN_DETECTION_ORACLE_TIMEOUT": "2.5",
            "TXN_DETECTION_DUPLICATE_WINDOW": "0",
            "TXN_DETECTION_POLL_INTERVAL": "   ",
            "OPENAI_API_KEY": "sk-test",
            "DATABASE_URL": "sqlite+pysqlite:///x.db",
        }
    )
    assert s.home_currency == "USD"
    assert s.oracle_timeout_seconds == 2.5
    assert s.notification_duplicate_window_seconds == 0
    assert s.poll_interval_seconds == 30.0  # blank values are ignored
    assert s.oracle_enabled is True
    assert s.database_url == "sqlite+pysqlite:///x.db"


def test_overrides_win_over_environment():
    s = Settings.from_env({"DATABASE_URL": "sqlite://"}, database_url="sqlite+pysqlite:///other.db")
    assert s.database_url == "sqlite+pysqlite:///other.db"


@pytest.mark.parametrize(
    "env",
    [
        {"TXN_DETECTION_HOME_CURRENCY": "XYZ"},
        {"TXN_DETECTION_SMS_DEFAULT_CATEGORY": "Misc"},
        {"TXN_DETECTION_ORACLE_TIMEOUT": "0"},
        {"TXN_DETECTION_DUPLICATE_WINDOW": "-1"},
    ],
)
def test_invalid_values_are_rejected(env):
    with pytest.raises(ValidationError):
        Settings.from_env(env)
