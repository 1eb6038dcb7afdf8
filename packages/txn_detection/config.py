"""Runtime settings for the detection engine.

Settings are plain values validated by pydantic. ``Settings.from_env()`` reads
the process environment; entrypoints load a local ``.env`` with
``python-dotenv`` before calling it so nothing here has import-time side
effects.

Environment variables
---------------------
``TXN_DETECTION_HOME_CURRENCY``
    Currency assumed when a message carries no currency marker (default VND).
``TXN_DETECTION_ORACLE_MODEL``
    OpenAI model used for the chat intent pre-pass (default ``gpt-5-mini``).
``TXN_DETECTION_ORACLE_TIMEOUT``
    Seconds to wait for the oracle before falling back (default 8).
``TXN_DETECTION_POLL_INTERVAL``
    Seconds between poller ticks (default 30).
``TXN_DETECTION_DUPLICATE_WINDOW``
    Seconds during which a re-posted bank notification is suppressed
    (default 60).
``TXN_DETECTION_SMS_DEFAULT_CATEGORY`` / ``TXN_DETECTION_EMAIL_DEFAULT_CATEGORY``
    Fallback categories when no keyword matches (``Other`` / ``General``).
``DATABASE_URL``
    SQLAlchemy URL for the fingerprint, pending and transaction tables.
``OPENAI_API_KEY``
    Enables the chat oracle when set.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, field_validator

from .categories import TAXONOMY
from .money import SUPPORTED_CURRENCIES


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)

    home_currency: str = "VND"
    oracle_enabled: bool = False
    oracle_model: str = "gpt-5-mini"
    oracle_timeout_seconds: float = 8.0
    poll_interval_seconds: float = 30.0
    notification_duplicate_window_seconds: float = 60.0
    sms_default_category: str = "Other"
    email_default_category: str = "General"
    database_url: str | None = None

    @field_validator("home_currency")
    @classmethod
    def _known_currency(cls, v: str) -> str:
        code = v.upper()
        if code not in SUPPORTED_CURRENCIES:
            raise ValueError(f"unsupported home currency: {v!r}")
        return code

    @field_validator("oracle_timeout_seconds", "poll_interval_seconds")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("notification_duplicate_window_seconds")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("sms_default_category", "email_default_category")
    @classmethod
    def _in_taxonomy(cls, v: str) -> str:
        if v not in TAXONOMY:
            raise ValueError(f"default category {v!r} is not in the taxonomy")
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> Settings:
        """Build settings from environment variables, then apply ``overrides``."""

        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        mapping = {
            "TXN_DETECTION_HOME_CURRENCY": "home_currency",
            "TXN_DETECTION_ORACLE_MODEL": "oracle_model",
            "TXN_DETECTION_ORACLE_TIMEOUT": "oracle_timeout_seconds",
            "TXN_DETECTION_POLL_INTERVAL": "poll_interval_seconds",
            "TXN_DETECTION_DUPLICATE_WINDOW": "notification_duplicate_window_seconds",
            "TXN_DETECTION_SMS_DEFAULT_CATEGORY": "sms_default_category",
            "TXN_DETECTION_EMAIL_DEFAULT_CATEGORY": "email_default_category",
            "DATABASE_URL": "database_url",
        }
        for env_name, field_name in mapping.items():
            raw = env.get(env_name)
            if raw is not None and raw.strip() != "":
                values[field_name] = raw
        values["oracle_enabled"] = bool(env.get("OPENAI_API_KEY"))
        values.update(overrides)
        return cls.model_validate(values)


__all__ = ["Settings"]
