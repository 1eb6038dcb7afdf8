"""Pytest configuration for test isolation.

Settings read ``DATABASE_URL``, ``OPENAI_API_KEY`` and the ``TXN_DETECTION_*``
variables from the environment, and ``db.client`` caches one engine per URL.
To keep tests hermetic every test starts with those variables removed, and
cached engines are disposed afterwards so temporary SQLite files are released.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from db.client import dispose_engines
from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith("TXN_DETECTION_") or name in {"DATABASE_URL", "OPENAI_API_KEY"}:
            monkeypatch.delenv(name, raising=False)
    yield
    dispose_engines()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """A fresh file-backed SQLite database with the detection tables."""

    return bootstrap_sqlite_db(tmp_path / "txn-detection.db")
