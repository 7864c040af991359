from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from db.store import RecordStore

TODAY = dt.date(2024, 5, 1)


@pytest.fixture
def store(tmp_path: Path) -> RecordStore:
    return RecordStore(tmp_path / "test.db", enable_wal=False)


@pytest.fixture
def today():
    return lambda: TODAY
