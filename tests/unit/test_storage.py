"""
Version: 0.1.1
License: MIT
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from percepta_app.core.errors import StorageUnavailableError
from percepta_app.filter.smoothing import SmoothingOutcome, TemporalSmoother
from percepta_app.core.models import DisplaySignal, LEDSignal, Observation
from percepta_app.hal.interfaces import IObservationStore
from percepta_app.storage.db import SQLiteObservationStore
from percepta_app.storage.memory import MemoryObservationStore

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _obs(obs_id: str, seconds: int, device: str = "board-1") -> Observation:
    return Observation(
        id=obs_id,
        device_id=device,
        timestamp=NOW + timedelta(seconds=seconds),
        signals=(LEDSignal("LED1", on=seconds % 2 == 0, confidence=0.9), DisplaySignal("LCD", "Ready", 0.8)),
    )


@pytest.fixture(params=["sqlite", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> IObservationStore:
    if request.param == "sqlite":
        return SQLiteObservationStore(tmp_path / "db" / "percepta.sqlite3")
    return MemoryObservationStore()


def test_query_returns_newest_first_with_limit(store: IObservationStore) -> None:
    for i in (3, 1, 4, 2):
        store.save(_obs(f"o{i}", i))
    store.save(_obs("other", 9, device="board-2"))

    got = store.query("board-1", 3)
    assert [o.id for o in got] == ["o4", "o3", "o2"]
    assert store.count() == 5


def test_saved_observation_is_stamped_and_preserved(store: IObservationStore) -> None:
    obs = _obs("o1", 0)
    store.save(obs)
    (got,) = store.query("board-1", 10)
    assert got.schema_version
    assert got.signals == obs.signals
    assert got.timestamp == obs.timestamp


def test_unknown_device_has_no_history(store: IObservationStore) -> None:
    store.save(_obs("o1", 0))
    assert store.query("nope", 10) == []


def test_retention_cleanup_drops_old_rows(tmp_path: Path) -> None:
    store = SQLiteObservationStore(tmp_path / "p.sqlite3")
    store.save(_obs("old", -40 * 86400))
    store.save(_obs("new", 0))
    assert store.retention_cleanup(30, now=NOW) == 1
    assert [o.id for o in store.query("board-1", 10)] == ["new"]


def test_sqlite_errors_surface_as_storage_unavailable(tmp_path: Path) -> None:
    store = SQLiteObservationStore(tmp_path / "p.sqlite3")
    store.close()
    with pytest.raises(StorageUnavailableError):
        store.query("board-1", 10)
    with pytest.raises(StorageUnavailableError):
        store.save(_obs("o1", 0))


def test_duplicate_id_is_a_storage_error(tmp_path: Path) -> None:
    store = SQLiteObservationStore(tmp_path / "p.sqlite3")
    store.save(_obs("o1", 0))
    with pytest.raises(StorageUnavailableError):
        store.save(_obs("o1", 1))


def test_corrupt_row_degrades_smoothing(tmp_path: Path) -> None:
    store = SQLiteObservationStore(tmp_path / "p.sqlite3")
    store.db.conn.execute(
        "INSERT INTO observations(id, device_id, firmware, timestamp, document) VALUES (?, ?, ?, ?, ?)",
        ("bad", "board-1", "", "2026-03-01T12:00:00.000000+00:00",
         '{"schema_version": "1.0.0", "timestamp": "2026-03-01T12:00:00Z", "signals": 5}'),
    )
    store.db.conn.commit()
    with pytest.raises(StorageUnavailableError):
        store.query("board-1", 10)

    result = TemporalSmoother(store, clock=lambda: NOW).smooth(_obs("new", 1))
    assert result.outcome == SmoothingOutcome.DEGRADED
