"""
Version: 0.1.2
License: MIT
"""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from percepta_app.core.errors import SchemaError, StorageUnavailableError
from percepta_app.core.models import Observation
from percepta_app.core.schema import ensure_schema_version, format_timestamp, observation_to_json, validate_and_migrate
from percepta_app.hal.interfaces import IObservationStore


@dataclass
class DB:
    conn: sqlite3.Connection
    lock: threading.Lock = field(default_factory=threading.Lock)


def connect(db_path: str | Path) -> DB:
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    try:
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS observations(
                id TEXT PRIMARY KEY,
                device_id TEXT NOT NULL,
                firmware TEXT NOT NULL DEFAULT '',
                timestamp TEXT NOT NULL,
                document TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_device_timestamp
            ON observations(device_id, timestamp);
            """
        )
        conn.commit()
    except sqlite3.Error as exc:
        raise StorageUnavailableError(f"cannot open {db_path}: {exc}") from exc
    return DB(conn=conn)


class SQLiteObservationStore(IObservationStore):
    def __init__(self, db_path: str | Path) -> None:
        self.db = connect(db_path)

    def save(self, obs: Observation) -> None:
        obs = ensure_schema_version(obs)
        with self.db.lock:
            try:
                self.db.conn.execute(
                    "INSERT INTO observations(id, device_id, firmware, timestamp, document) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        obs.id,
                        obs.device_id,
                        obs.firmware_hash or "",
                        format_timestamp(obs.timestamp),
                        observation_to_json(obs),
                    ),
                )
                self.db.conn.commit()
            except sqlite3.Error as exc:
                raise StorageUnavailableError(f"save failed: {exc}") from exc

    def query(self, device_id: str, limit: int) -> list[Observation]:
        with self.db.lock:
            try:
                cur = self.db.conn.execute(
                    "SELECT document FROM observations WHERE device_id=? "
                    "ORDER BY timestamp DESC LIMIT ?",
                    (device_id, limit),
                )
                rows = cur.fetchall()
            except sqlite3.Error as exc:
                raise StorageUnavailableError(f"query failed: {exc}") from exc
        try:
            return [validate_and_migrate(row[0]) for row in rows]
        except SchemaError as exc:
            raise StorageUnavailableError(f"stored observation unreadable: {exc}") from exc

    def count(self) -> int:
        with self.db.lock:
            try:
                return int(self.db.conn.execute("SELECT COUNT(*) FROM observations").fetchone()[0])
            except sqlite3.Error as exc:
                raise StorageUnavailableError(f"count failed: {exc}") from exc

    def retention_cleanup(self, retention_days: int, now: datetime | None = None) -> int:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
        with self.db.lock:
            cur = self.db.conn.cursor()
            try:
                cur.execute("DELETE FROM observations WHERE timestamp < ?", (format_timestamp(cutoff),))
                affected = cur.rowcount
                self.db.conn.commit()
                return max(affected, 0)
            except sqlite3.Error:
                return 0

    def close(self) -> None:
        with self.db.lock:
            self.db.conn.close()
