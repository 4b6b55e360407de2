"""
Version: 0.1.0
License: MIT
"""

from __future__ import annotations

import threading

from percepta_app.core.models import Observation
from percepta_app.core.schema import ensure_schema_version
from percepta_app.hal.interfaces import IObservationStore


class MemoryObservationStore(IObservationStore):
    """Process-local store, mostly for tests and one-shot CLI runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observations: list[Observation] = []

    def save(self, obs: Observation) -> None:
        with self._lock:
            self._observations.append(ensure_schema_version(obs))

    def query(self, device_id: str, limit: int) -> list[Observation]:
        with self._lock:
            matches = [o for o in self._observations if o.device_id == device_id]
        matches.sort(key=lambda o: o.timestamp, reverse=True)
        return matches[:limit] if limit > 0 else matches

    def count(self) -> int:
        with self._lock:
            return len(self._observations)
