"""
Version: 0.1.0
License: MIT
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from percepta_app.core.models import Observation, Signal


class ICameraDriver(ABC):
    """Frame source. Implementations raise CameraError on failure."""

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def capture_frame(self) -> bytes: ...

    @abstractmethod
    def close(self) -> None: ...


class ISignalParser(ABC):
    @abstractmethod
    def parse(self, frame: bytes) -> Sequence[Signal]: ...


class IObservationStore(ABC):
    @abstractmethod
    def save(self, obs: Observation) -> None: ...

    @abstractmethod
    def query(self, device_id: str, limit: int) -> list[Observation]:
        """Most recent ``limit`` observations for the device, newest first."""

    @abstractmethod
    def count(self) -> int: ...
