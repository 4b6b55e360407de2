"""
Version: 0.1.2
License: MIT
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class SignalKind(str, Enum):
    LED = "led"
    DISPLAY = "display"
    BOOT_TIMING = "boot_timing"


@dataclass(frozen=True)
class RGB:
    """8-bit color. The zero value means no color was detected, not black."""

    r: int = 0
    g: int = 0
    b: int = 0

    def is_zero(self) -> bool:
        return self.r == 0 and self.g == 0 and self.b == 0


NO_COLOR = RGB()


@dataclass(frozen=True)
class LEDSignal:
    name: str
    on: bool
    color: RGB = NO_COLOR
    brightness: int = 0
    blink_hz: float = 0.0
    confidence: float = 0.0

    @property
    def kind(self) -> SignalKind:
        return SignalKind.LED


@dataclass(frozen=True)
class DisplayTextEntry:
    offset_ms: int
    text: str
    confidence: float


@dataclass(frozen=True)
class DisplaySignal:
    name: str
    text: str
    confidence: float = 0.0
    changed: bool = False
    history: tuple[DisplayTextEntry, ...] = ()

    @property
    def kind(self) -> SignalKind:
        return SignalKind.DISPLAY


@dataclass(frozen=True)
class BootTimingSignal:
    duration_ms: int
    confidence: float = 0.0

    @property
    def kind(self) -> SignalKind:
        return SignalKind.BOOT_TIMING


Signal = Union[LEDSignal, DisplaySignal, BootTimingSignal]


@dataclass(frozen=True)
class FrameResult:
    signals: tuple[Signal, ...]
    captured_at: datetime


@dataclass(frozen=True)
class Observation:
    id: str
    device_id: str
    timestamp: datetime
    signals: tuple[Signal, ...] = field(default_factory=tuple)
    firmware_hash: Optional[str] = None
    schema_version: str = ""

    def leds(self) -> list[LEDSignal]:
        return [s for s in self.signals if isinstance(s, LEDSignal)]

    def displays(self) -> list[DisplaySignal]:
        return [s for s in self.signals if isinstance(s, DisplaySignal)]


def new_observation_id() -> str:
    return uuid.uuid4().hex
