"""Cross-frame fusion of per-frame LED and display readings.
Version: 0.1.4
License: MIT
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Optional

from percepta_app.core.models import (
    BootTimingSignal,
    DisplaySignal,
    DisplayTextEntry,
    FrameResult,
    LEDSignal,
)

from .calibration import calibrate_display, calibrate_led


def _ordered(frames: Iterable[FrameResult]) -> list[FrameResult]:
    return sorted(frames, key=lambda f: f.captured_at)


@dataclass
class LEDTally:
    name: str
    readings: list[tuple[datetime, LEDSignal]] = field(default_factory=list)

    def add(self, captured_at: datetime, led: LEDSignal) -> None:
        self.readings.append((captured_at, led))

    def transitions(self) -> int:
        states = [led.on for _, led in self.readings]
        return sum(1 for prev, cur in zip(states, states[1:]) if prev != cur)

    def elapsed_s(self) -> float:
        if len(self.readings) < 2:
            return 0.0
        return (self.readings[-1][0] - self.readings[0][0]).total_seconds()

    def fuse(self, normalize_blink: bool = False) -> LEDSignal:
        on_count = sum(1 for _, led in self.readings if led.on)
        off_count = len(self.readings) - on_count
        first = self.readings[0][1]

        if on_count and off_count:
            blink_hz = self.transitions() / 2.0
            elapsed = self.elapsed_s()
            if normalize_blink and elapsed > 0:
                blink_hz /= elapsed
            on = True
        else:
            blink_hz = 0.0
            on = on_count > 0

        confidence = sum(led.confidence for _, led in self.readings) / len(self.readings)
        return replace(first, name=self.name, on=on, blink_hz=blink_hz, confidence=confidence)


def aggregate_leds(
    frames: Sequence[FrameResult], normalize_blink: bool = False
) -> list[LEDSignal]:
    """Fuse LED readings by name across frames.

    Disagreeing on/off readings are treated as blinking: the LED is reported
    on with ``blink_hz = transitions / 2``. With ``normalize_blink`` the rate
    is also divided by the seconds between the LED's first and last reading.
    """
    if not frames:
        return []
    tallies: dict[str, LEDTally] = {}
    for frame in _ordered(frames):
        for signal in frame.signals:
            if isinstance(signal, LEDSignal):
                tallies.setdefault(signal.name, LEDTally(signal.name)).add(
                    frame.captured_at, signal
                )

    out: list[LEDSignal] = []
    for tally in tallies.values():
        detection_rate = len(tally.readings) / len(frames)
        out.append(calibrate_led(tally.fuse(normalize_blink), detection_rate))
    return out


def dedupe_transitions(entries: Iterable[DisplayTextEntry]) -> list[DisplayTextEntry]:
    kept: list[DisplayTextEntry] = []
    for entry in entries:
        if not kept or entry.text != kept[-1].text:
            kept.append(entry)
    return kept


def aggregate_displays(frames: Sequence[FrameResult]) -> list[DisplaySignal]:
    """Fuse display readings by name, recording deduplicated text transitions.

    Offsets are measured from the first frame of the whole session.
    """
    ordered = _ordered(frames)
    if not ordered:
        return []
    base = ordered[0].captured_at

    readings: dict[str, list[DisplayTextEntry]] = {}
    for frame in ordered:
        offset_ms = (frame.captured_at - base) // timedelta(milliseconds=1)
        for signal in frame.signals:
            if isinstance(signal, DisplaySignal):
                readings.setdefault(signal.name, []).append(
                    DisplayTextEntry(offset_ms=offset_ms, text=signal.text, confidence=signal.confidence)
                )

    out: list[DisplaySignal] = []
    for name, entries in readings.items():
        transitions = dedupe_transitions(entries)
        changed = len(transitions) > 1
        fused = DisplaySignal(
            name=name,
            text=entries[-1].text,
            confidence=sum(e.confidence for e in entries) / len(entries),
            changed=changed,
            history=tuple(transitions) if changed else (),
        )
        out.append(calibrate_display(fused))
    return out


def latest_boot_timing(frames: Sequence[FrameResult]) -> Optional[BootTimingSignal]:
    latest: Optional[BootTimingSignal] = None
    for frame in _ordered(frames):
        for signal in frame.signals:
            if isinstance(signal, BootTimingSignal):
                latest = signal
    return latest
