"""
Version: 0.1.2
License: MIT
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from percepta_app.core.errors import SignalParseError
from percepta_app.core.models import NO_COLOR, RGB, BootTimingSignal, DisplaySignal, LEDSignal, Signal
from percepta_app.hal.interfaces import ISignalParser

COLOR_MAP = {
    "red": RGB(255, 0, 0),
    "green": RGB(0, 255, 0),
    "blue": RGB(0, 0, 255),
    "yellow": RGB(255, 255, 0),
    "white": RGB(255, 255, 255),
    "orange": RGB(255, 165, 0),
}


def parse_color(raw: Any) -> RGB:
    if isinstance(raw, Mapping):
        return RGB(int(raw.get("r", 0)), int(raw.get("g", 0)), int(raw.get("b", 0)))
    if isinstance(raw, str):
        return COLOR_MAP.get(raw.strip().lower(), NO_COLOR)
    return NO_COLOR


def _confidence(raw: Any) -> float:
    return max(0.0, min(1.0, float(raw)))


def _parse_led(raw: Mapping[str, Any]) -> LEDSignal:
    return LEDSignal(
        name=str(raw["name"]),
        on=bool(raw["on"]),
        color=parse_color(raw.get("color")),
        brightness=int(raw.get("brightness", 0)),
        blink_hz=max(0.0, float(raw.get("blink_hz", 0.0) or 0.0)),
        confidence=_confidence(raw["confidence"]),
    )


def _parse_display(raw: Mapping[str, Any]) -> DisplaySignal:
    return DisplaySignal(
        name=str(raw["name"]),
        text=str(raw["text"]),
        confidence=_confidence(raw["confidence"]),
    )


def parse_classifier_payload(payload: Mapping[str, Any]) -> list[Signal]:
    """Convert a structured classifier response into typed signals."""
    if not isinstance(payload, Mapping):
        raise SignalParseError(f"classifier payload must be an object, got {type(payload).__name__}")
    signals: list[Signal] = []
    try:
        for led in payload.get("leds") or []:
            signals.append(_parse_led(led))
        for display in payload.get("displays") or []:
            signals.append(_parse_display(display))
        boot = payload.get("boot_timing")
        if boot:
            signals.append(
                BootTimingSignal(
                    duration_ms=int(boot["duration_ms"]),
                    confidence=_confidence(boot.get("confidence", 0.0)),
                )
            )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SignalParseError(f"malformed classifier payload: {exc!r}") from exc
    return signals


class StructuredSignalParser(ISignalParser):
    """Adapts an external classifier callable to the parser contract."""

    def __init__(self, classify: Callable[[bytes], Mapping[str, Any]]) -> None:
        self.classify = classify

    def parse(self, frame: bytes) -> list[Signal]:
        try:
            payload = self.classify(frame)
        except Exception as exc:
            raise SignalParseError(f"classifier call failed: {exc!r}") from exc
        return parse_classifier_payload(payload)
