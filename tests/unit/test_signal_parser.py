"""
Version: 0.1.0
License: MIT
"""

from __future__ import annotations

import pytest

from percepta_app.core.errors import SignalParseError
from percepta_app.core.models import NO_COLOR, RGB, BootTimingSignal, DisplaySignal, LEDSignal
from percepta_app.vision.parser import StructuredSignalParser, parse_classifier_payload, parse_color


def test_payload_maps_to_typed_signals() -> None:
    payload = {
        "leds": [
            {"name": "PWR", "on": True, "color": "Green", "confidence": 0.93},
            {"name": "STAT", "on": True, "color": "purple", "blink_hz": 1.5, "confidence": 1.4},
        ],
        "displays": [{"name": "LCD", "text": "Ready", "confidence": 0.9}],
        "boot_timing": {"duration_ms": 1800, "confidence": 0.7},
    }
    assert parse_classifier_payload(payload) == [
        LEDSignal("PWR", on=True, color=RGB(0, 255, 0), confidence=0.93),
        LEDSignal("STAT", on=True, color=NO_COLOR, blink_hz=1.5, confidence=1.0),
        DisplaySignal("LCD", "Ready", 0.9),
        BootTimingSignal(1800, 0.7),
    ]


def test_empty_payload_has_no_signals() -> None:
    assert parse_classifier_payload({}) == []
    assert parse_classifier_payload({"leds": None, "displays": []}) == []


def test_negative_blink_rate_means_steady() -> None:
    (led,) = parse_classifier_payload({"leds": [{"name": "L", "on": False, "blink_hz": -3, "confidence": 0.5}]})
    assert led.blink_hz == 0.0


def test_color_accepts_rgb_objects() -> None:
    assert parse_color({"r": 255, "g": 165}) == RGB(255, 165, 0)
    assert parse_color(None) == NO_COLOR


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "an", "object"],
        {"leds": [{"on": True, "confidence": 0.5}]},
        {"displays": [{"name": "LCD", "confidence": 0.5}]},
        {"leds": [{"name": "L", "on": True, "confidence": "high"}]},
        {"boot_timing": {"confidence": 0.5}},
    ],
)
def test_malformed_payload_raises(payload: object) -> None:
    with pytest.raises(SignalParseError):
        parse_classifier_payload(payload)  # type: ignore[arg-type]


def test_structured_parser_delegates_to_classifier() -> None:
    seen: list[bytes] = []

    def classify(frame: bytes) -> dict:
        seen.append(frame)
        return {"leds": [{"name": "LED1", "on": True, "confidence": 0.8}]}

    signals = StructuredSignalParser(classify).parse(b"\xff\xd8jpeg")
    assert seen == [b"\xff\xd8jpeg"]
    assert signals == [LEDSignal("LED1", on=True, confidence=0.8)]


def test_classifier_outage_is_a_parse_error() -> None:
    def classify(frame: bytes) -> dict:
        raise ConnectionError("classifier unreachable")

    with pytest.raises(SignalParseError) as excinfo:
        StructuredSignalParser(classify).parse(b"frame")
    assert isinstance(excinfo.value.__cause__, ConnectionError)
