"""
Version: 0.1.1
License: MIT
"""

from __future__ import annotations

from dataclasses import replace

from percepta_app.core.models import DisplaySignal, LEDSignal

DISPLAY_CONFIDENCE_FLOOR = 0.5
_DISPLAY_ALLOWED_PUNCT = frozenset(" .:")


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calibrate_led(led: LEDSignal, detection_rate: float) -> LEDSignal:
    """Adjust a fused LED confidence.

    Seen in most frames, a detected color and a steady state each raise
    confidence: +0.2 per unit of detection rate above one half, +0.05 for a
    color, +0.05 for steady state.
    """
    agreement_boost = max(0.0, (detection_rate - 0.5) * 0.2)
    color_boost = 0.05 if not led.color.is_zero() else 0.0
    blink_boost = 0.05 if led.blink_hz == 0 else 0.0
    total = led.confidence + agreement_boost + color_boost + blink_boost
    return replace(led, confidence=_clamp(total, 0.0, 1.0))


def _is_special(ch: str) -> bool:
    if ch in _DISPLAY_ALLOWED_PUNCT:
        return False
    return not (ch.isascii() and ch.isalnum())


def calibrate_display(display: DisplaySignal) -> DisplaySignal:
    """Adjust a fused display confidence from OCR text quality.

    Short text reads as noise, long text as a confident read, and a high share
    of unusual characters as garbage. Result is kept within [0.5, 1.0].
    """
    text_len = len(display.text)
    if text_len < 5:
        length_factor = -0.1
    elif text_len <= 50:
        length_factor = 0.05
    else:
        length_factor = 0.1

    penalty = 0.0
    if text_len > 0:
        specials = sum(1 for ch in display.text if _is_special(ch))
        if specials / text_len > 0.3:
            penalty = -0.15

    total = display.confidence + length_factor + penalty
    return replace(display, confidence=_clamp(total, DISPLAY_CONFIDENCE_FLOOR, 1.0))
