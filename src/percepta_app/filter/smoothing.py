"""
Version: 0.1.3
License: MIT
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum

from percepta_app.config import APP_NAME
from percepta_app.core.errors import StorageUnavailableError
from percepta_app.core.models import DisplaySignal, LEDSignal, Observation, Signal
from percepta_app.hal.interfaces import IObservationStore
from percepta_app.vision.multi_frame import utc_now

BLINK_TOLERANCE = 0.10


class SmoothingOutcome(str, Enum):
    SMOOTHED = "smoothed"
    NO_HISTORY = "no_history"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class SmoothingResult:
    observation: Observation
    outcome: SmoothingOutcome
    substituted: tuple[str, ...] = ()


def _as_utc(ts: datetime) -> datetime:
    # naive timestamps are taken as UTC
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def leds_match(a: LEDSignal, b: LEDSignal, tolerance: float = BLINK_TOLERANCE) -> bool:
    if a.on != b.on:
        return False
    if a.blink_hz > 0 or b.blink_hz > 0:
        avg = (a.blink_hz + b.blink_hz) / 2.0
        if avg > 0 and abs(a.blink_hz - b.blink_hz) / avg > tolerance:
            return False
    return True


class TemporalSmoother:
    """Anti-glitch filter that checks a new observation against recent history.

    A signal survives when at least ``min_agreement`` recent observations
    agree with it; otherwise the most recent historical reading replaces it.
    Display signals that changed during capture are never replaced.
    """

    def __init__(
        self,
        store: IObservationStore,
        window_s: float = 5.0,
        min_agreement: int = 2,
        history_limit: int = 10,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.window = timedelta(seconds=window_s)
        self.min_agreement = max(1, min_agreement)
        self.history_limit = history_limit
        self.clock = clock
        self.logger = logger or logging.getLogger(APP_NAME)

    def smooth(self, obs: Observation) -> SmoothingResult:
        try:
            recent = self.store.query(obs.device_id, self.history_limit)
        except StorageUnavailableError as exc:
            self.logger.warning("smoothing skipped for %s: %s", obs.device_id, exc)
            return SmoothingResult(obs, SmoothingOutcome.DEGRADED)

        cutoff = self.clock() - self.window
        history = sorted(
            (h for h in recent if _as_utc(h.timestamp) > cutoff and h.id != obs.id),
            key=lambda h: _as_utc(h.timestamp),
            reverse=True,
        )
        if not history:
            return SmoothingResult(obs, SmoothingOutcome.NO_HISTORY)

        smoothed: list[Signal] = []
        substituted: list[str] = []
        for signal in obs.signals:
            if isinstance(signal, LEDSignal):
                out = self._smooth_led(signal, history)
            elif isinstance(signal, DisplaySignal):
                out = self._smooth_display(signal, history)
            else:
                out = signal
            if out is not signal:
                substituted.append(out.name)
                self.logger.info("%s: %s replaced by recent history", obs.device_id, out.name)
            smoothed.append(out)

        return SmoothingResult(
            replace(obs, signals=tuple(smoothed)),
            SmoothingOutcome.SMOOTHED,
            tuple(substituted),
        )

    def _smooth_led(self, led: LEDSignal, history: Sequence[Observation]) -> Signal:
        past = [s for h in history for s in h.leds() if s.name == led.name]
        if len(past) < self.min_agreement:
            return led
        votes = sum(1 for p in past if leds_match(led, p))
        if votes >= self.min_agreement:
            return led
        return past[0]

    def _smooth_display(self, display: DisplaySignal, history: Sequence[Observation]) -> Signal:
        if display.changed:
            return display
        past = [s.text for h in history for s in h.displays() if s.name == display.name]
        if len(past) < self.min_agreement:
            return display
        votes = sum(1 for text in past if text == display.text)
        if votes >= self.min_agreement:
            return display
        return DisplaySignal(name=display.name, text=past[0], confidence=display.confidence)
