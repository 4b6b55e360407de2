"""Capture session driver: frames in, one smoothed Observation out.
Version: 0.1.3
License: MIT
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Optional

from percepta_app.config import APP_NAME, FusionConfig
from percepta_app.core.errors import CameraError, CaptureError
from percepta_app.core.models import FrameResult, Observation, Signal, new_observation_id
from percepta_app.core.schema import CURRENT_SCHEMA_VERSION
from percepta_app.filter.smoothing import SmoothingResult, TemporalSmoother
from percepta_app.hal.interfaces import ICameraDriver, IObservationStore, ISignalParser
from percepta_app.vision.aggregation import aggregate_displays, aggregate_leds, latest_boot_timing
from percepta_app.vision.multi_frame import MultiFrameCapture, utc_now


def fuse_frames(
    frames: Sequence[FrameResult],
    device_id: str,
    firmware_hash: Optional[str] = None,
    normalize_blink: bool = False,
    clock: Callable[[], datetime] = utc_now,
) -> Observation:
    """Assemble one Observation from captured frames: LEDs, displays, boot timing."""
    signals: list[Signal] = []
    signals.extend(aggregate_leds(frames, normalize_blink=normalize_blink))
    signals.extend(aggregate_displays(frames))
    boot = latest_boot_timing(frames)
    if boot is not None:
        signals.append(boot)
    return Observation(
        id=new_observation_id(),
        device_id=device_id,
        timestamp=clock(),
        signals=tuple(signals),
        firmware_hash=firmware_hash,
        schema_version=CURRENT_SCHEMA_VERSION,
    )


class ObservationEngine:
    def __init__(
        self,
        camera: ICameraDriver,
        parser: ISignalParser,
        store: Optional[IObservationStore] = None,
        config: FusionConfig = FusionConfig(),
        clock: Callable[[], datetime] = utc_now,
        sleep: Optional[Callable[[float], None]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.camera = camera
        self.parser = parser
        self.config = config
        self.clock = clock
        self.sleep = sleep or time.sleep
        self.logger = logger or logging.getLogger(APP_NAME)
        self.smoother = (
            TemporalSmoother(
                store,
                window_s=config.smoothing_window_s,
                min_agreement=config.min_agreement,
                history_limit=config.history_limit,
                clock=clock,
                logger=self.logger,
            )
            if store is not None
            else None
        )

    def fuse(
        self,
        frames: Sequence[FrameResult],
        device_id: str,
        firmware_hash: Optional[str] = None,
    ) -> Observation:
        return fuse_frames(
            frames,
            device_id,
            firmware_hash,
            normalize_blink=self.config.normalize_blink,
            clock=self.clock,
        )

    def smooth(self, obs: Observation) -> Observation:
        if self.smoother is None:
            return obs
        result: SmoothingResult = self.smoother.smooth(obs)
        self.logger.debug("smoothing %s: %s", obs.id, result.outcome.value)
        return result.observation

    def observe(self, device_id: str, firmware_hash: Optional[str] = None) -> Observation:
        try:
            self.camera.open()
        except CameraError as exc:
            raise CaptureError(f"camera open failed: {exc}") from exc
        try:
            capture = MultiFrameCapture(
                self.camera,
                self.parser,
                frame_count=self.config.frame_count,
                interval_s=self.config.interval_s,
                clock=self.clock,
                logger=self.logger,
                sleep=self.sleep,
            )
            frames = capture.capture()
        finally:
            try:
                self.camera.close()
            except CameraError as exc:
                self.logger.debug("camera close failed: %s", exc)

        obs = self.fuse(frames, device_id, firmware_hash)
        return self.smooth(obs)
