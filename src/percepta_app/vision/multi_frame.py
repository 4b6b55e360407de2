"""
Version: 0.1.3
License: MIT
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from percepta_app.config import APP_NAME
from percepta_app.core.errors import CameraError, CaptureError, NoFramesCapturedError, SignalParseError
from percepta_app.core.models import FrameResult
from percepta_app.hal.interfaces import ICameraDriver, ISignalParser

DEFAULT_FRAME_COUNT = 5
DEFAULT_INTERVAL_S = 0.2

# parser failures that only cost the current frame
FRAME_LOCAL_ERRORS = (SignalParseError, KeyError, TypeError, ValueError)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MultiFrameCapture:
    """Samples the camera several times so blinking LEDs and changing text show up.

    The camera must already be open. A frame whose parse fails is dropped; a
    camera failure aborts the whole capture.
    """

    def __init__(
        self,
        camera: ICameraDriver,
        parser: ISignalParser,
        frame_count: int = DEFAULT_FRAME_COUNT,
        interval_s: float = DEFAULT_INTERVAL_S,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.camera = camera
        self.parser = parser
        self.frame_count = max(1, frame_count)
        self.interval_s = max(0.0, interval_s)
        self.clock = clock
        self.sleep = sleep
        self.logger = logger or logging.getLogger(APP_NAME)

    def capture(self) -> list[FrameResult]:
        results: list[FrameResult] = []
        for i in range(self.frame_count):
            try:
                frame = self.camera.capture_frame()
            except CameraError as exc:
                raise CaptureError(f"frame {i} capture failed: {exc}") from exc
            captured_at = self.clock()

            try:
                signals = tuple(self.parser.parse(frame))
            except FRAME_LOCAL_ERRORS as exc:
                self.logger.warning("frame %d skipped, parse failed: %s", i, exc)
            else:
                results.append(FrameResult(signals=signals, captured_at=captured_at))

            if i < self.frame_count - 1:
                self.sleep(self.interval_s)

        if not results:
            raise NoFramesCapturedError(self.frame_count)
        self.logger.debug("captured %d/%d frames", len(results), self.frame_count)
        return results
