"""
Version: 0.1.1
License: MIT
"""

from __future__ import annotations

import cv2
import numpy as np

from percepta_app.core.errors import CameraError

from .interfaces import ICameraDriver


class OpenCVCamera(ICameraDriver):
    def __init__(self, device_index: int = 0, jpeg_quality: int = 90) -> None:
        self.device_index = device_index
        self.jpeg_quality = jpeg_quality
        self.cap: cv2.VideoCapture | None = None

    def open(self) -> None:
        cap = cv2.VideoCapture(self.device_index)
        if not cap.isOpened():
            cap.release()
            raise CameraError(f"camera {self.device_index} could not be opened")
        self.cap = cap

    def close(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def capture_frame(self) -> bytes:
        if self.cap is None:
            raise CameraError("camera is not open")
        ok, frame = self.cap.read()
        if not ok or not isinstance(frame, np.ndarray) or frame.size == 0:
            raise CameraError(f"camera {self.device_index} returned no frame")
        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
        if not ok:
            raise CameraError("JPEG encoding failed")
        return buf.tobytes()
