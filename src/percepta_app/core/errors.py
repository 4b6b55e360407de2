"""
Version: 0.1.0
License: MIT
"""

from __future__ import annotations


class PerceptaError(Exception):
    """Base class for failures raised by the fusion engine and its adapters."""


class CameraError(PerceptaError):
    pass


class CaptureError(PerceptaError):
    """A capture session could not produce frames; the session is aborted."""


class NoFramesCapturedError(CaptureError):
    def __init__(self, attempted: int) -> None:
        super().__init__(f"no frames captured ({attempted} attempted)")
        self.attempted = attempted


class SignalParseError(PerceptaError, ValueError):
    pass


class StorageUnavailableError(PerceptaError):
    pass


class SchemaError(PerceptaError, ValueError):
    pass


class ConfigError(PerceptaError, ValueError):
    pass
