"""
Version: 0.1.2
License: MIT
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from percepta_app.core.errors import ConfigError

APP_NAME = "percepta"
SEMVER = "0.1.4"

ENV_PREFIX = "PERCEPTA_"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "percepta" / "fusion.json"


@dataclass(frozen=True)
class FusionConfig:
    frame_count: int = 5
    interval_s: float = 0.2
    smoothing_window_s: float = 5.0
    min_agreement: int = 2
    history_limit: int = 10
    normalize_blink: bool = False
    db_path: Optional[Path] = None

    def validate(self) -> "FusionConfig":
        if self.frame_count < 1:
            raise ConfigError(f"frame_count must be >= 1, got {self.frame_count}")
        if self.interval_s < 0:
            raise ConfigError(f"interval_s must be >= 0, got {self.interval_s}")
        if self.smoothing_window_s <= 0:
            raise ConfigError(f"smoothing_window_s must be > 0, got {self.smoothing_window_s}")
        if self.min_agreement < 1:
            raise ConfigError(f"min_agreement must be >= 1, got {self.min_agreement}")
        if self.history_limit < 1:
            raise ConfigError(f"history_limit must be >= 1, got {self.history_limit}")
        return self


def _parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off", ""}:
        return False
    raise ConfigError(f"not a boolean: {raw!r}")


_CASTS = {
    "frame_count": int,
    "interval_s": float,
    "smoothing_window_s": float,
    "min_agreement": int,
    "history_limit": int,
    "normalize_blink": _parse_bool,
    "db_path": lambda v: Path(v) if v else None,
}


def _coerce(values: Mapping[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(FusionConfig)}
    out: dict[str, Any] = {}
    for key, value in values.items():
        if key not in known:
            continue
        try:
            out[key] = _CASTS[key](value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid value for {key}: {value!r}") from exc
    return out


def load_config(
    path: str | Path | None = None, environ: Mapping[str, str] | None = None
) -> FusionConfig:
    """Defaults, then the JSON file if present, then PERCEPTA_* env overrides."""
    env = os.environ if environ is None else environ
    cfg = FusionConfig()

    p = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if p.exists():
        try:
            obj = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"cannot read config {p}: {exc}") from exc
        if not isinstance(obj, dict):
            raise ConfigError(f"config {p} must hold a JSON object")
        cfg = replace(cfg, **_coerce(obj))

    overrides = {
        f.name: env[ENV_PREFIX + f.name.upper()]
        for f in fields(FusionConfig)
        if ENV_PREFIX + f.name.upper() in env
    }
    if "PERCEPTA_DB" in env:
        overrides["db_path"] = env["PERCEPTA_DB"]
    cfg = replace(cfg, **_coerce(overrides))
    return cfg.validate()
