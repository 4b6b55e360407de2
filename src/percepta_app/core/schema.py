"""Observation document codec with schema version checks.
Version: 0.1.3
License: MIT
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from .errors import SchemaError
from .models import (
    RGB,
    BootTimingSignal,
    DisplaySignal,
    DisplayTextEntry,
    LEDSignal,
    Observation,
    Signal,
    SignalKind,
)

CURRENT_SCHEMA_VERSION = "1.0.0"

Migration = Callable[[dict[str, Any]], dict[str, Any]]

# keyed "<from>-><to>"
MIGRATIONS: dict[str, Migration] = {}


def ensure_schema_version(obs: Observation) -> Observation:
    if obs.schema_version:
        return obs
    return replace(obs, schema_version=CURRENT_SCHEMA_VERSION)


def format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(raw: str) -> datetime:
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(text)
    except ValueError as exc:
        raise SchemaError(f"unsupported timestamp format: {raw}") from exc
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def signal_to_dict(signal: Signal) -> dict[str, Any]:
    if isinstance(signal, LEDSignal):
        return {
            "type": SignalKind.LED.value,
            "name": signal.name,
            "on": signal.on,
            "color": {"r": signal.color.r, "g": signal.color.g, "b": signal.color.b},
            "brightness": signal.brightness,
            "blink_hz": signal.blink_hz,
            "confidence": signal.confidence,
        }
    if isinstance(signal, DisplaySignal):
        out: dict[str, Any] = {
            "type": SignalKind.DISPLAY.value,
            "name": signal.name,
            "text": signal.text,
            "confidence": signal.confidence,
            "changed": signal.changed,
        }
        if signal.changed:
            out["history"] = [
                {"offset_ms": e.offset_ms, "text": e.text, "confidence": e.confidence}
                for e in signal.history
            ]
        return out
    if isinstance(signal, BootTimingSignal):
        return {
            "type": SignalKind.BOOT_TIMING.value,
            "duration_ms": signal.duration_ms,
            "confidence": signal.confidence,
        }
    raise TypeError(f"unsupported signal type: {type(signal).__name__}")


def observation_to_dict(obs: Observation) -> dict[str, Any]:
    out: dict[str, Any] = {
        "schema_version": obs.schema_version or CURRENT_SCHEMA_VERSION,
        "id": obs.id,
        "device_id": obs.device_id,
        "timestamp": format_timestamp(obs.timestamp),
        "signals": [signal_to_dict(s) for s in obs.signals],
    }
    if obs.firmware_hash:
        out["firmware_hash"] = obs.firmware_hash
    return out


def observation_to_json(obs: Observation, indent: int | None = None) -> str:
    return json.dumps(observation_to_dict(obs), ensure_ascii=False, indent=indent)


def _infer_kind(raw: Mapping[str, Any]) -> str:
    kind = raw.get("type")
    if isinstance(kind, str) and kind:
        return kind
    if "on" in raw:
        return SignalKind.LED.value
    if "text" in raw:
        return SignalKind.DISPLAY.value
    if "duration_ms" in raw:
        return SignalKind.BOOT_TIMING.value
    return ""


def signal_from_dict(raw: Mapping[str, Any]) -> Signal | None:
    """Decode one stored signal. Returns None for kinds this version does not know."""
    kind = _infer_kind(raw)
    try:
        if kind == SignalKind.LED.value:
            color = raw.get("color") or {}
            return LEDSignal(
                name=str(raw["name"]),
                on=bool(raw["on"]),
                color=RGB(int(color.get("r", 0)), int(color.get("g", 0)), int(color.get("b", 0))),
                brightness=int(raw.get("brightness", 0)),
                blink_hz=float(raw.get("blink_hz", 0.0)),
                confidence=float(raw.get("confidence", 0.0)),
            )
        if kind == SignalKind.DISPLAY.value:
            history = tuple(
                DisplayTextEntry(
                    offset_ms=int(e["offset_ms"]),
                    text=str(e["text"]),
                    confidence=float(e.get("confidence", 0.0)),
                )
                for e in raw.get("history") or []
            )
            changed = bool(raw.get("changed", False))
            return DisplaySignal(
                name=str(raw["name"]),
                text=str(raw["text"]),
                confidence=float(raw.get("confidence", 0.0)),
                changed=changed,
                history=history if changed else (),
            )
        if kind == SignalKind.BOOT_TIMING.value:
            return BootTimingSignal(
                duration_ms=int(raw["duration_ms"]),
                confidence=float(raw.get("confidence", 0.0)),
            )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SchemaError(f"malformed {kind} signal: {exc}") from exc
    return None


def observation_from_dict(raw: Mapping[str, Any]) -> Observation:
    items = raw.get("signals") or []
    if not isinstance(items, list):
        raise SchemaError("observation signals must be a list")
    signals = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        signal = signal_from_dict(item)
        if signal is not None:
            signals.append(signal)
    ts_raw = raw.get("timestamp")
    if not isinstance(ts_raw, str):
        raise SchemaError("observation timestamp missing")
    firmware = raw.get("firmware_hash")
    return Observation(
        id=str(raw.get("id", "")),
        device_id=str(raw.get("device_id", "")),
        timestamp=parse_timestamp(ts_raw),
        signals=tuple(signals),
        firmware_hash=str(firmware) if firmware else None,
        schema_version=str(raw.get("schema_version") or CURRENT_SCHEMA_VERSION),
    )


def validate_and_migrate(data: str | bytes) -> Observation:
    """Decode a stored Observation document, upgrading older schema versions.

    Documents without ``schema_version`` predate versioning and are stamped
    with the current version. Other versions need a registered migration.
    """
    try:
        raw = json.loads(data)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"invalid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise SchemaError("observation document must be a JSON object")

    version = raw.get("schema_version")
    if not isinstance(version, str) or not version:
        raw["schema_version"] = CURRENT_SCHEMA_VERSION
    elif version != CURRENT_SCHEMA_VERSION:
        key = f"{version}->{CURRENT_SCHEMA_VERSION}"
        migration = MIGRATIONS.get(key)
        if migration is None:
            raise SchemaError(
                f"unsupported schema version: {version} "
                f"(current: {CURRENT_SCHEMA_VERSION}, no migration available)"
            )
        try:
            raw = migration(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise SchemaError(f"migration {key} failed: {exc}") from exc
    return observation_from_dict(raw)
