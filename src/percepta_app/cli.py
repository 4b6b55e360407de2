#!/usr/bin/env python3
"""
Percepta signal fusion - offline replay
Version: 0.1.4
License: MIT
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Iterable, Iterator
from datetime import datetime, timedelta
from pathlib import Path

from percepta_app.config import APP_NAME, SEMVER, FusionConfig, load_config
from percepta_app.core.errors import ConfigError, SignalParseError, StorageUnavailableError
from percepta_app.core.models import FrameResult
from percepta_app.core.schema import observation_to_json, parse_timestamp
from percepta_app.engine import fuse_frames
from percepta_app.filter.smoothing import TemporalSmoother
from percepta_app.storage.db import SQLiteObservationStore
from percepta_app.vision.multi_frame import utc_now
from percepta_app.vision.parser import parse_classifier_payload


def iter_lines(path: Path) -> Iterator[str]:
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            row = line.strip()
            if row:
                yield row


def parse_recorded_frame(raw: str, base: datetime) -> FrameResult:
    """One JSON line: classifier payload plus ``captured_at`` or ``offset_ms``."""
    obj = json.loads(raw)
    if not isinstance(obj, dict):
        raise SignalParseError("recorded frame must be a JSON object")
    if "captured_at" in obj:
        captured_at = parse_timestamp(str(obj["captured_at"]))
    else:
        captured_at = base + timedelta(milliseconds=int(obj.get("offset_ms", 0)))
    return FrameResult(signals=tuple(parse_classifier_payload(obj)), captured_at=captured_at)


def load_frames(lines: Iterable[str], base: datetime, logger: logging.Logger) -> list[FrameResult]:
    frames: list[FrameResult] = []
    for idx, line in enumerate(lines, start=1):
        try:
            frames.append(parse_recorded_frame(line, base))
        except (json.JSONDecodeError, SignalParseError, ValueError, TypeError) as exc:
            logger.warning("line %d skipped: %s", idx, exc)
    return frames


def configure_logger(debug: bool, log_file: Path | None) -> logging.Logger:
    logger = logging.getLogger(APP_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    stream_h = logging.StreamHandler(sys.stderr)
    stream_h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(stream_h)
    if log_file:
        file_h = logging.FileHandler(log_file, encoding="utf-8")
        file_h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(file_h)
    return logger


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description=f"Percepta signal fusion replay v{SEMVER}")
    p.add_argument("--version", action="store_true")
    p.add_argument("--frames", type=Path, help="JSON lines of recorded classifier output")
    p.add_argument("--device", default="default")
    p.add_argument("--firmware")
    p.add_argument("--db", type=Path, help="SQLite history used for smoothing")
    p.add_argument("--save", action="store_true", help="store the result in --db")
    p.add_argument("--config", type=Path)
    p.add_argument("--no-smoothing", action="store_true")
    p.add_argument("--debug", action="store_true")
    p.add_argument("--log-file", type=Path)
    return p


def run_replay(args: argparse.Namespace, cfg: FusionConfig, logger: logging.Logger) -> int:
    frames = load_frames(iter_lines(args.frames), utc_now(), logger)
    if not frames:
        logger.error("no usable frames in %s", args.frames)
        return 1
    obs = fuse_frames(frames, args.device, args.firmware, normalize_blink=cfg.normalize_blink)

    db_path = args.db or cfg.db_path
    store = SQLiteObservationStore(db_path) if db_path else None
    try:
        if store is not None and not args.no_smoothing:
            result = TemporalSmoother(
                store,
                window_s=cfg.smoothing_window_s,
                min_agreement=cfg.min_agreement,
                history_limit=cfg.history_limit,
                logger=logger,
            ).smooth(obs)
            logger.debug("smoothing outcome: %s", result.outcome.value)
            obs = result.observation
        if store is not None and args.save:
            store.save(obs)
    finally:
        if store is not None:
            store.close()
    print(observation_to_json(obs, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = configure_logger(args.debug, args.log_file)

    if args.version:
        print(f"{APP_NAME} {SEMVER}")
        return 0
    if args.frames is None:
        print("Error: --frames is required.", file=sys.stderr)
        return 2
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    if args.save and not (args.db or cfg.db_path):
        print("Error: --save needs --db.", file=sys.stderr)
        return 2
    try:
        return run_replay(args, cfg, logger)
    except OSError as exc:
        logger.error("cannot read %s: %s", args.frames, exc)
        return 2
    except StorageUnavailableError as exc:
        logger.error("storage error: %s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
