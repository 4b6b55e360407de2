"""
Version: 0.1.1
License: MIT
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from percepta_app.cli import main
from percepta_app.storage.db import SQLiteObservationStore


def _write_frames(path: Path, lines: list[object]) -> Path:
    path.write_text("\n".join(line if isinstance(line, str) else json.dumps(line) for line in lines), encoding="utf-8")
    return path


def _blink_recording(tmp_path: Path) -> Path:
    return _write_frames(
        tmp_path / "frames.jsonl",
        [
            {
                "offset_ms": i * 200,
                "leds": [{"name": "LED1", "on": i % 2 == 0, "color": "green", "confidence": 0.8}],
                "displays": [{"name": "LCD", "text": "Ready", "confidence": 0.9}],
            }
            for i in range(5)
        ],
    )


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, str]:
    code = main(list(argv))
    return code, capsys.readouterr().out


def test_replay_prints_fused_observation(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    frames = _blink_recording(tmp_path)
    code, out = _run(
        capsys, "--frames", str(frames), "--device", "esp32", "--config", str(tmp_path / "none.json")
    )
    assert code == 0
    doc = json.loads(out)
    assert doc["device_id"] == "esp32"
    led, display = doc["signals"]
    assert (led["type"], led["on"], led["blink_hz"]) == ("led", True, 2.0)
    assert led["color"] == {"r": 0, "g": 255, "b": 0}
    assert (display["text"], display["changed"]) == ("Ready", False)


def test_replay_skips_bad_lines(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    frames = _write_frames(
        tmp_path / "frames.jsonl",
        [
            "{broken",
            {"offset_ms": 0, "displays": [{"name": "LCD", "text": "Boot"}]},
            {"captured_at": "2026-03-01T12:00:00.400Z", "displays": [{"name": "LCD", "text": "Ready", "confidence": 0.9}]},
        ],
    )
    code, out = _run(capsys, "--frames", str(frames), "--config", str(tmp_path / "none.json"))
    assert code == 0
    assert json.loads(out)["signals"][0]["text"] == "Ready"


def test_replay_with_no_usable_frames(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    frames = _write_frames(tmp_path / "frames.jsonl", ["nope", "[]"])
    code, _ = _run(capsys, "--frames", str(frames), "--config", str(tmp_path / "none.json"))
    assert code == 1


def test_save_persists_result(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "history.sqlite3"
    frames = _blink_recording(tmp_path)
    args = ["--frames", str(frames), "--device", "esp32", "--db", str(db), "--save"]
    code, _ = _run(capsys, *args, "--config", str(tmp_path / "none.json"))
    assert code == 0
    assert SQLiteObservationStore(db).count() == 1


def test_usage_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 2
    frames = _blink_recording(tmp_path)
    assert main(["--frames", str(frames), "--save", "--config", str(tmp_path / "none.json")]) == 2
    assert main(["--frames", str(tmp_path / "missing.jsonl"), "--config", str(tmp_path / "none.json")]) == 2


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    code, out = _run(capsys, "--version")
    assert code == 0
    assert out.startswith("percepta ")


def test_replay_closes_the_store(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    closed: list[bool] = []
    real_close = SQLiteObservationStore.close

    def close(self: SQLiteObservationStore) -> None:
        closed.append(True)
        real_close(self)

    monkeypatch.setattr(SQLiteObservationStore, "close", close)
    frames = _blink_recording(tmp_path)
    args = ["--frames", str(frames), "--db", str(tmp_path / "h.sqlite3"), "--save"]
    code, _ = _run(capsys, *args, "--config", str(tmp_path / "none.json"))
    assert code == 0
    assert closed == [True]
