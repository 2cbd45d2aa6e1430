"""
Command-line tool tests (tools/master.py), run in-process.
Run from project root: python -m pytest tests/test_cli.py -v
"""
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import json

import numpy as np
import soundfile as sf

from mastering.core.io import AudioIO
from mastering.core.types import SampleBuffer
from mastering.export.exporter import Exporter
from tools import master as cli

SR = 44100


def _write_input(path, seconds=1.0, amp=0.1):
    t = np.arange(int(seconds * SR)) / SR
    tone = amp * np.sin(2 * np.pi * 220.0 * t)
    path.write_bytes(AudioIO.to_bytes(SampleBuffer(np.vstack([tone, tone]), SR)))
    return path


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["master.py", *argv])
    return cli.main()


def test_master_writes_wav(tmp_path, monkeypatch, capsys):
    src = _write_input(tmp_path / "in.wav")
    out = tmp_path / "out" / "mastered.wav"
    code = _run(monkeypatch, "master", str(src), str(out), "--output-preset", "studio", "--no-clean-low-end")
    assert code == 0
    info = sf.info(str(out))
    assert info.samplerate == 48000
    assert info.subtype == "PCM_24"
    assert "Master Complete" in capsys.readouterr().out


def test_master_flags_and_debug_json(tmp_path, monkeypatch):
    src = _write_input(tmp_path / "in.wav")
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps({"eqMid": 2.0, "targetLufs": -16.0}))
    out = tmp_path / "mastered.wav"
    code = _run(
        monkeypatch, "master", str(src), str(out),
        "--settings-json", str(settings_file),
        "--eq-high-db", "3", "--glue-compression", "--qc", "--debug",
    )
    assert code == 0
    resolved = json.loads((tmp_path / "mastered.resolved.json").read_text())
    assert resolved["eq_mid_db"] == 2.0
    assert resolved["eq_high_db"] == 3.0
    assert resolved["target_lufs"] == -16.0
    assert resolved["glue_compression"] is True
    assert Exporter.sidecar_path(out).exists()


def test_failed_render_leaves_nothing(tmp_path, monkeypatch):
    samples = np.full((SR // 2, 2), 0.1)
    samples[100, 0] = np.nan
    src = tmp_path / "bad.wav"
    sf.write(str(src), samples, SR, subtype="FLOAT")
    out = tmp_path / "out" / "mastered.wav"
    code = _run(monkeypatch, "master", str(src), str(out), "--no-normalize-loudness", "--debug")
    assert code == 1
    assert not out.parent.exists() or list(out.parent.iterdir()) == []


def test_analyze(tmp_path, monkeypatch, capsys):
    src = _write_input(tmp_path / "in.wav")
    assert _run(monkeypatch, "analyze", str(src)) == 0
    out = capsys.readouterr().out
    assert "QC Status" in out
    assert "LUFS" in out


def test_no_command(monkeypatch):
    assert _run(monkeypatch) == 1


if __name__ == "__main__":
    import pytest
    pytest.main([__file__, "-v"])
