"""
Tests for the command-line renderer (tools/render.py) and render_core tracing.
Run from project root: python -m pytest tests/test_render_tool.py -v
"""
import sys
import os
import json

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from tools import render as render_tool
from tools.render_core import render_to_file


def test_stream_command_writes_wav(tmp_path, capsys):
    out = tmp_path / "ding.wav"
    code = render_tool.main([
        "stream", "--duration", "1", "--output", str(out), "--seed", "4",
        "--sample-rate", "8000", "--qc", "--debug",
    ])
    assert code == 0
    assert out.read_bytes()[:4] == b"RIFF"
    text = capsys.readouterr().out
    assert "Generating 1-minute" in text
    assert "Generated 0 prompt tones" in text
    assert "QC Status: WARN" in text

    trace = json.loads((tmp_path / "ding.wav.resolved.json").read_text())
    assert trace["seed"] == 4
    assert trace["triggers"] == []
    assert trace["resolved_params"]["stream"]["sample_rate"] == 8000


def test_stream_command_lists_tones(tmp_path, capsys):
    out = tmp_path / "ding.mp3"
    code = render_tool.main([
        "stream", "--duration", "8", "--output", str(out), "--seed", "2",
        "--sample-rate", "8000", "--no-encode",
    ])
    assert code == 0
    text = capsys.readouterr().out
    assert "Tone 1: at" in text
    assert "(2 wooden fish sounds in sequence)" in text
    assert out.read_bytes()[:4] == b"RIFF"


def test_stream_command_rejects_bad_duration(tmp_path):
    code = render_tool.main(["stream", "--duration", "0", "--output", str(tmp_path / "x.wav")])
    assert code == 1
    assert not (tmp_path / "x.wav").exists()


def test_schedule_command(capsys):
    assert render_tool.main(["schedule", "--duration", "30", "--seed", "8"]) == 0
    text = capsys.readouterr().out
    assert "Seed: 8" in text
    assert "Tone 1: at" in text


def test_one_shot_command(tmp_path):
    out = tmp_path / "knock.wav"
    assert render_tool.main(["one-shot", "--output", str(out)]) == 0
    assert len(out.read_bytes()) == 44 + 2 * 22050


def test_render_to_file_fingerprint_is_stable(tmp_path):
    _, _, a = render_to_file(6, str(tmp_path / "a.wav"), seed=21, sample_rate=8000)
    _, _, b = render_to_file(6, str(tmp_path / "b.wav"), seed=21, sample_rate=8000)
    assert a["fingerprint"]["sha256"] == b["fingerprint"]["sha256"]
    assert a["fingerprint"]["body_energy"] > a["fingerprint"]["knock_energy"] > 0.0
    assert a["encoded"] is False


def test_render_to_file_uses_wall_clock_seed(tmp_path):
    render, _, info = render_to_file(1, str(tmp_path / "c.wav"), sample_rate=8000)
    assert isinstance(info["seed"], int)
    assert render.seed == info["seed"]
