"""
Tests for mokugyo/export/exporter: ffmpeg hand-off, WAV fallback, FLAC output.
ffmpeg itself is never required; subprocess and PATH lookups are faked.
Run from project root: python -m pytest tests/test_exporter.py -v
"""
import sys
import os
import subprocess

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
import soundfile as sf
import torch

from mokugyo.core.errors import EncodingUnavailableError
from mokugyo.core.io import AudioIO, quantize
from mokugyo.export.exporter import Exporter, container_of, FFMPEG_ENV

SR = 22050


@pytest.fixture
def audio():
    return torch.sin(torch.linspace(0, 200, 4000)) * 0.5


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    """Pretend ffmpeg is on PATH and record the command line."""
    calls = []
    monkeypatch.setattr("mokugyo.export.exporter.shutil.which", lambda name: "/usr/bin/ffmpeg")

    def _install(returncode=0, stderr=""):
        def _run(args, capture_output=False, text=False):
            calls.append(list(args))
            if returncode == 0:
                with open(args[-2], "wb") as f:
                    f.write(b"ID3fake-mp3")
            return subprocess.CompletedProcess(args, returncode, "", stderr)

        monkeypatch.setattr("mokugyo.export.exporter.subprocess.run", _run)
        return calls

    return _install


def test_container_of():
    assert container_of("ding.mp3") == "mp3"
    assert container_of("/tmp/A.WAV") == "wav"
    assert container_of("noext") == ""


# -----------------------------------------------------------------------------
# Direct containers
# -----------------------------------------------------------------------------

def test_wav_written_directly(tmp_path, audio):
    out = tmp_path / "ding.wav"
    result = Exporter().export(audio, SR, str(out))
    assert result.container == "wav"
    assert result.encoded is False
    assert result.fallback_reason is None
    assert out.read_bytes() == AudioIO.to_bytes(audio, SR)


def test_encode_disabled_writes_wav_under_requested_name(tmp_path, audio):
    out = tmp_path / "ding.mp3"
    result = Exporter().export(audio, SR, str(out), encode=False)
    assert result.container == "wav"
    assert result.fallback_reason == "encoding disabled"
    assert out.read_bytes()[:4] == b"RIFF"


def test_flac_is_lossless(tmp_path, audio):
    out = tmp_path / "ding.flac"
    result = Exporter().export(audio, SR, str(out))
    assert result.container == "flac"
    assert result.encoded is True
    data, rate = sf.read(str(out), dtype="int16")
    assert rate == SR
    assert data.tolist() == quantize(audio).tolist()


def test_flac_failure_falls_back(tmp_path, audio, monkeypatch):
    def _broken(*args, **kwargs):
        raise EncodingUnavailableError("no FLAC support")

    monkeypatch.setattr(Exporter, "write_flac", staticmethod(_broken))
    out = tmp_path / "ding.flac"
    result = Exporter().export(audio, SR, str(out))
    assert result.container == "wav"
    assert "FLAC" in result.fallback_reason
    assert out.read_bytes() == AudioIO.to_bytes(audio, SR)


# -----------------------------------------------------------------------------
# External encoder
# -----------------------------------------------------------------------------

def test_missing_ffmpeg_falls_back_to_wav(tmp_path, audio):
    out = tmp_path / "ding.mp3"
    result = Exporter(ffmpeg="no-such-ffmpeg-binary").export(audio, SR, str(out))
    assert result.encoded is False
    assert result.container == "wav"
    assert "not found" in result.fallback_reason
    assert out.read_bytes() == AudioIO.to_bytes(audio, SR)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["ding.mp3"]


def test_ffmpeg_failure_falls_back_to_wav(tmp_path, audio, fake_ffmpeg):
    calls = fake_ffmpeg(returncode=1, stderr="Unknown encoder 'libmp3lame'")
    out = tmp_path / "ding.mp3"
    result = Exporter().export(audio, SR, str(out))
    assert len(calls) == 1
    assert result.encoded is False
    assert "Unknown encoder" in result.fallback_reason
    assert out.read_bytes() == AudioIO.to_bytes(audio, SR)
    assert not (tmp_path / "ding.mp3.wav").exists()


def test_ffmpeg_success(tmp_path, audio, fake_ffmpeg):
    calls = fake_ffmpeg(returncode=0)
    out = tmp_path / "ding.mp3"
    result = Exporter().export(audio, SR, str(out))
    assert result.encoded is True
    assert result.container == "mp3"
    assert out.read_bytes() == b"ID3fake-mp3"
    assert not (tmp_path / "ding.mp3.wav").exists()

    args = calls[0]
    assert args[1:3] == ["-i", str(out) + ".wav"]
    assert args[args.index("-acodec") + 1] == "libmp3lame"
    assert args[args.index("-ab") + 1] == "128k"
    assert args[-2:] == [str(out), "-y"]


def test_bitrate_and_codec_overrides(tmp_path, audio, fake_ffmpeg):
    calls = fake_ffmpeg(returncode=0)
    out = tmp_path / "ding.ogg"
    Exporter(bitrate="64k", codecs={"ogg": "libopus"}).export(audio, SR, str(out))
    args = calls[0]
    assert args[args.index("-acodec") + 1] == "libopus"
    assert args[args.index("-ab") + 1] == "64k"


def test_ffmpeg_binary_from_environment(monkeypatch):
    monkeypatch.setenv(FFMPEG_ENV, "/opt/ffmpeg/bin/ffmpeg")
    assert Exporter().ffmpeg == "/opt/ffmpeg/bin/ffmpeg"


def test_transcode_raises_encoding_unavailable(tmp_path):
    with pytest.raises(EncodingUnavailableError):
        Exporter(ffmpeg="no-such-ffmpeg-binary").transcode(str(tmp_path / "a.wav"), str(tmp_path / "a.mp3"))
