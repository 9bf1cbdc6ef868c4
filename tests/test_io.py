"""
Tests for mokugyo/core/io: header layout, quantization, read-back with a standard reader, atomic writes.
Run from project root: python -m pytest tests/test_io.py -v
"""
import sys
import os
import io
import struct

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import numpy as np
import pytest
import soundfile as sf
import torch

import mokugyo.core.io as mio
from mokugyo.core.errors import SerializationIOError
from mokugyo.core.io import AudioIO, MAX_SAMPLES, check_payload, quantize

SR = 22050


def _fields(blob: bytes):
    return struct.unpack("<4sI4s4sIHHIIHH4sI", blob[:44])


# -----------------------------------------------------------------------------
# Header
# -----------------------------------------------------------------------------

def test_header_layout():
    blob = AudioIO.to_bytes(torch.zeros(1000), SR)
    assert len(blob) == 44 + 2000
    riff, riff_size, wave, fmt, fmt_size, pcm, ch, rate, byte_rate, align, bits, data, data_size = _fields(blob)
    assert (riff, wave, fmt, data) == (b"RIFF", b"WAVE", b"fmt ", b"data")
    assert riff_size == 36 + 2000
    assert fmt_size == 16
    assert pcm == 1
    assert ch == 1
    assert rate == SR
    assert byte_rate == SR * 2
    assert align == 2
    assert bits == 16
    assert data_size == 2000


def test_header_offsets():
    blob = AudioIO.to_bytes(torch.zeros(3), 8000)
    assert blob[0:4] == b"RIFF"
    assert blob[8:12] == b"WAVE"
    assert blob[12:16] == b"fmt "
    assert blob[36:40] == b"data"
    assert int.from_bytes(blob[24:28], "little") == 8000
    assert int.from_bytes(blob[40:44], "little") == 6


def test_standard_reader_sees_header():
    info = sf.info(io.BytesIO(AudioIO.to_bytes(torch.zeros(500), 8000)))
    assert info.format == "WAV"
    assert info.subtype == "PCM_16"
    assert info.channels == 1
    assert info.samplerate == 8000
    assert info.frames == 500


def test_payload_limit():
    assert check_payload(MAX_SAMPLES) == MAX_SAMPLES
    assert 36 + 2 * MAX_SAMPLES <= 0xFFFFFFFF
    with pytest.raises(ValueError):
        check_payload(MAX_SAMPLES + 1)


# -----------------------------------------------------------------------------
# Quantization
# -----------------------------------------------------------------------------

def test_quantize_full_scale_is_symmetric():
    q = quantize(torch.tensor([1.0, -1.0, 0.0]))
    assert q.tolist() == [32767, -32767, 0]
    assert q.dtype == np.dtype("<i2")


def test_quantize_clamps_and_rounds():
    q = quantize(np.array([2.0, -3.0, 0.25, -0.25, 1e-6]))
    assert q.tolist() == [32767, -32767, 8192, -8192, 0]


def test_never_produces_minus_32768():
    q = quantize(np.linspace(-5.0, 5.0, 1001))
    assert int(q.min()) == -32767


# -----------------------------------------------------------------------------
# Container bytes
# -----------------------------------------------------------------------------

def test_zero_buffer_round_trip():
    n = 5000
    blob = AudioIO.to_bytes(torch.zeros(n), SR)
    assert len(blob) == 44 + 2 * n
    assert _fields(blob)[-1] == 2 * n
    assert blob[44:] == bytes(2 * n)

    data, rate = sf.read(io.BytesIO(blob), dtype="int16")
    assert rate == SR
    assert data.shape == (n,)
    assert not data.any()


def test_standard_reader_sees_quantized_values():
    blob = AudioIO.to_bytes(torch.tensor([1.0, -1.0, 0.5, -0.25]), SR)
    data, rate = sf.read(io.BytesIO(blob), dtype="int16")
    assert rate == SR
    assert data.tolist() == [32767, -32767, 16384, -8192]
    info = sf.info(io.BytesIO(blob))
    assert info.channels == 1
    assert info.subtype == "PCM_16"


def test_payload_is_little_endian():
    blob = AudioIO.to_bytes(torch.tensor([1.0]), SR)
    assert blob[44:46] == b"\xff\x7f"


def test_deterministic():
    audio = torch.sin(torch.linspace(0, 100, 20000)) * 0.8
    assert AudioIO.to_bytes(audio, SR) == AudioIO.to_bytes(audio.clone(), SR)


def test_chunked_write_matches_single_pass(monkeypatch):
    audio = torch.linspace(-1.0, 1.0, 1001)
    single = io.BytesIO()
    sf.write(single, quantize(audio), SR, format="WAV", subtype="PCM_16")
    expected = single.getvalue()
    assert AudioIO.to_bytes(audio, SR) == expected
    assert expected[44:] == quantize(audio).tobytes()
    monkeypatch.setattr(mio, "CHUNK_SAMPLES", 7)
    assert AudioIO.to_bytes(audio, SR) == expected


# -----------------------------------------------------------------------------
# File writes
# -----------------------------------------------------------------------------

def test_save_wav_matches_bytes(tmp_path):
    audio = torch.linspace(-0.5, 0.5, 300)
    path = tmp_path / "out.wav"
    AudioIO.save_wav(audio, SR, str(path))
    assert path.read_bytes() == AudioIO.to_bytes(audio, SR)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["out.wav"]


def test_save_wav_missing_directory(tmp_path):
    path = tmp_path / "missing" / "out.wav"
    with pytest.raises(SerializationIOError) as info:
        AudioIO.save_wav(torch.zeros(10), SR, str(path))
    assert info.value.operation == "save_wav"
    assert isinstance(info.value.__cause__, OSError)
    assert not path.exists()


def test_failed_write_leaves_no_file(tmp_path, monkeypatch):
    def _disk_full(waveform, sample_rate, target):
        with open(target, "wb") as f:
            f.write(b"RIFF")
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(AudioIO, "write_wav", staticmethod(_disk_full))
    path = tmp_path / "out.wav"
    with pytest.raises(SerializationIOError):
        AudioIO.save_wav(torch.zeros(10), SR, str(path))
    assert list(tmp_path.iterdir()) == []


def test_failed_write_keeps_previous_file(tmp_path, monkeypatch):
    path = tmp_path / "out.wav"
    AudioIO.save_wav(torch.zeros(10), SR, str(path))
    before = path.read_bytes()

    def _fail(waveform, sample_rate, target):
        raise OSError("I/O error")

    monkeypatch.setattr(AudioIO, "write_wav", staticmethod(_fail))
    with pytest.raises(SerializationIOError):
        AudioIO.save_wav(torch.ones(10), SR, str(path))
    assert path.read_bytes() == before
