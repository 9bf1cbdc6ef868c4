"""
PCM serializer: float samples -> mono 16-bit little-endian RIFF/WAVE.
Quantization is round(clamp(x, -1, 1) * 32767), so full scale maps to
+/-32767 and -32768 is never produced. The quantized int16 payload is
handed to soundfile unchanged.
"""
import io
import logging
import os
import tempfile
from typing import BinaryIO, Union

import numpy as np
import soundfile as sf
import torch

from mokugyo.core.errors import SerializationIOError

logger = logging.getLogger(__name__)

SUBTYPE = "PCM_16"
BYTES_PER_SAMPLE = 2
NUM_CHANNELS = 1
HEADER_SIZE = 44
FULL_SCALE = 32767.0
CHUNK_SAMPLES = 1 << 20

# RIFF sizes are uint32: 36 + data_size must fit
MAX_SAMPLES = (0xFFFFFFFF - 36) // (NUM_CHANNELS * BYTES_PER_SAMPLE)

ArrayLike = Union[torch.Tensor, np.ndarray]


def _as_numpy(waveform: ArrayLike) -> np.ndarray:
    if isinstance(waveform, torch.Tensor):
        return waveform.detach().cpu().reshape(-1).numpy()
    return np.asarray(waveform).reshape(-1)


def quantize(samples: ArrayLike) -> np.ndarray:
    """Float samples -> little-endian int16."""
    data = np.clip(_as_numpy(samples).astype(np.float64), -1.0, 1.0)
    return np.round(data * FULL_SCALE).astype("<i2")


def check_payload(num_samples: int) -> int:
    """Raise ValueError if num_samples does not fit a RIFF/WAVE container."""
    if num_samples > MAX_SAMPLES:
        raise ValueError(
            f"{num_samples} samples exceed the 4 GiB RIFF limit ({MAX_SAMPLES} samples)"
        )
    return num_samples


class AudioIO:
    @staticmethod
    def write_wav(
        waveform: ArrayLike,
        sample_rate: int,
        target: Union[str, BinaryIO],
    ) -> int:
        """
        Streams the quantized payload to target (path or binary file object)
        in CHUNK_SAMPLES blocks. Returns bytes written.
        """
        data = _as_numpy(waveform)
        check_payload(len(data))
        with sf.SoundFile(
            target,
            mode="w",
            samplerate=int(sample_rate),
            channels=NUM_CHANNELS,
            format="WAV",
            subtype=SUBTYPE,
        ) as f:
            for start in range(0, len(data), CHUNK_SAMPLES):
                f.write(quantize(data[start:start + CHUNK_SAMPLES]))
        return HEADER_SIZE + len(data) * BYTES_PER_SAMPLE

    @staticmethod
    def to_bytes(waveform: ArrayLike, sample_rate: int) -> bytes:
        """Returns the waveform container as bytes (for API responses and tests)."""
        buffer = io.BytesIO()
        AudioIO.write_wav(waveform, sample_rate, buffer)
        return buffer.getvalue()

    @staticmethod
    def save_wav(waveform: ArrayLike, sample_rate: int, path: str) -> str:
        """
        Saves the waveform container to path.
        Writes to a temporary file beside path and renames it into place, so
        path only ever holds a complete file.
        """
        path = os.fspath(path)
        directory = os.path.dirname(os.path.abspath(path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=".", suffix=".wav.part", dir=directory
            )
            os.close(fd)
            size = AudioIO.write_wav(waveform, sample_rate, tmp_path)
            os.replace(tmp_path, path)
            tmp_path = None
        except (OSError, sf.SoundFileError) as exc:
            raise SerializationIOError("save_wav", path, exc) from exc
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
        logger.debug("wrote %s (%d bytes)", path, size)
        return path
