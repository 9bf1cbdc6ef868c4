"""
Export of a rendered stream to its final container.

.wav   -> written directly by AudioIO
.flac  -> lossless, written in-process with soundfile
other  -> temporary WAV handed to ffmpeg; if ffmpeg is missing or fails the
          WAV is delivered unchanged under the requested name
"""
import logging
import os
import shutil
import subprocess
from typing import Dict, Optional

import soundfile as sf

from mokugyo.core.errors import EncodingUnavailableError, SerializationIOError
from mokugyo.core.io import AudioIO, ArrayLike, quantize
from mokugyo.core.types import ExportResult
from mokugyo.params.canonical_defaults import ENGINE_DEFAULTS

logger = logging.getLogger(__name__)

FFMPEG_ENV = "MOKUGYO_FFMPEG"


def ffmpeg_binary() -> str:
    return os.environ.get(FFMPEG_ENV, "ffmpeg")


def container_of(path: str) -> str:
    """Lower-case extension without the dot ("" when there is none)."""
    return os.path.splitext(path)[1].lstrip(".").lower()


class Exporter:
    def __init__(
        self,
        bitrate: Optional[str] = None,
        codecs: Optional[Dict[str, str]] = None,
        ffmpeg: Optional[str] = None,
    ):
        encode_defaults = ENGINE_DEFAULTS["encode"]
        self.bitrate = bitrate or encode_defaults["bitrate"]
        self.codecs = dict(encode_defaults["codecs"])
        if codecs:
            self.codecs.update(codecs)
        self.ffmpeg = ffmpeg or ffmpeg_binary()

    # -------------------------------------------------------------------------
    # Encoders
    # -------------------------------------------------------------------------

    def transcode(self, wav_path: str, output_path: str) -> None:
        """Convert wav_path to output_path with ffmpeg. Raises EncodingUnavailableError."""
        binary = shutil.which(self.ffmpeg)
        if binary is None:
            raise EncodingUnavailableError(f"{self.ffmpeg} not found on PATH")

        args = [binary, "-i", wav_path]
        codec = self.codecs.get(container_of(output_path))
        if codec:
            args += ["-acodec", codec]
        args += ["-ab", self.bitrate, output_path, "-y"]

        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except OSError as exc:
            raise EncodingUnavailableError(f"ffmpeg execution failed: {exc}") from exc
        if result.returncode != 0:
            tail = (result.stderr or "").strip().splitlines()[-1:]
            raise EncodingUnavailableError(
                f"ffmpeg exited with {result.returncode}: {' '.join(tail)}"
            )

    @staticmethod
    def write_flac(waveform: ArrayLike, sample_rate: int, output_path: str) -> None:
        """Lossless FLAC from the same int16 payload the WAV would carry."""
        try:
            sf.write(output_path, quantize(waveform), sample_rate, format="FLAC", subtype="PCM_16")
        except (sf.SoundFileError, RuntimeError) as exc:
            raise EncodingUnavailableError(f"FLAC encoding failed: {exc}") from exc

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export(
        self,
        waveform: ArrayLike,
        sample_rate: int,
        output_path: str,
        encode: bool = True,
    ) -> ExportResult:
        """
        Deliver waveform at output_path. Encoding failures fall back to the
        uncompressed container; only write failures of that container raise.
        """
        output_path = os.fspath(output_path)
        container = container_of(output_path)

        if not encode or container == "wav":
            AudioIO.save_wav(waveform, sample_rate, output_path)
            reason = None if container == "wav" else "encoding disabled"
            return ExportResult(output_path, "wav", encoded=False, fallback_reason=reason)

        if container == "flac":
            try:
                self.write_flac(waveform, sample_rate, output_path)
                return ExportResult(output_path, "flac", encoded=True)
            except EncodingUnavailableError as exc:
                logger.warning("FLAC encoding failed, using WAV format instead: %s", exc)
                AudioIO.save_wav(waveform, sample_rate, output_path)
                return ExportResult(output_path, "wav", encoded=False, fallback_reason=str(exc))

        temp_wav = output_path + ".wav"
        AudioIO.save_wav(waveform, sample_rate, temp_wav)
        try:
            self.transcode(temp_wav, output_path)
            return ExportResult(output_path, container, encoded=True)
        except EncodingUnavailableError as exc:
            logger.warning("%s conversion failed, using WAV format instead: %s", container or "lossy", exc)
            try:
                os.replace(temp_wav, output_path)
            except OSError as move_exc:
                raise SerializationIOError("export", output_path, move_exc) from move_exc
            return ExportResult(output_path, "wav", encoded=False, fallback_reason=str(exc))
        finally:
            if os.path.exists(temp_wav):
                os.remove(temp_wav)
