"""
Core rendering utilities with debug outputs, fingerprinting, and param tracing.
Used by canonical render.py tool.
"""
import sys
import os
import json
import hashlib
import subprocess
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Tuple

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import torch
import numpy as np

from mokugyo.core.pipeline import render_stream, write_stream
from mokugyo.core.types import ExportResult, StreamRender
from mokugyo.qc.qc import analyze


def _get_git_hash() -> str:
    """Get short git commit hash."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            cwd=os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except OSError:
        pass
    return "unknown"


def wall_clock_seed() -> int:
    """Seed from the current time when the caller gives none."""
    return time.time_ns() % (2**31 - 1)


def _compute_audio_fingerprint(audio: torch.Tensor, sample_rate: int) -> Dict:
    """Compute fingerprint: SHA256, peak, RMS, band energies of the non-silent part."""
    audio_1d = audio.view(-1).float()

    sha256 = hashlib.sha256(audio_1d.numpy().tobytes()).hexdigest()
    peak = float(torch.max(torch.abs(audio_1d))) if audio_1d.numel() else 0.0
    rms = float(torch.sqrt(torch.mean(audio_1d ** 2) + 1e-12)) if audio_1d.numel() else 0.0

    # Long streams are mostly silence; band energies only over knock samples
    active = audio_1d[torch.abs(audio_1d) > 0]
    n = active.numel()
    if n < 2:
        return {
            "sha256": sha256,
            "peak": peak,
            "rms": rms,
            "body_energy": 0.0,
            "knock_energy": 0.0,
        }

    n_fft = 2 ** int(np.ceil(np.log2(n)))
    magnitude = torch.abs(torch.fft.rfft(active, n=n_fft))
    freqs = torch.fft.rfftfreq(n_fft, 1.0 / sample_rate)

    # Body: around the 130 Hz resonance, knock: around the 800 Hz strike
    body_mask = (freqs >= 80.0) & (freqs <= 200.0)
    knock_mask = (freqs >= 600.0) & (freqs <= 1000.0)

    return {
        "sha256": sha256,
        "peak": peak,
        "rms": rms,
        "body_energy": float(torch.sum(magnitude[body_mask] ** 2)),
        "knock_energy": float(torch.sum(magnitude[knock_mask] ** 2)),
    }


def render_to_file(
    duration_min: int,
    output_path: str,
    seed: Optional[int] = None,
    sample_rate: Optional[int] = None,
    params: Optional[dict] = None,
    encode: bool = True,
    debug: bool = False,
    qc: bool = False,
    script_name: str = "unknown",
) -> Tuple[StreamRender, ExportResult, Dict]:
    """
    Render a stream and export it with full param tracing and fingerprinting.

    Args:
        duration_min: Stream length in minutes
        output_path: Destination (.mp3 via ffmpeg, .wav, .flac)
        seed: Scheduler seed (None = wall clock)
        sample_rate: Overrides the default 22050 Hz
        params: Partial render params
        encode: False skips the external encoder
        debug: Save <output>.resolved.json with param trace
        qc: Run QC analysis
        script_name: Name of calling script (for debug JSON)

    Returns:
        Tuple of (render, export_result, debug_info_dict)
    """
    if seed is None:
        seed = wall_clock_seed()

    render = render_stream(
        duration_min, sample_rate=sample_rate, seed=seed, params=params
    )

    fingerprint = _compute_audio_fingerprint(render.samples, render.sample_rate)

    qc_result = None
    if qc:
        qc_result = analyze(render.samples, render.sample_rate, render.instances)

    result = write_stream(render, output_path, encode=encode)

    debug_info = {
        "script_name": script_name,
        "timestamp": datetime.now().isoformat(),
        "git_hash": _get_git_hash(),
        "seed": seed,
        "resolved_params": render.params,
        "triggers": [t.instant for t in render.triggers],
        "fingerprint": fingerprint,
        "qc_result": qc_result,
        "output_path": result.path,
        "container": result.container,
        "encoded": result.encoded,
        "fallback_reason": result.fallback_reason,
    }

    if debug:
        json_path = Path(f"{result.path}.resolved.json")
        with open(json_path, "w") as f:
            json.dump(debug_info, f, indent=2, default=str)
        debug_info["debug_json"] = str(json_path)

    return render, result, debug_info
