"""
Quality Control analysis for rendered streams.
Detects clipping, level problems, missing or unexpected knocks, and signal
leaking outside the scheduled event windows.
"""
import torch
import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple

from mokugyo.core.types import EventInstance
from mokugyo.dsp.envelopes import lin_to_dbfs
from mokugyo.qc.thresholds import QC_THRESHOLDS


def _as_numpy(audio) -> np.ndarray:
    if isinstance(audio, torch.Tensor):
        return audio.detach().cpu().reshape(-1).numpy()
    return np.asarray(audio).reshape(-1)


def find_event_regions(
    audio,
    sample_rate: int,
    silence_level: float = 1e-6,
    max_gap_s: float = 0.05,
) -> List[Tuple[int, int]]:
    """
    Non-silent regions as (start, end) sample ranges, end exclusive.
    Silent runs shorter than max_gap_s (zero crossings) do not split a region.
    """
    data = _as_numpy(audio)
    idx = np.flatnonzero(np.abs(data) > silence_level)
    if idx.size == 0:
        return []
    max_gap = max(1, int(max_gap_s * sample_rate))
    breaks = np.flatnonzero(np.diff(idx) > max_gap)
    starts = np.concatenate(([idx[0]], idx[breaks + 1]))
    ends = np.concatenate((idx[breaks], [idx[-1]])) + 1
    return [(int(s), int(e)) for s, e in zip(starts, ends)]


def _leak_samples(data: np.ndarray, instances: Sequence[EventInstance], silence_level: float) -> int:
    """Count non-silent samples outside every instance window."""
    mask = np.abs(data) > silence_level
    for inst in instances:
        mask[inst.start_sample:inst.end_sample] = False
    return int(np.count_nonzero(mask))


def analyze(
    audio,
    sample_rate: int,
    instances: Optional[Sequence[EventInstance]] = None,
) -> Dict:
    """
    Analyze a rendered stream for QC issues.

    Args:
        audio: Audio tensor or array (1D)
        sample_rate: Sample rate in Hz
        instances: Event instances written by the mixer; enables region checks

    Returns:
        Dict with metrics and pass/fail flags
    """
    thresholds = QC_THRESHOLDS["stream"]
    data = _as_numpy(audio).astype(np.float64)

    peak = float(np.max(np.abs(data))) if data.size else 0.0
    rms = float(np.sqrt(np.mean(data ** 2) + 1e-12)) if data.size else 0.0
    clipped = int(np.count_nonzero(np.abs(data) >= 1.0))
    regions = find_event_regions(
        data, sample_rate, thresholds["silence_level"], thresholds["region_gap_s"]
    )

    metrics = {
        "num_samples": int(data.size),
        "duration_s": data.size / float(sample_rate),
        "peak_linear": peak,
        "peak_dbfs": lin_to_dbfs(peak),
        "rms_linear": rms,
        "rms_dbfs": lin_to_dbfs(rms),
        "clipped_samples": clipped,
        "num_regions": len(regions),
        "regions": regions,
    }

    failures = []
    warnings = []

    peak_max = thresholds["peak_linear_max"]
    if peak > peak_max:
        failures.append(f"Peak too high: {peak:.4f} > {peak_max:.4f}")
    if clipped > thresholds["clipped_samples_max"]:
        failures.append(f"Clipping: {clipped} samples at full scale")

    if instances is not None:
        expected = len(instances)
        metrics["expected_regions"] = expected
        if len(regions) != expected:
            failures.append(f"Found {len(regions)} knock regions, expected {expected}")
        leak = _leak_samples(data, instances, thresholds["silence_level"])
        metrics["leak_samples"] = leak
        if leak > thresholds["leak_samples_max"]:
            failures.append(f"Signal outside event windows: {leak} samples")
        if expected == 0:
            warnings.append("Stream contains no knocks")
    elif not regions:
        warnings.append("Stream is silent")

    status = "PASS"
    if failures:
        status = "FAIL"
    elif warnings:
        status = "WARN"

    return {
        "status": status,
        "metrics": metrics,
        "failures": failures,
        "warnings": warnings,
    }
