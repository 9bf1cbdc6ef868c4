"""
One-shot render pipeline: schedule -> synthesize + mix -> serialize.
Straight-line and synchronous; the only step touching storage is write_stream.
"""
import logging
from typing import List, Optional

import torch

from mokugyo.core.errors import InvalidDurationError
from mokugyo.core.io import MAX_SAMPLES
from mokugyo.core.types import AudioBuffer, ExportResult, StreamRender, Trigger
from mokugyo.core.params import get_param
from mokugyo.dsp.envelopes import lin_to_dbfs
from mokugyo.dsp.mixer import TimelineMixer
from mokugyo.export.exporter import Exporter
from mokugyo.instruments.woodfish import WoodfishEngine
from mokugyo.params.resolve import resolve_params
from mokugyo.params.timbre import WoodfishTimbre, DEFAULT_TIMBRE
from mokugyo.schedule.scheduler import EventScheduler, check_duration

logger = logging.getLogger(__name__)


def stream_samples(duration_s: float, sample_rate: int) -> int:
    """Buffer length for a stream: duration_s * sample_rate samples."""
    return int(round(duration_s * sample_rate))


def render_stream(
    duration_min: int,
    sample_rate: Optional[int] = None,
    seed: Optional[int] = None,
    params: Optional[dict] = None,
    timbre: WoodfishTimbre = DEFAULT_TIMBRE,
    triggers: Optional[List[Trigger]] = None,
) -> StreamRender:
    """
    Render a full stream of duration_min minutes.

    Args:
        duration_min: Stream length in minutes (> 0)
        sample_rate: Overrides stream.sample_rate from params
        seed: Scheduler seed; None draws from OS entropy
        params: Partial render params, merged onto ENGINE_DEFAULTS
        timbre: Instrument definition
        triggers: Use these instead of scheduling (for tests and replays)

    Returns:
        StreamRender holding the buffer, triggers and written event instances
    """
    check_duration(duration_min, "render_stream")

    overrides = dict(params or {})
    stream = dict(overrides.get("stream", {}))
    stream["duration_min"] = duration_min
    if sample_rate is not None:
        stream["sample_rate"] = sample_rate
    overrides["stream"] = stream
    resolved = resolve_params(overrides)

    sr = get_param(resolved, "stream.sample_rate")
    duration_s = get_param(resolved, "stream.duration_min") * 60.0
    total = stream_samples(duration_s, sr)
    if total > MAX_SAMPLES:
        raise InvalidDurationError(
            duration_min,
            "render_stream",
            reason=f"exceeds the WAV size limit at {sr} Hz ({MAX_SAMPLES} samples)",
        )

    if triggers is None:
        scheduler = EventScheduler(
            seed=seed,
            interval_min_s=get_param(resolved, "schedule.interval_min_s"),
            interval_max_s=get_param(resolved, "schedule.interval_max_s"),
            timbre=timbre,
        )
        triggers = scheduler.schedule(duration_s)

    mixer = TimelineMixer(
        sr,
        engine=WoodfishEngine(sr, timbre),
        overlap=get_param(resolved, "mix.overlap"),
    )
    buffer, instances = mixer.mix(triggers, total)

    peak = float(torch.max(torch.abs(buffer))) if total else 0.0
    logger.info(
        "rendered %d min at %d Hz: %d triggers, %d events, peak %.2f dBFS",
        duration_min, sr, len(triggers), len(instances), lin_to_dbfs(peak),
    )
    return StreamRender(
        buffer=AudioBuffer(buffer, sr, peak_dbfs=lin_to_dbfs(peak)),
        triggers=list(triggers),
        instances=instances,
        seed=seed,
        params=resolved,
    )


def write_stream(
    render: StreamRender,
    output_path: Optional[str] = None,
    encode: bool = True,
    exporter: Optional[Exporter] = None,
) -> ExportResult:
    """Serialize the rendered buffer to output_path (default: params "output")."""
    path = output_path or get_param(render.params, "output")
    if exporter is None:
        exporter = Exporter(
            bitrate=get_param(render.params, "encode.bitrate"),
            codecs=get_param(render.params, "encode.codecs"),
        )
    return exporter.export(render.samples, render.sample_rate, path, encode=encode)


def render_knock(sample_rate: int, timbre: WoodfishTimbre = DEFAULT_TIMBRE) -> AudioBuffer:
    """One trigger at t=0 with all its repetitions, trimmed to the last repetition."""
    mixer = TimelineMixer(sample_rate, engine=WoodfishEngine(sample_rate, timbre))
    trigger = Trigger(
        instant=0.0,
        frequency=timbre.frequency_hz,
        duration=timbre.duration_s,
        volume=timbre.volume,
    )
    length_s = (timbre.repeats - 1) * timbre.repeat_spacing_s + timbre.duration_s
    buffer, _ = mixer.mix([trigger], stream_samples(length_s, sample_rate))
    peak = float(torch.max(torch.abs(buffer)))
    return AudioBuffer(buffer, sample_rate, peak_dbfs=lin_to_dbfs(peak))
