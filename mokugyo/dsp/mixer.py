"""
Timeline mixer: places the repetitions of each trigger's knock into one
fixed-length buffer. Every write goes through bounded_write, which clamps
the destination range to the buffer extent.
Overlap policy: "overwrite" (later event replaces earlier samples) or "add"
(sum, then clamp to [-1, 1]).
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

import torch

from mokugyo.core.errors import BufferAllocationError, InvalidDurationError
from mokugyo.core.types import EventInstance, Trigger
from mokugyo.instruments.woodfish import WoodfishEngine
from mokugyo.params.schema import OVERLAP_MODES

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Buffer primitives
# -----------------------------------------------------------------------------

def allocate(total_samples: int) -> torch.Tensor:
    """Zero-filled float32 buffer (digital silence) of exactly total_samples."""
    if total_samples <= 0:
        raise InvalidDurationError(total_samples, "allocate")
    try:
        buffer = torch.zeros(int(total_samples), dtype=torch.float32)
    except (MemoryError, RuntimeError) as exc:
        raise BufferAllocationError(int(total_samples), exc) from exc
    logger.debug("allocated buffer of %d samples", total_samples)
    return buffer


def bounded_write(
    buffer: torch.Tensor,
    offset: int,
    samples: torch.Tensor,
    mode: str = "overwrite",
) -> int:
    """
    Write samples into buffer starting at offset, clamped to the buffer extent.
    Samples falling before index 0 or past the end are dropped.
    Returns the number of samples actually written.
    """
    if mode not in OVERLAP_MODES:
        raise ValueError(f"unknown overlap mode {mode!r}")
    buf_len = buffer.shape[-1]
    src_len = samples.shape[-1]

    src_start = 0
    dst_start = int(offset)
    if dst_start < 0:
        src_start = -dst_start
        dst_start = 0
    if dst_start >= buf_len or src_start >= src_len:
        return 0

    n = min(src_len - src_start, buf_len - dst_start)
    chunk = samples[src_start:src_start + n].to(buffer.dtype)
    dst = slice(dst_start, dst_start + n)
    if mode == "overwrite":
        buffer[dst] = chunk
    else:
        buffer[dst] = torch.clamp(buffer[dst] + chunk, -1.0, 1.0)
    return n


# -----------------------------------------------------------------------------
# Timeline mixer
# -----------------------------------------------------------------------------

class TimelineMixer:
    """
    Renders repetitions of each trigger into a shared buffer.
    Each repetition starts at round((instant + r * (duration + gap)) * sample_rate)
    and spans round(duration * sample_rate) samples, truncated at the buffer end.
    """

    def __init__(
        self,
        sample_rate: int,
        engine: Optional[WoodfishEngine] = None,
        overlap: str = "overwrite",
    ):
        if overlap not in OVERLAP_MODES:
            raise ValueError(f"unknown overlap mode {overlap!r}")
        self.sample_rate = int(sample_rate)
        self.engine = engine or WoodfishEngine(self.sample_rate)
        self.overlap = overlap
        self._event_cache: Dict[Tuple[int, float], torch.Tensor] = {}

    def event_instances(self, trigger: Trigger, total_samples: int) -> List[EventInstance]:
        timbre = self.engine.timbre
        spacing = trigger.duration + timbre.repeat_gap_s
        count = self.engine.event_samples(trigger.duration)
        instances = []
        for repeat in range(timbre.repeats):
            start = int(round((trigger.instant + repeat * spacing) * self.sample_rate))
            if start >= total_samples:
                continue
            n = min(count, total_samples - start)
            instances.append(EventInstance(trigger, repeat, start, n))
        return instances

    def _event(self, sample_count: int, volume: float) -> torch.Tensor:
        key = (sample_count, volume)
        if key not in self._event_cache:
            self._event_cache[key] = self.engine.render(sample_count, volume=volume)
        return self._event_cache[key]

    def write_instance(self, buffer: torch.Tensor, instance: EventInstance) -> int:
        """
        Render the event over its window and write it. A window truncated at
        the buffer end is rendered with the shortened length, so the envelope
        and knock zones fit inside it.
        """
        event = self._event(instance.sample_count, instance.trigger.volume)
        return bounded_write(buffer, instance.start_sample, event, self.overlap)

    def mix(
        self,
        triggers: Iterable[Trigger],
        total_samples: int,
        buffer: Optional[torch.Tensor] = None,
    ) -> Tuple[torch.Tensor, List[EventInstance]]:
        """
        Write every trigger's repetitions into buffer (allocated when None).
        Returns (buffer, instances written).
        """
        if buffer is None:
            buffer = allocate(total_samples)
        elif buffer.shape[-1] != total_samples:
            raise ValueError(
                f"buffer length {buffer.shape[-1]} != total_samples {total_samples}"
            )

        written: List[EventInstance] = []
        last_end = 0
        for trig in triggers:
            for inst in self.event_instances(trig, total_samples):
                if inst.start_sample < last_end:
                    logger.warning(
                        "event at sample %d overlaps previous event ending at %d (%s)",
                        inst.start_sample, last_end, self.overlap,
                    )
                self.write_instance(buffer, inst)
                last_end = max(last_end, inst.end_sample)
                written.append(inst)

        logger.debug("mixed %d event instances into %d samples", len(written), total_samples)
        return buffer, written


def mix(
    triggers: Iterable[Trigger],
    sample_rate: int,
    total_samples: int,
    overlap: str = "overwrite",
) -> torch.Tensor:
    """Convenience: mix triggers into a fresh buffer with the default engine."""
    buffer, _ = TimelineMixer(sample_rate, overlap=overlap).mix(triggers, total_samples)
    return buffer
