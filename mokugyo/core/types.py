from dataclasses import dataclass, field
import torch
from typing import Any, Dict, List, Optional


@dataclass
class AudioBuffer:
    samples: torch.Tensor  # float32, 1D
    sample_rate: int
    peak_dbfs: float = 0.0


@dataclass(frozen=True)
class Trigger:
    instant: float           # seconds from stream start
    frequency: float = 150.0  # nominal pitch, reporting only
    duration: float = 0.4
    volume: float = 0.9


@dataclass(frozen=True)
class EventInstance:
    trigger: Trigger
    repeat_index: int
    start_sample: int
    sample_count: int

    @property
    def end_sample(self) -> int:
        return self.start_sample + self.sample_count


@dataclass
class StreamRender:
    buffer: AudioBuffer
    triggers: List[Trigger]
    instances: List[EventInstance] = field(default_factory=list)
    seed: Optional[int] = None
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def samples(self) -> torch.Tensor:
        return self.buffer.samples

    @property
    def sample_rate(self) -> int:
        return self.buffer.sample_rate


@dataclass
class ExportResult:
    path: str
    container: str           # "mp3", "wav", "flac", ...
    encoded: bool
    fallback_reason: Optional[str] = None
