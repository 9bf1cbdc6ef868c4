"""
Event scheduler: random knock instants over a stream.
Spacing is drawn uniformly from [interval_min_s, interval_max_s); the random
source is injected so schedules are reproducible. Wall-clock seeding belongs
to the entry points (tools/render.py, mokugyo/main.py).
"""
import logging
import math
import random
from typing import List, Optional

from mokugyo.core.errors import InvalidDurationError
from mokugyo.core.types import Trigger
from mokugyo.params.timbre import WoodfishTimbre, DEFAULT_TIMBRE

logger = logging.getLogger(__name__)


def check_duration(duration_s: float, operation: str = "schedule") -> float:
    """Return duration_s as float, or raise InvalidDurationError if it is not positive and finite."""
    try:
        value = float(duration_s)
    except (TypeError, ValueError):
        raise InvalidDurationError(duration_s, operation) from None
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidDurationError(duration_s, operation)
    return value


class EventScheduler:
    """
    Produces time-ordered triggers over [0, total_duration_s).
    Pass either seed or a random.Random instance; with neither, the module-level
    generator state is not touched and a fresh unseeded Random is used.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        interval_min_s: float = 180.0,
        interval_max_s: float = 300.0,
        timbre: WoodfishTimbre = DEFAULT_TIMBRE,
    ):
        if interval_min_s <= 0 or interval_max_s < interval_min_s:
            raise ValueError(
                f"invalid interval range [{interval_min_s}, {interval_max_s})"
            )
        self.rng = rng if rng is not None else random.Random(seed)
        self.interval_min_s = float(interval_min_s)
        self.interval_max_s = float(interval_max_s)
        self.timbre = timbre

    def next_interval(self) -> float:
        """Draw one spacing in seconds, uniform in [min, max)."""
        span = self.interval_max_s - self.interval_min_s
        return self.interval_min_s + self.rng.random() * span

    def _make_trigger(self, instant: float) -> Trigger:
        t = self.timbre
        return Trigger(
            instant=instant,
            frequency=t.frequency_hz,
            duration=t.duration_s,
            volume=t.volume,
        )

    def schedule(self, total_duration_s: float) -> List[Trigger]:
        total = check_duration(total_duration_s)
        triggers: List[Trigger] = []
        elapsed = 0.0
        while elapsed < total:
            elapsed += self.next_interval()
            if elapsed < total:
                triggers.append(self._make_trigger(elapsed))
        logger.debug("scheduled %d triggers over %.1f s", len(triggers), total)
        return triggers


def schedule_minutes(
    duration_min: float,
    seed: Optional[int] = None,
    interval_min_s: float = 180.0,
    interval_max_s: float = 300.0,
) -> List[Trigger]:
    """Convenience wrapper: schedule over duration_min minutes."""
    minutes = check_duration(duration_min)
    scheduler = EventScheduler(
        seed=seed, interval_min_s=interval_min_s, interval_max_s=interval_max_s
    )
    return scheduler.schedule(minutes * 60.0)
