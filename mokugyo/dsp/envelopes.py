import math
import torch
from typing import Tuple

from mokugyo.params.timbre import WoodfishTimbre, DEFAULT_TIMBRE


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def lin_to_dbfs(x: float) -> float:
    """Convert linear amplitude to dBFS. Silence -> -inf."""
    if x <= 0:
        return -math.inf
    return 20.0 * math.log10(abs(x))


# -----------------------------------------------------------------------------
# Wooden-fish envelope: quadratic attack, linear fall, exponential tail, cutoff
# -----------------------------------------------------------------------------

class WoodfishEnvelope:
    """
    Attack/decay shape of one knock, a pure function of the sample position.
    Timeline (in samples of an event of length total):
      attack  = total // 40           rises as (i / attack) ** 2
      decay   = total * 2 // 3        p = (i - attack) / decay
        p < 0.2   -> 1 - 2.5 p        (fast linear fall)
        p < 0.7   -> 0.5 exp(-8 (p - 0.2))
        p >= 0.7  -> 0                (early cutoff)
    Coefficients come from WoodfishTimbre.
    """

    def __init__(self, timbre: WoodfishTimbre = DEFAULT_TIMBRE):
        self.timbre = timbre

    def zones(self, total_samples: int) -> Tuple[int, int]:
        """(attack_samples, decay_samples) for an event of total_samples."""
        t = self.timbre
        attack = total_samples // t.attack_divisor
        decay = total_samples * t.decay_numerator // t.decay_denominator
        return attack, decay

    def value(self, sample_index: int, total_samples: int) -> float:
        t = self.timbre
        attack, decay = self.zones(total_samples)

        if sample_index < attack:
            progress = sample_index / attack
            return progress * progress

        if decay <= 0:
            return 0.0
        p = (sample_index - attack) / decay
        if p >= t.cutoff_progress:
            return 0.0
        if p < t.fast_fall_end:
            return 1.0 - p * t.fast_fall_slope
        return t.tail_level * math.exp(-(p - t.fast_fall_end) * t.tail_rate)

    def render(self, total_samples: int) -> torch.Tensor:
        """Envelope for every index 0..total_samples-1 (float64)."""
        t = self.timbre
        env = torch.zeros(max(total_samples, 0), dtype=torch.float64)
        if total_samples <= 0:
            return env
        attack, decay = self.zones(total_samples)
        i = torch.arange(total_samples, dtype=torch.float64)

        if attack > 0:
            progress = i[:attack] / attack
            env[:attack] = progress * progress

        if decay > 0 and attack < total_samples:
            p = (i[attack:] - attack) / decay
            fall = 1.0 - p * t.fast_fall_slope
            tail = t.tail_level * torch.exp(-(p - t.fast_fall_end) * t.tail_rate)
            seg = torch.where(p < t.fast_fall_end, fall, tail)
            seg = torch.where(p >= t.cutoff_progress, torch.zeros_like(seg), seg)
            env[attack:] = seg

        return env
