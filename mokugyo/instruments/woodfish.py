"""
Wooden-fish (mokugyo) engine: a hollow 130 Hz body with a short 800 Hz knock,
shaped by WoodfishEnvelope. One fixed timbre; see params.timbre.
"""
import logging
import math
from typing import Optional

import torch

from mokugyo.dsp.envelopes import WoodfishEnvelope
from mokugyo.dsp.oscillators import Oscillator
from mokugyo.params.timbre import WoodfishTimbre, DEFAULT_TIMBRE

logger = logging.getLogger(__name__)


class WoodfishEngine:
    """
    Renders one knock event.

    synthesize() is the per-sample contract; render() is the vectorized
    equivalent used by the mixer. Both give volume * envelope * body.
    """

    def __init__(self, sample_rate: int, timbre: WoodfishTimbre = DEFAULT_TIMBRE):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be > 0, got {sample_rate}")
        self.sample_rate = int(sample_rate)
        self.timbre = timbre
        self.envelope = WoodfishEnvelope(timbre)

    # -------------------------------------------------------------------------
    # Per-sample
    # -------------------------------------------------------------------------

    def body(self, sample_index: int, total_samples: int, elapsed_s: float) -> float:
        """Tone body at one sample: wood resonance plus the early knock."""
        t = self.timbre
        wood = math.sin(2 * math.pi * t.body_hz * elapsed_s)
        knock = 0.0
        if sample_index < total_samples // t.knock_divisor:
            knock = math.sin(2 * math.pi * t.knock_hz * elapsed_s) * t.knock_level
        if sample_index < total_samples // t.strike_divisor:
            return wood * t.strike_body_mix + knock * t.strike_knock_mix
        return wood * t.tail_body_mix

    def synthesize(
        self,
        sample_index: int,
        total_samples: int,
        elapsed_s: float,
        volume: Optional[float] = None,
    ) -> float:
        """Amplitude of one sample of an event; |result| <= volume."""
        vol = self.timbre.volume if volume is None else volume
        env = self.envelope.value(sample_index, total_samples)
        return vol * env * self.body(sample_index, total_samples, elapsed_s)

    # -------------------------------------------------------------------------
    # Vectorized
    # -------------------------------------------------------------------------

    def render_body(self, total_samples: int) -> torch.Tensor:
        t = self.timbre
        n = max(total_samples, 0)
        wood = Oscillator.sine(t.body_hz, n, self.sample_rate)
        knock = Oscillator.gated_sine(
            t.knock_hz, n, self.sample_rate, total_samples // t.knock_divisor
        ) * t.knock_level
        strike_end = min(total_samples // t.strike_divisor, n)

        body = wood * t.tail_body_mix
        body[:strike_end] = wood[:strike_end] * t.strike_body_mix + knock[:strike_end] * t.strike_knock_mix
        return body

    def render(self, total_samples: int, volume: Optional[float] = None) -> torch.Tensor:
        """
        Full event of total_samples samples as float64.
        Equal to [synthesize(i, total_samples, i / sample_rate) for i in range(total_samples)].
        """
        vol = self.timbre.volume if volume is None else volume
        if total_samples <= 0:
            return torch.zeros(0, dtype=torch.float64)
        out = vol * self.envelope.render(total_samples) * self.render_body(total_samples)
        peak = float(torch.max(torch.abs(out)))
        if peak > 1.0:
            # Timbre validation keeps this unreachable for volume <= 1
            logger.warning("knock peak %.4f exceeds full scale", peak)
        return out

    def event_samples(self, duration_s: Optional[float] = None) -> int:
        """Sample count of one event: round(duration * sample_rate)."""
        d = self.timbre.duration_s if duration_s is None else duration_s
        return int(round(d * self.sample_rate))
