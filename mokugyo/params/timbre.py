"""
Instrument definition for the wooden-fish knock.
All envelope zone fractions, body frequencies and mix weights live here so the
sound can be audited or swapped without touching the envelope or mixer code.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class WoodfishTimbre:
    # Event
    frequency_hz: float = 150.0   # nominal pitch carried on each trigger
    duration_s: float = 0.4
    volume: float = 0.9
    repeats: int = 2
    repeat_gap_s: float = 0.2     # silence between repetitions

    # Envelope: attack is total // attack_divisor samples, quadratic rise
    attack_divisor: int = 40
    # Decay window is total * decay_numerator // decay_denominator samples
    decay_numerator: int = 2
    decay_denominator: int = 3
    cutoff_progress: float = 0.7  # silence from here on
    fast_fall_end: float = 0.2
    fast_fall_slope: float = 2.5
    tail_level: float = 0.5
    tail_rate: float = 8.0

    # Body
    body_hz: float = 130.0
    knock_hz: float = 800.0
    knock_level: float = 0.5
    knock_divisor: int = 8        # knock sounds while i < total // knock_divisor
    strike_divisor: int = 10      # strike mix while i < total // strike_divisor
    strike_body_mix: float = 0.7
    strike_knock_mix: float = 0.3
    tail_body_mix: float = 0.9

    def __post_init__(self):
        if not 0.0 < self.volume <= 1.0:
            raise ValueError(f"volume must be in (0, 1], got {self.volume}")
        if self.duration_s <= 0.0:
            raise ValueError(f"duration_s must be > 0, got {self.duration_s}")
        if self.repeats < 1:
            raise ValueError(f"repeats must be >= 1, got {self.repeats}")
        if self.repeat_gap_s < 0.0:
            raise ValueError(f"repeat_gap_s must be >= 0, got {self.repeat_gap_s}")
        for name in ("attack_divisor", "decay_denominator", "knock_divisor", "strike_divisor"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        for name in ("strike_body_mix", "strike_knock_mix", "tail_body_mix", "knock_level", "tail_level"):
            if getattr(self, name) < 0.0:
                raise ValueError(f"{name} must be >= 0")
        # Envelope peaks at 1.0, so the body alone must stay within unit range
        if self.strike_body_mix + self.strike_knock_mix * self.knock_level > 1.0:
            raise ValueError("strike mix exceeds unit amplitude")
        if self.tail_body_mix > 1.0 or self.tail_level > 1.0:
            raise ValueError("tail mix exceeds unit amplitude")

    @property
    def repeat_spacing_s(self) -> float:
        """Offset between the starts of consecutive repetitions."""
        return self.duration_s + self.repeat_gap_s


DEFAULT_TIMBRE = WoodfishTimbre()
