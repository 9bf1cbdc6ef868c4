"""
Oscillator generators with phase reset on trigger.
Time axis is t[i] = i / sample_rate so vectorized output matches per-sample evaluation.
"""

import torch
import numpy as np


def time_axis(num_samples: int, sample_rate: int, dtype: torch.dtype = torch.float64) -> torch.Tensor:
    """Seconds since event start for each sample index."""
    return torch.arange(num_samples, dtype=dtype) / float(sample_rate)


class Oscillator:
    @staticmethod
    def sine(frequency: float, num_samples: int, sample_rate: int, phase: float = 0.0) -> torch.Tensor:
        """
        Generates a sine wave starting at phase 0 (plus optional offset).

        Args:
            frequency: Frequency (Hz)
            num_samples: Output length in samples
            sample_rate: Sample rate
            phase: Initial phase offset (radians)

        Returns:
            float64 tensor of length num_samples
        """
        t = time_axis(num_samples, sample_rate)
        return torch.sin(2 * np.pi * frequency * t + phase)

    @staticmethod
    def gated_sine(frequency: float, num_samples: int, sample_rate: int, gate_samples: int) -> torch.Tensor:
        """Sine that sounds only for the first gate_samples samples, zero afterwards."""
        wave = Oscillator.sine(frequency, num_samples, sample_rate)
        if gate_samples < num_samples:
            wave[max(gate_samples, 0):] = 0.0
        return wave
