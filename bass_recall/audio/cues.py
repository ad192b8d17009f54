"""Synthesis of the short failure cue."""

import numpy as np

CUE_DURATION_S = 0.4
CUE_START_HZ = 110.0
CUE_END_HZ = 40.0
CUE_START_GAIN = 0.08
CUE_END_GAIN = 0.001
CUE_SAMPLE_RATE = 44100


def exponential_ramp(start: float, end: float, num_samples: int) -> np.ndarray:
    """Values moving geometrically from ``start`` to ``end``; both must be positive."""
    if num_samples <= 1:
        return np.full(max(num_samples, 0), start, dtype=np.float64)
    return start * (end / start) ** np.linspace(0.0, 1.0, num_samples)


def failure_cue(sample_rate: int = CUE_SAMPLE_RATE, duration_s: float = CUE_DURATION_S) -> np.ndarray:
    """A low sawtooth buzz sweeping down in pitch while fading out.

    Returns:
        float32 mono samples in [-CUE_START_GAIN, CUE_START_GAIN]
    """
    num_samples = int(round(sample_rate * duration_s))
    freq = exponential_ramp(CUE_START_HZ, CUE_END_HZ, num_samples)
    gain = exponential_ramp(CUE_START_GAIN, CUE_END_GAIN, num_samples)

    # Integrate the instantaneous frequency so the sweep has no phase jumps
    phase = np.cumsum(freq) / sample_rate
    saw = 2.0 * (phase - np.floor(phase + 0.5))
    return (saw * gain).astype(np.float32)
