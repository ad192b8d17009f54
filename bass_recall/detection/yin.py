"""YIN fundamental frequency estimation for single audio blocks."""

from typing import Optional

import numpy as np

from ..core.config import DetectionConfig, YIN_NOISE_FLOOR, YIN_THRESHOLD
from ..logger import get_logger
from ..note_types import AudioBlock, PitchEstimate

logger = get_logger(__name__)


def calculate_rms(samples: np.ndarray) -> float:
    """Root-mean-square amplitude of a block, 0.0 for an empty block."""
    if len(samples) == 0:
        return 0.0
    data = np.asarray(samples, dtype=np.float64)
    return float(np.sqrt(np.mean(data * data)))


def difference_function(samples: np.ndarray) -> np.ndarray:
    """d(tau) = sum_i (x[i] - x[i + tau])^2 for tau and i in [0, N/2)."""
    x = np.asarray(samples, dtype=np.float64)
    half = len(x) // 2
    frame = x[:half]
    diff = np.empty(half, dtype=np.float64)
    for tau in range(half):
        delta = frame - x[tau : tau + half]
        diff[tau] = np.dot(delta, delta)
    return diff


def cumulative_mean_normalized_difference(diff: np.ndarray) -> np.ndarray:
    """d'(0) = 1, d'(tau) = d(tau) * tau / sum(d[1..tau]).

    A zero running sum (digital silence) divides by one instead.
    """
    cmnd = np.empty_like(diff)
    if len(diff) == 0:
        return cmnd
    cmnd[0] = 1.0
    running = np.cumsum(diff[1:])
    running[running == 0] = 1.0
    cmnd[1:] = diff[1:] * np.arange(1, len(diff)) / running
    return cmnd


def absolute_threshold(cmnd: np.ndarray, threshold: float) -> int:
    """First tau with d'(tau) below threshold, walked down to the floor of its dip.

    Returns:
        The lag, or -1 if nothing cleared the threshold
    """
    below = np.flatnonzero(cmnd[1:] < threshold)
    if below.size == 0:
        return -1
    tau = int(below[0]) + 1
    while tau + 1 < len(cmnd) and cmnd[tau + 1] < cmnd[tau]:
        tau += 1
    return tau


def parabolic_interpolation(cmnd: np.ndarray, tau: int) -> float:
    """Refine a lag to sub-sample precision using its two neighbours."""
    if tau <= 0 or tau >= len(cmnd) - 1:
        return float(tau)
    s0, s1, s2 = cmnd[tau - 1], cmnd[tau], cmnd[tau + 1]
    denominator = 2.0 * (2.0 * s1 - s2 - s0)
    if abs(denominator) <= 1e-6:
        return float(tau)
    return tau + (s2 - s0) / denominator


def detect_pitch_yin(
    samples: np.ndarray,
    sample_rate: int,
    threshold: float = YIN_THRESHOLD,
    noise_floor: float = YIN_NOISE_FLOOR,
) -> Optional[float]:
    """Estimate the fundamental frequency of a block with the YIN method.

    Cost is O(N^2) in the block length; that, not the block cadence, is what
    limits the block size in a real-time callback.

    Args:
        samples: Mono samples normalized to [-1, 1]
        sample_rate: Sample rate in Hz
        threshold: Absolute threshold on the normalized difference
        noise_floor: Highest global minimum still accepted when nothing
            cleared ``threshold``

    Returns:
        Frequency in Hz, or None when no confident periodicity was found
    """
    if len(samples) < 6:
        return None

    cmnd = cumulative_mean_normalized_difference(difference_function(samples))

    tau = absolute_threshold(cmnd, threshold)
    if tau == -1:
        # Fall back to the global minimum, guarded by the noise floor
        tau = int(np.argmin(cmnd[1:])) + 1
        if cmnd[tau] > noise_floor:
            logger.debug(f"No pitch: best d'={cmnd[tau]:.3f} above noise floor")
            return None

    better_tau = parabolic_interpolation(cmnd, tau)
    if better_tau <= 0:
        return None
    return sample_rate / better_tau


class SignalProcessor:
    """Turns AudioBlocks into PitchEstimates. Holds no state between blocks."""

    def __init__(self, config: Optional[DetectionConfig] = None) -> None:
        self.config = config or DetectionConfig()

    def process(self, block: AudioBlock) -> PitchEstimate:
        """Compute RMS and fundamental frequency of one block.

        Silent blocks and estimates outside the configured frequency range
        report no pitch rather than an extreme frequency.
        """
        config = self.config
        rms = calculate_rms(block.samples)

        frequency: Optional[float] = None
        if rms >= config.silence_rms:
            frequency = detect_pitch_yin(
                block.samples,
                block.sample_rate,
                threshold=config.yin_threshold,
                noise_floor=config.noise_floor,
            )
            if frequency is not None and not (
                config.min_frequency <= frequency <= config.max_frequency
            ):
                logger.debug(f"Discarding out-of-range pitch {frequency:.1f}Hz")
                frequency = None

        logger.debug(
            f"[{block.timestamp_ms}ms] rms={rms:.4f} "
            f"freq={'---' if frequency is None else f'{frequency:.2f}Hz'}"
        )
        return PitchEstimate(frequency_hz=frequency, rms=rms, timestamp_ms=block.timestamp_ms)
