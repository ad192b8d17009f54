"""Audible feedback played through the default output device."""

from typing import Optional

import numpy as np
import sounddevice as sd

from ..core.interfaces import IFailureCue
from ..logger import get_logger
from .cues import CUE_SAMPLE_RATE, failure_cue

logger = get_logger(__name__)


class SoundDeviceFailureCue(IFailureCue):
    """Plays the synthesized failure cue without waiting for it to finish."""

    def __init__(self, device_id: Optional[int] = None, sample_rate: int = CUE_SAMPLE_RATE):
        self._device_id = device_id
        self._sample_rate = sample_rate
        self._samples: np.ndarray = failure_cue(sample_rate)

    def play(self) -> None:
        # Feedback must never interrupt the drill, a broken output device is only logged
        try:
            sd.play(self._samples, self._sample_rate, device=self._device_id, blocking=False)
        except (sd.PortAudioError, ValueError) as e:
            logger.warning(f"Could not play failure cue: {e}")
