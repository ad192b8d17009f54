"""Synthetic audio and estimate builders shared by the tests."""

import numpy as np

from bass_recall.note_types import AudioBlock, PitchEstimate
from bass_recall.note_utils import midi_to_frequency

SAMPLE_RATE = 44100
BLOCK_SIZE = 2048
LOUD = 0.3


def sine(freq, num_samples=BLOCK_SIZE, sample_rate=SAMPLE_RATE, amplitude=0.5, phase=0.0):
    t = np.arange(num_samples) / sample_rate
    return (amplitude * np.sin(2 * np.pi * freq * t + phase)).astype(np.float32)


def sine_block(freq, timestamp_ms=0, amplitude=0.5, num_samples=BLOCK_SIZE, sample_rate=SAMPLE_RATE):
    return AudioBlock(sine(freq, num_samples, sample_rate, amplitude), sample_rate, timestamp_ms)


def note_estimate(midi, timestamp_ms, rms=LOUD):
    """A PitchEstimate a tenth of a cent above the given MIDI note.

    The offset keeps float round trips from landing just below the note,
    which would read as -1 cents.
    """
    return PitchEstimate(frequency_hz=midi_to_frequency(midi + 0.001), rms=rms, timestamp_ms=timestamp_ms)


def silence_estimate(timestamp_ms):
    return PitchEstimate(frequency_hz=None, rms=0.0, timestamp_ms=timestamp_ms)


def noise_estimate(timestamp_ms, rms=LOUD):
    """Loud but without a confident pitch."""
    return PitchEstimate(frequency_hz=None, rms=rms, timestamp_ms=timestamp_ms)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now
