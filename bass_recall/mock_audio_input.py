from typing import Callable, Optional

from .core.interfaces import IAudioInput
from .note_types import AudioBlock


class MockAudioInput(IAudioInput):
    """A mock audio input for unit tests. Blocks are pushed in by hand with feed()."""

    def __init__(self, sample_rate: int = 44100, start_error: Optional[Exception] = None):
        self.callback: Optional[Callable[[AudioBlock], None]] = None
        self.running = False
        self.start_calls = 0
        self.stop_calls = 0
        self._sample_rate = sample_rate
        self._start_error = start_error

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def start(self, callback):
        self.start_calls += 1
        if self._start_error is not None:
            raise self._start_error
        self.callback = callback
        self.running = True

    def stop(self):
        self.stop_calls += 1
        self.running = False

    def is_running(self) -> bool:
        return self.running

    def feed(self, block: AudioBlock) -> None:
        """Deliver a block as if it came from the audio thread."""
        if self.running and self.callback:
            self.callback(block)
