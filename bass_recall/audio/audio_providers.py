"""WAV file replay in place of a live input device."""

import threading
import time
from typing import Callable, Iterator, Optional

import numpy as np
import soundfile as sf

from ..core.interfaces import IAudioInput
from ..logger import get_logger
from ..note_types import AudioBlock

logger = get_logger(__name__)


def iter_blocks(
    file_path: str,
    block_size: int,
    start_ms: int = 0,
    gain: float = 1.0,
) -> Iterator[AudioBlock]:
    """Yield fixed-size mono blocks from an audio file.

    Timestamps advance by exactly one block period from ``start_ms``, so a
    replay through the drill is deterministic. The last block is zero padded.
    Multi-channel files are reduced to their first channel.
    """
    sample_rate = sf.info(file_path).samplerate
    for index, data in enumerate(
        sf.blocks(file_path, blocksize=block_size, dtype="float32", always_2d=True, fill_value=0.0)
    ):
        samples = np.ascontiguousarray(data[:, 0])
        if gain != 1.0:
            samples = samples * gain
        timestamp_ms = start_ms + int(index * block_size * 1000 / sample_rate)
        yield AudioBlock(samples, sample_rate, timestamp_ms)


class WavFileAudioProvider(IAudioInput):
    """Provides audio blocks by reading from a WAV file on a worker thread."""

    def __init__(
        self,
        file_path: str,
        chunk_size: int,
        loop: bool = False,
        gain: float = 1.0,
        realtime: bool = True,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            file_path: Audio file readable by soundfile
            chunk_size: Block size in frames
            loop: Start over at the end of the file
            gain: Factor applied to every sample
            realtime: Sleep one block period between blocks
            clock: Millisecond clock for block timestamps; None stamps blocks
                with their position in the file
        """
        self._file_path = file_path
        self._chunk_size = chunk_size
        self._loop = loop
        self._gain = gain
        self._realtime = realtime
        self._clock = clock
        self._on_block: Optional[Callable[[AudioBlock], None]] = None
        self._is_running = False
        self._thread: Optional[threading.Thread] = None

        self._sample_rate = sf.info(self._file_path).samplerate

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def is_running(self) -> bool:
        """Returns True if the provider is currently streaming data."""
        return self._is_running

    def start(self, callback: Callable[[AudioBlock], None]) -> None:
        if self._is_running:
            return

        self._on_block = callback
        self._is_running = True
        self._thread = threading.Thread(target=self._stream_data, name="wav-replay", daemon=True)
        self._thread.start()
        logger.info(f"Replaying {self._file_path} at {self._sample_rate} Hz")

    def stop(self) -> None:
        self._is_running = False
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the file has been fully replayed."""
        if self._thread:
            self._thread.join(timeout)

    def _stream_data(self) -> None:
        period_s = self._chunk_size / self._sample_rate
        offset_ms = 0
        try:
            while self._is_running:
                last_ms = offset_ms
                for block in iter_blocks(self._file_path, self._chunk_size, offset_ms, self._gain):
                    if not self._is_running:
                        break
                    if self._clock is not None:
                        block = AudioBlock(block.samples, block.sample_rate, self._clock())
                    if self._on_block:
                        self._on_block(block)
                    last_ms = block.timestamp_ms
                    # Simulate real-time playback speed
                    if self._realtime:
                        time.sleep(period_s)

                if not self._loop:
                    break
                offset_ms = last_ms + int(period_s * 1000)
        except (OSError, sf.LibsndfileError):
            logger.exception(f"Error streaming WAV file {self._file_path}")
        finally:
            self._is_running = False  # Ensure flag is reset on exit
