"""Live audio input from a sound card using sounddevice."""

from __future__ import annotations
from typing import Any, Callable, ClassVar, Dict, List, Optional

import numpy as np
import sounddevice as sd

from ..core.clock import monotonic_ms
from ..core.errors import AudioDeviceError, AudioDeviceErrorKind, classify_device_error
from ..core.interfaces import IAudioInput
from ..logger import get_logger
from ..note_types import AudioBlock

logger = get_logger(__name__)


class SoundDeviceInput(IAudioInput):
    """Audio input handler using sounddevice library.

    Blocks are copied out of the PortAudio buffer and handed to the callback
    on the audio thread, stamped with a monotonic clock.
    """

    # Audio configuration
    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 2048
    CHANNELS: ClassVar[int] = 1  # Mono audio

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        channels: Optional[int] = None,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        """Initialize the audio input handler.

        Args:
            device_id: Audio input device ID, or None for the system default
            sample_rate: Sample rate in Hz, or None for default (44100)
            frames_per_buffer: Block size in frames, or None for default (2048)
            channels: Number of channels to open; only the first one is used
            clock: Monotonic millisecond clock used to stamp blocks
        """
        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._channels = channels or self.CHANNELS
        self._clock = clock

        self._stream = None
        self._callback: Optional[Callable[[AudioBlock], None]] = None
        self._running = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def device_id(self) -> Optional[int]:
        """The device actually in use; None after falling back to the default."""
        return self._device_id

    def is_running(self) -> bool:
        return self._running

    def _open_stream(self, device_id: Optional[int]):
        stream = sd.InputStream(
            device=device_id,
            samplerate=self._sample_rate,
            blocksize=self._frames_per_buffer,
            channels=self._channels,
            dtype="float32",
            callback=self._audio_callback,
        )
        try:
            stream.start()
        except Exception:
            stream.close()
            raise
        return stream

    def start(self, callback: Callable[[AudioBlock], None]) -> None:
        """Start capturing audio and pass each block to the callback.

        If the selected device cannot satisfy the requested sample rate or
        channel count, the default device is tried once.

        Raises:
            AudioDeviceError: If no stream could be opened
        """
        if self._running:
            logger.warning("Audio input already running")
            return

        self._callback = callback
        device_id = self._device_id
        try:
            self._stream = self._open_stream(device_id)
        except Exception as e:
            kind = classify_device_error(e)
            if kind is not AudioDeviceErrorKind.DEVICE_OVERCONSTRAINED or device_id is None:
                logger.error(f"Could not open audio device {device_id}: {e}")
                raise AudioDeviceError(kind, str(e), device_id) from e

            logger.warning(f"Device {device_id} rejected {self._sample_rate} Hz: {e}; trying default device")
            try:
                self._stream = self._open_stream(None)
            except Exception as retry_error:
                logger.error(f"Default audio device failed too: {retry_error}")
                raise AudioDeviceError(
                    classify_device_error(retry_error), str(retry_error), None
                ) from retry_error
            self._device_id = None

        self._running = True
        logger.info(
            f"Audio input started: device={self._device_id}, "
            f"rate={self._sample_rate} Hz, block={self._frames_per_buffer}"
        )

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info: Any,
        status: sd.CallbackFlags,
    ) -> None:
        """Callback for processing audio data from the input stream.

        Note:
            This is called from a separate audio thread, so it should be fast
            and avoid any blocking operations to prevent audio glitches.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")

        if self._callback:
            # PortAudio reuses indata, so the first channel is copied out
            samples = np.array(indata[:, 0] if indata.ndim > 1 else indata, dtype=np.float32)
            self._callback(AudioBlock(samples, self._sample_rate, self._clock()))

    def stop(self) -> None:
        """Stop capturing audio. Pending callbacks finish before this returns."""
        if not self._running:
            return

        stream, self._stream = self._stream, None
        self._running = False
        if stream is not None:
            stream.stop()
            stream.close()
        logger.info("Audio input stopped")


def list_input_devices() -> List[Dict[str, Any]]:
    """Input-capable devices as dicts with ``id``, ``name``, ``channels`` and ``default_samplerate``."""
    devices = []
    for i, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            devices.append(
                {
                    "id": i,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "default_samplerate": device["default_samplerate"],
                }
            )
    return devices


def print_device_report(sample_rates=(22050, 44100, 48000, 96000)) -> None:
    """Print information about input devices and which sample rates they accept."""
    print("Available input devices:")
    print("-" * 70)

    for device in list_input_devices():
        print(f"Device {device['id']}: {device['name']}")
        print(f"  Max input channels: {device['channels']}")
        print(f"  Default sample rate: {device['default_samplerate']} Hz")
        for rate in sample_rates:
            try:
                sd.check_input_settings(device=device["id"], samplerate=rate, channels=1)
                print(f"    {rate} Hz: Supported")
            except Exception as e:
                print(f"    {rate} Hz: Not supported ({e})")
        print()

    print(f"Default input device: {sd.default.device[0]}")
