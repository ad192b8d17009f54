"""Error types for Bass Recall."""

from enum import Enum, auto
from typing import Optional


class AudioDeviceErrorKind(Enum):
    """Why an audio input device could not be opened."""

    PERMISSION_DENIED = auto()
    DEVICE_NOT_FOUND = auto()
    DEVICE_OVERCONSTRAINED = auto()
    UNKNOWN = auto()


class AudioDeviceError(Exception):
    """Raised when the audio input collaborator cannot deliver blocks."""

    def __init__(
        self,
        kind: AudioDeviceErrorKind,
        message: str,
        device_id: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.device_id = device_id

    def __str__(self):
        return f"{self.kind.name}: {self.args[0]} (device={self.device_id})"


class DrillStateError(RuntimeError):
    """An impossible drill state transition. Always a programming error."""


_PERMISSION_MARKERS = ("permission", "access denied", "not authorized", "not permitted")
_NOT_FOUND_MARKERS = (
    "invalid device",
    "no such device",
    "device unavailable",
    "no input device",
    "error querying device",
    "no default input device",
)
_OVERCONSTRAINED_MARKERS = (
    "invalid sample rate",
    "invalid number of channels",
    "sample format not supported",
    "incompatible host api",
    "bad i/o device",
)


def classify_device_error(exc: BaseException) -> AudioDeviceErrorKind:
    """Map a sounddevice/PortAudio exception onto an AudioDeviceErrorKind.

    PortAudio only reports errors as text (e.g. "Invalid sample rate
    [PaErrorCode -9997]"), so the message is what gets inspected.
    """
    message = str(exc).lower()
    if isinstance(exc, PermissionError) or any(m in message for m in _PERMISSION_MARKERS):
        return AudioDeviceErrorKind.PERMISSION_DENIED
    if any(m in message for m in _OVERCONSTRAINED_MARKERS):
        return AudioDeviceErrorKind.DEVICE_OVERCONSTRAINED
    # sounddevice raises ValueError when a device index or name cannot be resolved
    if isinstance(exc, ValueError) or any(m in message for m in _NOT_FOUND_MARKERS):
        return AudioDeviceErrorKind.DEVICE_NOT_FOUND
    return AudioDeviceErrorKind.UNKNOWN
