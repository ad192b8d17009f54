"""Defines the collaborator interfaces of the Bass Recall core."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, TYPE_CHECKING

from ..note_types import AudioBlock

if TYPE_CHECKING:
    from ..progress_store import TrainingProgress


class IAudioInput(ABC):
    """Interface for audio input handlers.

    Implementations call the callback from their own thread, once per block.
    """

    @abstractmethod
    def start(self, callback: Callable[[AudioBlock], None]) -> None:
        """Start capturing audio.

        Raises:
            AudioDeviceError: If the device cannot be opened
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio. Returns once no more callbacks will be made."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is running."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate blocks are delivered at."""
        pass


class IProgressStore(ABC):
    """Interface for the persistence collaborator."""

    @abstractmethod
    def load(self) -> "TrainingProgress":
        pass

    @abstractmethod
    def save(self, progress: "TrainingProgress") -> None:
        pass


class IFailureCue(ABC):
    """Audible feedback played when a round fails. Fire-and-forget."""

    @abstractmethod
    def play(self) -> None:
        pass
