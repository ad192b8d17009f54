"""Type definitions for the Bass Recall project."""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np


@dataclass(frozen=True)
class FretPosition:
    """Represents a position on the bass fretboard."""

    string: int  # String index (0=G, 1=D, 2=A, 3=E, 4=low B)
    fret: int  # Fret number (0 for open string)
    midi: int
    string_name: str = ""
    note_name: str = ""

    @property
    def key(self) -> str:
        """Key used for the mastery map, e.g. 's3f5'."""
        return f"s{self.string}f{self.fret}"

    def __str__(self):
        return f"S{self.string}F{self.fret}"


@dataclass(frozen=True, eq=False)
class AudioBlock:
    """A fixed-length block of mono samples normalized to [-1, 1]."""

    samples: np.ndarray
    sample_rate: int
    timestamp_ms: int  # monotonic clock, not wall clock

    def __len__(self):
        return len(self.samples)


@dataclass(frozen=True)
class PitchEstimate:
    """Result of running the signal processor over one AudioBlock."""

    frequency_hz: Optional[float]  # None when no confident periodicity was found
    rms: float
    timestamp_ms: int

    @property
    def has_pitch(self) -> bool:
        return self.frequency_hz is not None


@dataclass(frozen=True)
class NoteReading:
    """A frequency mapped onto the equal-tempered scale."""

    pitch_class: int  # 0=C .. 11=B
    octave: int
    midi: int
    cents_offset: int  # truncated toward -inf, see note_utils.frequency_to_note
    frequency_hz: float = 0.0


@dataclass(frozen=True)
class TargetNote:
    """The note the current round requires."""

    midi: int
    name: str  # pitch class name, e.g. 'F#'
    position: Optional[FretPosition] = None  # set for position-based drills

    @property
    def pitch_class(self) -> int:
        return self.midi % 12


@dataclass
class FretboardMasteryRecord:
    """Accumulated results for one (string, fret) position."""

    attempts: int = 0
    corrects: int = 0
    total_time_sec: float = 0.0
    last_attempt_epoch_ms: int = 0

    @property
    def accuracy(self) -> float:
        return self.corrects / self.attempts if self.attempts else 0.0

    @property
    def avg_time_sec(self) -> float:
        return self.total_time_sec / self.attempts if self.attempts else 0.0


@dataclass
class SRSTaskProgress:
    """Spaced-repetition state of one curriculum task."""

    level: int = 0
    next_review_epoch_ms: int = 0


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one round inside a session."""

    correct: bool
    time_sec: float
    note: str
    detected_midi: Optional[int] = None


@dataclass
class SessionResult:
    """Aggregate of a finished session, handed to the persistence collaborator."""

    date: str  # ISO-8601 wall-clock date
    score: float
    accuracy: float  # percent
    avg_time: float  # seconds
    program_id: str = "free"
    day: Optional[int] = None
    title: str = ""
    failed_notes: List[str] = field(default_factory=list)
