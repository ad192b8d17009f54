import logging
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Optional, Tuple

from ..core.config import DrillSettings
from ..note_types import NoteReading, TargetNote
from ..note_utils import validate_note

logger = logging.getLogger(__name__)


class GateOutcome(Enum):
    SUCCESS = auto()
    FAILURE = auto()


@dataclass(frozen=True)
class GateState:
    stability_started_ms: Optional[int] = None
    lockout_started_ms: Optional[int] = None
    accumulated_ms: int = 0
    confidence: float = 0.0  # 0-100, how far through the stability window

    @property
    def accumulating(self) -> bool:
        return self.stability_started_ms is not None


def clear_gate() -> GateState:
    """Silence: drop both the stability and the lockout timer."""
    return GateState()


def reset_stability(state: GateState) -> GateState:
    """A loud block without pitch breaks accumulation but not the lockout."""
    return replace(state, stability_started_ms=None, accumulated_ms=0, confidence=0.0)


def evaluate_reading(
    state: GateState,
    reading: NoteReading,
    decaying: bool,
    target: TargetNote,
    now_ms: int,
    settings: DrillSettings,
) -> Tuple[GateState, Optional[GateOutcome]]:
    """
    Feed one forwarded reading through the gate.

    A matching note must hold for the stability window to succeed. A wrong
    note resets accumulation and, unless multiple attempts are allowed, fails
    the round once it has persisted past the lockout. Decaying readings may
    keep a running timer going but never start one.
    """
    window = settings.effective_stability_ms

    if validate_note(reading.midi, target.midi, settings.strict_octave):
        if state.stability_started_ms is None:
            if decaying:
                return state, None
            logger.debug(f"Stability started on MIDI {reading.midi} at {now_ms}ms")
            return (
                replace(state, stability_started_ms=now_ms, lockout_started_ms=None, accumulated_ms=0),
                None,
            )

        elapsed = now_ms - state.stability_started_ms
        state = replace(
            state,
            accumulated_ms=elapsed,
            confidence=min(100.0, elapsed / window * 100.0),
        )
        if elapsed >= window:
            return state, GateOutcome.SUCCESS
        return state, None

    state = replace(state, stability_started_ms=None, accumulated_ms=0, confidence=0.0)
    if settings.allow_multiple_attempts:
        return state, None

    if state.lockout_started_ms is None:
        if decaying:
            # mute artifacts are not wrong answers
            return state, None
        return replace(state, lockout_started_ms=now_ms), None

    if now_ms - state.lockout_started_ms > settings.wrong_note_lockout_ms:
        logger.debug(f"Wrong note MIDI {reading.midi} held past lockout")
        return state, GateOutcome.FAILURE
    return state, None
