"""Onset/sustain guard.

The signal processor looks at one block at a time, but a bass note rings for
seconds. Without memory across blocks the tail of the previous answer, or the
thud of muting it, would be read as the answer to the next question. The
guard trades a few ignored blocks right after a question change for never
auto-advancing on sustain.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Optional, Tuple

from ..core.config import DrillSettings
from ..logger import get_logger
from ..note_types import NoteReading, PitchEstimate

logger = get_logger(__name__)


class GuardVerdict(Enum):
    SILENT = auto()  # below the noise gate, all memory cleared
    SUPPRESSED = auto()  # waiting for a new attack after a question change
    NO_PITCH = auto()  # loud enough but no confident pitch
    FORWARD = auto()  # reading passed on to the stability gate


@dataclass(frozen=True)
class GuardState:
    """Memory carried from block to block, and across question changes."""

    waiting_for_new_attack: bool = False
    last_accepted_midi: Optional[int] = None  # note ringing at the last transition
    previous_rms: float = 0.0
    last_seen_midi: Optional[int] = None  # most recent pitched block


@dataclass(frozen=True)
class GuardResult:
    verdict: GuardVerdict
    reading: Optional[NoteReading] = None
    # RMS fell sharply relative to the previous block; the stability gate
    # refuses to start an accumulator on such a reading
    decaying: bool = False

    @property
    def forwarded(self) -> bool:
        return self.verdict is GuardVerdict.FORWARD


def arm_for_new_attack(state: GuardState) -> GuardState:
    """Called when a new question begins.

    Whatever was sounding at the transition must not satisfy the new target
    until a fresh pluck or a pitch change is seen.
    """
    return replace(
        state,
        waiting_for_new_attack=True,
        last_accepted_midi=state.last_seen_midi,
    )


def guard_reading(
    state: GuardState,
    estimate: PitchEstimate,
    reading: Optional[NoteReading],
    settings: DrillSettings,
) -> Tuple[GuardState, GuardResult]:
    """Decide whether one block's reading may reach the stability gate.

    Args:
        state: Guard memory from the previous block
        estimate: Pitch estimate of the current block
        reading: The estimate mapped to a note, None without a pitch
        settings: Thresholds and ratios

    Returns:
        The new guard state and the verdict for this block
    """
    prev_rms = state.previous_rms
    rms = estimate.rms
    last_seen = reading.midi if reading is not None else state.last_seen_midi
    state = replace(state, previous_rms=rms, last_seen_midi=last_seen)

    if rms < settings.noise_gate_rms:
        # Silence: whatever comes next is unambiguously a new note
        return GuardState(previous_rms=rms), GuardResult(GuardVerdict.SILENT)

    if state.waiting_for_new_attack:
        is_new_attack = rms > prev_rms * settings.attack_ratio
        pitch_shifted = (
            reading is not None
            and state.last_accepted_midi is not None
            and abs(reading.midi - state.last_accepted_midi) > settings.pitch_shift_semitones
        )
        if not (is_new_attack or pitch_shifted):
            return state, GuardResult(GuardVerdict.SUPPRESSED, reading)
        logger.debug(
            f"New attack detected (rms {prev_rms:.4f} -> {rms:.4f}, "
            f"shifted={pitch_shifted})"
        )
        state = replace(state, waiting_for_new_attack=False)

    if reading is None:
        return state, GuardResult(GuardVerdict.NO_PITCH)

    decaying = rms < prev_rms * settings.decay_ratio
    return state, GuardResult(GuardVerdict.FORWARD, reading, decaying)
