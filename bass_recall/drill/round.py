"""Per-round state for the drill and the pure functions that advance it.

A round is an immutable value. ``process_block`` and ``tick`` take the current
round and return the next one together with the events the presentation layer
should see, so a recorded sequence of PitchEstimates can be replayed without
an audio device.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import List, Optional, Tuple

from ..core.config import DrillSettings
from ..core.errors import DrillStateError
from ..core.events import BlockSnapshot, DrillEvent, DrillEventType
from ..detection.onset_guard import GuardState, GuardVerdict, arm_for_new_attack, guard_reading
from ..detection.stability_gate import (
    GateOutcome,
    GateState,
    clear_gate,
    evaluate_reading,
    reset_stability,
)
from ..logger import get_logger
from ..note_types import NoteReading, PitchEstimate, TargetNote
from ..note_utils import frequency_to_note

logger = get_logger(__name__)

RoundUpdate = Tuple["DrillRound", List[DrillEvent]]


class RoundPhase(Enum):
    COUNTDOWN = auto()
    ARMED = auto()  # waiting for a fresh attack after the question changed
    IDLE = auto()
    CONFIRMING = auto()  # stability timer running on a matching note
    SUCCEEDED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (RoundPhase.SUCCEEDED, RoundPhase.FAILED)

    @property
    def is_active(self) -> bool:
        return self in (RoundPhase.ARMED, RoundPhase.IDLE, RoundPhase.CONFIRMING)


@dataclass(frozen=True)
class DrillRound:
    """State of one question."""

    index: int
    target: TargetNote
    phase: RoundPhase = RoundPhase.COUNTDOWN
    started_ms: int = 0
    deadline_ms: int = 0
    guard: GuardState = field(default_factory=GuardState)
    gate: GateState = field(default_factory=GateState)
    detected_midi: Optional[int] = None
    finished_ms: Optional[int] = None
    timed_out: bool = False

    @property
    def stability_accumulator_ms(self) -> int:
        return self.gate.accumulated_ms

    @property
    def succeeded(self) -> bool:
        return self.phase is RoundPhase.SUCCEEDED

    @property
    def elapsed_s(self) -> Optional[float]:
        if self.finished_ms is None:
            return None
        return (self.finished_ms - self.started_ms) / 1000.0

    def remaining_ms(self, now_ms: int) -> int:
        return max(0, self.deadline_ms - now_ms)

    def _event(self, event_type: DrillEventType, timestamp_ms: int, **kwargs) -> DrillEvent:
        return DrillEvent(
            type=event_type,
            timestamp_ms=timestamp_ms,
            round_index=self.index,
            target_midi=self.target.midi,
            **kwargs,
        )


def activate_round(drill_round: DrillRound, now_ms: int, settings: DrillSettings) -> RoundUpdate:
    """End the countdown of a round and start its deadline.

    The guard is armed so that whatever is still ringing from the previous
    question cannot answer this one.
    """
    if drill_round.phase is not RoundPhase.COUNTDOWN:
        raise DrillStateError(f"Round {drill_round.index} already active ({drill_round.phase.name})")

    activated = replace(
        drill_round,
        phase=RoundPhase.ARMED,
        started_ms=now_ms,
        deadline_ms=now_ms + settings.time_limit_ms,
        guard=arm_for_new_attack(drill_round.guard),
        gate=clear_gate(),
    )
    logger.info(f"Round {activated.index + 1}: target {activated.target.name} (MIDI {activated.target.midi})")
    return activated, [
        activated._event(
            DrillEventType.ROUND_ACTIVE,
            now_ms,
            remaining_ms=settings.time_limit_ms,
        )
    ]


def _snapshot(estimate: PitchEstimate, reading: Optional[NoteReading], settings: DrillSettings) -> BlockSnapshot:
    return BlockSnapshot(
        pitch_class=reading.pitch_class if reading else None,
        octave=reading.octave if reading else None,
        cents_offset=reading.cents_offset if reading else None,
        rms=estimate.rms,
        is_active=estimate.rms >= settings.noise_gate_rms,
    )


def _finish(
    drill_round: DrillRound,
    outcome: GateOutcome,
    now_ms: int,
    detected_midi: Optional[int],
    timed_out: bool = False,
) -> RoundUpdate:
    succeeded = outcome is GateOutcome.SUCCESS
    finished = replace(
        drill_round,
        phase=RoundPhase.SUCCEEDED if succeeded else RoundPhase.FAILED,
        detected_midi=detected_midi,
        finished_ms=now_ms,
        timed_out=timed_out,
    )
    event_type = DrillEventType.ROUND_SUCCEEDED if succeeded else DrillEventType.ROUND_FAILED
    logger.info(
        f"Round {finished.index + 1} {'succeeded' if succeeded else 'failed'} "
        f"after {finished.elapsed_s:.2f}s"
        + (" (timeout)" if timed_out else "")
    )
    return finished, [
        finished._event(
            event_type,
            now_ms,
            detected_midi=detected_midi,
            elapsed_s=finished.elapsed_s,
            timed_out=timed_out,
        )
    ]


def process_block(
    drill_round: DrillRound,
    estimate: PitchEstimate,
    settings: DrillSettings,
) -> RoundUpdate:
    """Advance a round by one PitchEstimate.

    Args:
        drill_round: Current round
        estimate: Estimate of the next audio block
        settings: Drill settings

    Returns:
        The next round and the events produced by this block

    Raises:
        DrillStateError: If the round has already ended
    """
    phase = drill_round.phase
    if phase.is_terminal:
        raise DrillStateError(f"Block received for finished round {drill_round.index}")
    if phase is RoundPhase.COUNTDOWN:
        return drill_round, []

    now_ms = estimate.timestamp_ms
    # Captured before activation (countdown or the previous round), still queued
    if now_ms < drill_round.started_ms:
        logger.debug(f"Dropping block from {now_ms}ms, round started at {drill_round.started_ms}ms")
        return drill_round, []

    reading = frequency_to_note(estimate.frequency_hz) if estimate.has_pitch else None
    events = [
        drill_round._event(
            DrillEventType.BLOCK_SNAPSHOT,
            now_ms,
            snapshot=_snapshot(estimate, reading, settings),
        )
    ]

    if now_ms >= drill_round.deadline_ms:
        finished, finish_events = _finish(drill_round, GateOutcome.FAILURE, now_ms, None, timed_out=True)
        return finished, events + finish_events

    guard, verdict = guard_reading(drill_round.guard, estimate, reading, settings)
    gate = drill_round.gate

    if verdict.verdict is GuardVerdict.SILENT:
        return replace(drill_round, guard=guard, gate=clear_gate(), phase=RoundPhase.IDLE), events
    if verdict.verdict is GuardVerdict.SUPPRESSED:
        return replace(drill_round, guard=guard, phase=RoundPhase.ARMED), events
    if verdict.verdict is GuardVerdict.NO_PITCH:
        return replace(drill_round, guard=guard, gate=reset_stability(gate), phase=RoundPhase.IDLE), events

    gate, outcome = evaluate_reading(
        gate, verdict.reading, verdict.decaying, drill_round.target, now_ms, settings
    )
    updated = replace(drill_round, guard=guard, gate=gate)

    if outcome is not None:
        finished, finish_events = _finish(updated, outcome, now_ms, verdict.reading.midi)
        return finished, events + finish_events

    if gate.accumulating:
        events.append(
            updated._event(
                DrillEventType.CONFIDENCE,
                now_ms,
                detected_midi=verdict.reading.midi,
                confidence=gate.confidence,
            )
        )
        return replace(updated, phase=RoundPhase.CONFIRMING), events
    return replace(updated, phase=RoundPhase.IDLE), events


def tick(drill_round: DrillRound, now_ms: int, settings: DrillSettings) -> RoundUpdate:
    """Polled deadline check, called every ``tick_interval_ms``.

    Returns the remaining time as an event, or fails the round by timeout
    with no detected note once the deadline has passed.
    """
    if not drill_round.phase.is_active:
        return drill_round, []

    remaining = drill_round.remaining_ms(now_ms)
    if remaining <= 0:
        return _finish(drill_round, GateOutcome.FAILURE, now_ms, None, timed_out=True)
    return drill_round, [
        drill_round._event(DrillEventType.DEADLINE_REMAINING, now_ms, remaining_ms=remaining)
    ]
