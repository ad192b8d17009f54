"""A drill session: countdown, a list of rounds, scoring and session end."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Callable, List, Optional, Sequence, Union

from ..core.clock import wall_clock_ms
from ..core.config import DrillSettings
from ..core.errors import DrillStateError
from ..core.events import DrillEvent, DrillEventType
from ..core.interfaces import IFailureCue
from ..logger import get_logger
from ..note_types import (
    AttemptResult,
    FretboardMasteryRecord,
    FretPosition,
    PitchEstimate,
    SessionResult,
    TargetNote,
)
from ..note_utils import pitch_class_name
from ..progress_store import TrainingProgress
from ..scheduling.srs import task_key, update_srs
from .round import DrillRound, activate_round, process_block, tick as tick_round

logger = get_logger(__name__)

FREE_PROGRAM = "free"
COUNTDOWN_STEPS: Sequence[Union[int, str]] = (3, 2, 1, "GO")


class SessionPhase(Enum):
    READY = auto()
    COUNTDOWN = auto()
    ACTIVE = auto()
    FINISHED = auto()
    ABORTED = auto()


@dataclass
class SessionPlan:
    """What a session asks and how its result is filed."""

    targets: List[TargetNote]
    title: str = ""
    program_id: str = FREE_PROGRAM
    day: Optional[int] = None
    # Sequence drills (scales) end at the first failure
    sequence: bool = False

    @property
    def is_curriculum(self) -> bool:
        return self.program_id != FREE_PROGRAM and self.day is not None


def targets_from_positions(positions: Sequence[FretPosition]) -> List[TargetNote]:
    return [TargetNote(midi=pos.midi, name=pitch_class_name(pos.midi), position=pos) for pos in positions]


def targets_from_midi(midi_numbers: Sequence[int]) -> List[TargetNote]:
    return [TargetNote(midi=midi, name=pitch_class_name(midi)) for midi in midi_numbers]


class DrillSession:
    """Runs the rounds of one session against a stream of PitchEstimates.

    All timestamps passed in are monotonic milliseconds. Wall-clock time is
    only read for mastery records and the session date.
    """

    def __init__(
        self,
        plan: SessionPlan,
        settings: DrillSettings,
        progress: TrainingProgress,
        failure_cue: Optional[IFailureCue] = None,
        wall_clock: Callable[[], int] = wall_clock_ms,
    ):
        if not plan.targets:
            raise ValueError("A session needs at least one target")

        self.plan = plan
        self.settings = settings
        self.progress = progress
        self.failure_cue = failure_cue
        self.wall_clock = wall_clock

        self.phase = SessionPhase.READY
        self.current_round: Optional[DrillRound] = None
        self.results: List[AttemptResult] = []
        self.score = 0.0
        self.missed_notes: List[str] = []
        self.result: Optional[SessionResult] = None

        self._countdown_started_ms = 0
        self._countdown_shown = 0

    @property
    def is_finished(self) -> bool:
        return self.phase in (SessionPhase.FINISHED, SessionPhase.ABORTED)

    @property
    def corrects(self) -> int:
        return sum(1 for r in self.results if r.correct)

    def start(self, now_ms: int) -> List[DrillEvent]:
        """Begin the ready countdown."""
        if self.phase is not SessionPhase.READY:
            raise DrillStateError(f"Session already started ({self.phase.name})")

        logger.info(
            f"Starting session '{self.plan.title or self.plan.program_id}' "
            f"with {len(self.plan.targets)} targets"
        )
        self.phase = SessionPhase.COUNTDOWN
        self.current_round = DrillRound(index=0, target=self.plan.targets[0])
        self._countdown_started_ms = now_ms
        self._countdown_shown = 0
        return self._countdown_events(now_ms)

    def handle_estimate(self, estimate: PitchEstimate) -> List[DrillEvent]:
        """Feed one block's estimate into the current round.

        Estimates arriving during the countdown, or stamped before the current
        round became active, are ignored.

        Raises:
            DrillStateError: If the session has not started or is over
        """
        if self.phase in (SessionPhase.READY, SessionPhase.FINISHED, SessionPhase.ABORTED):
            raise DrillStateError(f"Estimate received in {self.phase.name} session")
        if self.phase is SessionPhase.COUNTDOWN:
            return []

        self.current_round, events = process_block(self.current_round, estimate, self.settings)
        if self.current_round.phase.is_terminal:
            events += self._complete_round(estimate.timestamp_ms)
        return events

    def tick(self, now_ms: int) -> List[DrillEvent]:
        """Polled timer step: countdown progress and the round deadline."""
        if self.phase is SessionPhase.COUNTDOWN:
            events = self._countdown_events(now_ms)
            if now_ms - self._countdown_started_ms >= len(COUNTDOWN_STEPS) * self.settings.countdown_step_ms:
                self.phase = SessionPhase.ACTIVE
                self.current_round, activated = activate_round(self.current_round, now_ms, self.settings)
                events += activated
            return events

        if self.phase is not SessionPhase.ACTIVE:
            return []

        self.current_round, events = tick_round(self.current_round, now_ms, self.settings)
        if self.current_round.phase.is_terminal:
            events += self._complete_round(now_ms)
        return events

    def abort(self) -> None:
        """Drop the in-flight round. Rounds already completed stay recorded."""
        if self.is_finished:
            return
        logger.info(f"Session aborted after {len(self.results)} rounds")
        self.phase = SessionPhase.ABORTED
        self.current_round = None

    def _countdown_events(self, now_ms: int) -> List[DrillEvent]:
        due = min(
            len(COUNTDOWN_STEPS),
            (now_ms - self._countdown_started_ms) // self.settings.countdown_step_ms + 1,
        )
        events = []
        while self._countdown_shown < due:
            events.append(
                DrillEvent(
                    type=DrillEventType.COUNTDOWN_TICK,
                    timestamp_ms=now_ms,
                    target_midi=self.plan.targets[0].midi,
                    countdown=COUNTDOWN_STEPS[self._countdown_shown],
                )
            )
            self._countdown_shown += 1
        return events

    def _complete_round(self, now_ms: int) -> List[DrillEvent]:
        finished = self.current_round
        target = finished.target
        settings = self.settings

        if finished.succeeded:
            time_sec = finished.elapsed_s
            self.score += 1.0
            if time_sec < settings.fast_answer_s:
                self.score += settings.speed_bonus
        else:
            time_sec = settings.time_limit_s
            if target.name not in self.missed_notes:
                self.missed_notes.append(target.name)
            if self.failure_cue is not None:
                self.failure_cue.play()

        self.results.append(
            AttemptResult(
                correct=finished.succeeded,
                time_sec=time_sec,
                note=target.name,
                detected_midi=finished.detected_midi,
            )
        )
        if target.position is not None:
            self._update_mastery(target.position, finished.succeeded, time_sec)

        next_index = finished.index + 1
        if (self.plan.sequence and not finished.succeeded) or next_index >= len(self.plan.targets):
            return self._finish(now_ms)

        next_round = DrillRound(
            index=next_index,
            target=self.plan.targets[next_index],
            guard=finished.guard,
        )
        self.current_round, events = activate_round(next_round, now_ms, settings)
        return events

    def _update_mastery(self, position: FretPosition, correct: bool, time_sec: float) -> None:
        record = self.progress.mastery.setdefault(position.key, FretboardMasteryRecord())
        record.attempts += 1
        if correct:
            record.corrects += 1
        record.total_time_sec += time_sec
        record.last_attempt_epoch_ms = self.wall_clock()

    def _finish(self, now_ms: int) -> List[DrillEvent]:
        total = len(self.plan.targets)
        accuracy = self.corrects / total * 100.0
        avg_time = sum(r.time_sec for r in self.results) / len(self.results) if self.results else 0.0
        wall_ms = self.wall_clock()

        result = SessionResult(
            date=datetime.fromtimestamp(wall_ms / 1000.0, tz=timezone.utc).isoformat(),
            score=round(self.score, 1),
            accuracy=accuracy,
            avg_time=avg_time,
            program_id=self.plan.program_id,
            day=self.plan.day,
            title=self.plan.title,
            failed_notes=list(self.missed_notes),
        )
        self.progress.history.append(result)

        if self.plan.is_curriculum and self.settings.srs_enabled:
            update_srs(
                self.progress.srs,
                task_key(self.plan.program_id, self.plan.day),
                accuracy,
                self.settings.min_unlock_accuracy,
                wall_ms,
            )

        self.phase = SessionPhase.FINISHED
        self.current_round = None
        self.result = result
        logger.info(
            f"Session finished: {self.corrects}/{total} correct, "
            f"accuracy {accuracy:.1f}%, score {result.score}, avg {avg_time:.2f}s"
        )
        return [DrillEvent(type=DrillEventType.SESSION_FINISHED, timestamp_ms=now_ms, result=result)]
