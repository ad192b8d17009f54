import sys
from typing import Optional, TextIO

import pyfiglet

from .core.events import DrillEvent, DrillEventType, DrillEvents
from .logger import get_logger
from .note_types import SessionResult
from .note_utils import NOTE_NAMES, note_name

# Get logger for this module
logger = get_logger(__name__)


class ConsolePresenter:
    """Text presentation of a drill: countdown, big target note, results."""

    def __init__(self, out: Optional[TextIO] = None, show_octave: bool = False, font: str = "standard"):
        self.out = out or sys.stdout
        self.show_octave = show_octave
        self.font = font
        self._last_seconds: Optional[int] = None
        self._last_played: Optional[str] = None

    def attach(self, events: DrillEvents) -> None:
        events.on_any(self.handle)

    def _print(self, text: str = "") -> None:
        print(text, file=self.out, flush=True)

    def handle(self, event: DrillEvent) -> None:
        handler = {
            DrillEventType.COUNTDOWN_TICK: self._countdown,
            DrillEventType.ROUND_ACTIVE: self._round_active,
            DrillEventType.DEADLINE_REMAINING: self._deadline,
            DrillEventType.BLOCK_SNAPSHOT: self._snapshot,
            DrillEventType.ROUND_SUCCEEDED: self._round_succeeded,
            DrillEventType.ROUND_FAILED: self._round_failed,
            DrillEventType.SESSION_FINISHED: self._session_finished,
        }.get(event.type)
        if handler:
            handler(event)

    def _target_label(self, midi: int) -> str:
        return note_name(midi) if self.show_octave else NOTE_NAMES[midi % 12]

    def _countdown(self, event: DrillEvent) -> None:
        self._print(pyfiglet.figlet_format(str(event.countdown), font=self.font))

    def _round_active(self, event: DrillEvent) -> None:
        self._last_seconds = None
        self._last_played = None
        self._print(f"Question {event.round_index + 1} - play this note:")
        self._print(pyfiglet.figlet_format(self._target_label(event.target_midi), font=self.font))

    def _deadline(self, event: DrillEvent) -> None:
        seconds = -(-event.remaining_ms // 1000)  # ceil
        if seconds != self._last_seconds:
            self._last_seconds = seconds
            self._print(f"  {seconds}s left")

    def _snapshot(self, event: DrillEvent) -> None:
        snapshot = event.snapshot
        if snapshot is None or snapshot.pitch_class is None or not snapshot.is_active:
            return
        played = f"{NOTE_NAMES[snapshot.pitch_class]}{snapshot.octave}"
        if played != self._last_played:
            self._last_played = played
            self._print(f"  You played: {played} ({snapshot.cents_offset:+d} cents)")

    def _round_succeeded(self, event: DrillEvent) -> None:
        self._print(f"  Correct! {event.elapsed_s:.2f}s")

    def _round_failed(self, event: DrillEvent) -> None:
        if event.timed_out:
            self._print(f"  Time's up, it was {self._target_label(event.target_midi)}")
        else:
            self._print(
                f"  Wrong note {note_name(event.detected_midi)}, "
                f"it was {self._target_label(event.target_midi)}"
            )

    def _session_finished(self, event: DrillEvent) -> None:
        self.show_stats(event.result)

    def show_stats(self, result: SessionResult) -> None:
        """Show session statistics"""
        self._print("\n===== Session Results =====")
        if result.title:
            self._print(result.title)
        self._print(f"Score: {result.score}")
        self._print(f"Accuracy: {result.accuracy:.1f}%")
        self._print(f"Average time per note: {result.avg_time:.2f} seconds")
        if result.failed_notes:
            self._print(f"Missed notes: {', '.join(result.failed_notes)}")
        self._print("\nThank you for playing!")
