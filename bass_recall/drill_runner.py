"""Runs a DrillSession against a live audio input.

The audio thread only runs the signal processor and queues the resulting
PitchEstimates. All session state is touched from the thread that calls
``process_events`` and ``tick``, usually through ``run``.
"""

import queue
import time
from typing import Callable, List, Optional

from .core.clock import monotonic_ms
from .core.config import DrillSettings
from .core.errors import DrillStateError
from .core.events import DrillEvent, DrillEvents
from .core.interfaces import IAudioInput, IProgressStore
from .detection.yin import SignalProcessor
from .drill.session import DrillSession
from .logger import get_logger
from .note_types import AudioBlock, PitchEstimate

# Get logger for this module
logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 64


class DrillRunner:
    """Owns the audio input, the handoff queue and the polled timers of a session."""

    def __init__(
        self,
        audio_input: IAudioInput,
        processor: SignalProcessor,
        settings: DrillSettings,
        store: Optional[IProgressStore] = None,
        events: Optional[DrillEvents] = None,
        clock: Callable[[], int] = monotonic_ms,
        sleep: Callable[[float], None] = time.sleep,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self.audio_input = audio_input
        self.processor = processor
        self.settings = settings
        self.store = store
        self.events = events or DrillEvents()
        self.clock = clock
        self.sleep = sleep
        self.event_queue: "queue.Queue[PitchEstimate]" = queue.Queue(maxsize=queue_size)
        self.session: Optional[DrillSession] = None
        self.dropped_blocks = 0
        self._closed = False

    @property
    def is_done(self) -> bool:
        return self.session is None or self.session.is_finished

    def start(self, session: DrillSession) -> None:
        """Open the audio input and begin the session countdown.

        Raises:
            DrillStateError: If the previous session's audio is still live, or
                the session was already started
            AudioDeviceError: If the audio input could not be started
        """
        if self.audio_input.is_running():
            raise DrillStateError("Previous audio session is still running")

        self._drain_queue()
        self.dropped_blocks = 0
        self._closed = False
        self.session = session

        # Device errors surface here, before any countdown is shown
        self.audio_input.start(self._on_block)
        try:
            events = session.start(self.clock())
        except DrillStateError:
            # Never leave the device open behind a session that did not start
            self.audio_input.stop()
            self._drain_queue()
            self.session = None
            raise
        self._publish(events)

    def _on_block(self, block: AudioBlock) -> None:
        """Audio-thread callback. Must not block and must not touch the session."""
        estimate = self.processor.process(block)
        try:
            self.event_queue.put_nowait(estimate)
        except queue.Full:
            self.dropped_blocks += 1
            logger.warning(f"Estimate queue full, dropped block at {block.timestamp_ms}ms")

    def process_events(self) -> None:
        """Process queued estimates. Should be called from the main loop."""
        while self.session is not None and not self.session.is_finished:
            try:
                estimate = self.event_queue.get_nowait()
            except queue.Empty:
                break
            self._publish(self.session.handle_estimate(estimate))
        self._finish_if_done()

    def tick(self) -> None:
        """Advance the countdown and deadline timers to the current time."""
        if self.session is None or self.session.is_finished:
            return
        self._publish(self.session.tick(self.clock()))
        self._finish_if_done()

    def run(self) -> None:
        """Poll until the session finishes or is aborted."""
        if self.session is None:
            raise DrillStateError("run() called before start()")

        interval_s = self.settings.tick_interval_ms / 1000.0
        while not self.session.is_finished:
            self.process_events()
            self.tick()
            if not self.session.is_finished:
                self.sleep(interval_s)

    def abort(self) -> None:
        """Stop audio now and discard the in-flight round. Nothing is persisted."""
        self._closed = True
        self.audio_input.stop()
        self._drain_queue()
        if self.session is not None:
            self.session.abort()

    def _finish_if_done(self) -> None:
        session = self.session
        if session is None or not session.is_finished or self._closed:
            return
        self._closed = True
        if self.audio_input.is_running():
            self.audio_input.stop()
        self._drain_queue()
        if self.dropped_blocks:
            logger.warning(f"{self.dropped_blocks} blocks were dropped during the session")
        if session.result is not None and self.store is not None:
            self.store.save(session.progress)

    def _drain_queue(self) -> None:
        while True:
            try:
                self.event_queue.get_nowait()
            except queue.Empty:
                break

    def _publish(self, events: List[DrillEvent]) -> None:
        if events:
            self.events.publish(events)
