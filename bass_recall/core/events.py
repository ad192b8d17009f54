"""Event system for Bass Recall components."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union
from enum import Enum, auto

from ..logger import get_logger

logger = get_logger(__name__)


class DrillEventType(Enum):
    """Event types sent to the presentation collaborator."""

    BLOCK_SNAPSHOT = auto()
    COUNTDOWN_TICK = auto()
    ROUND_ACTIVE = auto()
    DEADLINE_REMAINING = auto()
    CONFIDENCE = auto()
    ROUND_SUCCEEDED = auto()
    ROUND_FAILED = auto()
    SESSION_FINISHED = auto()


@dataclass(frozen=True)
class BlockSnapshot:
    """Per-block display data. Note fields are None when no pitch was found."""

    pitch_class: Optional[int]
    octave: Optional[int]
    cents_offset: Optional[int]
    rms: float
    is_active: bool


@dataclass(frozen=True)
class DrillEvent:
    """One discrete event emitted by the drill core.

    Only the fields relevant to ``type`` are set.
    """

    type: DrillEventType
    timestamp_ms: int
    round_index: int = 0
    target_midi: Optional[int] = None
    detected_midi: Optional[int] = None
    remaining_ms: Optional[int] = None
    countdown: Optional[Union[int, str]] = None
    confidence: Optional[float] = None
    elapsed_s: Optional[float] = None
    timed_out: bool = False
    snapshot: Optional[BlockSnapshot] = None
    result: Any = None  # SessionResult for SESSION_FINISHED


class EventEmitter:
    """Event emitter for Bass Recall components."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Callable) -> None:
        if callback in self._listeners.get(event_type, []):
            self._listeners[event_type].remove(callback)

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        A failing listener is logged with its traceback and the remaining
        listeners still run; listeners are display code and must not be able
        to stop the drill.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        if event_type not in self._listeners:
            return

        for callback in list(self._listeners[event_type]):
            try:
                callback(*args, **kwargs)
            except Exception:
                logger.exception(f"Error in event listener for {event_type}")

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class DrillEvents:
    """Event emitter specifically for drill events."""

    def __init__(self):
        self._emitter = EventEmitter()

    def on(self, event_type: DrillEventType, callback: Callable[[DrillEvent], None]) -> None:
        self._emitter.on(event_type, callback)

    def on_any(self, callback: Callable[[DrillEvent], None]) -> None:
        """Register a callback for every drill event type."""
        for event_type in DrillEventType:
            self._emitter.on(event_type, callback)

    def publish(self, events: List[DrillEvent]) -> None:
        """Emit a batch of events in order."""
        for event in events:
            self._emitter.emit(event.type, event)

    def clear(self) -> None:
        self._emitter.clear()
