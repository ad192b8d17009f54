"""Spaced repetition for curriculum tasks and task unlocking."""

from typing import Iterable, List, Mapping, MutableMapping, Optional

from ..logger import get_logger
from ..note_types import SessionResult, SRSTaskProgress

logger = get_logger(__name__)

# Days until the next review, indexed by level
INTERVAL_DAYS: List[int] = [0, 1, 3, 7, 14, 30]
MAX_LEVEL = len(INTERVAL_DAYS) - 1
MS_PER_DAY = 24 * 60 * 60 * 1000


def task_key(program_id: str, day: int) -> str:
    """Key of a curriculum task in the SRS map, e.g. 'fretboard-mastery-day3'."""
    return f"{program_id}-day{day}"


def next_level(level: int, passed: bool) -> int:
    """One level up on a pass, one down on a fail, clamped to [0, MAX_LEVEL]."""
    if passed:
        return min(MAX_LEVEL, level + 1)
    return max(0, level - 1)


def update_srs(
    progress: MutableMapping[str, SRSTaskProgress],
    key: str,
    accuracy: float,
    min_unlock_accuracy: float,
    now_epoch_ms: int,
) -> SRSTaskProgress:
    """Record one completed attempt of a task and schedule its next review.

    Args:
        progress: SRS map, updated in place
        key: Task key from ``task_key``
        accuracy: Session accuracy in percent
        min_unlock_accuracy: Accuracy in percent that counts as a pass
        now_epoch_ms: Current wall-clock time in epoch milliseconds

    Returns:
        The updated task progress
    """
    current = progress.get(key, SRSTaskProgress())
    passed = accuracy >= min_unlock_accuracy
    level = next_level(current.level, passed)
    updated = SRSTaskProgress(
        level=level,
        next_review_epoch_ms=now_epoch_ms + INTERVAL_DAYS[level] * MS_PER_DAY,
    )
    progress[key] = updated
    logger.info(
        f"SRS {key}: {'pass' if passed else 'fail'} at {accuracy:.1f}%, "
        f"level {current.level} -> {level}, next review in {INTERVAL_DAYS[level]} days"
    )
    return updated


def is_due(task: Optional[SRSTaskProgress], now_epoch_ms: int) -> bool:
    """A task is due once its review time has come. Never-reviewed tasks are not due."""
    if task is None or task.next_review_epoch_ms <= 0:
        return False
    return now_epoch_ms >= task.next_review_epoch_ms


def is_terminal(task: Optional[SRSTaskProgress]) -> bool:
    return task is not None and task.level == MAX_LEVEL


def best_accuracy_by_day(history: Iterable[SessionResult], program_id: str) -> Mapping[int, float]:
    best = {}
    for result in history:
        if result.program_id != program_id or result.day is None:
            continue
        best[result.day] = max(best.get(result.day, 0.0), result.accuracy)
    return best


def is_task_unlocked(
    days: List[int],
    index: int,
    history: Iterable[SessionResult],
    program_id: str,
    min_unlock_accuracy: float,
    unlock_all: bool = False,
) -> bool:
    """Whether the task at ``index`` of a program's day list may be started.

    The first task is always open. Every later one needs the previous task's
    best recorded accuracy to reach ``min_unlock_accuracy``.
    """
    if unlock_all or index == 0:
        return True
    if not 0 < index < len(days):
        return False
    best = best_accuracy_by_day(history, program_id)
    return best.get(days[index - 1], 0.0) >= min_unlock_accuracy
