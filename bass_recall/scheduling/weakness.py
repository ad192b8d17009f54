"""Fretboard weakness scoring and drill selection."""

import random
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from ..logger import get_logger
from ..note_types import FretboardMasteryRecord, FretPosition

logger = get_logger(__name__)

WEAK_SPOT_COUNT = 10
# Below this many attempts a position has too little data and counts as weak
MIN_ATTEMPTS = 3
MASTERY_ACCURACY = 0.8

ACCURACY_WEIGHT = 0.6
SPEED_WEIGHT = 0.3
RECENCY_WEIGHT = 0.1
RECENCY_CAP = 0.2
RECENCY_HORIZON_HOURS = 168.0  # one week

MS_PER_HOUR = 60 * 60 * 1000


def weakness_score(
    record: Optional[FretboardMasteryRecord],
    time_limit_s: float,
    now_epoch_ms: int,
) -> float:
    """Score how much a position needs practice, higher is weaker.

    Args:
        record: Mastery record of the position, None if never attempted
        time_limit_s: Round time limit, used to scale the average answer time
        now_epoch_ms: Current wall-clock time in epoch milliseconds

    Returns:
        A score in [0, 1]; 1.0 for positions with fewer than three attempts
    """
    if record is None or record.attempts < MIN_ATTEMPTS:
        return 1.0

    accuracy_score = 1.0 - record.accuracy
    speed_score = min(1.0, record.avg_time_sec / time_limit_s)
    hours_since_last = max(0.0, (now_epoch_ms - record.last_attempt_epoch_ms) / MS_PER_HOUR)
    recency_boost = min(RECENCY_CAP, hours_since_last / RECENCY_HORIZON_HOURS)

    return (
        accuracy_score * ACCURACY_WEIGHT
        + speed_score * SPEED_WEIGHT
        + recency_boost * RECENCY_WEIGHT
    )


def is_mastered(record: Optional[FretboardMasteryRecord]) -> bool:
    if record is None or record.attempts < MIN_ATTEMPTS:
        return False
    return record.accuracy > MASTERY_ACCURACY


def spread_pitch_classes(positions: Sequence[FretPosition]) -> List[FretPosition]:
    """Reorder so that consecutive picks do not share a pitch class where possible.

    Greedy: at each step take the first remaining position whose pitch class
    differs from the previous pick, falling back to the first remaining one.
    The relative order of the input is otherwise kept.
    """
    remaining = list(positions)
    ordered: List[FretPosition] = []
    while remaining:
        pick = 0
        if ordered:
            last_class = ordered[-1].midi % 12
            for i, pos in enumerate(remaining):
                if pos.midi % 12 != last_class:
                    pick = i
                    break
        ordered.append(remaining.pop(pick))
    return ordered


def select_maintenance_drill(
    positions: Sequence[FretPosition],
    mastery: Mapping[str, FretboardMasteryRecord],
    count: int = WEAK_SPOT_COUNT,
) -> List[FretPosition]:
    """The ``count`` positions practiced longest ago, never-attempted ones first."""

    def last_attempt(pos: FretPosition) -> int:
        record = mastery.get(pos.key)
        return record.last_attempt_epoch_ms if record else 0

    return sorted(positions, key=last_attempt)[:count]


def select_weak_spots(
    positions: Sequence[FretPosition],
    mastery: Mapping[str, FretboardMasteryRecord],
    time_limit_s: float,
    now_epoch_ms: int,
    count: int = WEAK_SPOT_COUNT,
) -> List[FretPosition]:
    """Pick the weakest non-mastered positions for a drill.

    When every position is mastered a maintenance drill of the least recently
    practiced positions is returned instead.
    """
    scored = [
        (weakness_score(mastery.get(pos.key), time_limit_s, now_epoch_ms), pos)
        for pos in positions
        if not is_mastered(mastery.get(pos.key))
    ]
    if not scored:
        logger.info("All positions mastered, selecting maintenance drill")
        return select_maintenance_drill(positions, mastery, count)

    # sorted() is stable, ties keep fretboard order
    scored = sorted(scored, key=lambda item: item[0], reverse=True)
    picks = [pos for _, pos in scored[:count]]
    logger.debug(f"Weak spots: {[str(p) for p in picks]}")
    return spread_pitch_classes(picks)


def generate_questions(
    pool: Sequence[FretPosition],
    count: int,
    rng: Optional[random.Random] = None,
) -> List[FretPosition]:
    """Draw ``count`` questions from a pool.

    The pool is shuffled and repeated until enough questions exist, so every
    position is asked once before any is asked twice. The same MIDI note is
    never asked twice in a row unless the pool holds only one note.
    """
    if not pool or count <= 0:
        return []
    rng = rng or random.Random()

    questions: List[FretPosition] = []
    while len(questions) < count:
        batch = list(pool)
        rng.shuffle(batch)
        prev_midi = questions[-1].midi if questions else None
        questions.extend(_order_without_repeats(batch, prev_midi))
    return questions[:count]


def _order_without_repeats(batch: List[FretPosition], prev_midi: Optional[int]) -> List[FretPosition]:
    """Greedy reorder keeping the shuffle where it can.

    A note that has to go now for the rest to still fit without repeats
    (it fills at least half of what is left) is taken first.
    """
    remaining = list(batch)
    ordered: List[FretPosition] = []
    while remaining:
        counts = Counter(pos.midi for pos in remaining)
        candidates = [i for i, pos in enumerate(remaining) if pos.midi != prev_midi]
        if not candidates:
            pick = 0
        else:
            pick = candidates[0]
            for i in candidates:
                if 2 * counts[remaining[i].midi] - 1 >= len(remaining):
                    pick = i
                    break
        prev_midi = remaining[pick].midi
        ordered.append(remaining.pop(pick))
    return ordered


@dataclass(frozen=True)
class MasterySummary:
    coverage: float  # percent of positions attempted at least once
    accuracy: float  # percent over all attempts
    avg_time: float  # seconds over all attempts
    mastered: int


def summarize_mastery(
    positions: Sequence[FretPosition],
    mastery: Mapping[str, FretboardMasteryRecord],
) -> MasterySummary:
    records: Dict[str, FretboardMasteryRecord] = {
        pos.key: mastery[pos.key] for pos in positions if pos.key in mastery
    }
    attempted = [r for r in records.values() if r.attempts > 0]
    attempts = sum(r.attempts for r in attempted)
    corrects = sum(r.corrects for r in attempted)
    total_time = sum(r.total_time_sec for r in attempted)

    return MasterySummary(
        coverage=len(attempted) / len(positions) * 100.0 if positions else 0.0,
        accuracy=corrects / attempts * 100.0 if attempts else 0.0,
        avg_time=total_time / attempts if attempts else 0.0,
        mastered=sum(1 for r in attempted if is_mastered(r)),
    )
