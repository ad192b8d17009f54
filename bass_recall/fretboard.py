"""Bass fretboard geometry: string tuning and position lookup."""

from typing import Iterable, List, NamedTuple, Optional

from .note_types import FretPosition
from .note_utils import pitch_class_name


class BassString(NamedTuple):
    name: str
    open_midi: int


# Index order matches the mastery keys: 0 is the highest string
BASS_STRINGS: List[BassString] = [
    BassString("G", 43),
    BassString("D", 38),
    BassString("A", 33),
    BassString("E", 28),
    BassString("B", 23),  # Low B for 5-string basses
]

FOUR_STRINGS = [0, 1, 2, 3]
FIVE_STRINGS = [0, 1, 2, 3, 4]
STANDARD_FRET_MAX = 12


def get_fret_info(string_idx: int, fret: int) -> FretPosition:
    """Describe one (string, fret) position.

    Raises:
        ValueError: If the string index or fret is out of range
    """
    if not 0 <= string_idx < len(BASS_STRINGS):
        raise ValueError(f"Unknown string index: {string_idx}")
    if fret < 0:
        raise ValueError(f"Fret must be non-negative, got {fret}")

    string = BASS_STRINGS[string_idx]
    midi = string.open_midi + fret
    return FretPosition(
        string=string_idx,
        fret=fret,
        midi=midi,
        string_name=string.name,
        note_name=pitch_class_name(midi),
    )


def get_all_positions_in_ranges(
    fret_max: int = STANDARD_FRET_MAX,
    strings: Optional[Iterable[int]] = None,
    fret_min: int = 0,
) -> List[FretPosition]:
    """All positions on the given strings between fret_min and fret_max inclusive.

    Unknown string indices are skipped so a 4-string caller can pass the
    5-string list without checking.
    """
    string_indices = FOUR_STRINGS if strings is None else list(strings)
    positions = []
    for string_idx in string_indices:
        if not 0 <= string_idx < len(BASS_STRINGS):
            continue
        for fret in range(fret_min, fret_max + 1):
            positions.append(get_fret_info(string_idx, fret))
    return positions


def strings_for(five_string: bool) -> List[int]:
    return list(FIVE_STRINGS if five_string else FOUR_STRINGS)
