"""Utility functions for working with musical notes and frequencies."""

import math
from typing import List

from .logger import get_logger
from .note_types import NoteReading

# Get logger for this module
logger = get_logger(__name__)

A4_FREQ = 440.0  # Hz, reference pitch
A4_MIDI = 69

NOTE_NAMES: List[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]
NOTE_NAMES_FLATS: List[str] = [
    "C",
    "Db",
    "D",
    "Eb",
    "E",
    "F",
    "Gb",
    "G",
    "Ab",
    "A",
    "Bb",
    "B",
]


def frequency_to_midi(freq: float) -> float:
    """Fractional MIDI number of a frequency (A4 = 440 Hz = 69)."""
    return A4_MIDI + 12 * math.log2(freq / A4_FREQ)


def midi_to_frequency(midi: float) -> float:
    return A4_FREQ * 2.0 ** ((midi - A4_MIDI) / 12.0)


def frequency_to_note(freq: float) -> NoteReading:
    """Map a frequency onto the nearest equal-tempered note.

    The cents offset is the fractional-semitone deviation multiplied by 100 and
    truncated toward negative infinity (not rounded), and the nearest note is
    picked with round-half-up. Both choices keep readings identical to the
    web version of the trainer, so a note exactly half a semitone flat reports
    -50 cents and one half a semitone sharp belongs to the note above.

    Args:
        freq: Frequency in Hz, must be positive

    Returns:
        NoteReading for the nearest note

    Raises:
        ValueError: If the frequency is not a positive finite number
    """
    if not math.isfinite(freq) or freq <= 0:
        raise ValueError(f"Frequency must be positive, got {freq}")

    midi = frequency_to_midi(freq)
    rounded_midi = math.floor(midi + 0.5)
    cents = math.floor((midi - rounded_midi) * 100)
    return NoteReading(
        pitch_class=rounded_midi % 12,
        octave=rounded_midi // 12 - 1,
        midi=rounded_midi,
        cents_offset=cents,
        frequency_hz=freq,
    )


def validate_note(detected_midi: int, target_midi: int, strict_octave: bool) -> bool:
    """Check a detected note against the target.

    With ``strict_octave`` the MIDI numbers must be equal, otherwise only the
    pitch classes have to match.
    """
    if strict_octave:
        return detected_midi == target_midi
    return detected_midi % 12 == target_midi % 12


def pitch_class_name(midi: int, use_flats: bool = False) -> str:
    names = NOTE_NAMES_FLATS if use_flats else NOTE_NAMES
    return names[midi % 12]


def note_name(midi: int, use_flats: bool = False) -> str:
    """Name a MIDI number in Scientific Pitch Notation, e.g. 28 -> 'E1'."""
    return f"{pitch_class_name(midi, use_flats)}{midi // 12 - 1}"


def get_note_name(freq: float, use_flats: bool = False) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---' for
        a non-positive frequency

    Note:
        - Middle C is C4 (261.63 Hz)
        - A4 is 440 Hz
        - Octave numbers change between B and C (e.g., B3 -> C4)
    """
    if freq <= 0:
        return "---"
    return note_name(frequency_to_note(freq).midi, use_flats)

