#!/usr/bin/env python3

import argparse
import sys
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from bass_recall.core.clock import monotonic_ms, wall_clock_ms
from bass_recall.core.config import ConfigManager, DetectionConfig
from bass_recall.core.errors import AudioDeviceError
from bass_recall.core.events import DrillEvents
from bass_recall.detection.yin import SignalProcessor
from bass_recall.drill.session import (
    DrillSession,
    SessionPlan,
    targets_from_midi,
    targets_from_positions,
)
from bass_recall.drill_runner import DrillRunner
from bass_recall.fretboard import BASS_STRINGS, get_all_positions_in_ranges, strings_for
from bass_recall.logger import get_logger
from bass_recall.logging_config import setup_logging
from bass_recall.note_types import TargetNote
from bass_recall.note_utils import midi_to_frequency, note_name
from bass_recall.progress_store import JsonProgressStore, TrainingProgress
from bass_recall.scheduling.srs import is_task_unlocked
from bass_recall.scheduling.weakness import (
    generate_questions,
    is_mastered,
    select_weak_spots,
    summarize_mastery,
)
from bass_recall.ui import ConsolePresenter

STRING_LETTERS = {s.name: i for i, s in enumerate(BASS_STRINGS)}


def fret_range(value: str) -> Tuple[int, int]:
    """Parse '5' as frets 0-5 and '3-7' as frets 3-7."""
    try:
        if "-" in value:
            low, high = (int(part) for part in value.split("-", 1))
        else:
            low, high = 0, int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid fret range: {value!r}")
    if low < 0 or high < low:
        raise argparse.ArgumentTypeError(f"Invalid fret range: {value!r}")
    return low, high


def string_list(value: str) -> List[int]:
    """Parse string letters such as 'EA' into string indices."""
    try:
        return sorted({STRING_LETTERS[letter] for letter in value.upper()})
    except KeyError as e:
        raise argparse.ArgumentTypeError(f"Unknown string {e.args[0]!r}, use letters from GDAEB")


def midi_list(value: str) -> List[int]:
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid MIDI sequence: {value!r}")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Bass Recall - fretboard ear training for bass"
    )

    # Audio settings
    parser.add_argument(
        "--list-devices", action="store_true", help="List audio input devices and exit."
    )
    parser.add_argument("--device", type=int, help="Audio input device ID.")
    parser.add_argument("--sample-rate", type=int, help="Audio sample rate (default: from config, 44100).")
    parser.add_argument("--block-size", type=int, help="Samples per analysis block (default: from config, 2048).")
    parser.add_argument("--wav", type=str, help="Replay a WAV file instead of listening to a device.")

    # Drill selection
    parser.add_argument("--questions", type=int, default=20, help="Number of questions (default: 20).")
    parser.add_argument(
        "--frets", type=fret_range, default=(0, 12), help="Fret range, e.g. '5' or '3-7' (default: 0-12)."
    )
    parser.add_argument("--strings", type=string_list, help="Strings to drill as letters, e.g. 'EA'.")
    parser.add_argument("--five-string", action="store_true", help="Include the low B string.")
    parser.add_argument(
        "--weak-spots", action="store_true", help="Drill the weakest positions from your history."
    )
    parser.add_argument(
        "--sequence", type=midi_list, help="Play a fixed sequence of MIDI notes, e.g. '28,30,32'."
    )
    parser.add_argument("--program", type=str, help="Curriculum program ID for SRS tracking.")
    parser.add_argument("--day", type=int, help="Curriculum day within --program.")
    parser.add_argument(
        "--unlock-all", action="store_true", help="Allow curriculum days whose previous day is not passed."
    )

    # Rules
    parser.add_argument("--time-limit", type=float, help="Seconds per question (default: from config, 5).")
    parser.add_argument("--strict-octave", action="store_true", help="Require the exact octave.")
    parser.add_argument(
        "--multiple-attempts", action="store_true", help="Wrong notes do not end a question."
    )

    # Storage
    parser.add_argument("--progress-file", type=str, help="Progress JSON file.")
    parser.add_argument("--config-dir", type=str, help="Configuration directory.")

    # Debugging
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    args = parser.parse_args(argv)
    if (args.program is None) != (args.day is None):
        parser.error("--program and --day must be given together")
    if args.day is not None and args.day < 1:
        parser.error("--day starts at 1")
    return args


def build_plan(args: argparse.Namespace, settings, progress: TrainingProgress) -> SessionPlan:
    """Decide what the session asks from the command line and past progress."""
    if args.sequence:
        return SessionPlan(
            targets=targets_from_midi(args.sequence),
            title="Sequence",
            program_id=args.program or "free",
            day=args.day,
            sequence=True,
        )

    strings = args.strings if args.strings is not None else strings_for(settings.five_string)
    if args.weak_spots:
        pool = get_all_positions_in_ranges(12, strings_for(settings.five_string))
        positions = select_weak_spots(pool, progress.mastery, settings.time_limit_s, wall_clock_ms())
        all_mastered = all(is_mastered(progress.mastery.get(p.key)) for p in pool)
        title = "Maintenance drill" if all_mastered else "Fix weak spots"
    else:
        low, high = args.frets
        pool = get_all_positions_in_ranges(high, strings, fret_min=low)
        positions = generate_questions(pool, args.questions)
        title = "Free training"

    return SessionPlan(
        targets=targets_from_positions(positions),
        title=title,
        program_id=args.program or "free",
        day=args.day,
    )


def low_note_warning(detection: DetectionConfig, targets: Sequence[TargetNote]) -> Optional[str]:
    """A warning when the lowest target is below what one block can resolve, else None."""
    lowest = min(targets, key=lambda target: target.midi)
    if midi_to_frequency(lowest.midi) >= detection.lowest_resolvable_frequency:
        return None
    return (
        f"Blocks of {detection.block_size} samples ({detection.block_period_ms:.0f} ms) cannot resolve "
        f"{note_name(lowest.midi)}, the limit is {detection.lowest_resolvable_frequency:.1f} Hz. "
        f"Low notes may read an octave high; try --block-size {detection.block_size * 2}."
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for Bass Recall."""
    args = parse_arguments(argv)

    # Configure logging
    setup_logging(level="DEBUG" if args.debug else "INFO")
    logger = get_logger(__name__)

    if args.list_devices:
        from bass_recall.audio.audio_input import print_device_report

        print_device_report()
        return 0

    config = ConfigManager(args.config_dir)
    detection = config.get_detection_config()
    detection = replace(
        detection,
        sample_rate=args.sample_rate or detection.sample_rate,
        block_size=args.block_size or detection.block_size,
    )
    settings = config.get_drill_settings()
    settings = replace(
        settings,
        time_limit_s=args.time_limit or settings.time_limit_s,
        strict_octave=args.strict_octave or settings.strict_octave,
        allow_multiple_attempts=args.multiple_attempts or settings.allow_multiple_attempts,
        five_string=args.five_string or settings.five_string,
    )

    store = JsonProgressStore(args.progress_file)
    progress = store.load()

    if args.day is not None and not is_task_unlocked(
        list(range(1, args.day + 1)),
        args.day - 1,
        progress.history,
        args.program,
        settings.min_unlock_accuracy,
        unlock_all=args.unlock_all,
    ):
        print(
            f"Day {args.day} is locked: reach {settings.min_unlock_accuracy:.0f}% "
            f"on day {args.day - 1} first (or pass --unlock-all)."
        )
        return 1

    plan = build_plan(args, settings, progress)
    if not plan.targets:
        print("Nothing to practice with these strings and frets.")
        return 1

    warning = low_note_warning(detection, plan.targets)
    if warning:
        logger.warning(warning)

    # sounddevice needs PortAudio at import time, so it is only imported here
    from bass_recall.audio.feedback import SoundDeviceFailureCue

    if args.wav:
        from bass_recall.audio.audio_providers import WavFileAudioProvider

        audio_input = WavFileAudioProvider(args.wav, detection.block_size, clock=monotonic_ms)
    else:
        from bass_recall.audio.audio_input import SoundDeviceInput

        audio_config = config.get_config("audio_input")
        audio_input = SoundDeviceInput(
            device_id=args.device if args.device is not None else audio_config.get("device_id"),
            sample_rate=detection.sample_rate,
            frames_per_buffer=detection.block_size,
            channels=audio_config.get("channels"),
        )

    events = DrillEvents()
    ConsolePresenter(show_octave=settings.strict_octave).attach(events)
    runner = DrillRunner(audio_input, SignalProcessor(detection), settings, store=store, events=events)
    session = DrillSession(plan, settings, progress, failure_cue=SoundDeviceFailureCue())

    try:
        runner.start(session)
        runner.run()
    except AudioDeviceError as e:
        logger.error(f"Audio device error: {e}")
        print(f"Could not open the audio input ({e.kind.name}): {e.args[0]}")
        return 2
    except KeyboardInterrupt:
        runner.abort()
        print("\nSession aborted, nothing was saved.")
        return 130
    finally:
        logger.info("Bass Recall is shutting down.")

    if not plan.sequence:
        summary = summarize_mastery(
            get_all_positions_in_ranges(12, strings_for(settings.five_string)), progress.mastery
        )
        print(
            f"Fretboard: {summary.coverage:.0f}% covered, {summary.accuracy:.1f}% accuracy, "
            f"{summary.avg_time:.2f}s average, {summary.mastered} positions mastered"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
