import argparse
import os
import tempfile
import unittest

from bass_recall.core.config import DetectionConfig, DrillSettings
from bass_recall.drill.session import targets_from_midi
from bass_recall.main import (
    build_plan,
    fret_range,
    low_note_warning,
    main,
    midi_list,
    parse_arguments,
    string_list,
)
from bass_recall.note_types import FretboardMasteryRecord
from bass_recall.progress_store import TrainingProgress


class TestArgumentTypes(unittest.TestCase):
    def test_fret_range(self):
        self.assertEqual(fret_range("5"), (0, 5))
        self.assertEqual(fret_range("3-7"), (3, 7))
        for bad in ("x", "7-3", "-2"):
            with self.subTest(value=bad), self.assertRaises(argparse.ArgumentTypeError):
                fret_range(bad)

    def test_string_list(self):
        self.assertEqual(string_list("ea"), [2, 3])
        self.assertEqual(string_list("GB"), [0, 4])
        with self.assertRaises(argparse.ArgumentTypeError):
            string_list("X")

    def test_midi_list(self):
        self.assertEqual(midi_list("28,30, 32"), [28, 30, 32])
        with self.assertRaises(argparse.ArgumentTypeError):
            midi_list("28,x")

    def test_program_and_day_together(self):
        with self.assertRaises(SystemExit):
            parse_arguments(["--program", "fretboard"])
        args = parse_arguments(["--program", "fretboard", "--day", "2"])
        self.assertEqual((args.program, args.day), ("fretboard", 2))

    def test_day_starts_at_one(self):
        for day in ("0", "-3"):
            with self.subTest(day=day), self.assertRaises(SystemExit):
                parse_arguments(["--program", "fretboard", "--day", day])


class TestBuildPlan(unittest.TestCase):
    def setUp(self):
        self.settings = DrillSettings()
        self.progress = TrainingProgress()

    def test_sequence(self):
        args = parse_arguments(["--sequence", "28,30,32"])
        plan = build_plan(args, self.settings, self.progress)
        self.assertTrue(plan.sequence)
        self.assertEqual([t.midi for t in plan.targets], [28, 30, 32])
        self.assertEqual([t.name for t in plan.targets], ["E", "F#", "G#"])

    def test_free_training(self):
        args = parse_arguments(["--questions", "6", "--frets", "0-2", "--strings", "E"])
        plan = build_plan(args, self.settings, self.progress)
        self.assertEqual(len(plan.targets), 6)
        self.assertTrue(all(t.position.string == 3 and t.position.fret <= 2 for t in plan.targets))
        self.assertFalse(plan.is_curriculum)

    def test_weak_spots_skip_mastered(self):
        mastered = FretboardMasteryRecord(attempts=5, corrects=5, total_time_sec=5.0)
        self.progress.mastery = {f"s0f{fret}": mastered for fret in range(13)}
        args = parse_arguments(["--weak-spots"])
        plan = build_plan(args, self.settings, self.progress)
        self.assertEqual(plan.title, "Fix weak spots")
        self.assertEqual(len(plan.targets), 10)
        self.assertTrue(all(t.position.string != 0 for t in plan.targets))


class TestLowNoteWarning(unittest.TestCase):
    def test_open_low_e_needs_longer_blocks(self):
        warning = low_note_warning(DetectionConfig(block_size=2048), targets_from_midi([33, 28]))
        self.assertIn("E1", warning)
        self.assertIn("43.1 Hz", warning)
        self.assertIn("--block-size 4096", warning)

    def test_resolvable_targets(self):
        self.assertIsNone(low_note_warning(DetectionConfig(block_size=2048), targets_from_midi([33, 45])))
        self.assertIsNone(low_note_warning(DetectionConfig(block_size=4096), targets_from_midi([28, 23])))


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.common = [
            "--config-dir",
            os.path.join(self.tmp.name, "config"),
            "--progress-file",
            os.path.join(self.tmp.name, "progress.json"),
        ]

    def test_locked_day(self):
        self.assertEqual(main(self.common + ["--program", "fretboard", "--day", "2"]), 1)

    def test_nothing_to_practice(self):
        self.assertEqual(main(self.common + ["--strings", ""]), 1)


if __name__ == "__main__":
    unittest.main()
