import io
import unittest

from bass_recall.core.events import BlockSnapshot, DrillEvent, DrillEvents, DrillEventType
from bass_recall.note_types import SessionResult
from bass_recall.ui import ConsolePresenter


class TestConsolePresenter(unittest.TestCase):
    def setUp(self):
        self.out = io.StringIO()
        self.events = DrillEvents()
        self.presenter = ConsolePresenter(out=self.out)
        self.presenter.attach(self.events)

    def publish(self, *events):
        self.events.publish(list(events))
        return self.out.getvalue()

    def test_round_active_shows_target(self):
        text = self.publish(DrillEvent(DrillEventType.ROUND_ACTIVE, 4000, round_index=2, target_midi=45))
        self.assertIn("Question 3", text)
        self.assertGreater(len(text.splitlines()), 3)  # figlet banner

    def test_octave_shown_when_strict(self):
        presenter = ConsolePresenter(out=self.out, show_octave=True)
        self.assertEqual(presenter._target_label(45), "A2")
        self.assertEqual(self.presenter._target_label(45), "A")

    def test_seconds_left_printed_once_per_second(self):
        text = self.publish(
            DrillEvent(DrillEventType.DEADLINE_REMAINING, 0, remaining_ms=4950),
            DrillEvent(DrillEventType.DEADLINE_REMAINING, 50, remaining_ms=4900),
            DrillEvent(DrillEventType.DEADLINE_REMAINING, 1000, remaining_ms=3950),
        )
        self.assertEqual(text.count("5s left"), 1)
        self.assertEqual(text.count("4s left"), 1)

    def test_played_note(self):
        snapshot = BlockSnapshot(pitch_class=9, octave=2, cents_offset=-3, rms=0.2, is_active=True)
        quiet = BlockSnapshot(pitch_class=9, octave=2, cents_offset=0, rms=0.001, is_active=False)
        text = self.publish(
            DrillEvent(DrillEventType.BLOCK_SNAPSHOT, 0, snapshot=snapshot),
            DrillEvent(DrillEventType.BLOCK_SNAPSHOT, 46, snapshot=snapshot),
            DrillEvent(DrillEventType.BLOCK_SNAPSHOT, 92, snapshot=quiet),
        )
        self.assertEqual(text.count("You played: A2 (-3 cents)"), 1)

    def test_round_results(self):
        text = self.publish(
            DrillEvent(DrillEventType.ROUND_SUCCEEDED, 0, target_midi=45, elapsed_s=1.234),
            DrillEvent(DrillEventType.ROUND_FAILED, 0, target_midi=45, detected_midi=47),
            DrillEvent(DrillEventType.ROUND_FAILED, 0, target_midi=45, timed_out=True),
        )
        self.assertIn("Correct! 1.23s", text)
        self.assertIn("Wrong note B2, it was A", text)
        self.assertIn("Time's up, it was A", text)

    def test_session_summary(self):
        result = SessionResult(
            date="2023-11-14T22:13:20+00:00",
            score=2.5,
            accuracy=66.666,
            avg_time=2.0,
            title="Free training",
            failed_notes=["C#"],
        )
        text = self.publish(DrillEvent(DrillEventType.SESSION_FINISHED, 0, result=result))
        self.assertIn("Free training", text)
        self.assertIn("Score: 2.5", text)
        self.assertIn("Accuracy: 66.7%", text)
        self.assertIn("Missed notes: C#", text)


if __name__ == "__main__":
    unittest.main()
