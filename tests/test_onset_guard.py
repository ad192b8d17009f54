import unittest

from bass_recall.core.config import DrillSettings
from bass_recall.detection.onset_guard import (
    GuardState,
    GuardVerdict,
    arm_for_new_attack,
    guard_reading,
)
from bass_recall.note_types import PitchEstimate
from bass_recall.note_utils import frequency_to_note, midi_to_frequency


def feed(state, midi, rms, settings, timestamp_ms=0):
    if midi is None:
        estimate = PitchEstimate(None, rms, timestamp_ms)
        reading = None
    else:
        estimate = PitchEstimate(midi_to_frequency(midi), rms, timestamp_ms)
        reading = frequency_to_note(estimate.frequency_hz)
    return guard_reading(state, estimate, reading, settings)


class TestOnsetGuard(unittest.TestCase):
    def setUp(self):
        self.settings = DrillSettings()

    def test_silence_clears_all_memory(self):
        state = GuardState(waiting_for_new_attack=True, last_accepted_midi=40, previous_rms=0.3, last_seen_midi=40)
        state, result = feed(state, 40, 0.001, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.SILENT)
        self.assertIsNone(result.reading)
        self.assertEqual(state, GuardState(previous_rms=0.001))

    def test_arming_remembers_ringing_note(self):
        state = arm_for_new_attack(GuardState(previous_rms=0.3, last_seen_midi=40))
        self.assertTrue(state.waiting_for_new_attack)
        self.assertEqual(state.last_accepted_midi, 40)

    def test_sustain_of_previous_note_is_suppressed(self):
        state = arm_for_new_attack(GuardState(previous_rms=0.3, last_seen_midi=40))
        for rms in (0.29, 0.27, 0.26, 0.24, 0.2):
            state, result = feed(state, 40, rms, self.settings)
            self.assertEqual(result.verdict, GuardVerdict.SUPPRESSED)
        self.assertTrue(state.waiting_for_new_attack)

    def test_fresh_attack_releases_guard(self):
        state = arm_for_new_attack(GuardState(previous_rms=0.2, last_seen_midi=40))
        state, result = feed(state, 40, 0.5, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.FORWARD)
        self.assertEqual(result.reading.midi, 40)
        self.assertFalse(result.decaying)
        self.assertFalse(state.waiting_for_new_attack)

    def test_small_rise_is_not_an_attack(self):
        state = arm_for_new_attack(GuardState(previous_rms=0.2, last_seen_midi=40))
        # 1.75x is below the attack ratio
        _, result = feed(state, 40, 0.35, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.SUPPRESSED)

    def test_pitch_change_releases_guard(self):
        state = arm_for_new_attack(GuardState(previous_rms=0.3, last_seen_midi=40))
        state, result = feed(state, 41, 0.29, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.FORWARD)
        self.assertEqual(result.reading.midi, 41)
        self.assertFalse(state.waiting_for_new_attack)

    def test_octave_jump_counts_as_new_note(self):
        state = arm_for_new_attack(GuardState(previous_rms=0.3, last_seen_midi=40))
        _, result = feed(state, 52, 0.29, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.FORWARD)

    def test_nothing_ringing_needs_an_attack(self):
        state = arm_for_new_attack(GuardState(previous_rms=0.3))
        _, result = feed(state, 40, 0.3, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.SUPPRESSED)

    def test_first_note_after_silence_is_an_attack(self):
        state = arm_for_new_attack(GuardState())
        _, result = feed(state, 40, 0.3, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.FORWARD)

    def test_falling_rms_is_flagged_decaying(self):
        state = GuardState(previous_rms=0.3, last_seen_midi=40)
        _, result = feed(state, 40, 0.2, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.FORWARD)
        self.assertTrue(result.decaying)

    def test_loud_block_without_pitch(self):
        state = GuardState(previous_rms=0.3, last_seen_midi=40)
        state, result = feed(state, None, 0.3, self.settings)
        self.assertEqual(result.verdict, GuardVerdict.NO_PITCH)
        # the last pitched note is still remembered for the next transition
        self.assertEqual(state.last_seen_midi, 40)

    def test_previous_rms_tracks_every_block(self):
        state = GuardState()
        state, _ = feed(state, 40, 0.3, self.settings)
        self.assertEqual(state.previous_rms, 0.3)
        state, _ = feed(state, None, 0.12, self.settings)
        self.assertEqual(state.previous_rms, 0.12)


if __name__ == "__main__":
    unittest.main()
