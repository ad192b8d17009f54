import unittest

from bass_recall.fretboard import (
    BASS_STRINGS,
    get_all_positions_in_ranges,
    get_fret_info,
    strings_for,
)


class TestFretboard(unittest.TestCase):
    def test_open_strings(self):
        self.assertEqual([s.open_midi for s in BASS_STRINGS], [43, 38, 33, 28, 23])

    def test_fret_info(self):
        pos = get_fret_info(3, 5)  # E string, 5th fret
        self.assertEqual(pos.midi, 33)
        self.assertEqual(pos.note_name, "A")
        self.assertEqual(pos.string_name, "E")
        self.assertEqual(pos.key, "s3f5")

    def test_invalid_positions(self):
        with self.assertRaises(ValueError):
            get_fret_info(5, 0)
        with self.assertRaises(ValueError):
            get_fret_info(0, -1)

    def test_ranges(self):
        positions = get_all_positions_in_ranges(12)
        self.assertEqual(len(positions), 4 * 13)
        positions = get_all_positions_in_ranges(7, [0], fret_min=3)
        self.assertEqual([p.fret for p in positions], [3, 4, 5, 6, 7])
        self.assertEqual(len(get_all_positions_in_ranges(12, strings_for(True))), 5 * 13)

    def test_unknown_strings_skipped(self):
        self.assertEqual(len(get_all_positions_in_ranges(0, [3, 9])), 1)


if __name__ == "__main__":
    unittest.main()
