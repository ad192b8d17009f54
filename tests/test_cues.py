import unittest

import numpy as np

from bass_recall.audio.cues import CUE_START_GAIN, exponential_ramp, failure_cue


class TestFailureCue(unittest.TestCase):
    def test_shape(self):
        cue = failure_cue(44100)
        self.assertEqual(len(cue), 17640)  # 0.4s
        self.assertEqual(cue.dtype, np.float32)
        self.assertLessEqual(np.abs(cue).max(), CUE_START_GAIN + 1e-6)

    def test_fades_out(self):
        cue = failure_cue(44100)
        head = np.abs(cue[:2000]).max()
        tail = np.abs(cue[-2000:]).max()
        self.assertGreater(head, 10 * tail)

    def test_ramp(self):
        ramp = exponential_ramp(100.0, 1.0, 3)
        np.testing.assert_allclose(ramp, [100.0, 10.0, 1.0])
        self.assertEqual(len(exponential_ramp(1.0, 2.0, 0)), 0)
        np.testing.assert_allclose(exponential_ramp(5.0, 2.0, 1), [5.0])


if __name__ == "__main__":
    unittest.main()
