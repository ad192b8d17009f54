import json
import os
import tempfile
import unittest

from bass_recall.core.config import (
    STABILITY_MS,
    ConfigManager,
    DetectionConfig,
    DrillSettings,
    build_config,
)


class TestConfigDataclasses(unittest.TestCase):
    def test_defaults(self):
        settings = DrillSettings()
        self.assertEqual(settings.noise_gate_rms, 0.01)
        self.assertEqual(settings.attack_ratio, 1.8)
        self.assertEqual(settings.decay_ratio, 0.95)
        self.assertEqual(settings.pitch_shift_semitones, 0.8)
        self.assertEqual(settings.stability_ms, 30)
        self.assertEqual(settings.wrong_note_lockout_ms, 250)
        self.assertEqual(settings.time_limit_ms, 5000)

    def test_zero_stability_window_falls_back(self):
        self.assertEqual(DrillSettings(stability_ms=0).effective_stability_ms, STABILITY_MS)
        self.assertEqual(DrillSettings(stability_ms=60).effective_stability_ms, 60)

    def test_validation(self):
        with self.assertRaises(ValueError):
            DrillSettings(time_limit_s=0)
        with self.assertRaises(ValueError):
            DrillSettings(stability_ms=-1)
        with self.assertRaises(ValueError):
            DetectionConfig(sample_rate=0)
        with self.assertRaises(ValueError):
            DetectionConfig(yin_threshold=1.5)

    def test_block_period(self):
        config = DetectionConfig(sample_rate=44100, block_size=2048)
        self.assertAlmostEqual(config.block_period_ms, 46.4399, places=3)
        self.assertAlmostEqual(config.lowest_resolvable_frequency, 43.066, places=2)

    def test_build_config_ignores_unknown_keys(self):
        with self.assertLogs("bass_recall.core.config", level="WARNING"):
            settings = build_config(DrillSettings, {"time_limit_s": 8.0, "colour": "blue"})
        self.assertEqual(settings.time_limit_s, 8.0)


class TestConfigManager(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config_dir = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def test_creates_default_files(self):
        manager = ConfigManager(self.config_dir)
        for name in ("detection", "drill", "audio_input"):
            self.assertTrue(os.path.exists(os.path.join(self.config_dir, f"{name}.json")))
        self.assertEqual(manager.get_detection_config(), DetectionConfig())
        self.assertEqual(manager.get_drill_settings(), DrillSettings())
        self.assertIsNone(manager.get_config("audio_input")["device_id"])

    def test_update_persists(self):
        manager = ConfigManager(self.config_dir)
        self.assertTrue(manager.update_config("drill", {"time_limit_s": 3.0, "strict_octave": True}))

        reloaded = ConfigManager(self.config_dir)
        settings = reloaded.get_drill_settings()
        self.assertEqual(settings.time_limit_s, 3.0)
        self.assertTrue(settings.strict_octave)

    def test_missing_keys_filled_from_defaults(self):
        with open(os.path.join(self.config_dir, "drill.json"), "w") as f:
            json.dump({"stability_ms": 45}, f)
        settings = ConfigManager(self.config_dir).get_drill_settings()
        self.assertEqual(settings.stability_ms, 45)
        self.assertEqual(settings.time_limit_s, 5.0)

    def test_corrupt_file_uses_defaults(self):
        path = os.path.join(self.config_dir, "detection.json")
        with open(path, "w") as f:
            f.write("{not json")
        manager = ConfigManager(self.config_dir)
        self.assertEqual(manager.get_detection_config(), DetectionConfig())
        with open(path) as f:
            self.assertEqual(f.read(), "{not json")

    def test_reset(self):
        manager = ConfigManager(self.config_dir)
        manager.update_config("drill", {"time_limit_s": 9.0})
        self.assertTrue(manager.reset_config("drill"))
        self.assertEqual(manager.get_drill_settings().time_limit_s, 5.0)

    def test_unknown_config_name(self):
        manager = ConfigManager(self.config_dir)
        self.assertFalse(manager.update_config("nope", {}))
        self.assertFalse(manager.reset_config("nope"))
        self.assertEqual(manager.get_config("nope"), {})


if __name__ == "__main__":
    unittest.main()
