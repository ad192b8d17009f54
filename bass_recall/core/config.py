"""Configuration management for Bass Recall components.

Processing code never reads settings from global state: the ConfigManager
loads JSON files and hands out frozen dataclasses, and those are passed into
every processing call.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Type, TypeVar
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

# --- Signal processor ---------------------------------------------------------
# Absolute threshold for the cumulative mean normalized difference. Tunable.
YIN_THRESHOLD = 0.12
# If nothing clears YIN_THRESHOLD the global minimum is used, unless it is above
# this ceiling. Higher is more sensitive to weak notes and more prone to false
# positives. Tunable.
YIN_NOISE_FLOOR = 0.6
# Blocks quieter than this skip pitch estimation entirely (digital silence).
SILENCE_RMS = 1e-4
MIN_FREQUENCY = 25.0  # Hz, below low B (30.87 Hz) with margin
MAX_FREQUENCY = 1000.0  # Hz, above the 24th fret of the G string

# --- Onset/sustain guard ------------------------------------------------------
# The guard ratios below were tuned by ear against real basses and are defaults
# to validate empirically, not fixed contracts.
NOISE_GATE_RMS = 0.01
# RMS rise over the previous block that counts as a fresh pluck. Tunable.
ATTACK_RATIO = 1.8
# RMS fall over the previous block that marks a decaying, suspect reading. Tunable.
DECAY_RATIO = 0.95
# MIDI distance from the note ringing at the transition that counts as a new note.
PITCH_SHIFT_SEMITONES = 0.8

# --- Stability gate -----------------------------------------------------------
STABILITY_MS = 30
# How long a wrong note must persist before the round fails. Tunable.
WRONG_NOTE_LOCKOUT_MS = 250

# --- Drill --------------------------------------------------------------------
TIME_LIMIT_S = 5.0
COUNTDOWN_STEP_MS = 1000
TICK_INTERVAL_MS = 50
FAST_ANSWER_S = 1.5
SPEED_BONUS = 0.5
MIN_UNLOCK_ACCURACY = 80.0

T = TypeVar("T")


@dataclass(frozen=True)
class DetectionConfig:
    """Settings for the signal processor and the audio input."""

    sample_rate: int = 44100
    block_size: int = 2048
    yin_threshold: float = YIN_THRESHOLD
    noise_floor: float = YIN_NOISE_FLOOR
    silence_rms: float = SILENCE_RMS
    min_frequency: float = MIN_FREQUENCY
    max_frequency: float = MAX_FREQUENCY

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if self.block_size < 8:
            raise ValueError("block_size must be at least 8 samples")
        if not 0.0 < self.yin_threshold < 1.0:
            raise ValueError("yin_threshold must be between 0 and 1")

    @property
    def block_period_ms(self) -> float:
        return self.block_size * 1000.0 / self.sample_rate

    @property
    def lowest_resolvable_frequency(self) -> float:
        """Below this the block is too short to hold two periods."""
        return 2.0 * self.sample_rate / self.block_size


@dataclass(frozen=True)
class DrillSettings:
    """Settings consumed by the guard, the stability gate and the drill."""

    noise_gate_rms: float = NOISE_GATE_RMS
    attack_ratio: float = ATTACK_RATIO
    decay_ratio: float = DECAY_RATIO
    pitch_shift_semitones: float = PITCH_SHIFT_SEMITONES
    stability_ms: int = STABILITY_MS
    wrong_note_lockout_ms: int = WRONG_NOTE_LOCKOUT_MS
    time_limit_s: float = TIME_LIMIT_S
    strict_octave: bool = False
    allow_multiple_attempts: bool = False
    min_unlock_accuracy: float = MIN_UNLOCK_ACCURACY
    countdown_step_ms: int = COUNTDOWN_STEP_MS
    tick_interval_ms: int = TICK_INTERVAL_MS
    fast_answer_s: float = FAST_ANSWER_S
    speed_bonus: float = SPEED_BONUS
    five_string: bool = False
    srs_enabled: bool = True

    def __post_init__(self):
        if self.time_limit_s <= 0:
            raise ValueError("time_limit_s must be positive")
        if self.stability_ms < 0:
            raise ValueError("stability_ms must not be negative")

    @property
    def time_limit_ms(self) -> int:
        return int(round(self.time_limit_s * 1000))

    @property
    def effective_stability_ms(self) -> int:
        # A zero window would confirm on the first block; fall back to the default
        return self.stability_ms or STABILITY_MS


def build_config(cls: Type[T], values: Dict[str, Any]) -> T:
    """Build a frozen config dataclass from a dict, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {unknown}")
    return cls(**{k: v for k, v in values.items() if k in known})


class ConfigManager:
    """Configuration manager for Bass Recall components."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            # Use ~/.config/bass_recall by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "bass_recall")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Default configurations
        self.default_configs = {
            "detection": asdict(DetectionConfig()),
            "drill": asdict(DrillSettings()),
            "audio_input": {
                "device_id": None,
                "channels": 1,
            },
        }

        # Load existing configurations or create default ones
        self.configs = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from file or create default.

        A file that cannot be parsed is reported and replaced by the defaults
        in memory; the broken file is left on disk for the user to inspect.

        Args:
            name: Configuration name
            default_config: Default configuration to use if file doesn't exist

        Returns:
            Configuration dictionary
        """
        config_file = self.config_dir / f"{name}.json"

        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    config = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error loading configuration from {config_file}: {e}")
                return default_config.copy()

            logger.info(f"Loaded configuration from {config_file}")

            # Ensure all default keys are present
            for key, value in default_config.items():
                if key not in config:
                    config[key] = value
            return config

        # Create default configuration
        config = default_config.copy()
        self.save_config(name, config)
        return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get a copy of the raw configuration dictionary by name."""
        return self.configs.get(name, {}).copy()

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Args:
            name: Configuration name
            updates: Dictionary of updates to apply

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Reset configuration to default."""
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = self.default_configs[name].copy()
        return self.save_config(name, self.configs[name])

    def get_detection_config(self) -> DetectionConfig:
        return build_config(DetectionConfig, self.get_config("detection"))

    def get_drill_settings(self) -> DrillSettings:
        return build_config(DrillSettings, self.get_config("drill"))
