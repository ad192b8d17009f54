"""Persistence of training progress: mastery map, SRS map, history, settings."""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core.interfaces import IProgressStore
from .logger import get_logger
from .note_types import FretboardMasteryRecord, SessionResult, SRSTaskProgress

# Get logger for this module
logger = get_logger(__name__)

PROGRESS_VERSION = 1
PROGRESS_FILE = os.path.join(os.path.expanduser("~"), ".config", "bass_recall", "progress.json")


@dataclass
class TrainingProgress:
    """Everything the trainer remembers between sessions.

    Rounds run one at a time, so the drill session is the only writer of
    ``mastery`` and ``srs`` while a session is live.
    """

    mastery: Dict[str, FretboardMasteryRecord] = field(default_factory=dict)
    srs: Dict[str, SRSTaskProgress] = field(default_factory=dict)
    history: List[SessionResult] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": PROGRESS_VERSION,
            "mastery": {key: asdict(record) for key, record in self.mastery.items()},
            "srs": {key: asdict(task) for key, task in self.srs.items()},
            "history": [asdict(result) for result in self.history],
            "settings": dict(self.settings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrainingProgress":
        """Rebuild progress from a versioned document.

        Raises:
            ValueError: If the document is not an object, has an unsupported
                version or holds malformed records
        """
        if not isinstance(data, dict):
            raise ValueError(f"Progress document must be an object, got {type(data).__name__}")
        version = data.get("version")
        if version != PROGRESS_VERSION:
            raise ValueError(f"Unsupported progress version: {version!r}")

        try:
            return cls(
                mastery={
                    key: FretboardMasteryRecord(**record)
                    for key, record in data.get("mastery", {}).items()
                },
                srs={key: SRSTaskProgress(**task) for key, task in data.get("srs", {}).items()},
                history=[SessionResult(**result) for result in data.get("history", [])],
                settings=dict(data.get("settings", {})),
            )
        except (AttributeError, TypeError) as e:
            raise ValueError(f"Malformed progress document: {e}") from e


class JsonProgressStore(IProgressStore):
    """Stores TrainingProgress as a single JSON document."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or PROGRESS_FILE)

    def load(self) -> TrainingProgress:
        """Load progress, or return empty progress if nothing was saved yet.

        Raises:
            ValueError: If the file is not valid JSON or has an unknown version
        """
        if not self.path.exists():
            logger.info(f"No progress file at {self.path}, starting fresh")
            return TrainingProgress()

        with open(self.path, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Corrupt progress file {self.path}: {e}") from e

        progress = TrainingProgress.from_dict(data)
        logger.info(
            f"Loaded progress from {self.path}: {len(progress.mastery)} positions, "
            f"{len(progress.history)} sessions"
        )
        return progress

    def save(self, progress: TrainingProgress) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(progress.to_dict(), f, indent=2)
        os.replace(tmp_path, self.path)
        logger.info(f"Saved progress to {self.path}")
