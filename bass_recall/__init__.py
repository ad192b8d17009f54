"""Bass Recall: real-time pitch detection and note drills for bass."""

__version__ = "0.1.0"
