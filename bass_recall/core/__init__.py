"""Core components for the Bass Recall application."""

# Import interfaces for easier access
from .interfaces import (
    IAudioInput,
    IFailureCue,
    IProgressStore,
)

__all__ = ["IAudioInput", "IFailureCue", "IProgressStore"]
