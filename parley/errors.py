"""Exceptions raised by the turn engine."""

from typing import Optional


class ParleyError(Exception):
    """Base class for conversation errors."""


class ConfigurationError(ParleyError):
    """The participant graph or a coordinator's selection is invalid."""


class GenerationError(ParleyError):
    """A generation backend failed or returned unusable content."""

    def __init__(self, message: str, speaker: Optional[str] = None):
        super().__init__(message)
        self.speaker = speaker


class ProtocolError(ParleyError):
    """An operation was invoked in a state that does not allow it."""
