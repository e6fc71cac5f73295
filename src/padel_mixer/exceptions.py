"""Exceptions raised by the padel-mixer engine."""
from typing import Optional


class PadelMixerError(Exception):
    """Base class for all engine errors."""


class ValidationError(PadelMixerError, ValueError):
    """Input is malformed or infeasible for the requested format.

    Raised before any round is produced, so a caller never sees a
    half-built schedule. ``field`` names the offending input when known.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class ScoreError(ValidationError):
    """A submitted score can not be applied to a match."""


class TournamentStateError(PadelMixerError):
    """The tournament is in the wrong state for the requested operation."""
