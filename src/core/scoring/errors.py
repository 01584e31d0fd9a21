"""Scoring error types.

Data-quality problems never raise inside the engine: they produce an absent
result or a neutral score. These exceptions cover the remaining cases, a
broken store, a bad configuration, or a match payload that cannot be read.
"""


class ScoringError(Exception):
    """Base class for scoring errors."""


class BaselineUnavailableError(ScoringError):
    """The baseline store could not be read (connection or query failure)."""

    def __init__(self, champion_name: str, message: str = "") -> None:
        self.champion_name = champion_name
        super().__init__(message or f"Baseline store unavailable for {champion_name}")


class UnknownWeightsVersionError(ScoringError):
    """A weight table was requested under a version name that is not registered."""

    def __init__(self, version: str, known: list[str]) -> None:
        self.version = version
        self.known = known
        super().__init__(f"Unknown weights version {version!r}; known: {', '.join(known)}")


class InvalidSampleError(ScoringError):
    """A match payload is structurally broken and cannot yield a ParticipantSample."""
