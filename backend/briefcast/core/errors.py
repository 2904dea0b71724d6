"""
Error taxonomy for the generation pipeline.

Only GenerationFailure ends a request with an error. The other failures
degrade the result but are captured and reported, never raised to callers
of the orchestrator.
"""

from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    CAPACITY_EXCEEDED = "capacity_exceeded"
    TIMEOUT = "timeout"
    OTHER = "other"


_CAPACITY_MARKERS = (
    "quota",
    "rate limit",
    "rate_limit",
    "resource_exhausted",
    "resource exhausted",
    "429",
    "capacity",
    "overloaded",
    "too many requests",
)

_TIMEOUT_MARKERS = (
    "timeout",
    "timed out",
    "deadline",
    "504",
)


def classify_failure(message: Optional[str]) -> FailureKind:
    """Classify an error message for user messaging purposes."""
    text = (message or "").lower()
    if any(marker in text for marker in _CAPACITY_MARKERS):
        return FailureKind.CAPACITY_EXCEEDED
    if any(marker in text for marker in _TIMEOUT_MARKERS):
        return FailureKind.TIMEOUT
    return FailureKind.OTHER


class BriefcastError(Exception):
    """Base class for pipeline errors."""


class GenerationFailure(BriefcastError):
    """Text generation produced no usable script. Fatal to the request."""

    def __init__(self, message: str, kind: Optional[FailureKind] = None):
        super().__init__(message)
        self.kind = kind or classify_failure(message)
        # Pipeline stages reached before the failure, set by the orchestrator
        self.stages = []


class SynthesisFailure(BriefcastError):
    """Every audio tier failed. The request continues without audio."""


class StorageFailure(BriefcastError):
    """A persistence call failed. Logged, never fatal."""


class SlugCollision(StorageFailure):
    """Insert rejected by the unique slug constraint."""
