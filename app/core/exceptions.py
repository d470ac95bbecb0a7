"""
Prediction engine exceptions.

- ValidationError: bad input, surfaced to the caller, never retried
- DataUnavailableError: store unreachable / deadline hit, degrades to
  an empty result
Low confidence is NOT an exception: see NormalizedScore.low_confidence.
"""

from typing import Optional


class PredictionEngineError(Exception):
    """Base class for every error raised by the prediction engine."""


class ValidationError(PredictionEngineError):
    """
    Input failed domain validation.

    Attributes:
        field: Name of the offending request field (e.g. "score_value")
        expected: Human-readable description of the accepted values
    """

    def __init__(self, field: str, message: str, expected: Optional[str] = None):
        self.field = field
        self.message = message
        self.expected = expected
        text = f"{field}: {message}"
        if expected:
            text += f" (expected {expected})"
        super().__init__(text)

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "expected": self.expected}


class DataUnavailableError(PredictionEngineError):
    """Historical or reference data could not be fetched."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}")
