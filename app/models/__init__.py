"""
Models module - internal data structures for the prediction engine.

- domain: enums and frozen engine types (ScoreInput, Prediction, ...)
- calibration: versioned model constants
"""

from app.models.domain import (
    Category,
    College,
    CollegeType,
    ExamType,
    FeeRange,
    HistoricalCutoff,
    IncomeBand,
    NormalizedScore,
    Prediction,
    ScoreInput,
    ScoreType,
    Trend,
)
from app.models.calibration import EngineCalibration, load_calibration

__all__ = [
    "Category",
    "College",
    "CollegeType",
    "ExamType",
    "FeeRange",
    "HistoricalCutoff",
    "IncomeBand",
    "NormalizedScore",
    "Prediction",
    "ScoreInput",
    "ScoreType",
    "Trend",
    "EngineCalibration",
    "load_calibration",
]
