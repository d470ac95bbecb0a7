"""
Versioned model calibration.

All numeric constants the engine depends on: rank scales, candidate
pools, year difficulty multipliers, probability bands, quota / institution
multipliers, composite weights and income bands. Bump `version` whenever
a value changes so predictions can be traced back to the table that
produced them.

The rank formulas are linear heuristics; treat the defaults as
placeholders for a real calibration table, not ground truth.
"""

import json
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.domain import ExamType, IncomeBand


class ExamCalibration(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_marks: float
    pool_size: int = Field(..., gt=0)
    # Ranks per mark below max_marks (authoritative marks conversion only)
    marks_rank_scale: Optional[float] = None
    # Ranks per percentile point below 100
    percentile_rank_scale: float = Field(..., gt=0)
    percentile_authoritative: bool = True
    # Piecewise (min_marks, base_percentile, percentile_per_mark) used when
    # marks have no authoritative rank conversion; first matching row wins
    marks_percentile_curve: List[Tuple[float, float, float]] = []

    @model_validator(mode="after")
    def _curve_non_decreasing(self):
        curve = self.marks_percentile_curve
        if [row[0] for row in curve] != sorted((row[0] for row in curve), reverse=True):
            raise ValueError("marks_percentile_curve rows must be ordered by descending min_marks")
        for (upper_min, upper_base, _), (min_marks, base, per_mark) in zip(curve, curve[1:]):
            if per_mark < 0:
                raise ValueError("marks_percentile_curve slopes must not be negative")
            # The lower segment must not end above where the next one starts
            reached = base + (upper_min - min_marks) * per_mark
            if reached > upper_base + 1e-6:
                raise ValueError(
                    f"marks_percentile_curve drops at {upper_min} marks ({reached:.3f} -> {upper_base})"
                )
        return self


class ProbabilityBand(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Band applies while rank difference < upper_bound; None = open ended
    upper_bound: Optional[int]
    probability: float = Field(..., ge=0, le=1)


class CompositeWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    admission: float = 0.40
    safety: float = 0.25
    placement: float = 0.20
    financial: float = 0.15

    @model_validator(mode="after")
    def _sum_to_one(self):
        total = self.admission + self.safety + self.placement + self.financial
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"composite weights must sum to 1.0, got {total}")
        return self


class EngineCalibration(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = "2025.1"

    exams: Dict[ExamType, ExamCalibration] = {
        ExamType.NEET: ExamCalibration(
            max_marks=720,
            pool_size=1_800_000,
            marks_rank_scale=150,
            percentile_rank_scale=18_000,
            percentile_authoritative=False,
        ),
        ExamType.JEE_MAIN: ExamCalibration(
            max_marks=300,
            pool_size=1_200_000,
            percentile_rank_scale=12_000,
            percentile_authoritative=True,
            marks_percentile_curve=[
                (300, 100.0, 0.0),
                (280, 99.0, 0.05),
                (220, 95.0, 4 / 60),
                (150, 85.0, 10 / 70),
                (50, 50.0, 0.35),
                (0, 0.0, 1.0),
            ],
        ),
    }

    # exam -> year -> multiplier applied to the normalized rank
    difficulty: Dict[ExamType, Dict[int, float]] = {}

    base_confidence: float = 0.8
    unofficial_percentile_confidence: float = 0.6
    unofficial_marks_confidence: float = 0.5
    low_confidence_threshold: float = 0.6

    probability_bands: List[ProbabilityBand] = [
        ProbabilityBand(upper_bound=-100, probability=0.95),
        ProbabilityBand(upper_bound=-50, probability=0.85),
        ProbabilityBand(upper_bound=0, probability=0.70),
        ProbabilityBand(upper_bound=50, probability=0.50),
        ProbabilityBand(upper_bound=100, probability=0.30),
        ProbabilityBand(upper_bound=200, probability=0.15),
        ProbabilityBand(upper_bound=None, probability=0.05),
    ]
    state_quota_multiplier: float = 1.2
    state_quota_cap: float = 0.95
    government_multiplier: float = 0.9
    probability_floor: float = 0.05
    probability_ceiling: float = 0.95

    # Average yearly closing-rank change beyond which a trend is reported
    trend_threshold: int = 100
    trend_window: int = 4

    weights: CompositeWeights = CompositeWeights()

    # Annual family budget per income band (INR)
    income_thresholds: Dict[IncomeBand, float] = {
        IncomeBand.LOW: 100_000,
        IncomeBand.MIDDLE: 500_000,
        IncomeBand.HIGH: 1_500_000,
    }
    # (fee / threshold ratio upper bound, feasibility); beyond the last -> floor
    feasibility_steps: List[Tuple[float, float]] = [(1.0, 1.0), (1.5, 0.7), (2.0, 0.4)]
    feasibility_floor: float = 0.2
    unknown_fee_feasibility: float = 0.7

    noise_threshold: float = 0.10
    national_institution_keywords: List[str] = ["AIIMS", "IIT", "NIT"]

    @model_validator(mode="after")
    def _bands_ascending(self):
        bounds = [b.upper_bound for b in self.probability_bands]
        if not bounds or bounds[-1] is not None:
            raise ValueError("last probability band must be open ended")
        finite = bounds[:-1]
        if any(b is None for b in finite) or finite != sorted(finite):
            raise ValueError("probability band bounds must be ascending")
        return self

    def exam(self, exam_type: ExamType) -> ExamCalibration:
        return self.exams[exam_type]

    def difficulty_multiplier(self, exam_type: ExamType, year: int) -> float:
        return self.difficulty.get(exam_type, {}).get(year, 1.0)

    def with_difficulty(self, exam_type: ExamType, year: int, multiplier: float) -> "EngineCalibration":
        """Return a copy with one (exam, year) difficulty multiplier overridden."""
        if multiplier <= 0:
            raise ValueError("difficulty multiplier must be positive")
        table = {exam: dict(years) for exam, years in self.difficulty.items()}
        table.setdefault(exam_type, {})[year] = multiplier
        return self.model_copy(update={"difficulty": table})


def load_calibration(path: Optional[str] = None) -> EngineCalibration:
    """Load a calibration JSON file, or the built-in defaults when path is None."""
    if not path:
        return EngineCalibration()
    with open(path, encoding="utf-8") as f:
        return EngineCalibration.model_validate(json.load(f))
