"""
Score Normalization Service

PURPOSE:
Convert a raw score (marks, percentile or rank) into a comparable rank
space so it can be matched against historical closing ranks.

HOW IT WORKS:
1. Pick the conversion for the (exam, score type) pair
2. Compute the base rank and estimated percentile
3. Apply the year difficulty multiplier -> adjusted rank
4. Attach a confidence (lower for unofficial conversions)

Conversions without an authoritative basis (e.g. NEET percentile, JEE
marks) still return a value. They carry confidence <= 0.6 and
low_confidence=True. The caller must show them as indicative only.
"""

import logging
from typing import Tuple

from app.core.exceptions import ValidationError
from app.models.calibration import EngineCalibration, ExamCalibration
from app.models.domain import NormalizedScore, ScoreInput, ScoreType, format_range

logger = logging.getLogger(__name__)


def _percentile_from_rank(rank: int, pool_size: int) -> float:
    return max(0.0, (1 - rank / pool_size) * 100)


def _rank_from_percentile(percentile: float, scale: float) -> int:
    return max(1, round((100 - percentile) * scale))


def marks_to_percentile(marks: float, curve) -> float:
    """Piecewise marks -> percentile lookup; first row with marks >= min wins."""
    for min_marks, base, per_mark in curve:
        if marks >= min_marks:
            return min(100.0, base + (marks - min_marks) * per_mark)
    return 0.0


class ScoreNormalizer:
    """
    Pure conversion of ScoreInput -> NormalizedScore.

    Holds no state besides the calibration: the same input always yields
    an equal NormalizedScore.
    """

    def __init__(self, calibration: EngineCalibration):
        self.calibration = calibration

    def _convert(self, score: ScoreInput, exam: ExamCalibration) -> Tuple[int, float, float]:
        """Returns (rank, percentile, confidence) before difficulty adjustment."""
        cal = self.calibration
        value = score.score_value

        if score.score_type is ScoreType.RANK:
            rank = int(value)
            if rank > exam.pool_size:
                raise ValidationError(
                    "score_value",
                    f"rank {rank} exceeds the {score.exam_type.value} candidate pool",
                    format_range(1, exam.pool_size),
                )
            return rank, _percentile_from_rank(rank, exam.pool_size), cal.base_confidence

        if score.score_type is ScoreType.PERCENTILE:
            rank = _rank_from_percentile(value, exam.percentile_rank_scale)
            confidence = (
                cal.base_confidence if exam.percentile_authoritative
                else cal.unofficial_percentile_confidence
            )
            return rank, value, confidence

        # Marks
        if value > exam.max_marks:
            raise ValidationError(
                "score_value",
                f"{value:g} exceeds maximum marks for {score.exam_type.value}",
                format_range(0, exam.max_marks),
            )
        if exam.marks_rank_scale is not None:
            rank = max(1, round((exam.max_marks - value) * exam.marks_rank_scale))
            return rank, _percentile_from_rank(rank, exam.pool_size), cal.base_confidence

        percentile = marks_to_percentile(value, exam.marks_percentile_curve)
        rank = _rank_from_percentile(percentile, exam.percentile_rank_scale)
        return rank, percentile, cal.unofficial_marks_confidence

    def normalize(self, score: ScoreInput) -> NormalizedScore:
        exam = self.calibration.exam(score.exam_type)
        rank, percentile, confidence = self._convert(score, exam)

        multiplier = self.calibration.difficulty_multiplier(score.exam_type, score.year)
        adjusted = max(1, round(rank * multiplier))
        low_confidence = confidence <= self.calibration.low_confidence_threshold

        if low_confidence:
            logger.warning(
                "Low-confidence normalization: %s %s=%g (confidence %.2f)",
                score.exam_type.value, score.score_type.value, score.score_value, confidence,
            )

        return NormalizedScore(
            original_score=score.score_value,
            original_type=score.score_type,
            exam_type=score.exam_type,
            year=score.year,
            normalized_rank=rank,
            adjusted_rank=adjusted,
            estimated_percentile=round(min(100.0, percentile), 4),
            difficulty_multiplier=multiplier,
            confidence=confidence,
            low_confidence=low_confidence,
        )
