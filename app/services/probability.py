"""
Admission Probability Model

An auditable heuristic, not a fitted model:

    rank difference = student rank - historical closing rank

    < -100       0.95
    [-100, -50)  0.85
    [-50, 0)     0.70
    [0, 50)      0.50
    [50, 100)    0.30
    [100, 200)   0.15
    >= 200       0.05

then x1.2 for an applicable state quota (capped at 0.95), x0.9 for
government colleges, and a final clamp to [0.05, 0.95]. The output is
non-increasing in student rank and never claims certainty either way.

Band bounds and multipliers come from the calibration; changing them is a
model change and needs a new calibration version.
"""

from typing import List, Sequence, Tuple

import numpy as np

from app.models.calibration import EngineCalibration
from app.models.domain import CollegeType, HistoricalCutoff, Trend


class ProbabilityModel:

    def __init__(self, calibration: EngineCalibration):
        self.calibration = calibration

    def base_probability(self, rank_difference: int) -> float:
        for band in self.calibration.probability_bands:
            if band.upper_bound is None or rank_difference < band.upper_bound:
                return band.probability
        # Unreachable: the last band is open ended (checked by the calibration)
        return self.calibration.probability_floor

    def score_probability(
        self,
        student_rank: int,
        historical_closing_rank: int,
        state_quota: bool,
        college_type: CollegeType,
    ) -> float:
        cal = self.calibration
        probability = self.base_probability(student_rank - historical_closing_rank)

        if state_quota:
            probability = min(probability * cal.state_quota_multiplier, cal.state_quota_cap)
        if college_type is CollegeType.GOVERNMENT:
            probability *= cal.government_multiplier

        return round(min(cal.probability_ceiling, max(cal.probability_floor, probability)), 4)


# ============================================================
# CUTOFF TREND PROJECTION
# ============================================================

def project_cutoff(
    history: Sequence[HistoricalCutoff],
    target_year: int,
    calibration: EngineCalibration,
) -> Tuple[int, Trend]:
    """
    Project a closing rank to target_year from one (college, round, quota)
    history.

    Uses the mean year-over-year change of the last `trend_window` years;
    a single year of data projects flat.
    """
    if not history:
        raise ValueError("history must not be empty")

    # One closing rank per year, latest round data wins for duplicates
    by_year = {}
    for row in sorted(history, key=lambda r: (r.exam_year, r.round_number)):
        by_year[row.exam_year] = row.closing_rank
    years: List[int] = sorted(by_year)[-calibration.trend_window:]
    latest_year = years[-1]
    latest_rank = by_year[latest_year]

    if len(years) < 2:
        return latest_rank, Trend.STABLE

    ranks = np.array([by_year[y] for y in years], dtype=float)
    gaps = np.diff(np.array(years, dtype=float))
    avg_change = float(np.mean(np.diff(ranks) / gaps))

    projected = latest_rank + avg_change * max(0, target_year - latest_year)
    if avg_change > calibration.trend_threshold:
        trend = Trend.RISING
    elif avg_change < -calibration.trend_threshold:
        trend = Trend.FALLING
    else:
        trend = Trend.STABLE
    return max(1, int(round(projected))), trend
