"""
Composite Scoring Service

overall = 0.40 * admission probability
        + 0.25 * safety / 10
        + 0.20 * placement / 10
        + 0.15 * financial feasibility

Every term is reproducible from visible inputs, and
the reasoning text is built from the exact same ScoreBreakdown that
produced the number.
"""

from dataclasses import dataclass
from typing import Optional

from app.models.calibration import EngineCalibration
from app.models.domain import College, IncomeBand


@dataclass(frozen=True)
class ScoreBreakdown:
    admission_probability: float
    safety_score: float
    placement_score: float
    annual_fee: Optional[float]
    income_band: IncomeBand
    financial_feasibility: float
    admission_term: float
    safety_term: float
    placement_term: float
    financial_term: float

    @property
    def overall(self) -> float:
        return round(self.admission_term + self.safety_term + self.placement_term + self.financial_term, 4)


def _clamp10(value: float) -> float:
    return min(10.0, max(0.0, value))


class CompositeScorer:

    def __init__(self, calibration: EngineCalibration):
        self.calibration = calibration

    def financial_feasibility(self, annual_fee: Optional[float], income_band: Optional[IncomeBand] = None) -> float:
        """
        Step function of fee vs. the band's budget threshold:
        <= 1x -> 1.0, <= 1.5x -> 0.7, <= 2x -> 0.4, else 0.2.
        """
        cal = self.calibration
        if annual_fee is None:
            return cal.unknown_fee_feasibility
        threshold = cal.income_thresholds[income_band or IncomeBand.MIDDLE]
        ratio = annual_fee / threshold
        for max_ratio, feasibility in cal.feasibility_steps:
            if ratio <= max_ratio:
                return feasibility
        return cal.feasibility_floor

    def breakdown(
        self,
        admission_probability: float,
        college: College,
        income_band: Optional[IncomeBand] = None,
    ) -> ScoreBreakdown:
        weights = self.calibration.weights
        band = income_band or IncomeBand.MIDDLE
        fee = college.fee_range.annual_fee
        feasibility = self.financial_feasibility(fee, band)
        safety = _clamp10(college.safety_score)
        placement = _clamp10(college.placement_score)

        return ScoreBreakdown(
            admission_probability=admission_probability,
            safety_score=safety,
            placement_score=placement,
            annual_fee=fee,
            income_band=band,
            financial_feasibility=feasibility,
            admission_term=weights.admission * admission_probability,
            safety_term=weights.safety * safety / 10,
            placement_term=weights.placement * placement / 10,
            financial_term=weights.financial * feasibility,
        )

    def score(self, admission_probability: float, college: College, income_band: Optional[IncomeBand] = None) -> float:
        return self.breakdown(admission_probability, college, income_band).overall


def format_inr(amount: float) -> str:
    """Indian digit grouping: 1250000 -> '₹12,50,000'."""
    digits = str(int(round(amount)))
    if len(digits) <= 3:
        return f"₹{digits}"
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return "₹" + ",".join(groups + [tail])
