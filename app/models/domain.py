"""
Domain types for the admission prediction engine.

Internal data structures only (the API contract lives in app/schemas).
Every type here is frozen: a new request produces new objects, nothing
is mutated after construction.
"""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from app.core.exceptions import ValidationError


# ============================================================
# ENUMS
# ============================================================

def _token(value: str) -> str:
    """Lowercase and collapse separators: 'JEE Main' -> 'jee_main'."""
    return re.sub(r"[\s\-]+", "_", str(value).strip().lower())


class ExamType(str, Enum):
    NEET = "NEET"
    JEE_MAIN = "JEE-MAIN"

    @classmethod
    def parse(cls, value) -> "ExamType":
        if isinstance(value, cls):
            return value
        aliases = {
            "neet": cls.NEET,
            "neet_ug": cls.NEET,
            "jee_main": cls.JEE_MAIN,
            "jee_mains": cls.JEE_MAIN,
            "jeemain": cls.JEE_MAIN,
        }
        exam = aliases.get(_token(value))
        if exam is None:
            raise ValidationError("exam_type", f"unrecognized exam {value!r}", "one of NEET, JEE-MAIN")
        return exam

    @property
    def db_name(self) -> str:
        """Name used in the historical_cutoffs.exam_name column."""
        return "neet-ug" if self is ExamType.NEET else "jee-main"


class ScoreType(str, Enum):
    MARKS = "marks"
    PERCENTILE = "percentile"
    RANK = "rank"

    @classmethod
    def parse(cls, value) -> "ScoreType":
        if isinstance(value, cls):
            return value
        try:
            return cls(_token(value))
        except ValueError:
            raise ValidationError("score_type", f"unrecognized score type {value!r}", "one of marks, percentile, rank")


class Category(str, Enum):
    GENERAL = "general"
    OBC = "obc"
    SC = "sc"
    ST = "st"
    EWS = "ews"
    PWD = "pwd"

    @classmethod
    def parse(cls, value) -> "Category":
        if isinstance(value, cls):
            return value
        token = _token(value)
        if token in ("gen", "open", "ur"):
            token = "general"
        try:
            return cls(token)
        except ValueError:
            raise ValidationError("category", f"unrecognized category {value!r}", "one of General, OBC, SC, ST, EWS, PWD")


class CollegeType(str, Enum):
    GOVERNMENT = "government"
    SEMI_GOVERNMENT = "semi-government"
    PRIVATE = "private"
    DEEMED = "deemed"
    NIT = "nit"
    IIIT = "iiit"

    @classmethod
    def parse(cls, value) -> "CollegeType":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower().replace("_", "-"))


class IncomeBand(str, Enum):
    LOW = "low"
    MIDDLE = "middle"
    HIGH = "high"


class Trend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


# ============================================================
# SCORE INPUT
# ============================================================

# Static domain per (exam, score type). Rank upper bounds depend on the
# calibration pool size and are checked by the normalizer.
SCORE_DOMAINS = {
    (ExamType.NEET, ScoreType.MARKS): (0.0, 720.0),
    (ExamType.NEET, ScoreType.PERCENTILE): (0.0, 100.0),
    (ExamType.NEET, ScoreType.RANK): (1.0, math.inf),
    (ExamType.JEE_MAIN, ScoreType.MARKS): (0.0, 300.0),
    (ExamType.JEE_MAIN, ScoreType.PERCENTILE): (0.0, 100.0),
    (ExamType.JEE_MAIN, ScoreType.RANK): (1.0, math.inf),
}


def format_range(low: float, high: float) -> str:
    def fmt(v):
        if math.isinf(v):
            return "inf"
        return str(int(v)) if float(v).is_integer() else str(v)
    return f"[{fmt(low)}, {fmt(high)}]"


@dataclass(frozen=True)
class ScoreInput:
    """
    A student's score for one exam.

    The (exam_type, score_type) pair selects the valid range for
    score_value; anything outside it raises ValidationError at
    construction time.
    """
    exam_type: ExamType
    score_type: ScoreType
    score_value: float
    category: Category
    year: int
    state: Optional[str] = None

    def __post_init__(self):
        # Coerce raw strings so callers can pass request values straight in
        object.__setattr__(self, "exam_type", ExamType.parse(self.exam_type))
        object.__setattr__(self, "score_type", ScoreType.parse(self.score_type))
        object.__setattr__(self, "category", Category.parse(self.category))

        if isinstance(self.score_value, bool):
            raise ValidationError("score_value", "must be a number")
        try:
            value = float(self.score_value)
        except (TypeError, ValueError):
            raise ValidationError("score_value", f"not a number: {self.score_value!r}")
        if math.isnan(value):
            raise ValidationError("score_value", "must not be NaN")

        low, high = SCORE_DOMAINS[(self.exam_type, self.score_type)]
        if not low <= value <= high:
            raise ValidationError(
                "score_value",
                f"{value:g} is out of range for {self.exam_type.value} {self.score_type.value}",
                format_range(low, high),
            )
        if self.score_type is ScoreType.RANK and not value.is_integer():
            raise ValidationError("score_value", "rank must be a whole number")
        object.__setattr__(self, "score_value", value)

        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise ValidationError("year", f"not an integer: {self.year!r}")
        if not 2000 <= self.year <= 2100:
            raise ValidationError("year", f"{self.year} is out of range", "[2000, 2100]")

        state = (self.state or "").strip()
        object.__setattr__(self, "state", state or None)

    @property
    def state_filter(self) -> Optional[str]:
        """State to filter colleges by, or None for all states."""
        if self.state is None or self.state.lower() == "all":
            return None
        return self.state


# ============================================================
# ENGINE OUTPUTS & REFERENCE DATA
# ============================================================

# Used when reference data has no score for a college
DEFAULT_SAFETY_SCORE = 7.0
DEFAULT_PLACEMENT_SCORE = 5.0


@dataclass(frozen=True)
class NormalizedScore:
    original_score: float
    original_type: ScoreType
    exam_type: ExamType
    year: int
    normalized_rank: int
    adjusted_rank: int
    estimated_percentile: float
    difficulty_multiplier: float
    confidence: float
    low_confidence: bool


@dataclass(frozen=True)
class HistoricalCutoff:
    college_id: str
    exam_name: ExamType
    exam_year: int
    category: Category
    round_number: int
    opening_rank: Optional[int]
    closing_rank: int
    state_quota: bool = False


@dataclass(frozen=True)
class FeeRange:
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def annual_fee(self) -> Optional[float]:
        """Fee used for affordability: the upper bound when known."""
        return self.max if self.max is not None else self.min


@dataclass(frozen=True)
class College:
    id: str
    name: str
    location: str
    state: str
    type: CollegeType
    courses: Tuple[str, ...] = ()
    fee_range: FeeRange = field(default_factory=FeeRange)
    safety_score: float = DEFAULT_SAFETY_SCORE
    placement_score: float = DEFAULT_PLACEMENT_SCORE
    hostel_available: bool = False


@dataclass(frozen=True)
class Prediction:
    college: College
    admission_probability: float
    predicted_cutoff_rank: int
    rank_difference: int
    round: int
    exam_year: int
    state_quota: bool
    overall_score: float
    financial_feasibility: float
    trend: Trend
    reasoning: str
