"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Field names are snake_case in Python and camelCase on the wire (the
frontend sends examType, scoreValue, ...); both spellings are accepted
on input.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Union

from app.models.domain import College, IncomeBand, NormalizedScore, Prediction, ScoreInput
from app.services.prediction_service import ConfidenceIntervals, PredictionResult


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# REQUEST SCHEMAS
# ============================================================

class PredictionRequest(CamelModel):
    # Kept as loose types: domain validation reports the offending field
    # with its expected range instead of a generic type error
    exam_type: str = Field(..., description="NEET or JEE-MAIN")
    score_type: str = Field(..., description="marks, percentile or rank")
    score_value: Union[float, str] = Field(..., description="Score in the chosen representation")
    category: str = Field(..., description="General, OBC, SC, ST, EWS or PWD")
    state: Optional[str] = Field(None, description="Home state; 'all' or empty for every state")
    year: int = Field(2025, description="Counselling year")
    income_band: Optional[IncomeBand] = Field(None, description="low, middle or high (default middle)")

    def to_score_input(self) -> ScoreInput:
        return ScoreInput(
            exam_type=self.exam_type,
            score_type=self.score_type,
            score_value=self.score_value,
            category=self.category,
            year=self.year,
            state=self.state,
        )


# ============================================================
# RESPONSE SCHEMAS
# ============================================================

class NormalizedScoreResponse(CamelModel):
    original_score: float
    original_type: str
    exam_type: str
    year: int
    normalized_rank: int
    adjusted_rank: int
    estimated_percentile: float
    difficulty_multiplier: float
    confidence: float
    low_confidence: bool

    @classmethod
    def from_domain(cls, score: NormalizedScore) -> "NormalizedScoreResponse":
        return cls(
            original_score=score.original_score,
            original_type=score.original_type.value,
            exam_type=score.exam_type.value,
            year=score.year,
            normalized_rank=score.normalized_rank,
            adjusted_rank=score.adjusted_rank,
            estimated_percentile=score.estimated_percentile,
            difficulty_multiplier=score.difficulty_multiplier,
            confidence=score.confidence,
            low_confidence=score.low_confidence,
        )


class FeeRangeResponse(CamelModel):
    min: Optional[float] = None
    max: Optional[float] = None


class CollegeResponse(CamelModel):
    id: str
    name: str
    location: str
    state: str
    type: str
    courses: List[str] = []
    fee_range: FeeRangeResponse
    safety_score: float
    placement_score: float
    hostel_available: bool

    @classmethod
    def from_domain(cls, college: College) -> "CollegeResponse":
        return cls(
            id=college.id,
            name=college.name,
            location=college.location,
            state=college.state,
            type=college.type.value,
            courses=list(college.courses),
            fee_range=FeeRangeResponse(min=college.fee_range.min, max=college.fee_range.max),
            safety_score=college.safety_score,
            placement_score=college.placement_score,
            hostel_available=college.hostel_available,
        )


class PredictionItemResponse(CamelModel):
    college: CollegeResponse
    admission_probability: float
    predicted_cutoff_rank: int
    rank_difference: int
    round: int
    exam_year: int
    state_quota: bool
    overall_score: float
    financial_feasibility: float
    trend: str
    reasoning: str

    @classmethod
    def from_domain(cls, prediction: Prediction) -> "PredictionItemResponse":
        return cls(
            college=CollegeResponse.from_domain(prediction.college),
            admission_probability=prediction.admission_probability,
            predicted_cutoff_rank=prediction.predicted_cutoff_rank,
            rank_difference=prediction.rank_difference,
            round=prediction.round,
            exam_year=prediction.exam_year,
            state_quota=prediction.state_quota,
            overall_score=prediction.overall_score,
            financial_feasibility=prediction.financial_feasibility,
            trend=prediction.trend.value,
            reasoning=prediction.reasoning,
        )


class ConfidenceIntervalsResponse(CamelModel):
    high: int
    medium: int
    low: int
    total: int

    @classmethod
    def from_domain(cls, buckets: ConfidenceIntervals) -> "ConfidenceIntervalsResponse":
        return cls(high=buckets.high, medium=buckets.medium, low=buckets.low, total=buckets.total)


class PredictionMetadata(CamelModel):
    exam_type: str
    year: int
    category: str
    state: Optional[str] = None
    model_version: str
    total_candidates: int

    # "model_version" would otherwise clash with pydantic's protected namespace
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class PredictionListResponse(CamelModel):
    success: bool = True
    normalized_score: NormalizedScoreResponse
    predictions: List[PredictionItemResponse]
    confidence_intervals: ConfidenceIntervalsResponse
    data_available: bool
    message: Optional[str] = None
    metadata: PredictionMetadata

    @classmethod
    def from_result(cls, score: ScoreInput, result: PredictionResult) -> "PredictionListResponse":
        message = None
        if not result.data_available:
            message = "Prediction data is temporarily unavailable. Please try again shortly."
        elif not result.predictions:
            message = "Insufficient historical data for this exam, category and year."
        elif result.normalized_score.low_confidence:
            message = "Score conversion is approximate; treat these predictions as indicative only."

        return cls(
            normalized_score=NormalizedScoreResponse.from_domain(result.normalized_score),
            predictions=[PredictionItemResponse.from_domain(p) for p in result.predictions],
            confidence_intervals=ConfidenceIntervalsResponse.from_domain(result.confidence_intervals),
            data_available=result.data_available,
            message=message,
            metadata=PredictionMetadata(
                exam_type=score.exam_type.value,
                year=score.year,
                category=score.category.value,
                state=score.state,
                model_version=result.calibration_version,
                total_candidates=result.total_candidates,
            ),
        )


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class ValidationErrorDetail(BaseModel):
    field: str
    message: str
    expected: Optional[str] = None


class ValidationErrorResponse(BaseModel):
    """422 body for score input the engine rejects."""
    detail: ValidationErrorDetail
