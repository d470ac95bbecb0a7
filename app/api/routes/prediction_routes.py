"""
Prediction Routes

POST   /predictions             - Ranked college predictions for a score
POST   /predictions/normalize   - Score -> rank/percentile conversion only
GET    /predictions/calibration - Active model calibration (auditable)
DELETE /predictions/cache       - Drop all cached results
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.exceptions import ValidationError
from app.schemas.schemas import (
    MessageResponse,
    NormalizedScoreResponse,
    PredictionListResponse,
    PredictionRequest,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from app.services.prediction_service import PredictionService, get_prediction_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/predictions", tags=["Predictions"])

INVALID_SCORE = {
    status.HTTP_422_UNPROCESSABLE_ENTITY: {
        "model": ValidationErrorResponse,
        "description": "Score input rejected; `detail.field` names the offending field",
    },
}


def _validation_failed(e: ValidationError) -> HTTPException:
    detail = ValidationErrorDetail(**e.to_dict())
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail.model_dump())


@router.post("", response_model=PredictionListResponse, responses=INVALID_SCORE)
def predict(
    request: PredictionRequest,
    limit: int = Query(10, ge=1, le=50, description="Number of predictions to return"),
    service: PredictionService = Depends(get_prediction_service),
):
    """
    Predict admission chances for a student's score.

    Process:
    1. Normalize the score into rank space
    2. Match against historical closing ranks for the category
    3. Score probability, safety, placement and affordability
    4. Return the top `limit` colleges with reasoning

    An empty `predictions` list is a normal answer (no data yet);
    check `dataAvailable` and `message`.
    """
    try:
        score = request.to_score_input()
        result = service.predict(score, income_band=request.income_band, limit=limit)
    except ValidationError as e:
        raise _validation_failed(e)
    except Exception as e:
        logger.exception("Prediction engine failure")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No recommendations available right now. Please try again later.",
        ) from e

    return PredictionListResponse.from_result(score, result)


@router.post("/normalize", response_model=NormalizedScoreResponse, responses=INVALID_SCORE)
def normalize(
    request: PredictionRequest,
    service: PredictionService = Depends(get_prediction_service),
):
    """Convert a score to estimated rank and percentile with a confidence value."""
    try:
        normalized = service.normalize(request.to_score_input())
    except ValidationError as e:
        raise _validation_failed(e)
    return NormalizedScoreResponse.from_domain(normalized)


@router.get("/calibration")
def calibration(service: PredictionService = Depends(get_prediction_service)):
    """Constants currently used by the engine, including the version tag."""
    return service.calibration.model_dump(mode="json")


@router.delete("/cache", response_model=MessageResponse)
def clear_cache(service: PredictionService = Depends(get_prediction_service)):
    """Clear cached normalizations and predictions (e.g. after new cutoffs are ingested)."""
    entries = len(service.cache)
    service.cache.clear()
    logger.info("Prediction cache cleared (%d entries)", entries)
    return MessageResponse(message=f"Cleared {entries} cached results")
