"""
Admission Prediction Service

PURPOSE:
Turn a student's score into a ranked list of colleges with admission
probabilities, composite scores and a plain-language reason for each.

HOW IT WORKS:
1. Normalize the score into rank space (cached)
2. Fetch historical cutoffs for exam + category over the year window
3. Collapse history to the latest row per (college, round, quota) and
   project its closing rank forward from the trend
4. Score admission probability against the latest closing rank
5. Fuse probability with safety, placement and affordability
6. Drop noise (p <= 0.10), sort, cap at 50 (cached)

DEGRADATION:
An unreachable store is retried once with backoff, then the result is
an empty list with data_available=False. "No predictions yet" is a
normal user-facing state, not a failure.
"""

import logging
import re
import time
from collections import defaultdict
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from app.core.config import Settings, get_settings
from app.core.exceptions import DataUnavailableError
from app.models.calibration import EngineCalibration, load_calibration
from app.models.domain import (
    College,
    CollegeType,
    HistoricalCutoff,
    IncomeBand,
    NormalizedScore,
    Prediction,
    ScoreInput,
    Trend,
)
from app.services.college_store import CollegeStore, MongoCollegeStore
from app.services.cutoff_store import CutoffStore, SqlCutoffStore
from app.services.normalizer import ScoreNormalizer
from app.services.probability import ProbabilityModel, project_cutoff
from app.services.result_cache import ResultCache
from app.services.scoring import CompositeScorer, ScoreBreakdown, format_inr

logger = logging.getLogger(__name__)

NATIONAL_TYPES = (CollegeType.NIT, CollegeType.IIIT)


@dataclass(frozen=True)
class ConfidenceIntervals:
    high: int
    medium: int
    low: int
    total: int


@dataclass(frozen=True)
class PredictionResult:
    normalized_score: NormalizedScore
    predictions: List[Prediction]
    confidence_intervals: ConfidenceIntervals
    data_available: bool
    total_candidates: int
    calibration_version: str


def confidence_buckets(predictions: Sequence[Prediction]) -> ConfidenceIntervals:
    """high: p > 0.70, medium: 0.40 < p <= 0.70, low: p <= 0.40"""
    high = sum(1 for p in predictions if p.admission_probability > 0.70)
    medium = sum(1 for p in predictions if 0.40 < p.admission_probability <= 0.70)
    low = sum(1 for p in predictions if p.admission_probability <= 0.40)
    return ConfidenceIntervals(high=high, medium=medium, low=low, total=len(predictions))


class PredictionService:
    """
    Orchestrates normalizer, stores, probability model and scorer.

    All collaborators are injected; the cache is shared per service
    instance, so tests get isolation by building their own service.
    """

    def __init__(
        self,
        cutoff_store: CutoffStore,
        college_store: CollegeStore,
        calibration: Optional[EngineCalibration] = None,
        cache: Optional[ResultCache] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings if settings is not None else get_settings()
        self.calibration = calibration if calibration is not None else EngineCalibration()
        self.cache = cache if cache is not None else ResultCache(
            self.settings.cache_ttl_seconds, max_entries=self.settings.cache_max_entries
        )
        self.cutoff_store = cutoff_store
        self.college_store = college_store
        self.normalizer = ScoreNormalizer(self.calibration)
        self.probability_model = ProbabilityModel(self.calibration)
        self.scorer = CompositeScorer(self.calibration)
        self._sleep = sleep

    # ------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------

    def normalize(self, score: ScoreInput) -> NormalizedScore:
        key = ("normalize", self.calibration.version, score)
        return self.cache.get_or_compute(key, lambda: self.normalizer.normalize(score))

    def recommend(self, score: ScoreInput, income_band: Optional[IncomeBand] = None) -> List[Prediction]:
        """Ranked predictions (at most `internal_limit`); [] when there is no data."""
        predictions, _ = self._recommend(score, income_band)
        return predictions

    def predict(
        self,
        score: ScoreInput,
        income_band: Optional[IncomeBand] = None,
        limit: Optional[int] = None,
    ) -> PredictionResult:
        """Full response: normalized score, display slice and confidence buckets."""
        normalized = self.normalize(score)
        predictions, data_available = self._recommend(score, income_band)

        limit = limit or self.settings.display_limit
        shown = predictions[:min(limit, self.settings.internal_limit)]

        return PredictionResult(
            normalized_score=normalized,
            predictions=shown,
            confidence_intervals=confidence_buckets(shown),
            data_available=data_available,
            total_candidates=len(predictions),
            calibration_version=self.calibration.version,
        )

    # ------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------

    def _recommend(self, score: ScoreInput, income_band: Optional[IncomeBand]) -> Tuple[List[Prediction], bool]:
        key = ("predictions", self.calibration.version, score, income_band)
        try:
            # Failures raise out of get_or_compute, so they are never cached
            predictions = self.cache.get_or_compute(key, lambda: self._compute(score, income_band))
        except DataUnavailableError as e:
            logger.warning("Prediction data unavailable, returning no recommendations: %s", e)
            return [], False
        return list(predictions), True

    def _compute(self, score: ScoreInput, income_band: Optional[IncomeBand]) -> Tuple[Prediction, ...]:
        normalized = self.normalize(score)
        window = (score.year - self.settings.lookback_years, score.year)
        rows = self._fetch_cutoffs(score, window)
        if not rows:
            logger.info(
                "No historical cutoffs for %s/%s in %s", score.exam_type.value, score.category.value, window
            )
            return ()

        groups: Dict[Tuple[str, int, bool], List[HistoricalCutoff]] = defaultdict(list)
        for row in rows:
            groups[(row.college_id, row.round_number, row.state_quota)].append(row)

        colleges = self.college_store.get_many({row.college_id for row in rows})
        missing = {cid for cid, _, _ in groups} - set(colleges)
        if missing:
            logger.warning("No reference data for %d colleges: %s", len(missing), sorted(missing)[:5])

        predictions = []
        for (college_id, _, _), history in groups.items():
            college = colleges.get(college_id)
            if college is None or not self._in_scope(college, score.state_filter):
                continue
            prediction = self._predict_one(score, normalized, college, history, income_band)
            if prediction is not None:
                predictions.append(prediction)

        predictions.sort(key=lambda p: (-p.overall_score, -p.admission_probability, p.college.name, p.round))
        return tuple(predictions[:self.settings.internal_limit])

    def _fetch_cutoffs(self, score: ScoreInput, window: Tuple[int, int]) -> List[HistoricalCutoff]:
        def query():
            deadline = time.monotonic() + self.settings.store_timeout_seconds
            return self.cutoff_store.query(score.exam_type, score.category, window, deadline=deadline)

        for attempt in range(max(0, self.settings.store_retry_attempts)):
            try:
                return query()
            except DataUnavailableError as e:
                delay = self.settings.store_retry_backoff_seconds * (2 ** attempt)
                logger.warning("Cutoff store failed (%s), retrying in %.2fs", e, delay)
                self._sleep(delay)
        # Last attempt: DataUnavailableError propagates to _recommend
        return query()

    def _in_scope(self, college: College, state: Optional[str]) -> bool:
        """Colleges in the student's state, plus national institutions."""
        if state is None:
            return True
        if college.state.strip().lower() == state.lower():
            return True
        if college.type in NATIONAL_TYPES:
            return True
        name = college.name.upper()
        return any(
            re.search(rf"\b{re.escape(keyword.upper())}\b", name)
            for keyword in self.calibration.national_institution_keywords
        )

    def _predict_one(
        self,
        score: ScoreInput,
        normalized: NormalizedScore,
        college: College,
        history: List[HistoricalCutoff],
        income_band: Optional[IncomeBand],
    ) -> Optional[Prediction]:
        latest = max(history, key=lambda r: r.exam_year)
        predicted_rank, trend = project_cutoff(history, score.year, self.calibration)

        quota_applies = (
            latest.state_quota
            and score.state is not None
            and college.state.strip().lower() == score.state.lower()
        )
        probability = self.probability_model.score_probability(
            normalized.adjusted_rank, latest.closing_rank, quota_applies, college.type
        )
        if probability <= self.calibration.noise_threshold:
            return None

        breakdown = self.scorer.breakdown(probability, college, income_band)
        rank_difference = normalized.adjusted_rank - latest.closing_rank

        return Prediction(
            college=college,
            admission_probability=probability,
            predicted_cutoff_rank=predicted_rank,
            rank_difference=rank_difference,
            round=latest.round_number,
            exam_year=latest.exam_year,
            state_quota=latest.state_quota,
            overall_score=breakdown.overall,
            financial_feasibility=breakdown.financial_feasibility,
            trend=trend,
            reasoning=self._generate_reason(
                normalized, latest, score.year, predicted_rank, trend, quota_applies, college, breakdown
            ),
        )

    def _generate_reason(
        self,
        normalized: NormalizedScore,
        latest: HistoricalCutoff,
        target_year: int,
        predicted_rank: int,
        trend: Trend,
        quota_applies: bool,
        college: College,
        breakdown: ScoreBreakdown,
    ) -> str:
        """Human-readable reason built from the same numbers used in scoring."""
        weights = self.calibration.weights
        reasons = []

        diff = normalized.adjusted_rank - latest.closing_rank
        position = f"{abs(diff):,} ranks inside" if diff <= 0 else f"{diff:,} ranks outside"
        reasons.append(
            f"{latest.exam_year} round {latest.round_number} closing rank {latest.closing_rank:,} "
            f"vs your rank {normalized.adjusted_rank:,} ({position} the cutoff)"
        )

        adjustments = []
        if quota_applies:
            adjustments.append("state quota boost")
        if college.type is CollegeType.GOVERNMENT:
            adjustments.append("government college competition")
        probability = f"Admission probability {breakdown.admission_probability:.0%}"
        if adjustments:
            probability += f" (adjusted for {' and '.join(adjustments)})"
        reasons.append(probability)

        reasons.append(f"Projected {target_year} closing rank {predicted_rank:,}, {trend.value} trend")

        if breakdown.annual_fee is None:
            fee = "fee data unavailable"
        else:
            budget = self.calibration.income_thresholds[breakdown.income_band]
            fee = (
                f"annual fee {format_inr(breakdown.annual_fee)} vs {breakdown.income_band.value}-income "
                f"budget {format_inr(budget)}"
            )
        reasons.append(
            f"Safety {breakdown.safety_score:.1f}/10, placement {breakdown.placement_score:.1f}/10, "
            f"{fee} (affordability {breakdown.financial_feasibility:.1f})"
        )

        reasons.append(
            f"Overall {breakdown.overall:.2f} = "
            f"{weights.admission:.2f}x{breakdown.admission_probability:.2f} + "
            f"{weights.safety:.2f}x{breakdown.safety_score / 10:.2f} + "
            f"{weights.placement:.2f}x{breakdown.placement_score / 10:.2f} + "
            f"{weights.financial:.2f}x{breakdown.financial_feasibility:.2f}"
        )

        if normalized.low_confidence:
            reasons.append(f"Indicative only: score conversion confidence {normalized.confidence:.0%}")

        return ". ".join(reasons) + "."


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

@lru_cache()
def get_prediction_service() -> PredictionService:
    """Process-wide service backed by PostgreSQL + MongoDB, sharing one cache."""
    settings = get_settings()
    return PredictionService(
        cutoff_store=SqlCutoffStore(),
        college_store=MongoCollegeStore(),
        calibration=load_calibration(settings.calibration_path),
        cache=ResultCache(settings.cache_ttl_seconds, max_entries=settings.cache_max_entries),
        settings=settings,
    )
