"""
Shared test data for the scripts/test_*.py suites.

Calibration constants here are small and explicit
(NEET: 5 ranks per mark, pool 10,000) so expected ranks can be worked
out by hand and never depend on production numbers.
"""
import sys
sys.path.insert(0, '.')

from app.core.config import Settings
from app.models.calibration import EngineCalibration, ExamCalibration
from app.models.domain import (
    Category,
    College,
    CollegeType,
    ExamType,
    FeeRange,
    HistoricalCutoff,
    ScoreInput,
)
from app.services.college_store import InMemoryCollegeStore
from app.services.cutoff_store import InMemoryCutoffStore
from app.services.prediction_service import PredictionService
from app.services.result_cache import ResultCache

K_NEET = 5
POOL_NEET = 10_000
K_JEE = 200
POOL_JEE = 20_000


def make_calibration(**overrides) -> EngineCalibration:
    calibration = EngineCalibration(
        version="test-1",
        exams={
            ExamType.NEET: ExamCalibration(
                max_marks=720,
                pool_size=POOL_NEET,
                marks_rank_scale=K_NEET,
                percentile_rank_scale=POOL_NEET / 100,
                percentile_authoritative=False,
            ),
            ExamType.JEE_MAIN: ExamCalibration(
                max_marks=300,
                pool_size=POOL_JEE,
                percentile_rank_scale=K_JEE,
                percentile_authoritative=True,
                marks_percentile_curve=[(200, 90.0, 0.1), (0, 0.0, 0.45)],
            ),
        },
    )
    if overrides:
        calibration = calibration.model_copy(update=overrides)
    return calibration


def make_settings(**overrides) -> Settings:
    values = dict(
        cache_ttl_seconds=60.0,
        display_limit=10,
        internal_limit=50,
        lookback_years=5,
        store_timeout_seconds=5.0,
        store_retry_attempts=1,
        store_retry_backoff_seconds=0.2,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def neet_marks(marks, category="General", state="Maharashtra", year=2025) -> ScoreInput:
    return ScoreInput(
        exam_type="NEET", score_type="marks", score_value=marks,
        category=category, year=year, state=state,
    )


# ============================================================
# REFERENCE DATA
# ============================================================

GMC_MUMBAI = College(
    id="gmc-mumbai", name="Grant Government Medical College", location="Mumbai",
    state="Maharashtra", type=CollegeType.GOVERNMENT, courses=("MBBS",),
    fee_range=FeeRange(min=50_000, max=100_000), safety_score=8.0, placement_score=7.0,
    hostel_available=True,
)
PUNE_PRIVATE = College(
    id="pune-private", name="Pune Private Medical College", location="Pune",
    state="Maharashtra", type=CollegeType.PRIVATE, courses=("MBBS", "BDS"),
    fee_range=FeeRange(min=600_000, max=1_200_000), safety_score=7.5, placement_score=6.0,
)
AIIMS_DELHI = College(
    id="aiims-delhi", name="AIIMS New Delhi", location="New Delhi",
    state="Delhi", type=CollegeType.GOVERNMENT, courses=("MBBS",),
    fee_range=FeeRange(min=1_628, max=5_856), safety_score=9.0, placement_score=9.5,
)
BMC_BENGALURU = College(
    id="bmc-bengaluru", name="Bangalore Medical College", location="Bengaluru",
    state="Karnataka", type=CollegeType.GOVERNMENT, courses=("MBBS",),
    fee_range=FeeRange(max=60_000), safety_score=8.5, placement_score=8.0,
)

COLLEGES = [GMC_MUMBAI, PUNE_PRIVATE, AIIMS_DELHI, BMC_BENGALURU]


def cutoff(college_id, year, closing, category=Category.GENERAL, round_number=1,
           state_quota=False, exam=ExamType.NEET) -> HistoricalCutoff:
    return HistoricalCutoff(
        college_id=college_id, exam_name=exam, exam_year=year, category=category,
        round_number=round_number, opening_rank=max(1, closing // 4), closing_rank=closing,
        state_quota=state_quota,
    )


CUTOFFS = [
    cutoff("gmc-mumbai", 2023, 380),
    cutoff("gmc-mumbai", 2024, 400),
    cutoff("pune-private", 2024, 900, state_quota=True),
    cutoff("aiims-delhi", 2024, 50),
    cutoff("bmc-bengaluru", 2024, 420),
    cutoff("gmc-mumbai", 2024, 900, category=Category.OBC),
    cutoff("gmc-mumbai", 2015, 100),  # outside the lookback window
]


class CountingCutoffStore(InMemoryCutoffStore):
    def __init__(self, rows=()):
        super().__init__(rows)
        self.calls = 0

    def query(self, exam, category, year_range, deadline=None):
        self.calls += 1
        return super().query(exam, category, year_range, deadline)


def make_service(rows=None, colleges=None, clock=None, **settings) -> PredictionService:
    calibration = make_calibration()
    config = make_settings(**settings)
    return PredictionService(
        cutoff_store=CountingCutoffStore(CUTOFFS if rows is None else rows),
        college_store=InMemoryCollegeStore(COLLEGES if colleges is None else colleges),
        calibration=calibration,
        cache=ResultCache(config.cache_ttl_seconds, clock=clock or FakeClock()),
        settings=config,
        sleep=lambda seconds: None,
    )
