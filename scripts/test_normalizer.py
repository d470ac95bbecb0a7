#!/usr/bin/env python3
"""
Score Normalizer Test Script

Tests:
1. NEET marks -> rank (monotonic, rank >= 1)
2. JEE percentile -> rank (monotonic, rank >= 1)
3. Rank passthrough and percentile back-computation
4. Unofficial conversions keep a value at reduced confidence
5. Year difficulty multiplier (default, table, override)
6. Validation errors name the field and expected range
7. Purity: identical input -> equal output
8. Default JEE marks curve never ranks more marks worse
9. Calibration JSON file loading

Run: python scripts/test_normalizer.py
"""
import json
import os
import sys
import tempfile
sys.path.insert(0, '.')
sys.path.insert(0, 'scripts')

from app.core.exceptions import ValidationError
from app.models.calibration import EngineCalibration, ExamCalibration, load_calibration
from app.models.domain import ExamType, ScoreInput, ScoreType
from app.services.normalizer import ScoreNormalizer, marks_to_percentile
from fixtures import K_JEE, K_NEET, POOL_JEE, POOL_NEET, make_calibration, neet_marks


def _normalizer(**overrides) -> ScoreNormalizer:
    return ScoreNormalizer(make_calibration(**overrides))


def _raises_validation(fn, field: str) -> ValidationError:
    try:
        fn()
    except ValidationError as e:
        assert e.field == field, f"expected field {field}, got {e.field}"
        return e
    raise AssertionError("ValidationError not raised")


def test_neet_marks_to_rank():
    """NEET marks convert with the explicit scale and stay strictly decreasing."""
    print("\n[1] Testing NEET marks -> rank...")
    normalizer = _normalizer()

    result = normalizer.normalize(neet_marks(650))
    expected_rank = (720 - 650) * K_NEET
    print(f"    650 marks -> rank {result.normalized_rank} (expected: {expected_rank})")
    assert result.normalized_rank == expected_rank
    assert result.adjusted_rank == expected_rank
    assert abs(result.estimated_percentile - (1 - expected_rank / POOL_NEET) * 100) < 1e-6
    assert result.confidence == 0.8
    assert result.low_confidence is False

    previous = None
    for marks in range(0, 721):
        rank = normalizer.normalize(neet_marks(marks)).normalized_rank
        assert rank >= 1
        if previous is not None:
            assert rank < previous, f"rank not decreasing at {marks} marks"
        previous = rank

    assert normalizer.normalize(neet_marks(720)).normalized_rank == 1
    print("    ✅ NEET marks conversion is monotonic with rank >= 1")


def test_jee_percentile_to_rank():
    print("\n[2] Testing JEE percentile -> rank...")
    normalizer = _normalizer()

    def jee(p):
        return ScoreInput("JEE-MAIN", "percentile", p, "General", 2025)

    result = normalizer.normalize(jee(99.5))
    assert result.normalized_rank == round(0.5 * K_JEE)
    assert result.estimated_percentile == 99.5

    previous = None
    for step in range(0, 201):
        percentile = step * 0.5
        rank = normalizer.normalize(jee(percentile)).normalized_rank
        assert rank >= 1
        if previous is not None:
            assert rank < previous, f"rank not decreasing at percentile {percentile}"
        previous = rank

    assert normalizer.normalize(jee(100)).normalized_rank == 1
    print("    ✅ JEE percentile conversion is monotonic with rank >= 1")


def test_rank_passthrough():
    print("\n[3] Testing rank passthrough...")
    normalizer = _normalizer()

    result = normalizer.normalize(ScoreInput("JEE-MAIN", "rank", 5000, "OBC", 2025))
    assert result.normalized_rank == 5000
    assert abs(result.estimated_percentile - (1 - 5000 / POOL_JEE) * 100) < 1e-6
    assert result.confidence == 0.8

    _raises_validation(
        lambda: normalizer.normalize(ScoreInput("NEET", "rank", POOL_NEET + 1, "General", 2025)),
        "score_value",
    )
    _raises_validation(lambda: ScoreInput("NEET", "rank", 10.5, "General", 2025), "score_value")
    print("    ✅ Ranks pass through; ranks beyond the pool are rejected")


def test_unofficial_conversions_are_low_confidence():
    print("\n[4] Testing unofficial conversions...")
    normalizer = _normalizer()

    neet_pct = normalizer.normalize(ScoreInput("NEET", "percentile", 90, "General", 2025))
    print(f"    NEET 90th percentile -> rank {neet_pct.normalized_rank}, confidence {neet_pct.confidence}")
    assert neet_pct.normalized_rank == round(10 * POOL_NEET / 100)
    assert neet_pct.confidence <= 0.6
    assert neet_pct.low_confidence is True

    jee_marks = normalizer.normalize(ScoreInput("JEE-MAIN", "marks", 250, "General", 2025))
    print(f"    JEE 250 marks -> percentile {jee_marks.estimated_percentile}, confidence {jee_marks.confidence}")
    assert jee_marks.estimated_percentile == 95.0
    assert jee_marks.normalized_rank == round(5 * K_JEE)
    assert jee_marks.low_confidence is True

    assert abs(marks_to_percentile(100, [(200, 90.0, 0.1), (0, 0.0, 0.45)]) - 45.0) < 1e-9
    print("    ✅ Unofficial conversions return values flagged as low confidence")


def test_difficulty_adjustment():
    print("\n[5] Testing year difficulty multiplier...")
    base = make_calibration()
    assert base.difficulty_multiplier(ExamType.NEET, 2025) == 1.0

    harder = base.with_difficulty(ExamType.NEET, 2025, 1.1)
    result = ScoreNormalizer(harder).normalize(neet_marks(650))
    print(f"    rank {result.normalized_rank} x1.1 -> {result.adjusted_rank}")
    assert result.normalized_rank == 350
    assert result.adjusted_rank == 385
    assert result.difficulty_multiplier == 1.1

    # Other years and the original calibration are untouched
    assert ScoreNormalizer(harder).normalize(neet_marks(650, year=2024)).adjusted_rank == 350
    assert base.difficulty_multiplier(ExamType.NEET, 2025) == 1.0

    table = _normalizer(difficulty={ExamType.JEE_MAIN: {2025: 0.5}})
    result = table.normalize(ScoreInput("JEE-MAIN", "rank", 3, "General", 2025))
    assert result.adjusted_rank == 2  # round(1.5), never below 1
    assert table.normalize(ScoreInput("JEE-MAIN", "rank", 1, "General", 2025)).adjusted_rank == 1
    print("    ✅ Difficulty multiplier is explicit and overridable per year")


def test_validation_errors():
    print("\n[6] Testing validation errors...")
    e = _raises_validation(lambda: neet_marks(721), "score_value")
    print(f"    {e}")
    assert e.expected == "[0, 720]"

    e = _raises_validation(lambda: ScoreInput("JEE-MAIN", "percentile", 100.5, "General", 2025), "score_value")
    assert e.expected == "[0, 100]"
    _raises_validation(lambda: neet_marks(-5), "score_value")
    _raises_validation(lambda: ScoreInput("JEE-MAIN", "marks", 301, "General", 2025), "score_value")
    _raises_validation(lambda: neet_marks(650, category="Martian"), "category")
    _raises_validation(lambda: ScoreInput("GATE", "marks", 50, "General", 2025), "exam_type")
    _raises_validation(lambda: ScoreInput("NEET", "grade", 50, "General", 2025), "score_type")
    _raises_validation(lambda: neet_marks("abc"), "score_value")
    _raises_validation(lambda: neet_marks(600, year=1990), "year")

    # Lenient spellings are accepted
    score = ScoreInput("jee main", "Percentile", "97.5", "obc", 2025, state="  ")
    assert score.exam_type is ExamType.JEE_MAIN
    assert score.score_type is ScoreType.PERCENTILE
    assert score.score_value == 97.5
    assert score.state is None
    assert ScoreInput("NEET-UG", "marks", 600, "GEN", 2025).category.value == "general"
    print("    ✅ Invalid input fails with the offending field named")


def test_normalize_is_pure():
    print("\n[7] Testing purity...")
    normalizer = ScoreNormalizer(EngineCalibration())
    first = normalizer.normalize(neet_marks(612))
    second = normalizer.normalize(neet_marks(612))
    assert first == second
    assert first is not second
    print("    ✅ Identical input yields identical NormalizedScore")


def test_default_jee_marks_curve_is_monotonic():
    print("\n[8] Testing default JEE marks curve...")
    normalizer = ScoreNormalizer(EngineCalibration())

    def rank(marks):
        return normalizer.normalize(ScoreInput("JEE-MAIN", "marks", marks, "General", 2025)).normalized_rank

    previous = None
    for marks in range(0, 301):
        current = rank(marks)
        assert current >= 1
        if previous is not None:
            assert current <= previous, f"rank rises from {previous} to {current} at {marks} marks"
        previous = current

    print(f"    299 marks -> rank {rank(299)}, 300 marks -> rank {rank(300)}")
    assert rank(300) == 1
    assert rank(299) < rank(298)

    # A curve whose lower segment overshoots the row above is rejected
    try:
        ExamCalibration(
            max_marks=300, pool_size=1000, percentile_rank_scale=10,
            marks_percentile_curve=[(300, 99.9, 0.0), (280, 99.0, 0.05)],
        )
    except ValueError as e:
        print(f"    {e}")
    else:
        raise AssertionError("non-monotonic curve accepted")
    print("    ✅ More marks never means a worse rank")


def test_load_calibration_from_file():
    print("\n[9] Testing calibration file loading...")
    assert load_calibration(None).model_dump() == EngineCalibration().model_dump()
    assert load_calibration("").version == EngineCalibration().version

    custom = make_calibration(version="file-7").with_difficulty(ExamType.JEE_MAIN, 2025, 1.1)
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "calibration.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write(custom.model_dump_json(indent=2))

        loaded = load_calibration(path)
        assert loaded.model_dump() == custom.model_dump()
        assert loaded.version == "file-7"
        assert loaded.difficulty_multiplier(ExamType.JEE_MAIN, 2025) == 1.1
        assert loaded.exam(ExamType.NEET).marks_rank_scale == K_NEET
        result = ScoreNormalizer(loaded).normalize(neet_marks(650))
        assert result.normalized_rank == (720 - 650) * K_NEET

        # Invalid tables fail at load time, not on the first request
        broken = custom.model_dump(mode="json")
        broken["weights"]["admission"] = 0.9
        with open(path, "w", encoding="utf-8") as f:
            json.dump(broken, f)
        try:
            load_calibration(path)
        except ValueError:
            pass
        else:
            raise AssertionError("weights not summing to 1.0 accepted")
    print("    ✅ JSON calibration round-trips through load_calibration")


def main():
    print("=" * 60)
    print("SCORE NORMALIZER TEST")
    print("=" * 60)

    test_neet_marks_to_rank()
    test_jee_percentile_to_rank()
    test_rank_passthrough()
    test_unofficial_conversions_are_low_confidence()
    test_difficulty_adjustment()
    test_validation_errors()
    test_normalize_is_pure()
    test_default_jee_marks_curve_is_monotonic()
    test_load_calibration_from_file()

    print("\n" + "=" * 60)
    print("✅ ALL NORMALIZER TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    main()
