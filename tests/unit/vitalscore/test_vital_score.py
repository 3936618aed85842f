"""
Tests for the vital stability engine.

Testing philosophy:
- Pure scorer functions tested directly against the default tables
- End-to-end snapshots through VitalScoreCalculator
- Property-based tests for score bounds, weighting and idempotence
"""

from datetime import UTC, date, datetime

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from vitalscore.config import ScoringConfig, StabilityConfig
from vitalscore.domain.models import (
    ActionSeverity,
    BloodPressure,
    ComponentResult,
    PatientSnapshot,
    Priority,
    StabilityStatus,
    VitalFactor,
)
from vitalscore.services.vital_score import (
    VitalScoreCalculator,
    calculate_vital_score,
    score_blood_pressure,
    score_bmi,
    score_glucose,
    score_heart_rate,
    score_spo2,
    try_calculate_vital_score,
    weighted_total,
)

AS_OF = date(2026, 1, 15)
NOW = datetime(2026, 1, 15, 9, 0, tzinfo=UTC)
STABILITY = StabilityConfig()


class TestBloodPressureScorer:
    @pytest.mark.parametrize(
        ("systolic", "diastolic", "label", "score"),
        [
            (115, 75, "optimal", 100),
            (125, 82, "normal", 85),
            (135, 88, "high_normal", 75),
            (150, 95, "stage1", 60),
            (179, 109, "stage2", 40),
            (180, 100, "crisis", 0),
        ],
    )
    def test_ladder(self, systolic: float, diastolic: float, label: str, score: int) -> None:
        result = score_blood_pressure(systolic, diastolic, STABILITY)
        assert result.label == label
        assert result.score == score

    def test_crisis_is_critical_emergency(self) -> None:
        result = score_blood_pressure(180, 70, STABILITY)
        assert result.critical
        assert result.action == ActionSeverity.EMERGENCY

    def test_hypotension_override(self) -> None:
        result = score_blood_pressure(85, 70, STABILITY)
        assert result.label == "hypotension"
        assert result.score == 30
        assert result.critical

    def test_crisis_outranks_hypotension(self) -> None:
        assert score_blood_pressure(185, 55, STABILITY).label == "crisis"

    def test_trend_is_echoed(self) -> None:
        assert score_blood_pressure(118, 76, STABILITY, "rising").context == {"trend": "rising"}


class TestHeartRateScorer:
    def test_severe_bradycardia(self) -> None:
        result = score_heart_rate(42, STABILITY)
        assert result.label == "severe_bradycardia"
        assert result.critical

    def test_athletes_are_exempt_from_bradycardia(self) -> None:
        result = score_heart_rate(42, STABILITY, is_athlete=True)
        assert result.label == "athletic"
        assert result.score == 100
        assert not result.critical

    def test_severe_tachycardia_applies_to_athletes_too(self) -> None:
        assert score_heart_rate(155, STABILITY, is_athlete=True).label == "severe_tachycardia"

    def test_150_is_not_an_override(self) -> None:
        assert score_heart_rate(150, STABILITY).label == "elevated"

    def test_post_exercise_ladder(self) -> None:
        assert score_heart_rate(120, STABILITY, "post-exercise").score == 100
        assert score_heart_rate(130, STABILITY, "post-exercise").score == 80

    def test_unknown_activity_is_resting(self) -> None:
        result = score_heart_rate(72, STABILITY)
        assert result.label == "normal"
        assert result.context == {"context": "resting"}

    def test_low_rate_without_activity_uses_resting_ladder(self) -> None:
        result = score_heart_rate(50, STABILITY)
        assert result.score == 70
        assert result.status == "fair"
        assert score_heart_rate(50, STABILITY, is_athlete=True).score == 100


class TestGlucoseScorer:
    def test_53_is_critical(self) -> None:
        result = score_glucose(53, STABILITY)
        assert result.label == "severe_hypoglycemia"
        assert result.critical

    def test_54_is_low_but_not_critical(self) -> None:
        result = score_glucose(54, STABILITY)
        assert result.label == "hypoglycemia"
        assert result.score == 30
        assert not result.critical

    def test_severe_hyperglycemia_above_400(self) -> None:
        assert score_glucose(400, STABILITY).label == "hyperglycemia"
        assert score_glucose(401, STABILITY).critical

    def test_fasting_ladder(self) -> None:
        assert score_glucose(99, STABILITY, "fasting").score == 100
        assert score_glucose(125, STABILITY, "fasting").score == 70
        assert score_glucose(126, STABILITY, "fasting").score == 50

    def test_post_meal_ladder(self) -> None:
        assert score_glucose(139, STABILITY, "post-meal").score == 100
        assert score_glucose(199, STABILITY, "post-meal").score == 70
        assert score_glucose(200, STABILITY, "post-meal").score == 50

    def test_diabetic_fasting_under_target_is_floored(self) -> None:
        result = score_glucose(128, STABILITY, "fasting", is_diabetic=True)
        assert result.score == 80
        assert result.message.endswith("(Good control for diabetes)")

    def test_diabetic_floor_only_applies_to_fasting(self) -> None:
        assert score_glucose(210, STABILITY, "post-meal", is_diabetic=True).score == 50


class TestSpo2AndBmiScorers:
    @pytest.mark.parametrize(
        ("spo2", "score", "critical"),
        [(84, 0, True), (87, 20, True), (91, 50, False), (94, 75, False), (95, 100, False)],
    )
    def test_spo2(self, spo2: float, score: int, critical: bool) -> None:
        result = score_spo2(spo2, STABILITY)
        assert result.score == score
        assert result.critical is critical

    def test_bmi_detail_is_one_decimal(self) -> None:
        assert score_bmi(22.14, STABILITY).detail == "22.1 kg/m²"


class TestWeightedTotal:
    def _breakdown(self, scores: list[int]) -> dict[VitalFactor, ComponentResult]:
        return {
            factor: ComponentResult(score=s, status="x", label="x", message="x")
            for factor, s in zip(VitalFactor, scores, strict=True)
        }

    def test_default_weights(self) -> None:
        # 40*30 + 100*20 + 100*25 + 100*15 + 100*10 = 8200
        assert weighted_total(self._breakdown([40, 100, 100, 100, 100]), STABILITY.weights) == 82

    def test_half_rounds_up(self) -> None:
        # 75*30 + 60*20 + 100*25 + 100*15 + 60*10 = 8050 -> 80.5
        assert weighted_total(self._breakdown([75, 60, 100, 100, 60]), STABILITY.weights) == 81

    @given(factor=st.sampled_from(list(VitalFactor)), delta=st.integers(min_value=0, max_value=100))
    def test_single_component_change_moves_total_by_its_weight(
        self, factor: VitalFactor, delta: int
    ) -> None:
        scores = [100 - delta if f == factor else 100 for f in VitalFactor]
        total = weighted_total(self._breakdown(scores), STABILITY.weights)
        expected = 100 - delta * STABILITY.weights[factor] / 100
        assert abs(total - expected) <= 0.5

    @given(
        scores=st.lists(st.integers(min_value=0, max_value=100), min_size=5, max_size=5),
        cut=st.lists(st.integers(min_value=0, max_value=100), min_size=4, max_size=4),
    )
    def test_any_valid_weighting_stays_within_component_range(
        self, scores: list[int], cut: list[int]
    ) -> None:
        points = sorted(cut)
        parts = [b - a for a, b in zip([0, *points], [*points, 100], strict=True)]
        weights = dict(zip(VitalFactor, parts, strict=True))
        total = weighted_total(self._breakdown(scores), weights)
        assert min(scores) <= total <= max(scores)


class TestVitalScoreCalculator:
    def test_healthy_snapshot_is_excellent(
        self, healthy_snapshot: PatientSnapshot, config: ScoringConfig
    ) -> None:
        result = calculate_vital_score(healthy_snapshot, config=config, as_of=AS_OF, now=NOW)
        assert result.score == 100
        assert result.status == StabilityStatus.EXCELLENT
        assert result.cleared_for_activity
        assert result.activity_guidance == "Safe for all activities"
        assert result.critical_alerts == []
        assert result.recommendations[-1].category == "Positive"

    def test_missing_vitals_score_neutral(self, config: ScoringConfig) -> None:
        result = calculate_vital_score(PatientSnapshot(heart_rate=68), config=config, as_of=AS_OF, now=NOW)
        # 50*30 + 100*20 + 50*25 + 50*15 + 50*10 = 6000
        assert result.score == 60
        assert result.status == StabilityStatus.FAIR
        assert not result.cleared_for_activity
        assert result.breakdown[VitalFactor.GLUCOSE].status == "unknown"
        assert any(r.category == "Data Completeness" for r in result.recommendations)

    def test_naive_clock_against_aware_measurement(self, config: ScoringConfig) -> None:
        snapshot = PatientSnapshot(heart_rate=70, measured_at=datetime(2026, 1, 15, 8, 0, tzinfo=UTC))
        result = calculate_vital_score(snapshot, config=config, as_of=AS_OF, now=datetime(2026, 1, 15, 9, 0))
        # one of five vitals, measured an hour earlier: 20 * 0.7 + 100 * 0.3
        assert result.confidence.score == 44
        assert "Vital signs older than 24 hours" not in result.confidence.data_gaps
        assert result.calculated_at == NOW

    def test_emergency_snapshot_raises_alerts(self, config: ScoringConfig) -> None:
        snapshot = PatientSnapshot(
            blood_pressure=BloodPressure(systolic=186, diastolic=112),
            glucose=48,
            spo2=86,
        )
        result = calculate_vital_score(snapshot, config=config, as_of=AS_OF, now=NOW)
        assert result.is_critical
        assert not result.cleared_for_activity
        assert {a.type for a in result.critical_alerts} == {
            "hypertensive_crisis",
            "severe_hypoglycemia",
            "severe_hypoxia",
        }
        assert result.recommendations[0].category == "Emergency Care"
        assert result.recommendations[0].priority == Priority.CRITICAL

    def test_alert_fires_even_when_bucket_is_fair(self, config: ScoringConfig) -> None:
        snapshot = PatientSnapshot(
            blood_pressure=BloodPressure(systolic=118, diastolic=76),
            heart_rate=70,
            glucose=410,
            spo2=98,
            bmi=22,
        )
        result = calculate_vital_score(snapshot, config=config, as_of=AS_OF, now=NOW)
        # 100*30 + 100*20 + 10*25 + 100*15 + 100*10 = 7750
        assert result.score == 78
        assert result.status == StabilityStatus.GOOD
        assert result.is_critical
        assert not result.cleared_for_activity
        assert [a.type for a in result.critical_alerts] == ["severe_hyperglycemia"]

    def test_weak_components_sorted_ascending(self, config: ScoringConfig) -> None:
        snapshot = PatientSnapshot(
            blood_pressure=BloodPressure(systolic=150, diastolic=95),
            heart_rate=70,
            glucose=130,
            glucose_timing="fasting",
            spo2=98,
            bmi=31,
        )
        result = calculate_vital_score(snapshot, config=config, as_of=AS_OF, now=NOW)
        weak = [r.category for r in result.recommendations if r.priority != Priority.LOW]
        assert weak == ["Weight Management", "Blood Sugar", "Blood Pressure"]

    def test_invalid_reading_is_rejected(self, config: ScoringConfig) -> None:
        result = try_calculate_vital_score(PatientSnapshot(spo2=40), config=config, now=NOW)
        assert result.is_err()
        assert result.unwrap_err().field == "spo2"

    def test_custom_weights_change_the_total(self, config: ScoringConfig) -> None:
        custom = config.model_copy(
            update={
                "stability": StabilityConfig(
                    weights={
                        VitalFactor.BLOOD_PRESSURE: 60,
                        VitalFactor.HEART_RATE: 10,
                        VitalFactor.GLUCOSE: 10,
                        VitalFactor.SPO2: 10,
                        VitalFactor.BMI: 10,
                    }
                )
            }
        )
        snapshot = PatientSnapshot(blood_pressure=BloodPressure(systolic=150, diastolic=95))
        default = calculate_vital_score(snapshot, config=config, as_of=AS_OF, now=NOW)
        weighted = calculate_vital_score(snapshot, config=custom, as_of=AS_OF, now=NOW)
        # default: 60*30 + 50*70 = 5300; custom: 60*60 + 50*40 = 5600
        assert default.score == 53
        assert weighted.score == 56

    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(
        systolic=st.none() | st.floats(min_value=50, max_value=300, allow_nan=False),
        diastolic=st.floats(min_value=30, max_value=200, allow_nan=False),
        heart_rate=st.none() | st.floats(min_value=30, max_value=250, allow_nan=False),
        glucose=st.none() | st.floats(min_value=20, max_value=700, allow_nan=False),
        spo2=st.none() | st.floats(min_value=50, max_value=100, allow_nan=False),
        bmi=st.none() | st.floats(min_value=10, max_value=80, allow_nan=False),
        athlete=st.booleans(),
    )
    def test_score_and_confidence_bounds(
        self,
        config: ScoringConfig,
        systolic: float | None,
        diastolic: float,
        heart_rate: float | None,
        glucose: float | None,
        spo2: float | None,
        bmi: float | None,
        athlete: bool,
    ) -> None:
        snapshot = PatientSnapshot(
            blood_pressure=(
                BloodPressure(systolic=systolic, diastolic=diastolic) if systolic is not None else None
            ),
            heart_rate=heart_rate,
            glucose=glucose,
            spo2=spo2,
            bmi=bmi,
            is_athlete=athlete,
        )
        result = calculate_vital_score(snapshot, config=config, as_of=AS_OF, now=NOW)
        assert 0 <= result.score <= 100
        assert 0 <= result.confidence.score <= 100
        if result.critical_alerts:
            assert result.is_critical
        if result.is_critical:
            assert not result.cleared_for_activity

    def test_calculation_is_idempotent(
        self, healthy_snapshot: PatientSnapshot, config: ScoringConfig
    ) -> None:
        calculator = VitalScoreCalculator(config)
        first = calculator.calculate(healthy_snapshot, as_of=AS_OF, now=NOW)
        second = calculator.calculate(healthy_snapshot, as_of=AS_OF, now=NOW)
        assert first.model_dump() == second.model_dump()

    def test_result_is_json_serialisable(
        self, healthy_snapshot: PatientSnapshot, config: ScoringConfig
    ) -> None:
        dumped = calculate_vital_score(healthy_snapshot, config=config, as_of=AS_OF, now=NOW).model_dump(
            mode="json"
        )
        assert dumped["breakdown"]["blood_pressure"]["label"] == "optimal"
        assert dumped["calculated_at"].startswith("2026-01-15T09:00:00")
