"""Tests for confidence estimation (completeness/recency blend and deduction model)."""

from datetime import date, datetime, timedelta

import pytest

from vitalscore.config import FreshnessPolicy, PhysiologicalBounds
from vitalscore.domain.models import BloodPressure, PatientSnapshot
from vitalscore.services.confidence import (
    DataGap,
    confidence_level,
    estimate_deduction_confidence,
    estimate_stability_confidence,
    freshness_score,
    round_half_up,
)
from vitalscore.services.validation import SnapshotValidator


def test_round_half_up_differs_from_bankers_rounding() -> None:
    assert round_half_up(72.5) == 73
    assert round_half_up(71.5) == 72
    assert round_half_up(71.49) == 71


@pytest.mark.parametrize(("score", "level"), [(80, "high"), (79.9, "medium"), (60, "medium"), (59, "low")])
def test_confidence_level(score: float, level: str) -> None:
    assert confidence_level(score) == level


class TestFreshness:
    policy = FreshnessPolicy()

    def test_no_timestamp_counts_as_fresh(self, now: datetime) -> None:
        assert freshness_score(None, now, self.policy) == 100

    def test_day_old_readings_are_aging(self, now: datetime) -> None:
        assert freshness_score(now - timedelta(hours=30), now, self.policy) == 75

    def test_two_day_old_readings_are_stale(self, now: datetime) -> None:
        assert freshness_score(now - timedelta(hours=50), now, self.policy) == 50

    def test_naive_timestamp_treated_as_utc(self, now: datetime) -> None:
        naive = (now - timedelta(hours=1)).replace(tzinfo=None)
        assert freshness_score(naive, now, self.policy) == 100

    def test_naive_clock_treated_as_utc(self, now: datetime) -> None:
        naive_now = now.replace(tzinfo=None)
        assert freshness_score(now - timedelta(hours=1), naive_now, self.policy) == 100
        assert freshness_score(now - timedelta(hours=30), naive_now, self.policy) == 75


class TestStabilityConfidence:
    def _normalize(self, snapshot: PatientSnapshot, as_of: date):
        return SnapshotValidator(PhysiologicalBounds()).normalize(snapshot, as_of)

    def test_complete_recent_data_is_high(self, healthy_snapshot: PatientSnapshot, as_of: date, now: datetime) -> None:
        confidence = estimate_stability_confidence(
            self._normalize(healthy_snapshot, as_of), now, FreshnessPolicy()
        )
        assert confidence.score == 100
        assert confidence.level == "high"
        assert confidence.data_gaps == []

    def test_stale_data_adds_gap(self, healthy_snapshot: PatientSnapshot, as_of: date, now: datetime) -> None:
        stale = healthy_snapshot.model_copy(update={"measured_at": now - timedelta(hours=30)})
        confidence = estimate_stability_confidence(self._normalize(stale, as_of), now, FreshnessPolicy())
        # 100 * 0.7 + 75 * 0.3 = 92.5
        assert confidence.score == 93
        assert "Vital signs older than 24 hours" in confidence.data_gaps

    def test_missing_vitals_lower_completeness(self, as_of: date, now: datetime) -> None:
        snapshot = PatientSnapshot(
            blood_pressure=BloodPressure(systolic=120, diastolic=80), measured_at=now
        )
        confidence = estimate_stability_confidence(self._normalize(snapshot, as_of), now, FreshnessPolicy())
        # 20 * 0.7 + 100 * 0.3 = 44
        assert confidence.score == 44
        assert confidence.level == "low"
        assert len(confidence.data_gaps) == 4


class TestDeductionConfidence:
    def test_no_gaps_is_full_confidence(self) -> None:
        confidence = estimate_deduction_confidence([])
        assert confidence.score == 100
        assert confidence.message == "All required data points available"

    def test_penalties_accumulate(self) -> None:
        confidence = estimate_deduction_confidence(
            [DataGap("Cholesterol levels not recorded", 20), DataGap("Sex not specified", 10)]
        )
        assert confidence.score == 70
        assert confidence.level == "medium"
        assert confidence.data_gaps == ["Cholesterol levels not recorded", "Sex not specified"]

    def test_score_never_negative(self) -> None:
        confidence = estimate_deduction_confidence([DataGap("a", 60), DataGap("b", 60)])
        assert confidence.score == 0
