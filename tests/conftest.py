"""Shared fixtures: fixed clocks and a default scoring config."""

from datetime import UTC, date, datetime

import pytest

from vitalscore.config import ScoringConfig
from vitalscore.domain.models import BloodPressure, PatientSnapshot

AS_OF = date(2026, 1, 15)
NOW = datetime(2026, 1, 15, 9, 0, tzinfo=UTC)


@pytest.fixture
def config() -> ScoringConfig:
    return ScoringConfig()


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def healthy_snapshot() -> PatientSnapshot:
    """35 year old with every vital and lab in the optimal range."""
    return PatientSnapshot(
        birth_date=date(1990, 6, 1),
        sex="female",
        smoker=False,
        blood_pressure=BloodPressure(systolic=115, diastolic=75),
        heart_rate=68,
        activity="resting",
        glucose=92,
        glucose_timing="fasting",
        spo2=98,
        weight_kg=58,
        height_cm=162,
        total_cholesterol=180,
        hdl_cholesterol=55,
        measured_at=NOW,
    )
