"""
Confidence estimation for both engines.

Stability confidence blends data completeness with data recency. Risk
confidence starts at 100 and loses a fixed penalty for every missing input.
Both are clamped to 0-100 and come back with the list of data gaps that
lowered them.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from vitalscore.config import FreshnessPolicy
from vitalscore.domain.models import Confidence
from vitalscore.services.validation import VITAL_FIELDS, NormalizedSnapshot

_GAP_LABELS = {
    "blood_pressure": "Blood pressure not recorded",
    "heart_rate": "Heart rate not recorded",
    "glucose": "Blood glucose not recorded",
    "spo2": "SpO2 not recorded",
    "bmi": "BMI not available (weight/height missing)",
}


@dataclass(frozen=True)
class DataGap:
    """Missing input and the confidence it costs."""

    description: str
    penalty: int = 0


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (builtin round() is banker's rounding)."""
    return int(value + 0.5)


def confidence_level(score: float) -> str:
    if score >= 80:
        return "high"
    if score >= 60:
        return "medium"
    return "low"


def freshness_score(measured_at: datetime | None, now: datetime, policy: FreshnessPolicy) -> int:
    """100 for recent data, degraded for day-old and two-day-old readings."""
    if measured_at is None:
        return 100
    if measured_at.tzinfo is None:
        measured_at = measured_at.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    age_hours = (now - measured_at).total_seconds() / 3600
    if age_hours > policy.stale_hours:
        return policy.stale_score
    if age_hours > policy.recent_hours:
        return policy.aging_score
    return 100


def _stability_message(overall: float, completeness: float, freshness: float) -> str:
    if overall >= 80:
        return "High confidence in assessment"
    if completeness < 70:
        return "Some vital signs missing - complete profile for better assessment"
    if freshness < 70:
        return "Vital signs are outdated - please log recent measurements"
    return "Moderate confidence - consider updating vital signs"


def estimate_stability_confidence(
    normalized: NormalizedSnapshot, now: datetime, policy: FreshnessPolicy
) -> Confidence:
    """Completeness over the five vitals blended with data recency."""
    present = [name for name in VITAL_FIELDS if normalized.is_present(name)]
    completeness = len(present) / len(VITAL_FIELDS) * 100
    freshness = freshness_score(normalized.snapshot.measured_at, now, policy)

    overall = clamp(
        completeness * policy.completeness_weight + freshness * (1 - policy.completeness_weight)
    )
    gaps = [_GAP_LABELS[name] for name in normalized.missing_vitals]
    if freshness < 100:
        gaps.append("Vital signs older than 24 hours")

    return Confidence(
        score=round_half_up(overall),
        level=confidence_level(overall),
        message=_stability_message(overall, completeness, freshness),
        data_gaps=gaps,
    )


def estimate_deduction_confidence(gaps: list[DataGap]) -> Confidence:
    """100 minus the penalty of each gap, never below zero."""
    score = clamp(100 - sum(gap.penalty for gap in gaps))
    if not gaps:
        message = "All required data points available"
    elif score >= 80:
        message = "Minor data gaps - estimate remains reliable"
    elif score >= 60:
        message = "Some risk factors missing - estimate may be inaccurate"
    else:
        message = "Significant data missing - complete profile for a reliable estimate"
    return Confidence(
        score=int(score),
        level=confidence_level(score),
        message=message,
        data_gaps=[gap.description for gap in gaps],
    )
