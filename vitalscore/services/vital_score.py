"""
Vital stability score: is the user's body stable enough for normal activity?

Score range 0-100:
- 85-100: excellent (safe for all activities)
- 70-84: good (safe with minor precautions)
- 55-69: fair (caution, limited activities)
- 0-54: poor (unsafe, medical attention needed)

Each vital is scored by a pure function over the configured threshold tables,
combined as a weighted average. Emergency alerts come from a separate pass
over the raw readings, so an alert can fire even while the bucket reads fair.
"""

from dataclasses import dataclass
from datetime import date, datetime

import structlog

from vitalscore.config import ScoringConfig, StabilityConfig, get_scoring_config
from vitalscore.domain.errors import ScoringError
from vitalscore.domain.models import (
    Activity,
    ComponentResult,
    Confidence,
    CriticalAlert,
    GlucoseTiming,
    PatientSnapshot,
    Priority,
    Recommendation,
    StabilityResult,
    StabilityStatus,
    VitalFactor,
)
from vitalscore.domain.thresholds import Tier
from vitalscore.services.confidence import estimate_stability_confidence, round_half_up
from vitalscore.services.pipeline import Result, ScoringPipeline
from vitalscore.services.validation import NormalizedSnapshot

logger = structlog.get_logger(__name__)

Breakdown = dict[VitalFactor, ComponentResult]

FACTOR_NAMES = {
    VitalFactor.BLOOD_PRESSURE: "blood pressure",
    VitalFactor.HEART_RATE: "heart rate",
    VitalFactor.GLUCOSE: "glucose",
    VitalFactor.SPO2: "SpO2",
    VitalFactor.BMI: "BMI",
}

_MISSING_MESSAGES = {
    VitalFactor.BLOOD_PRESSURE: "BP data missing",
    VitalFactor.HEART_RATE: "Heart rate data missing",
    VitalFactor.GLUCOSE: "Glucose data missing",
    VitalFactor.SPO2: "SpO2 data missing or invalid",
    VitalFactor.BMI: "BMI data missing",
}


def component_from_tier(
    tier: Tier, detail: str, context: dict[str, str] | None = None
) -> ComponentResult:
    return ComponentResult(
        score=tier.score,
        status=tier.status,
        label=tier.label,
        message=tier.message,
        detail=detail,
        action=tier.action,
        critical=tier.critical,
        context=context or {},
    )


def missing_component(factor: VitalFactor, neutral_score: int) -> ComponentResult:
    """Neutral placeholder so one absent vital doesn't sink the whole score."""
    return ComponentResult(
        score=neutral_score,
        status="unknown",
        label="unknown",
        message=_MISSING_MESSAGES[factor],
    )


def score_blood_pressure(
    systolic: float, diastolic: float, config: StabilityConfig, trend: str | None = None
) -> ComponentResult:
    detail = f"{systolic:g}/{diastolic:g} mmHg"
    tier = config.blood_pressure.classify(systolic, diastolic)

    # Crisis outranks hypotension: 185/55 is treated as a crisis
    if not tier.critical:
        hypo = config.hypotension
        if systolic < hypo.systolic or diastolic < hypo.diastolic:
            return component_from_tier(hypo.tier, detail)

    context = {} if tier.critical else {"trend": trend or "stable"}
    return component_from_tier(tier, detail, context)


def score_heart_rate(
    heart_rate: float,
    config: StabilityConfig,
    activity: Activity | None = None,
    is_athlete: bool = False,
) -> ComponentResult:
    detail = f"{heart_rate:g} bpm"
    overrides = config.heart_rate_athlete_overrides if is_athlete else config.heart_rate_overrides
    override = overrides.lookup(heart_rate)
    if override is not None:
        return component_from_tier(override, detail)

    # No activity context is scored as resting, so a low rate still lands in the "low" band.
    activity = activity or "resting"
    if activity == "post-exercise":
        ladder = config.heart_rate_post_exercise
    elif is_athlete:
        ladder = config.heart_rate_resting_athlete
    else:
        ladder = config.heart_rate_resting

    tier = ladder.lookup(heart_rate)
    if tier is None:
        raise ScoringError(f"{ladder.name} has no outcome for {heart_rate}")
    return component_from_tier(tier, detail, {"context": activity})


def score_glucose(
    glucose: float,
    config: StabilityConfig,
    timing: GlucoseTiming | None = None,
    is_diabetic: bool = False,
) -> ComponentResult:
    detail = f"{glucose:g} mg/dL"
    override = config.glucose_overrides.lookup(glucose)
    if override is not None:
        return component_from_tier(override, detail)

    context = {"timing": timing or "unknown"}
    if timing == "fasting":
        tier = config.glucose_fasting.lookup(glucose)
    elif timing == "post-meal":
        tier = config.glucose_post_meal.lookup(glucose)
    else:
        tier = Tier(label="in_range", score=100, status="normal", message="Glucose within safe range")
    if tier is None:
        raise ScoringError(f"glucose table has no outcome for {glucose}")

    result = component_from_tier(tier, detail, context)
    if is_diabetic and timing == "fasting" and glucose < config.diabetic_fasting_target:
        result = result.model_copy(
            update={
                "score": max(result.score, config.diabetic_fasting_floor),
                "message": f"{result.message} (Good control for diabetes)",
            }
        )
    return result


def score_spo2(spo2: float, config: StabilityConfig) -> ComponentResult:
    tier = config.spo2.lookup(spo2)
    if tier is None:
        raise ScoringError(f"{config.spo2.name} has no outcome for {spo2}")
    return component_from_tier(tier, f"{spo2:g}%")


def score_bmi(bmi: float, config: StabilityConfig) -> ComponentResult:
    tier = config.bmi.lookup(bmi)
    if tier is None:
        raise ScoringError(f"{config.bmi.name} has no outcome for {bmi}")
    return component_from_tier(tier, f"{bmi:.1f} kg/m²")


def weighted_total(breakdown: Breakdown, weights: dict[VitalFactor, int]) -> int:
    """round(sum(score * weight) / 100), weights summing to 100."""
    weighted = sum(breakdown[factor].score * weight for factor, weight in weights.items())
    return round_half_up(weighted / 100)


def detect_critical_alerts(normalized: NormalizedSnapshot, config: StabilityConfig) -> list[CriticalAlert]:
    """Emergency alerts from absolute raw-value thresholds, never from the score."""
    limits = config.alerts
    alerts: list[CriticalAlert] = []

    systolic, diastolic = normalized.systolic, normalized.diastolic
    if systolic is not None and diastolic is not None:
        if systolic >= limits.crisis_systolic or diastolic >= limits.crisis_diastolic:
            alerts.append(
                CriticalAlert(
                    type="hypertensive_crisis",
                    message="Hypertensive Crisis Detected",
                    action="Call emergency services (102) immediately",
                    vital="Blood Pressure",
                    value=f"{systolic:g}/{diastolic:g}",
                )
            )

    glucose = normalized.glucose
    if glucose is not None and glucose < limits.glucose_low:
        alerts.append(
            CriticalAlert(
                type="severe_hypoglycemia",
                message="Severe Low Blood Sugar",
                action="Consume 15-20g fast-acting carbs NOW. Call someone to be with you.",
                vital="Blood Glucose",
                value=f"{glucose:g} mg/dL",
            )
        )
    if glucose is not None and glucose > limits.glucose_high:
        alerts.append(
            CriticalAlert(
                type="severe_hyperglycemia",
                message="Dangerously High Blood Sugar",
                action="Seek immediate medical care. Risk of DKA.",
                vital="Blood Glucose",
                value=f"{glucose:g} mg/dL",
            )
        )

    spo2 = normalized.spo2
    if spo2 is not None and spo2 < limits.spo2_low:
        alerts.append(
            CriticalAlert(
                type="severe_hypoxia",
                message="Critical Low Oxygen Level",
                action="Seek emergency medical care immediately",
                vital="SpO2",
                value=f"{spo2:g}%",
            )
        )
    return alerts


_WEAK_AREA_ADVICE: dict[VitalFactor, tuple[Priority, str, str, list[str]]] = {
    VitalFactor.BLOOD_PRESSURE: (
        Priority.HIGH,
        "Blood Pressure",
        "Your blood pressure needs attention",
        [
            "Reduce salt intake (< 5g per day)",
            "Practice stress-reduction techniques",
            "Monitor BP 2x daily",
            "Consider doctor consultation if elevated for >1 week",
        ],
    ),
    VitalFactor.HEART_RATE: (
        Priority.HIGH,
        "Heart Rate",
        "Your heart rate is outside the expected range",
        [
            "Avoid caffeine and strenuous activity until it settles",
            "Re-measure after 10 minutes of rest",
            "Seek care if accompanied by dizziness, chest pain or fainting",
        ],
    ),
    VitalFactor.GLUCOSE: (
        Priority.HIGH,
        "Blood Sugar",
        "Your blood sugar control needs improvement",
        [
            "Follow diabetes-friendly diet",
            "Check glucose before/after meals",
            "Increase physical activity gradually",
            "Review medications with doctor",
        ],
    ),
    VitalFactor.SPO2: (
        Priority.HIGH,
        "Oxygen Saturation",
        "Your oxygen saturation is below normal",
        [
            "Re-check with a correctly fitted oximeter at rest",
            "Seek doctor evaluation today if it stays below 95%",
            "Avoid exertion until reviewed",
        ],
    ),
    VitalFactor.BMI: (
        Priority.MEDIUM,
        "Weight Management",
        "Weight optimization recommended",
        [
            "Set realistic weight goal (lose 0.5-1 kg per week)",
            "Track daily food intake",
            "Aim for 150 minutes moderate exercise per week",
            "Consider nutritionist consultation",
        ],
    ),
}


def build_stability_recommendations(
    total: int,
    breakdown: Breakdown,
    alerts: list[CriticalAlert],
    is_critical: bool,
    config: StabilityConfig,
) -> list[Recommendation]:
    """Ranked advice: emergencies, weakest factors first, then reinforcement."""
    recommendations: list[Recommendation] = []

    if alerts:
        recommendations.append(
            Recommendation(
                priority=Priority.CRITICAL,
                category="Emergency Care",
                action="; ".join(alert.action for alert in alerts),
                rationale="; ".join(alert.message for alert in alerts),
                timeline="Immediate",
            )
        )

    if is_critical or total < 55:
        recommendations.append(
            Recommendation(
                priority=Priority.CRITICAL,
                category="Medical Attention",
                action=(
                    "Contact your doctor TODAY; Do NOT start any new exercise programs; "
                    "Rest and monitor vitals every 4 hours; Keep emergency contacts informed"
                ),
                rationale="Your vital signs indicate significant health stress",
                timeline="Today",
            )
        )

    weakest = sorted(
        (
            (factor, component)
            for factor, component in breakdown.items()
            if component.status != "unknown" and component.score < config.weak_component_threshold
        ),
        key=lambda item: item[1].score,
    )
    for factor, component in weakest:
        priority, category, message, actions = _WEAK_AREA_ADVICE[factor]
        recommendations.append(
            Recommendation(
                priority=priority,
                category=category,
                action="; ".join(actions),
                rationale=f"{message} ({component.message})",
                timeline="Starting this week",
            )
        )

    missing = [FACTOR_NAMES[f] for f, c in breakdown.items() if c.status == "unknown"]
    if missing:
        recommendations.append(
            Recommendation(
                priority=Priority.LOW,
                category="Data Completeness",
                action=f"Log your {', '.join(missing)}",
                rationale="Missing vitals are scored as neutral and reduce confidence",
                timeline="Next measurement",
            )
        )

    strong = [
        FACTOR_NAMES[factor]
        for factor, component in breakdown.items()
        if component.score >= config.strong_component_threshold
    ]
    if strong:
        verb = "are" if len(strong) > 1 else "is"
        recommendations.append(
            Recommendation(
                priority=Priority.LOW,
                category="Positive",
                action=(
                    f"Your {', '.join(strong)} {verb} excellent; Continue current lifestyle habits; "
                    "Maintain regular monitoring"
                ),
                rationale="Keep up the good work!",
                timeline="Ongoing",
            )
        )
    return recommendations


@dataclass(frozen=True)
class StabilityAggregate:
    score: int
    bucket: Tier
    alerts: list[CriticalAlert]
    is_critical: bool


class VitalScoreCalculator(ScoringPipeline[Breakdown, StabilityAggregate, StabilityResult]):
    """Vital stability engine. Stateless; safe to share between threads."""

    name = "vital_score"

    @property
    def stability(self) -> StabilityConfig:
        return self.config.stability

    def score_components(self, normalized: NormalizedSnapshot) -> Breakdown:
        cfg = self.stability
        snapshot = normalized.snapshot
        neutral = cfg.missing_score

        breakdown: Breakdown = {}
        if normalized.systolic is not None and normalized.diastolic is not None:
            trend = snapshot.blood_pressure.trend if snapshot.blood_pressure else None
            breakdown[VitalFactor.BLOOD_PRESSURE] = score_blood_pressure(
                normalized.systolic, normalized.diastolic, cfg, trend
            )
        else:
            breakdown[VitalFactor.BLOOD_PRESSURE] = missing_component(VitalFactor.BLOOD_PRESSURE, neutral)

        breakdown[VitalFactor.HEART_RATE] = (
            score_heart_rate(normalized.heart_rate, cfg, snapshot.activity, snapshot.is_athlete)
            if normalized.heart_rate is not None
            else missing_component(VitalFactor.HEART_RATE, neutral)
        )
        breakdown[VitalFactor.GLUCOSE] = (
            score_glucose(normalized.glucose, cfg, snapshot.glucose_timing, snapshot.diabetic)
            if normalized.glucose is not None
            else missing_component(VitalFactor.GLUCOSE, neutral)
        )
        breakdown[VitalFactor.SPO2] = (
            score_spo2(normalized.spo2, cfg)
            if normalized.spo2 is not None
            else missing_component(VitalFactor.SPO2, neutral)
        )
        breakdown[VitalFactor.BMI] = (
            score_bmi(normalized.bmi, cfg)
            if normalized.bmi is not None
            else missing_component(VitalFactor.BMI, neutral)
        )
        return breakdown

    def aggregate(self, normalized: NormalizedSnapshot, scored: Breakdown) -> StabilityAggregate:
        total = weighted_total(scored, self.stability.weights)
        bucket = self.stability.status_buckets.lookup(total)
        if bucket is None:
            raise ScoringError(f"no status bucket for score {total}")
        alerts = detect_critical_alerts(normalized, self.stability)
        is_critical = bool(alerts) or any(c.critical for c in scored.values())
        return StabilityAggregate(score=total, bucket=bucket, alerts=alerts, is_critical=is_critical)

    def estimate_confidence(
        self, normalized: NormalizedSnapshot, scored: Breakdown, now: datetime
    ) -> Confidence:
        return estimate_stability_confidence(normalized, now, self.stability.freshness)

    def recommend(
        self, normalized: NormalizedSnapshot, scored: Breakdown, aggregate: StabilityAggregate
    ) -> list[Recommendation]:
        return build_stability_recommendations(
            aggregate.score, scored, aggregate.alerts, aggregate.is_critical, self.stability
        )

    def build(
        self,
        normalized: NormalizedSnapshot,
        scored: Breakdown,
        aggregate: StabilityAggregate,
        confidence: Confidence,
        recommendations: list[Recommendation],
        now: datetime,
    ) -> StabilityResult:
        status = StabilityStatus(aggregate.bucket.label)
        result = StabilityResult(
            score=aggregate.score,
            status=status,
            status_label=status.value.title(),
            is_critical=aggregate.is_critical,
            cleared_for_activity=(
                not aggregate.is_critical
                and status in (StabilityStatus.EXCELLENT, StabilityStatus.GOOD)
            ),
            activity_guidance=aggregate.bucket.message,
            breakdown=scored,
            critical_alerts=aggregate.alerts,
            recommendations=recommendations,
            confidence=confidence,
            calculated_at=now,
        )

        if aggregate.alerts:
            self.logger.warning(
                "critical_alerts_detected", alert_types=[a.type for a in aggregate.alerts]
            )
        self.logger.info(
            "vital_score_calculated",
            score=result.score,
            status=result.status.value,
            is_critical=result.is_critical,
            confidence=confidence.score,
            missing_vitals=normalized.missing_vitals,
        )
        return result


def calculate_vital_score(
    snapshot: PatientSnapshot,
    *,
    config: ScoringConfig | None = None,
    as_of: date | None = None,
    now: datetime | None = None,
) -> StabilityResult:
    """Score a snapshot with the given (or currently loaded) thresholds."""
    calculator = VitalScoreCalculator(config or get_scoring_config())
    return calculator.calculate(snapshot, as_of=as_of, now=now)


def try_calculate_vital_score(
    snapshot: PatientSnapshot,
    *,
    config: ScoringConfig | None = None,
    as_of: date | None = None,
    now: datetime | None = None,
) -> Result[StabilityResult, ScoringError]:
    calculator = VitalScoreCalculator(config or get_scoring_config())
    return calculator.try_calculate(snapshot, as_of=as_of, now=now)
