"""
Ten-year cardiovascular risk estimate (WHO/ISH charts, South-East Asia Region D).

Six risk factors award points toward a 0-30 total:

    age             0-10
    sex             0-2
    smoking         0-3
    diabetes        0-4
    blood pressure  0-6
    cholesterol     0-4

The total maps to a category through ordered breakpoints. Missing inputs
never fail the calculation: each one is recorded as a data gap and costs a
fixed amount of confidence. Patients under 18 are refused with DomainError.

Every result carries the full medical disclaimer. This is an estimate for
screening and education, not a diagnosis.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

import structlog

from vitalscore.config import RISK_MAX_SCORE, RegionConfig, RiskConfig, ScoringConfig, get_scoring_config
from vitalscore.domain.errors import ScoringError
from vitalscore.domain.models import (
    ActionSeverity,
    CardiovascularRiskResult,
    ComponentResult,
    Confidence,
    Disclaimer,
    Methodology,
    NextStep,
    PatientSnapshot,
    Priority,
    Recommendation,
    RiskCategory,
    RiskFactor,
    Sex,
    Urgency,
)
from vitalscore.domain.thresholds import (
    RiskCategoryBreakpoint,
    ThresholdTable,
    Tier,
    resolve_breakpoint,
)
from vitalscore.services.confidence import DataGap, estimate_deduction_confidence
from vitalscore.services.pipeline import Result, ScoringPipeline
from vitalscore.services.validation import NormalizedSnapshot

logger = structlog.get_logger(__name__)

COLOR_CODES = {
    RiskCategory.LOW: "green",
    RiskCategory.MODERATE: "yellow",
    RiskCategory.HIGH: "orange",
    RiskCategory.VERY_HIGH: "red",
}

URGENCY = {
    RiskCategory.LOW: Urgency.ROUTINE,
    RiskCategory.MODERATE: Urgency.ELEVATED,
    RiskCategory.HIGH: Urgency.CONCERNING,
    RiskCategory.VERY_HIGH: Urgency.CRITICAL,
}

LIMITATIONS = [
    "Does not account for family history of CVD (increases risk 2-4x)",
    "HDL cholesterol ratio not included (protective factor)",
    "May underestimate risk in young patients with strong family history",
    "Regional variations within India not captured",
    "Does not account for ethnic sub-populations",
    "Lifestyle factors (diet quality, stress, sleep) not fully captured",
    "Previous cardiovascular events not factored into score",
    "Kidney function (eGFR) not included",
    "Inflammatory markers (CRP) not assessed",
    "Advanced lipid markers not included",
    "Genetic risk factors not considered",
]

RECALCULATE_WHEN = [
    "New blood pressure reading (if BP was elevated)",
    "Updated cholesterol levels (every 3-6 months)",
    "Change in smoking status",
    "New diabetes diagnosis",
    "Weight change > 5 kg or BMI change",
    "New cardiovascular symptoms",
    "Change in medications",
    "After 6-12 months for high-risk individuals",
    "Annually for moderate-risk individuals",
]

SMOKING_CESSATION = "Smoking Cessation"


@dataclass(frozen=True)
class FactorOutcome:
    """What one risk scorer contributes: points, warnings, or a data gap."""

    component: ComponentResult | None = None
    warnings: list[str] = field(default_factory=list)
    gap: DataGap | None = None


def _table_max(table: ThresholdTable) -> int:
    return max(band.tier.score for band in table.bands if band.tier is not None)


def _points(tier: Tier, max_score: int, detail: str) -> ComponentResult:
    return ComponentResult(
        score=tier.score,
        max_score=max_score,
        status=tier.status,
        label=tier.label,
        message=tier.message,
        detail=detail,
        action=tier.action,
        critical=tier.critical,
    )


def score_age(age: int | None, config: RiskConfig) -> FactorOutcome:
    if age is None:
        return FactorOutcome(gap=DataGap("Age could not be calculated", config.penalties.age))
    tier = config.age.lookup(age)
    if tier is None:
        raise ScoringError(f"{config.age.name} has no outcome for age {age}")
    warnings = [tier.warning] if tier.warning else []
    return FactorOutcome(_points(tier, _table_max(config.age), f"{age} years"), warnings)


def score_sex(
    sex: Sex | None, age: int | None, pregnancy_complications: bool, config: RiskConfig
) -> FactorOutcome:
    if sex is None:
        return FactorOutcome(gap=DataGap("Sex not specified", config.penalties.sex))

    if sex == "male":
        component = ComponentResult(
            score=config.male_points,
            max_score=config.male_points or 1,
            status="male",
            label="Male",
            message="Males have 2-3x higher CVD risk in India (lifestyle factors)",
        )
        return FactorOutcome(component)

    warnings = []
    if age is not None and age >= 50:
        warnings.append(
            "Post-menopausal women (age 50+) have increased CVD risk. "
            "Estrogen loss affects cardiovascular protection."
        )
    if pregnancy_complications:
        warnings.append(
            "History of pregnancy complications (gestational diabetes, "
            "preeclampsia) increases future CVD risk. Clinical evaluation needed."
        )
    component = ComponentResult(
        score=0,
        max_score=config.male_points or 1,
        status="female",
        label="Female",
        message="Female",
    )
    return FactorOutcome(component, warnings)


def score_smoking(smoker: bool | None, second_hand_smoke: bool, config: RiskConfig) -> FactorOutcome:
    if smoker is None:
        return FactorOutcome(gap=DataGap("Smoking status not recorded", config.penalties.smoking))

    max_score = config.smoking_points or 1
    if smoker:
        component = ComponentResult(
            score=config.smoking_points,
            max_score=max_score,
            status="current_smoker",
            label="Current Smoker",
            message="Smoking increases CVD risk by 2-4x",
            detail="URGENT: Smoking cessation is single most important intervention",
            action=ActionSeverity.URGENT,
        )
        return FactorOutcome(
            component,
            [
                "CRITICAL: Smoking cessation reduces CVD risk by 50% within 1 year. "
                "Enroll in cessation program immediately."
            ],
        )

    warnings = []
    if second_hand_smoke:
        warnings.append(
            "Second-hand smoke exposure increases CVD risk by 25-30%. Avoid smoke exposure."
        )
    component = ComponentResult(
        score=0,
        max_score=max_score,
        status="non_smoker",
        label="Non-Smoker",
        message="Good - no smoking risk factor",
    )
    return FactorOutcome(component, warnings)


def score_diabetes(
    diabetic: bool, complications: bool, glucose: float | None, config: RiskConfig
) -> FactorOutcome:
    max_score = config.diabetes_points or 1
    if diabetic:
        warnings = [
            "HIGH RISK: Diabetes significantly increases CVD risk in Indians. "
            "Target HbA1c <7%, regular monitoring, endocrinologist consultation required."
        ]
        if complications:
            warnings.append(
                "Diabetic complications (nephropathy, retinopathy, neuropathy) "
                "indicate higher CVD risk. Comprehensive evaluation needed."
            )
        component = ComponentResult(
            score=config.diabetes_points,
            max_score=max_score,
            status="diabetic",
            label="Diabetic",
            message="Diabetes increases CVD risk by 2-4x in Indian population",
            detail="Strict glucose control essential (HbA1c <7%)",
            action=ActionSeverity.URGENT,
        )
        return FactorOutcome(component, warnings)

    warnings = []
    if glucose is not None and config.prediabetes_glucose_min <= glucose < config.prediabetes_glucose_max:
        warnings.append(
            "Pre-diabetic glucose levels detected. High risk of developing diabetes. "
            "Lifestyle intervention and annual screening essential."
        )
    component = ComponentResult(
        score=0,
        max_score=max_score,
        status="non_diabetic",
        label="Non-Diabetic",
        message="No diabetes detected",
    )
    return FactorOutcome(component, warnings)


def score_blood_pressure_risk(
    systolic: float | None, diastolic: float | None, config: RiskConfig
) -> FactorOutcome:
    if systolic is None or diastolic is None:
        return FactorOutcome(
            warnings=[
                "Blood pressure measurement required for accurate risk assessment. "
                "Schedule BP check immediately."
            ],
            gap=DataGap("Blood pressure data not available", config.penalties.blood_pressure),
        )
    ladder = config.blood_pressure
    tier = ladder.classify(systolic, diastolic)
    max_score = max(t.score for t in ladder.tiers)
    warnings = [tier.warning] if tier.warning else []
    return FactorOutcome(_points(tier, max_score, f"{systolic:g}/{diastolic:g} mmHg"), warnings)


def score_cholesterol(total: float | None, hdl: float | None, config: RiskConfig) -> FactorOutcome:
    if total is None:
        return FactorOutcome(
            warnings=["Lipid profile (cholesterol) test recommended for complete risk assessment."],
            gap=DataGap("Cholesterol levels not recorded", config.penalties.cholesterol),
        )
    tier = config.cholesterol.lookup(total)
    if tier is None:
        raise ScoringError(f"{config.cholesterol.name} has no outcome for {total}")
    warnings = [tier.warning] if tier.warning else []
    if hdl is not None and hdl < config.low_hdl:
        warnings.append(
            f"Low HDL cholesterol (<{config.low_hdl:g} mg/dL) increases risk. "
            "Exercise, omega-3, and niacin can help increase HDL."
        )
    return FactorOutcome(
        _points(tier, _table_max(config.cholesterol), f"{total:g} mg/dL"), warnings
    )


@dataclass(frozen=True)
class RiskScored:
    breakdown: dict[RiskFactor, ComponentResult]
    warnings: list[str]
    gaps: list[DataGap]


@dataclass(frozen=True)
class RiskAggregate:
    score: int
    breakpoint: RiskCategoryBreakpoint
    category: RiskCategory
    urgency: Urgency


def accumulate_points(breakdown: dict[RiskFactor, ComponentResult], max_score: int = RISK_MAX_SCORE) -> int:
    """Plain sum of points, clamped to the chart's range."""
    return max(0, min(max_score, sum(component.score for component in breakdown.values())))


def build_risk_recommendations(
    urgency: Urgency, breakdown: dict[RiskFactor, ComponentResult], age: int | None, region: RegionConfig
) -> list[Recommendation]:
    """Category-specific clinical guidance; smoking cessation always leads."""
    recommendations: list[Recommendation] = []

    def _has_points(factor: RiskFactor) -> bool:
        component = breakdown.get(factor)
        return component is not None and component.score > 0

    if urgency in (Urgency.CRITICAL, Urgency.CONCERNING):
        recommendations += [
            Recommendation(
                priority=Priority.CRITICAL,
                category="Medical Consultation",
                action="Schedule cardiology appointment within 7 days",
                rationale="High cardiovascular risk requires immediate medical evaluation",
                timeline="Within 1 week",
            ),
            Recommendation(
                priority=Priority.HIGH,
                category="Comprehensive Evaluation",
                action="Complete cardiovascular workup: ECG, Echo, stress test, lipid profile",
                rationale="Detailed assessment needed for high-risk patients",
                timeline="Within 2 weeks",
            ),
            Recommendation(
                priority=Priority.HIGH,
                category="Pharmacological Intervention",
                action="Discuss statin therapy and antihypertensive medications with doctor",
                rationale="Medication often necessary for high-risk CVD prevention",
                timeline="As prescribed",
            ),
        ]

    if urgency in (Urgency.ELEVATED, Urgency.CONCERNING):
        recommendations += [
            Recommendation(
                priority=Priority.MEDIUM,
                category="Regular Monitoring",
                action="BP check monthly, lipid profile every 6 months, HbA1c if diabetic",
                rationale="Close monitoring essential for risk management",
                timeline="Ongoing",
            ),
            Recommendation(
                priority=Priority.MEDIUM,
                category="Lifestyle Modifications",
                action="DASH diet, 150 min/week exercise, stress management, sleep 7-8 hours",
                rationale="Lifestyle changes can reduce CVD risk by 20-30%",
                timeline="Start immediately",
            ),
        ]

    if _has_points(RiskFactor.DIABETES):
        recommendations.append(
            Recommendation(
                priority=Priority.HIGH,
                category="Diabetes Control",
                action="Target HbA1c <7%, monitor blood glucose 3x daily, endocrinologist consultation",
                rationale="Optimal glucose control reduces cardiovascular complications by 40%",
                timeline="Ongoing",
            )
        )

    if _has_points(RiskFactor.BLOOD_PRESSURE):
        recommendations.append(
            Recommendation(
                priority=Priority.HIGH,
                category="Blood Pressure Control",
                action="Reduce salt to <5g/day, DASH diet, monitor BP daily, medication if BP ≥140/90",
                rationale="BP control is THE most important factor in CVD prevention",
                timeline="Immediate and ongoing",
            )
        )

    if _has_points(RiskFactor.CHOLESTEROL):
        recommendations.append(
            Recommendation(
                priority=Priority.MEDIUM,
                category="Cholesterol Management",
                action="Low saturated fat diet (<7% calories), increase fiber (25-30g/day), omega-3",
                rationale="Dietary interventions can lower cholesterol by 10-20%",
                timeline="3-6 months trial, then reassess",
            )
        )

    if urgency == Urgency.ROUTINE:
        recommendations += [
            Recommendation(
                priority=Priority.LOW,
                category="Preventive Care",
                action="Maintain healthy lifestyle, annual health check-up, BP check every 6 months",
                rationale="Prevention is key to maintaining low risk status",
                timeline="Ongoing",
            ),
            Recommendation(
                priority=Priority.LOW,
                category="Health Optimization",
                action="Mediterranean/DASH diet, 30min daily exercise, stress management, healthy BMI",
                rationale="Healthy habits prevent progression to higher risk",
                timeline="Lifestyle integration",
            ),
        ]

    if age is not None and age >= 50:
        recommendations.append(
            Recommendation(
                priority=Priority.MEDIUM,
                category="Age-Related Screening",
                action="Annual ECG, calcium score assessment (if high risk), carotid ultrasound",
                rationale="Enhanced screening recommended for age 50+",
                timeline="Annually",
            )
        )

    # Fixed policy: cessation advice leads regardless of any other priority
    if _has_points(RiskFactor.SMOKING):
        recommendations.insert(
            0,
            Recommendation(
                priority=Priority.CRITICAL,
                category=SMOKING_CESSATION,
                action="Enroll in smoking cessation program immediately. Consider nicotine replacement.",
                rationale=(
                    "Smoking cessation reduces CVD risk by 50% within 1 year - "
                    "MOST IMPORTANT intervention"
                ),
                timeline="Immediate",
                resource=region.quitline,
            ),
        )
    return recommendations


_NEXT_STEPS: dict[Urgency, list[tuple[str, str]]] = {
    Urgency.CRITICAL: [
        (
            "Schedule URGENT cardiology consultation within 3-7 days",
            "Very high CVD risk requires immediate medical evaluation",
        ),
        (
            "Do not ignore symptoms: chest pain, shortness of breath, palpitations, dizziness",
            "Warning signs of cardiac events - seek emergency care if present",
        ),
        (
            "Emergency care if experiencing acute symptoms RIGHT NOW",
            "Call {emergency} for ambulance immediately",
        ),
        (
            "Comprehensive cardiovascular evaluation: ECG, Echo, stress test, angiography",
            "Complete assessment needed to guide treatment",
        ),
        ("Consider cardiac imaging and advanced diagnostics", "Identify underlying heart disease"),
    ],
    Urgency.CONCERNING: [
        (
            "Schedule cardiology consultation within 2-4 weeks",
            "High CVD risk requires professional management",
        ),
        (
            "Strict adherence to prescribed medications",
            "Medication compliance is crucial for risk reduction",
        ),
    ],
    Urgency.ELEVATED: [
        (
            "Book a primary care review within 1-3 months",
            "Moderate CVD risk benefits from a structured prevention plan",
        ),
        (
            "Start lifestyle changes now: salt under 5g/day, 150 min/week exercise",
            "Modifiable factors drive most of the moderate-risk score",
        ),
    ],
    Urgency.ROUTINE: [
        (
            "Continue annual health check-ups",
            "Low CVD risk - routine prevention is sufficient",
        ),
    ],
}


def build_next_steps(
    urgency: Urgency, breakdown: dict[RiskFactor, ComponentResult], region: RegionConfig
) -> list[NextStep]:
    """Immediate-triage ordering, keyed by urgency tier."""
    steps = [
        (action, reason.format(emergency=region.emergency_numbers))
        for action, reason in _NEXT_STEPS[urgency]
    ]
    bp = breakdown.get(RiskFactor.BLOOD_PRESSURE)
    if bp is not None and bp.critical:
        steps.insert(
            0,
            (
                "Seek emergency care now: blood pressure is in the hypertensive crisis range",
                f"Risk of stroke or organ damage - call {region.emergency_numbers}",
            ),
        )
    return [
        NextStep(priority=index, action=action, reason=reason)
        for index, (action, reason) in enumerate(steps, start=1)
    ]


def build_disclaimer(confidence: Confidence, region: RegionConfig) -> Disclaimer:
    """Compliance block; emitted on every risk result without exception."""
    return Disclaimer(
        primary=(
            "MEDICAL DISCLAIMER: This is an ESTIMATED 10-year cardiovascular disease risk based on "
            f"WHO/ISH guidelines for {region.region}. This is NOT a clinical diagnosis and must NOT "
            "be used as the sole basis for medical decisions."
        ),
        accuracy=(
            f"Risk estimate confidence: {confidence.score}%. Accuracy depends on data quality and "
            "completeness. Individual risk may vary significantly."
        ),
        validation=(
            "Always consult a qualified cardiologist or physician for accurate assessment, "
            "diagnosis, and treatment. This tool is for educational and screening purposes ONLY."
        ),
        legal=(
            "This platform does not provide medical advice, diagnosis, or treatment. Always seek "
            "the advice of your physician or other qualified health provider with any questions "
            "regarding a medical condition. Never disregard professional medical advice or delay "
            "seeking it because of information from this platform."
        ),
        data_limitations=(
            f"Missing data affects accuracy: {'; '.join(confidence.data_gaps)}"
            if confidence.data_gaps
            else "All required data points available."
        ),
        emergency=(
            "If experiencing chest pain, shortness of breath, sudden weakness, or other emergency "
            f"symptoms, call emergency services ({region.emergency_numbers}) IMMEDIATELY. Do not wait."
        ),
        liability=(
            "Use of this calculator does not establish a doctor-patient relationship. Platform, "
            "developers, and affiliated organizations are not liable for medical outcomes or "
            "decisions based on this estimate."
        ),
    )


class CardiovascularRiskCalculator(ScoringPipeline[RiskScored, RiskAggregate, CardiovascularRiskResult]):
    """WHO/ISH risk engine. Stateless; safe to share between threads."""

    name = "cardiovascular_risk"

    def __init__(self, config: ScoringConfig) -> None:
        super().__init__(config)
        self.minimum_age = config.risk.minimum_age

    @property
    def risk(self) -> RiskConfig:
        return self.config.risk

    def score_components(self, normalized: NormalizedSnapshot) -> RiskScored:
        cfg = self.risk
        snapshot = normalized.snapshot
        outcomes = {
            RiskFactor.AGE: score_age(normalized.age, cfg),
            RiskFactor.SEX: score_sex(snapshot.sex, normalized.age, snapshot.pregnancy_complications, cfg),
            RiskFactor.SMOKING: score_smoking(snapshot.smoker, snapshot.second_hand_smoke_exposure, cfg),
            RiskFactor.DIABETES: score_diabetes(
                snapshot.diabetic, snapshot.diabetic_complications, normalized.glucose, cfg
            ),
            RiskFactor.BLOOD_PRESSURE: score_blood_pressure_risk(
                normalized.systolic, normalized.diastolic, cfg
            ),
            RiskFactor.CHOLESTEROL: score_cholesterol(
                normalized.total_cholesterol, normalized.hdl_cholesterol, cfg
            ),
        }
        return RiskScored(
            breakdown={f: o.component for f, o in outcomes.items() if o.component is not None},
            warnings=[w for o in outcomes.values() for w in o.warnings],
            gaps=[o.gap for o in outcomes.values() if o.gap is not None],
        )

    def aggregate(self, normalized: NormalizedSnapshot, scored: RiskScored) -> RiskAggregate:
        score = accumulate_points(scored.breakdown)
        breakpoint_ = resolve_breakpoint(self.risk.breakpoints, score)
        category = RiskCategory(breakpoint_.category)
        return RiskAggregate(
            score=score, breakpoint=breakpoint_, category=category, urgency=URGENCY[category]
        )

    def estimate_confidence(
        self, normalized: NormalizedSnapshot, scored: RiskScored, now: datetime
    ) -> Confidence:
        return estimate_deduction_confidence(scored.gaps)

    def recommend(
        self, normalized: NormalizedSnapshot, scored: RiskScored, aggregate: RiskAggregate
    ) -> list[Recommendation]:
        return build_risk_recommendations(
            aggregate.urgency, scored.breakdown, normalized.age, self.config.region
        )

    def build(
        self,
        normalized: NormalizedSnapshot,
        scored: RiskScored,
        aggregate: RiskAggregate,
        confidence: Confidence,
        recommendations: list[Recommendation],
        now: datetime,
    ) -> CardiovascularRiskResult:
        region = self.config.region
        result = CardiovascularRiskResult(
            score=aggregate.score,
            category=aggregate.category,
            ten_year_risk=aggregate.breakpoint.ten_year_risk,
            color_code=COLOR_CODES[aggregate.category],
            urgency=aggregate.urgency,
            breakdown=scored.breakdown,
            confidence=confidence,
            data_gaps=confidence.data_gaps,
            warnings=scored.warnings,
            recommendations=recommendations,
            next_steps=build_next_steps(aggregate.urgency, scored.breakdown, region),
            disclaimer=build_disclaimer(confidence, region),
            limitations=list(LIMITATIONS),
            recalculate_when=list(RECALCULATE_WHEN),
            methodology=Methodology(
                name=region.name,
                version=region.version,
                region=region.region,
                countries=list(region.countries),
                reference=region.reference,
            ),
            calculated_at=now,
        )
        self.logger.info(
            "risk_assessment_completed",
            score=result.score,
            category=result.category.value,
            confidence=confidence.score,
            data_gaps=len(confidence.data_gaps),
        )
        return result


def assess_cardiovascular_risk(
    snapshot: PatientSnapshot,
    *,
    config: ScoringConfig | None = None,
    as_of: date | None = None,
    now: datetime | None = None,
) -> CardiovascularRiskResult:
    """Estimate ten-year CVD risk with the given (or currently loaded) tables."""
    calculator = CardiovascularRiskCalculator(config or get_scoring_config())
    return calculator.calculate(snapshot, as_of=as_of, now=now)


def try_assess_cardiovascular_risk(
    snapshot: PatientSnapshot,
    *,
    config: ScoringConfig | None = None,
    as_of: date | None = None,
    now: datetime | None = None,
) -> Result[CardiovascularRiskResult, ScoringError]:
    calculator = CardiovascularRiskCalculator(config or get_scoring_config())
    return calculator.try_calculate(snapshot, as_of=as_of, now=now)
