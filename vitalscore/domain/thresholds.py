"""
Declarative threshold tables.

Every tiered rule in the engines is an ordered list of bands, each closing at
an upper bound, looked up by one routine. The last band has no upper bound so
the table covers the factor's whole domain. Tables are frozen Pydantic models;
changing a threshold means building a new table, never mutating one in place.

Defaults follow WHO/ISH guidance calibrated for South-East Asia Region D, with
Asian BMI cutoffs.
"""

from bisect import bisect_left, bisect_right

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vitalscore.domain.models import ActionSeverity


class Tier(BaseModel):
    """Outcome attached to a band: a score (or points) plus status metadata."""

    model_config = ConfigDict(frozen=True)

    label: str
    score: int = Field(ge=0)
    status: str
    message: str
    action: ActionSeverity | None = None
    critical: bool = False
    warning: str | None = Field(None, description="Extra warning emitted when this tier is hit")


class ThresholdBand(BaseModel):
    """A band closing at `upper`; `upper=None` marks the catch-all band."""

    model_config = ConfigDict(frozen=True)

    upper: float | None = None
    inclusive: bool = False
    tier: Tier | None = Field(None, description="None lets the value fall through to later rules")


class ThresholdTable(BaseModel):
    """Ordered, non-overlapping range -> outcome mapping."""

    model_config = ConfigDict(frozen=True)

    name: str
    bands: tuple[ThresholdBand, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def bands_are_ordered_and_exhaustive(self) -> "ThresholdTable":
        *bounded, last = self.bands
        if last.upper is not None:
            raise ValueError(f"{self.name}: last band must be a catch-all (upper=None)")
        previous: float | None = None
        for band in bounded:
            if band.upper is None:
                raise ValueError(f"{self.name}: only the last band may omit its upper bound")
            if previous is not None and band.upper <= previous:
                raise ValueError(f"{self.name}: band bounds must be strictly ascending")
            previous = band.upper
        return self

    def rank(self, value: float) -> int:
        """Index of the band `value` falls into."""
        for index, band in enumerate(self.bands):
            if band.upper is None:
                return index
            if value < band.upper or (band.inclusive and value == band.upper):
                return index
        return len(self.bands) - 1

    def lookup(self, value: float) -> Tier | None:
        return self.bands[self.rank(value)].tier


def table(name: str, *bands: tuple) -> ThresholdTable:
    """Shorthand: table("spo2", (85, severe), (88, critical), (None, normal)).

    A third element of True makes the band's upper bound inclusive.
    """
    built = []
    for band in bands:
        upper, tier, *rest = band
        built.append(ThresholdBand(upper=upper, tier=tier, inclusive=bool(rest and rest[0])))
    return ThresholdTable(name=name, bands=tuple(built))


class DualThresholdLadder(BaseModel):
    """
    Ladder classified on two readings at once (systolic/diastolic).

    Each reading is ranked against its own bounds and the more severe rank
    wins, so 130/95 is classified by the diastolic value.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    tiers: tuple[Tier, ...] = Field(min_length=2)
    primary_bounds: tuple[float, ...]
    secondary_bounds: tuple[float, ...]

    @model_validator(mode="after")
    def bounds_match_tiers(self) -> "DualThresholdLadder":
        for bounds in (self.primary_bounds, self.secondary_bounds):
            if len(bounds) != len(self.tiers) - 1:
                raise ValueError(f"{self.name}: need exactly one bound between each pair of tiers")
            if any(upper <= lower for lower, upper in zip(bounds, bounds[1:])):
                raise ValueError(f"{self.name}: bounds must be strictly ascending")
        return self

    def rank(self, primary: float, secondary: float) -> int:
        return max(
            bisect_right(self.primary_bounds, primary),
            bisect_right(self.secondary_bounds, secondary),
        )

    def classify(self, primary: float, secondary: float) -> Tier:
        return self.tiers[self.rank(primary, secondary)]


class RiskCategoryBreakpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_score_inclusive: int
    category: str
    ten_year_risk: str
    description: str


def resolve_breakpoint(breakpoints: tuple[RiskCategoryBreakpoint, ...], score: int) -> RiskCategoryBreakpoint:
    """First breakpoint whose ceiling holds the score wins."""
    ceilings = [bp.max_score_inclusive for bp in breakpoints]
    index = bisect_left(ceilings, score)
    return breakpoints[min(index, len(breakpoints) - 1)]


# Default stability tiers

BP_CRISIS = Tier(
    label="crisis",
    score=0,
    status="critical",
    message="HYPERTENSIVE CRISIS - Immediate medical attention required",
    action=ActionSeverity.EMERGENCY,
    critical=True,
)

HYPOTENSION = Tier(
    label="hypotension",
    score=30,
    status="critical",
    message="Hypotension - Low blood pressure detected",
    action=ActionSeverity.URGENT,
    critical=True,
)


def default_stability_bp_ladder() -> DualThresholdLadder:
    return DualThresholdLadder(
        name="stability.blood_pressure",
        tiers=(
            Tier(label="optimal", score=100, status="excellent", message="Optimal blood pressure"),
            Tier(label="normal", score=85, status="good", message="Normal blood pressure"),
            Tier(label="high_normal", score=75, status="good", message="High Normal - Monitor regularly"),
            Tier(
                label="stage1",
                score=60,
                status="fair",
                message="Grade 1 Hypertension - Lifestyle changes needed",
            ),
            Tier(
                label="stage2",
                score=40,
                status="poor",
                message="Grade 2 Hypertension - Doctor consultation required",
            ),
            BP_CRISIS,
        ),
        primary_bounds=(120, 130, 140, 160, 180),
        secondary_bounds=(80, 85, 90, 100, 110),
    )


def default_heart_rate_overrides() -> ThresholdTable:
    return table(
        "stability.heart_rate.overrides",
        (
            45,
            Tier(
                label="severe_bradycardia",
                score=30,
                status="critical",
                message="Severe bradycardia - Medical evaluation required",
                action=ActionSeverity.URGENT,
                critical=True,
            ),
        ),
        (150, None, True),
        (
            None,
            Tier(
                label="severe_tachycardia",
                score=20,
                status="critical",
                message="Severe tachycardia - Immediate attention needed",
                action=ActionSeverity.EMERGENCY,
                critical=True,
            ),
        ),
    )


def default_heart_rate_athlete_overrides() -> ThresholdTable:
    """Athletes keep the tachycardia override but are exempt from the bradycardia one."""
    overrides = default_heart_rate_overrides()
    return ThresholdTable(name="stability.heart_rate.athlete_overrides", bands=overrides.bands[1:])


_HR_NORMAL = Tier(label="normal", score=100, status="normal", message="Normal resting heart rate")
_HR_ELEVATED = Tier(label="elevated", score=60, status="fair", message="Elevated resting heart rate")


def default_heart_rate_resting() -> ThresholdTable:
    return table(
        "stability.heart_rate.resting",
        (
            60,
            Tier(label="low", score=70, status="fair", message="Low heart rate - Monitor for symptoms"),
        ),
        (100, _HR_NORMAL, True),
        (None, _HR_ELEVATED),
    )


def default_heart_rate_resting_athlete() -> ThresholdTable:
    return table(
        "stability.heart_rate.resting_athlete",
        (60, Tier(label="athletic", score=100, status="excellent", message="Athletic heart rate")),
        (100, _HR_NORMAL, True),
        (None, _HR_ELEVATED),
    )


def default_heart_rate_post_exercise() -> ThresholdTable:
    return table(
        "stability.heart_rate.post_exercise",
        (
            120,
            Tier(
                label="recovered",
                score=100,
                status="normal",
                message="Heart rate within expected post-exercise range",
            ),
            True,
        ),
        (
            None,
            Tier(label="recovering", score=80, status="normal", message="Normal post-exercise heart rate"),
        ),
    )


def default_glucose_overrides() -> ThresholdTable:
    return table(
        "stability.glucose.overrides",
        (
            54,
            Tier(
                label="severe_hypoglycemia",
                score=0,
                status="critical",
                message="SEVERE HYPOGLYCEMIA - Emergency glucose needed",
                action=ActionSeverity.EMERGENCY,
                critical=True,
            ),
        ),
        (
            70,
            Tier(
                label="hypoglycemia",
                score=30,
                status="poor",
                message="Hypoglycemia - Consume fast-acting carbs immediately",
                action=ActionSeverity.IMMEDIATE,
            ),
        ),
        (250, None, True),
        (
            400,
            Tier(
                label="hyperglycemia",
                score=40,
                status="poor",
                message="High blood sugar - Contact doctor today",
                action=ActionSeverity.URGENT,
            ),
            True,
        ),
        (
            None,
            Tier(
                label="severe_hyperglycemia",
                score=10,
                status="critical",
                message="SEVERE HYPERGLYCEMIA - Medical attention required NOW",
                action=ActionSeverity.EMERGENCY,
                critical=True,
            ),
        ),
    )


def default_glucose_fasting() -> ThresholdTable:
    return table(
        "stability.glucose.fasting",
        (100, Tier(label="normal", score=100, status="normal", message="Normal fasting glucose")),
        (
            125,
            Tier(
                label="prediabetes",
                score=70,
                status="fair",
                message="Pre-diabetes range - Prevention program recommended",
            ),
            True,
        ),
        (
            None,
            Tier(
                label="diabetes",
                score=50,
                status="poor",
                message="Diabetes range - Doctor consultation needed",
            ),
        ),
    )


def default_glucose_post_meal() -> ThresholdTable:
    return table(
        "stability.glucose.post_meal",
        (140, Tier(label="normal", score=100, status="normal", message="Normal post-meal glucose")),
        (
            199,
            Tier(label="elevated", score=70, status="fair", message="Elevated post-meal glucose"),
            True,
        ),
        (
            None,
            Tier(
                label="high",
                score=50,
                status="poor",
                message="High post-meal glucose - Medical evaluation needed",
            ),
        ),
    )


def default_spo2() -> ThresholdTable:
    return table(
        "stability.spo2",
        (
            85,
            Tier(
                label="severe",
                score=0,
                status="critical",
                message="SEVERE HYPOXIA - Call emergency services NOW",
                action=ActionSeverity.EMERGENCY,
                critical=True,
            ),
        ),
        (
            88,
            Tier(
                label="critical",
                score=20,
                status="critical",
                message="Critical oxygen level - Hospital oxygen needed",
                action=ActionSeverity.EMERGENCY,
                critical=True,
            ),
        ),
        (
            92,
            Tier(
                label="concern",
                score=50,
                status="poor",
                message="Low oxygen saturation - Doctor evaluation today",
            ),
        ),
        (
            95,
            Tier(label="below_normal", score=75, status="fair", message="Oxygen slightly low - Monitor closely"),
        ),
        (None, Tier(label="normal", score=100, status="normal", message="Normal oxygen saturation")),
    )


def default_bmi() -> ThresholdTable:
    return table(
        "stability.bmi",
        (
            16,
            Tier(
                label="severely_underweight",
                score=40,
                status="poor",
                message="Severely underweight - Nutritional support needed",
            ),
        ),
        (
            18.5,
            Tier(
                label="underweight",
                score=70,
                status="fair",
                message="Underweight - Consider weight gain program",
            ),
        ),
        (24.9, Tier(label="normal", score=100, status="normal", message="Healthy weight"), True),
        (
            27.4,
            Tier(
                label="overweight",
                score=80,
                status="good",
                message="Slightly overweight - Weight management beneficial",
            ),
            True,
        ),
        (
            30,
            Tier(label="pre_obese", score=60, status="fair", message="Overweight - Weight loss recommended"),
        ),
        (
            None,
            Tier(
                label="obese",
                score=40,
                status="poor",
                message="Obese - Medical weight management program needed",
            ),
        ),
    )


def default_status_buckets() -> ThresholdTable:
    return table(
        "stability.status",
        (55, Tier(label="poor", score=0, status="poor", message="Unsafe, medical attention needed")),
        (70, Tier(label="fair", score=55, status="fair", message="Caution, limited activities")),
        (85, Tier(label="good", score=70, status="good", message="Safe with minor precautions")),
        (None, Tier(label="excellent", score=85, status="excellent", message="Safe for all activities")),
    )


# Default risk tiers (score = points)


def default_risk_age() -> ThresholdTable:
    return table(
        "risk.age",
        (
            40,
            Tier(
                label="<40 years",
                score=0,
                status="low",
                message="WHO risk assessment is most accurate for ages 40+",
                warning=(
                    "WHO risk charts are optimized for ages 40-70. "
                    "Younger patients may have underestimated risk with strong family history."
                ),
            ),
        ),
        (50, Tier(label="40-49 years", score=3, status="moderate", message="Moderate age-related risk")),
        (60, Tier(label="50-59 years", score=6, status="increased", message="Increased age-related risk")),
        (70, Tier(label="60-69 years", score=10, status="high", message="High age-related risk")),
        (
            None,
            Tier(
                label="≥70 years",
                score=10,
                status="very_high",
                message="Very high age-related risk",
                warning=(
                    "For patients 70+, clinical judgment is essential. "
                    "Comprehensive geriatric assessment recommended."
                ),
            ),
        ),
    )


def default_risk_bp_ladder() -> DualThresholdLadder:
    return DualThresholdLadder(
        name="risk.blood_pressure",
        tiers=(
            Tier(
                label="Normal",
                score=0,
                status="optimal",
                message="Excellent - maintain healthy lifestyle",
            ),
            Tier(
                label="Elevated/Pre-Hypertension",
                score=0,
                status="elevated",
                message="Borderline - lifestyle modifications recommended",
                action=ActionSeverity.MONITOR,
                warning=(
                    "Pre-hypertension detected. High risk of progression to hypertension. "
                    "Lifestyle changes can prevent 50% of cases."
                ),
            ),
            Tier(
                label="Hypertension Stage 1",
                score=2,
                status="stage1",
                message="Medical consultation recommended",
                warning=(
                    "Stage 1 Hypertension. Doctor consultation within 1 month. "
                    "May require antihypertensive medication."
                ),
            ),
            Tier(
                label="Hypertension Stage 2",
                score=4,
                status="stage2",
                message="Medical attention required",
                action=ActionSeverity.URGENT,
                warning=(
                    "Stage 2 Hypertension. Urgent doctor consultation required. "
                    "Antihypertensive medication essential."
                ),
            ),
            Tier(
                label="Hypertensive Crisis",
                score=6,
                status="crisis",
                message="EMERGENCY - Immediate medical attention required",
                action=ActionSeverity.EMERGENCY,
                critical=True,
                warning=(
                    "HYPERTENSIVE CRISIS - MEDICAL EMERGENCY. "
                    "Risk of stroke, heart attack, organ damage. "
                    "Go to emergency room or call ambulance IMMEDIATELY."
                ),
            ),
        ),
        primary_bounds=(120, 140, 160, 180),
        secondary_bounds=(80, 90, 100, 110),
    )


def default_risk_cholesterol() -> ThresholdTable:
    return table(
        "risk.cholesterol",
        (200, Tier(label="Desirable", score=0, status="desirable", message="Optimal cholesterol level")),
        (
            240,
            Tier(
                label="Borderline High",
                score=2,
                status="borderline",
                message="Dietary modifications advised",
                warning=(
                    "Borderline high cholesterol. Dietary changes can lower by 10-20%. "
                    "Repeat test in 6 months."
                ),
            ),
        ),
        (
            None,
            Tier(
                label="High",
                score=4,
                status="high",
                message="Medical consultation for statin therapy",
                action=ActionSeverity.URGENT,
                warning=(
                    "High cholesterol. Doctor consultation essential. "
                    "Statin therapy may be required. Target LDL <100 mg/dL."
                ),
            ),
        ),
    )


def default_risk_breakpoints() -> tuple[RiskCategoryBreakpoint, ...]:
    return (
        RiskCategoryBreakpoint(
            max_score_inclusive=9,
            category="low",
            ten_year_risk="<10%",
            description="Low cardiovascular risk",
        ),
        RiskCategoryBreakpoint(
            max_score_inclusive=19,
            category="moderate",
            ten_year_risk="10% to <20%",
            description="Moderate cardiovascular risk",
        ),
        RiskCategoryBreakpoint(
            max_score_inclusive=29,
            category="high",
            ten_year_risk="20% to <30%",
            description="High cardiovascular risk",
        ),
        RiskCategoryBreakpoint(
            max_score_inclusive=30,
            category="very_high",
            ten_year_risk="≥30%",
            description="Very high cardiovascular risk",
        ),
    )
