"""
Domain models for vital stability scoring and cardiovascular risk assessment.

These models represent the core clinical concepts and are framework-agnostic.
Inputs are validated with Pydantic; every result record is frozen so a result
handed to the API layer can't be mutated after it was built.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from vitalscore.domain.errors import ValidationError

Sex = Literal["male", "female"]
Activity = Literal["resting", "post-exercise"]
GlucoseTiming = Literal["fasting", "post-meal"]


class VitalFactor(str, Enum):
    """Factors contributing to the vital stability score."""

    BLOOD_PRESSURE = "blood_pressure"
    HEART_RATE = "heart_rate"
    GLUCOSE = "glucose"
    SPO2 = "spo2"
    BMI = "bmi"


class RiskFactor(str, Enum):
    """Factors contributing to the cardiovascular risk points."""

    AGE = "age"
    SEX = "sex"
    SMOKING = "smoking"
    DIABETES = "diabetes"
    BLOOD_PRESSURE = "blood_pressure"
    CHOLESTEROL = "cholesterol"


class ActionSeverity(str, Enum):
    """How quickly the patient has to act on a component finding."""

    EMERGENCY = "emergency"
    URGENT = "urgent"
    IMMEDIATE = "immediate"
    MONITOR = "monitor"


class Priority(str, Enum):
    """Recommendation priority, most pressing first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FieldState(str, Enum):
    """Presence classification of a snapshot field after normalisation."""

    PRESENT = "present"
    INVALID = "invalid"
    ABSENT = "absent"


class StabilityStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class RiskCategory(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"


class Urgency(str, Enum):
    """Triage tier derived from the risk category."""

    ROUTINE = "routine"
    ELEVATED = "elevated"
    CONCERNING = "concerning"
    CRITICAL = "critical"


class BloodPressure(BaseModel):
    """Single blood pressure reading in mmHg."""

    model_config = ConfigDict(frozen=True)

    systolic: float
    diastolic: float
    trend: str | None = Field(None, description="Caller supplied trend, e.g. rising/stable")


class PatientSnapshot(BaseModel):
    """
    Biometric snapshot assembled by the caller for one scoring call.

    Every field is optional: the engines decide what is required and turn
    anything missing into a data gap instead of an error.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Demographics
    birth_date: date | None = None
    sex: Sex | None = None

    # Flags
    smoker: bool | None = Field(None, description="None means smoking status was never recorded")
    diabetic: bool = False
    diabetic_complications: bool = False
    pregnancy_complications: bool = False
    second_hand_smoke_exposure: bool = False
    is_athlete: bool = False

    # Vitals
    blood_pressure: BloodPressure | None = None
    heart_rate: float | None = None
    activity: Activity | None = None
    glucose: float | None = Field(None, description="Blood glucose in mg/dL")
    glucose_timing: GlucoseTiming | None = None
    spo2: float | None = Field(None, description="Peripheral oxygen saturation in percent")
    bmi: float | None = None
    weight_kg: float | None = None
    height_cm: float | None = None

    # Labs
    total_cholesterol: float | None = Field(None, description="Total cholesterol in mg/dL")
    hdl_cholesterol: float | None = Field(None, description="HDL cholesterol in mg/dL")

    measured_at: datetime | None = Field(None, description="When the vitals were taken")

    @model_validator(mode="before")
    @classmethod
    def normalise_sex(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("sex"), str):
            data = {**data, "sex": data["sex"].strip().lower() or None}
        return data

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PatientSnapshot":
        """Build a snapshot from an untrusted dict, raising our ValidationError."""
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or None
            raise ValidationError(f"Invalid snapshot: {first['msg']}", field=field) from e


class ComponentResult(BaseModel):
    """Outcome of one factor scorer."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, description="0-100 for stability factors, points for risk factors")
    max_score: int = Field(default=100, gt=0)
    status: str
    label: str = Field(description="Tier key the value fell into")
    message: str
    detail: str | None = None
    action: ActionSeverity | None = None
    critical: bool = False
    context: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def score_within_bounds(self) -> "ComponentResult":
        if self.score > self.max_score:
            raise ValueError(f"score {self.score} exceeds max_score {self.max_score}")
        return self


class CriticalAlert(BaseModel):
    """Emergency alert raised from raw vitals, independent of any score."""

    model_config = ConfigDict(frozen=True)

    severity: Literal["critical"] = "critical"
    type: str
    message: str
    action: str
    vital: str
    value: str


class Confidence(BaseModel):
    """Reliability estimate for a result."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    level: Literal["high", "medium", "low"]
    message: str
    data_gaps: list[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    priority: Priority
    category: str
    action: str
    rationale: str
    timeline: str
    resource: str | None = None


class NextStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    priority: int = Field(ge=1)
    action: str
    reason: str


class StabilityResult(BaseModel):
    """Real-time vital stability assessment."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    status: StabilityStatus
    status_label: str
    is_critical: bool
    cleared_for_activity: bool
    activity_guidance: str
    breakdown: dict[VitalFactor, ComponentResult]
    critical_alerts: list[CriticalAlert]
    recommendations: list[Recommendation]
    confidence: Confidence
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Disclaimer(BaseModel):
    """Compliance text that accompanies every risk estimate."""

    model_config = ConfigDict(frozen=True)

    primary: str
    accuracy: str
    validation: str
    legal: str
    data_limitations: str
    emergency: str
    liability: str


class Methodology(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    region: str
    countries: list[str]
    reference: str


class CardiovascularRiskResult(BaseModel):
    """Ten-year cardiovascular risk estimate."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=30)
    max_score: int = 30
    category: RiskCategory
    ten_year_risk: str
    color_code: str
    urgency: Urgency
    breakdown: dict[RiskFactor, ComponentResult]
    confidence: Confidence
    data_gaps: list[str]
    warnings: list[str]
    recommendations: list[Recommendation]
    next_steps: list[NextStep]
    disclaimer: Disclaimer
    limitations: list[str]
    recalculate_when: list[str]
    methodology: Methodology
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
