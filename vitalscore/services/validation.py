"""
Snapshot validation and normalisation.

Runs before any scorer. Each numeric field is classified as present, invalid
(outside hard physiological bounds) or absent. Invalid data is a caller bug
and raises; absent data is normal and only becomes a data gap downstream.
"""

from dataclasses import dataclass, field
from datetime import date

import structlog

from vitalscore.config import PhysiologicalBounds
from vitalscore.domain.errors import DomainError, ValidationError
from vitalscore.domain.models import FieldState, PatientSnapshot

logger = structlog.get_logger(__name__)

VITAL_FIELDS = ("blood_pressure", "heart_rate", "glucose", "spo2", "bmi")

_LABELS = {
    "systolic": "systolic BP",
    "diastolic": "diastolic BP",
    "heart_rate": "heart rate",
    "glucose": "glucose reading",
    "spo2": "SpO2 reading",
    "bmi": "BMI",
    "total_cholesterol": "total cholesterol",
    "hdl_cholesterol": "HDL cholesterol",
}


@dataclass(frozen=True)
class NormalizedSnapshot:
    """Snapshot plus derived values and per-field presence."""

    snapshot: PatientSnapshot
    as_of: date
    age: int | None
    systolic: float | None
    diastolic: float | None
    heart_rate: float | None
    glucose: float | None
    spo2: float | None
    bmi: float | None
    total_cholesterol: float | None
    hdl_cholesterol: float | None
    field_states: dict[str, FieldState] = field(default_factory=dict)

    def is_present(self, name: str) -> bool:
        return self.field_states.get(name) == FieldState.PRESENT

    @property
    def missing_vitals(self) -> list[str]:
        return [name for name in VITAL_FIELDS if not self.is_present(name)]


def calculate_age(birth_date: date | None, as_of: date) -> int | None:
    """Whole years between birth_date and as_of; None when unknown."""
    if birth_date is None:
        return None
    if birth_date > as_of:
        raise ValidationError("Birth date is in the future", field="birth_date")
    had_birthday = (as_of.month, as_of.day) >= (birth_date.month, birth_date.day)
    return as_of.year - birth_date.year - (0 if had_birthday else 1)


def derive_bmi(weight_kg: float | None, height_cm: float | None) -> float | None:
    if not weight_kg or not height_cm or weight_kg <= 0 or height_cm <= 0:
        return None
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)


def _positive(value: float | None) -> float | None:
    # Zero and negative readings come from unset form fields, not patients
    if value is None or value <= 0:
        return None
    return value


class SnapshotValidator:
    """Checks a snapshot against hard bounds and derives age and BMI."""

    def __init__(self, bounds: PhysiologicalBounds) -> None:
        self.bounds = bounds

    def _raw_values(self, snapshot: PatientSnapshot) -> dict[str, float | None]:
        bp = snapshot.blood_pressure
        bmi = _positive(snapshot.bmi)
        if bmi is None:
            bmi = derive_bmi(snapshot.weight_kg, snapshot.height_cm)
        return {
            "systolic": _positive(bp.systolic) if bp else None,
            "diastolic": _positive(bp.diastolic) if bp else None,
            "heart_rate": _positive(snapshot.heart_rate),
            "glucose": _positive(snapshot.glucose),
            "spo2": _positive(snapshot.spo2),
            "bmi": bmi,
            "total_cholesterol": _positive(snapshot.total_cholesterol),
            "hdl_cholesterol": _positive(snapshot.hdl_cholesterol),
        }

    def classify_fields(self, snapshot: PatientSnapshot) -> dict[str, FieldState]:
        """Tag every numeric field as present, invalid or absent without raising."""
        states: dict[str, FieldState] = {}
        for name, value in self._raw_values(snapshot).items():
            if value is None:
                states[name] = FieldState.ABSENT
            elif getattr(self.bounds, name).contains(value):
                states[name] = FieldState.PRESENT
            else:
                states[name] = FieldState.INVALID

        # Blood pressure only counts when both readings are usable
        pair = (states["systolic"], states["diastolic"])
        if FieldState.INVALID in pair:
            states["blood_pressure"] = FieldState.INVALID
        elif pair == (FieldState.PRESENT, FieldState.PRESENT):
            states["blood_pressure"] = FieldState.PRESENT
        else:
            states["blood_pressure"] = FieldState.ABSENT
        return states

    def normalize(
        self,
        snapshot: PatientSnapshot,
        as_of: date,
        *,
        minimum_age: int | None = None,
    ) -> NormalizedSnapshot:
        """
        Validate and normalise a snapshot.

        Args:
            snapshot: Caller-built input.
            as_of: Reference date for age derivation.
            minimum_age: When set, a derived age below it raises DomainError.

        Raises:
            ValidationError: A present value is outside its physiological bounds.
            DomainError: The patient is younger than minimum_age.
        """
        values = self._raw_values(snapshot)
        states = self.classify_fields(snapshot)

        for name, state in states.items():
            if state == FieldState.INVALID and name in _LABELS:
                bound = getattr(self.bounds, name)
                logger.warning("snapshot_validation_failed", field=name)
                raise ValidationError(
                    f"Invalid {_LABELS[name]}: {values[name]} outside {bound.min:g}-{bound.max:g}",
                    field=name,
                )

        age = calculate_age(snapshot.birth_date, as_of)
        if minimum_age is not None and age is not None and age < minimum_age:
            raise DomainError(
                f"Cardiovascular risk assessment requires an adult (age {minimum_age}+)",
                field="birth_date",
            )

        def _value(name: str) -> float | None:
            return values[name] if states[name] == FieldState.PRESENT else None

        bp_present = states["blood_pressure"] == FieldState.PRESENT
        return NormalizedSnapshot(
            snapshot=snapshot,
            as_of=as_of,
            age=age,
            systolic=values["systolic"] if bp_present else None,
            diastolic=values["diastolic"] if bp_present else None,
            heart_rate=_value("heart_rate"),
            glucose=_value("glucose"),
            spo2=_value("spo2"),
            bmi=_value("bmi"),
            total_cholesterol=_value("total_cholesterol"),
            hdl_cholesterol=_value("hdl_cholesterol"),
            field_states=states,
        )
