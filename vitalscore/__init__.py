"""Vital stability scoring and WHO/ISH cardiovascular risk estimation.

Both engines are pure functions of a caller-built PatientSnapshot and the
loaded ScoringConfig: no I/O, no persistence, structured log lines only.
"""

from vitalscore.config import ScoringConfig, get_config, get_scoring_config, reload_config
from vitalscore.domain.errors import DomainError, ScoringError, ValidationError
from vitalscore.domain.models import (
    BloodPressure,
    CardiovascularRiskResult,
    PatientSnapshot,
    StabilityResult,
)
from vitalscore.services import (
    CardiovascularRiskCalculator,
    Result,
    VitalScoreCalculator,
    assess_cardiovascular_risk,
    calculate_vital_score,
    try_assess_cardiovascular_risk,
    try_calculate_vital_score,
)

__version__ = "0.1.0"

__all__ = [
    "BloodPressure",
    "CardiovascularRiskCalculator",
    "CardiovascularRiskResult",
    "DomainError",
    "PatientSnapshot",
    "Result",
    "ScoringConfig",
    "ScoringError",
    "StabilityResult",
    "ValidationError",
    "VitalScoreCalculator",
    "assess_cardiovascular_risk",
    "calculate_vital_score",
    "get_config",
    "get_scoring_config",
    "reload_config",
    "try_assess_cardiovascular_risk",
    "try_calculate_vital_score",
]
