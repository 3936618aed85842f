"""
Scoring services.

This package contains the two scoring engines and the shared pipeline,
validation and confidence machinery they are built from.
"""

from .cardiovascular_risk import (
    CardiovascularRiskCalculator,
    assess_cardiovascular_risk,
    try_assess_cardiovascular_risk,
)
from .pipeline import Result, ScoringPipeline
from .validation import NormalizedSnapshot, SnapshotValidator
from .vital_score import VitalScoreCalculator, calculate_vital_score, try_calculate_vital_score

__all__ = [
    "CardiovascularRiskCalculator",
    "NormalizedSnapshot",
    "Result",
    "ScoringPipeline",
    "SnapshotValidator",
    "VitalScoreCalculator",
    "assess_cardiovascular_risk",
    "calculate_vital_score",
    "try_assess_cardiovascular_risk",
    "try_calculate_vital_score",
]
