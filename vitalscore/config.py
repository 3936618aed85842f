"""
Configuration management with environment variable support and validation.

Design principles:
- Threshold tables and weights are injected configuration, not literals in the scorers
- Validation at startup (fail fast): weights sum to 100, tables ordered and exhaustive
- Type safety with Pydantic, frozen so a loaded config is safe to share across threads
- Operators can swap thresholds at runtime with reload_config()
"""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

from vitalscore.domain.models import VitalFactor
from vitalscore.domain.thresholds import (
    HYPOTENSION,
    DualThresholdLadder,
    RiskCategoryBreakpoint,
    ThresholdTable,
    Tier,
    default_bmi,
    default_glucose_fasting,
    default_glucose_overrides,
    default_glucose_post_meal,
    default_heart_rate_athlete_overrides,
    default_heart_rate_overrides,
    default_heart_rate_post_exercise,
    default_heart_rate_resting,
    default_heart_rate_resting_athlete,
    default_risk_age,
    default_risk_bp_ladder,
    default_risk_breakpoints,
    default_risk_cholesterol,
    default_spo2,
    default_stability_bp_ladder,
    default_status_buckets,
)

# Load environment variables from .env file
load_dotenv()

RISK_MAX_SCORE = 30
STABILITY_MAX_SCORE = 100


class Bound(BaseModel):
    """Inclusive physiological range; values outside are data-entry errors."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @model_validator(mode="after")
    def min_below_max(self) -> "Bound":
        if self.min >= self.max:
            raise ValueError(f"bound min {self.min} must be below max {self.max}")
        return self

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


class PhysiologicalBounds(BaseModel):
    """Hard bounds checked by the snapshot validator."""

    model_config = ConfigDict(frozen=True)

    systolic: Bound = Bound(min=50, max=300)
    diastolic: Bound = Bound(min=30, max=200)
    heart_rate: Bound = Bound(min=30, max=250)
    glucose: Bound = Bound(min=20, max=700)
    spo2: Bound = Bound(min=50, max=100)
    bmi: Bound = Bound(min=10, max=80)
    total_cholesterol: Bound = Bound(min=50, max=600)
    hdl_cholesterol: Bound = Bound(min=10, max=200)


class HypotensionThreshold(BaseModel):
    model_config = ConfigDict(frozen=True)

    systolic: float = 90
    diastolic: float = 60
    tier: Tier = HYPOTENSION


class AlertThresholds(BaseModel):
    """Absolute raw-value thresholds for the emergency alert pass."""

    model_config = ConfigDict(frozen=True)

    crisis_systolic: float = Field(default=180, gt=0)
    crisis_diastolic: float = Field(default=110, gt=0)
    glucose_low: float = Field(default=54, gt=0)
    glucose_high: float = Field(default=400, gt=0)
    spo2_low: float = Field(default=88, gt=0, le=100)


class FreshnessPolicy(BaseModel):
    """How data age feeds the stability confidence score."""

    model_config = ConfigDict(frozen=True)

    completeness_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    recent_hours: float = Field(default=24, gt=0)
    stale_hours: float = Field(default=48, gt=0)
    aging_score: int = Field(default=75, ge=0, le=100)
    stale_score: int = Field(default=50, ge=0, le=100)


class StabilityConfig(BaseModel):
    """Thresholds and weights for the vital stability score."""

    model_config = ConfigDict(frozen=True)

    weights: dict[VitalFactor, int] = Field(
        default_factory=lambda: {
            VitalFactor.BLOOD_PRESSURE: 30,
            VitalFactor.HEART_RATE: 20,
            VitalFactor.GLUCOSE: 25,
            VitalFactor.SPO2: 15,
            VitalFactor.BMI: 10,
        }
    )
    missing_score: int = Field(default=50, ge=0, le=100, description="Neutral score for absent vitals")

    blood_pressure: DualThresholdLadder = Field(default_factory=default_stability_bp_ladder)
    hypotension: HypotensionThreshold = HypotensionThreshold()
    heart_rate_overrides: ThresholdTable = Field(default_factory=default_heart_rate_overrides)
    heart_rate_athlete_overrides: ThresholdTable = Field(
        default_factory=default_heart_rate_athlete_overrides
    )
    heart_rate_resting: ThresholdTable = Field(default_factory=default_heart_rate_resting)
    heart_rate_resting_athlete: ThresholdTable = Field(default_factory=default_heart_rate_resting_athlete)
    heart_rate_post_exercise: ThresholdTable = Field(default_factory=default_heart_rate_post_exercise)
    glucose_overrides: ThresholdTable = Field(default_factory=default_glucose_overrides)
    glucose_fasting: ThresholdTable = Field(default_factory=default_glucose_fasting)
    glucose_post_meal: ThresholdTable = Field(default_factory=default_glucose_post_meal)
    diabetic_fasting_target: float = Field(default=130, gt=0)
    diabetic_fasting_floor: int = Field(default=80, ge=0, le=100)
    spo2: ThresholdTable = Field(default_factory=default_spo2)
    bmi: ThresholdTable = Field(default_factory=default_bmi)
    status_buckets: ThresholdTable = Field(default_factory=default_status_buckets)

    alerts: AlertThresholds = AlertThresholds()
    freshness: FreshnessPolicy = FreshnessPolicy()
    weak_component_threshold: int = Field(default=70, ge=0, le=100)
    strong_component_threshold: int = Field(default=85, ge=0, le=100)

    @model_validator(mode="after")
    def weights_sum_to_100(self) -> "StabilityConfig":
        missing = set(VitalFactor) - set(self.weights)
        if missing:
            raise ValueError(f"missing weights for: {sorted(f.value for f in missing)}")
        total = sum(self.weights.values())
        if total != 100:
            raise ValueError(f"stability weights must sum to 100, got {total}")
        return self

    @model_validator(mode="after")
    def tier_scores_within_bounds(self) -> "StabilityConfig":
        tiers: list[tuple[str, Tier]] = [("hypotension", self.hypotension.tier)]
        tiers.extend((self.blood_pressure.name, tier) for tier in self.blood_pressure.tiers)
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, ThresholdTable):
                tiers.extend((value.name, band.tier) for band in value.bands if band.tier is not None)
        for source, tier in tiers:
            if tier.score > STABILITY_MAX_SCORE:
                raise ValueError(
                    f"{source}: tier {tier.label!r} score {tier.score} exceeds {STABILITY_MAX_SCORE}"
                )
        return self


class ConfidencePenalties(BaseModel):
    """Points taken off risk confidence for each missing datum."""

    model_config = ConfigDict(frozen=True)

    age: int = Field(default=20, ge=0, le=100)
    sex: int = Field(default=10, ge=0, le=100)
    smoking: int = Field(default=15, ge=0, le=100)
    blood_pressure: int = Field(default=25, ge=0, le=100)
    cholesterol: int = Field(default=20, ge=0, le=100)


class RiskConfig(BaseModel):
    """Points tables and category breakpoints for cardiovascular risk."""

    model_config = ConfigDict(frozen=True)

    minimum_age: int = Field(default=18, gt=0)
    age: ThresholdTable = Field(default_factory=default_risk_age)
    male_points: int = Field(default=2, ge=0)
    smoking_points: int = Field(default=3, ge=0)
    diabetes_points: int = Field(default=4, ge=0)
    blood_pressure: DualThresholdLadder = Field(default_factory=default_risk_bp_ladder)
    cholesterol: ThresholdTable = Field(default_factory=default_risk_cholesterol)
    low_hdl: float = Field(default=40, gt=0)
    prediabetes_glucose_min: float = Field(default=100, gt=0)
    prediabetes_glucose_max: float = Field(default=126, gt=0)
    breakpoints: tuple[RiskCategoryBreakpoint, ...] = Field(default_factory=default_risk_breakpoints)
    penalties: ConfidencePenalties = ConfidencePenalties()

    @model_validator(mode="after")
    def breakpoints_partition_score_range(self) -> "RiskConfig":
        ceilings = [bp.max_score_inclusive for bp in self.breakpoints]
        if not ceilings:
            raise ValueError("at least one risk breakpoint is required")
        if any(upper <= lower for lower, upper in zip(ceilings, ceilings[1:])):
            raise ValueError("risk breakpoints must be strictly ascending")
        if ceilings[0] < 0 or ceilings[-1] < RISK_MAX_SCORE:
            raise ValueError(f"risk breakpoints must cover 0..{RISK_MAX_SCORE}")
        return self


class RegionConfig(BaseModel):
    """Methodology metadata stamped on every risk result."""

    model_config = ConfigDict(frozen=True)

    name: str = "WHO/ISH Cardiovascular Risk Prediction Charts"
    version: str = "2019"
    region: str = "South-East Asia Region D (SEAR-D)"
    countries: tuple[str, ...] = ("India", "Bangladesh", "Bhutan", "Nepal", "Sri Lanka")
    reference: str = "WHO Technical Report Series on Prevention of Cardiovascular Disease"
    emergency_numbers: str = "108/102"
    quitline: str = "National Tobacco Quitline: 1800-11-2356"


class ScoringConfig(BaseModel):
    """Everything the two engines read. Built once, shared read-only."""

    model_config = ConfigDict(frozen=True)

    bounds: PhysiologicalBounds = PhysiologicalBounds()
    stability: StabilityConfig = StabilityConfig()
    risk: RiskConfig = RiskConfig()
    region: RegionConfig = RegionConfig()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    scoring: ScoringConfig = ScoringConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_scoring_config(path: str | Path | None = None) -> ScoringConfig:
    """
    Build the scoring config, optionally overlaid with a JSON file.

    The file holds a partial ScoringConfig, e.g.
    {"stability": {"weights": {"blood_pressure": 35, "bmi": 5, ...}}}.
    Anything not mentioned keeps its default.
    """
    if path is None:
        return ScoringConfig()
    overrides = json.loads(Path(path).read_text(encoding="utf-8"))
    return merge_scoring_config(ScoringConfig(), overrides)


def merge_scoring_config(base: ScoringConfig, overrides: dict[str, Any]) -> ScoringConfig:
    """Deep-merge a partial dict onto `base` and re-validate the whole config."""

    def _merge(current: Any, patch: Any) -> Any:
        if isinstance(current, dict) and isinstance(patch, dict):
            merged = dict(current)
            for key, value in patch.items():
                merged[key] = _merge(current.get(key), value) if key in current else value
            return merged
        return patch

    data = base.model_dump(mode="json")
    return ScoringConfig.model_validate(_merge(data, overrides))


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    scoring = load_scoring_config(os.getenv("VITALSCORE_THRESHOLDS_FILE") or None)

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        scoring=scoring,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def get_scoring_config() -> ScoringConfig:
    return get_config().scoring


def reload_config() -> AppConfig:
    """Drop the cached config and re-read it, picking up new thresholds."""
    get_config.cache_clear()
    config = get_config()
    structlog.get_logger(__name__).info(
        "config_reloaded",
        environment=config.environment,
        stability_weights={k.value: v for k, v in config.scoring.stability.weights.items()},
    )
    return config


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structured logging (JSON in deployed environments, console in development)."""
    config = config or get_config().logging
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if config.format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()
    stability = config.scoring.stability

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nSTABILITY WEIGHTS")
    for factor, weight in stability.weights.items():
        print(f"  {factor.value}: {weight}")

    print("\nRISK METHODOLOGY")
    print(f"  {config.scoring.region.name} ({config.scoring.region.version})")
    print(f"  Region: {config.scoring.region.region}")


if __name__ == "__main__":
    print_config_summary()
