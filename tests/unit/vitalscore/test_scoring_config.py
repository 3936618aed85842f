"""
Tests for configuration management in `vitalscore/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- JSON threshold override file
- Config invariants (weights sum, breakpoints cover the score range)
- get_config cache behavior and reload_config
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from vitalscore.config import (
    AppConfig,
    LoggingConfig,
    RiskConfig,
    ScoringConfig,
    StabilityConfig,
    get_config,
    load_config_from_env,
    load_scoring_config,
    merge_scoring_config,
    reload_config,
)
from vitalscore.domain.models import VitalFactor
from vitalscore.domain.thresholds import RiskCategoryBreakpoint


@pytest.fixture(autouse=True)
def clear_config_cache(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure get_config cache is cleared before and after each test."""
    monkeypatch.delenv("VITALSCORE_THRESHOLDS_FILE", raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.scoring == ScoringConfig()


def test_production_uses_json_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    assert load_config_from_env().logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "error")
    assert load_config_from_env().logging.level == "ERROR"


def test_thresholds_file_overrides_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "thresholds.json"
    path.write_text(
        json.dumps(
            {
                "stability": {"weights": {"blood_pressure": 35, "bmi": 5}},
                "risk": {"low_hdl": 45},
            }
        )
    )
    monkeypatch.setenv("VITALSCORE_THRESHOLDS_FILE", str(path))

    scoring = load_config_from_env().scoring

    assert scoring.stability.weights[VitalFactor.BLOOD_PRESSURE] == 35
    assert scoring.stability.weights[VitalFactor.GLUCOSE] == 25
    assert scoring.risk.low_hdl == 45
    assert scoring.risk.minimum_age == 18


def test_invalid_thresholds_file_fails_fast(tmp_path: Path) -> None:
    path = tmp_path / "thresholds.json"
    path.write_text(json.dumps({"stability": {"weights": {"blood_pressure": 50}}}))

    with pytest.raises(ValueError, match="sum to 100"):
        load_scoring_config(path)


def test_weights_must_cover_every_factor() -> None:
    with pytest.raises(ValueError, match="missing weights"):
        StabilityConfig(weights={VitalFactor.BLOOD_PRESSURE: 100})


def test_breakpoints_must_cover_score_range() -> None:
    with pytest.raises(ValueError, match="cover"):
        RiskConfig(
            breakpoints=(
                RiskCategoryBreakpoint(
                    max_score_inclusive=20, category="low", ten_year_risk="<10%", description="x"
                ),
            )
        )


def test_merge_returns_new_config() -> None:
    base = ScoringConfig()
    merged = merge_scoring_config(base, {"risk": {"minimum_age": 21}})
    assert merged.risk.minimum_age == 21
    assert base.risk.minimum_age == 18
    assert merged.stability == base.stability


def test_scoring_config_is_frozen() -> None:
    with pytest.raises(ValueError, match="frozen"):
        ScoringConfig().risk.low_hdl = 50  # type: ignore


def test_get_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_reload_config_picks_up_new_thresholds(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    before = get_config()
    path = tmp_path / "thresholds.json"
    path.write_text(json.dumps({"stability": {"missing_score": 40}}))
    monkeypatch.setenv("VITALSCORE_THRESHOLDS_FILE", str(path))

    after = reload_config()

    assert after is not before
    assert after.scoring.stability.missing_score == 40
    assert get_config() is after


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(environment="production", debug=True, logging=LoggingConfig())
