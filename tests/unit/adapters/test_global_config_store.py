"""Tests for operator threshold overrides."""

import pytest

from adapters.global_config.store import (
    ConfigOverride,
    InMemoryConfigStore,
    apply_overrides,
    overrides_to_patch,
    resolve_scoring_config,
)
from vitalscore.config import ScoringConfig
from vitalscore.domain.errors import ValidationError
from vitalscore.domain.models import VitalFactor


class TestInMemoryConfigStore:
    def test_set_get_delete(self) -> None:
        store = InMemoryConfigStore()
        stored = store.set("risk.low_hdl", 45, updated_by="ops")

        assert store.get("risk.low_hdl") == stored
        assert stored.updated_at.tzinfo is not None
        assert store.delete("risk.low_hdl") is True
        assert store.delete("risk.low_hdl") is False
        assert store.get("risk.low_hdl") is None

    def test_all_is_sorted_by_key(self) -> None:
        store = InMemoryConfigStore()
        store.set("stability.missing_score", 40)
        store.set("risk.low_hdl", 45)
        assert [o.key for o in store.all()] == ["risk.low_hdl", "stability.missing_score"]

    def test_key_must_be_dotted_config_path(self) -> None:
        with pytest.raises(ValueError):
            ConfigOverride(key="low_hdl", value=45)


class TestApplyOverrides:
    def test_no_overrides_returns_base(self, config: ScoringConfig) -> None:
        assert apply_overrides(config, []) is config

    def test_overrides_build_nested_patch(self, config: ScoringConfig) -> None:
        patch = overrides_to_patch(
            config,
            [ConfigOverride(key="stability.weights.glucose", value=20),
             ConfigOverride(key="stability.weights.bmi", value=15)],
        )
        assert patch == {"stability": {"weights": {"glucose": 20, "bmi": 15}}}

    def test_applied_config_is_new_and_validated(self, config: ScoringConfig) -> None:
        updated = apply_overrides(
            config,
            [ConfigOverride(key="stability.weights.glucose", value=20),
             ConfigOverride(key="stability.weights.bmi", value=15)],
        )
        assert updated.stability.weights[VitalFactor.GLUCOSE] == 20
        assert updated.stability.weights[VitalFactor.BMI] == 15
        assert config.stability.weights[VitalFactor.GLUCOSE] == 25

    def test_unknown_key_is_rejected(self, config: ScoringConfig) -> None:
        with pytest.raises(ValidationError, match="Unknown config key") as exc_info:
            apply_overrides(config, [ConfigOverride(key="risk.not_a_field", value=1)])
        assert exc_info.value.field == "risk.not_a_field"

    def test_override_breaking_invariant_is_rejected(self, config: ScoringConfig) -> None:
        with pytest.raises(ValidationError, match="Invalid config override"):
            apply_overrides(config, [ConfigOverride(key="stability.weights.glucose", value=40)])

    def test_stability_tier_score_above_100_is_rejected(self, config: ScoringConfig) -> None:
        spo2 = config.stability.spo2.model_dump(mode="json")
        spo2["bands"][-1]["tier"]["score"] = 150
        with pytest.raises(ValidationError, match="Invalid config override"):
            apply_overrides(config, [ConfigOverride(key="stability.spo2", value=spo2)])

    def test_hypotension_tier_score_above_100_is_rejected(self, config: ScoringConfig) -> None:
        with pytest.raises(ValidationError, match="exceeds 100"):
            apply_overrides(
                config, [ConfigOverride(key="stability.hypotension.tier.score", value=150)]
            )

    def test_stability_tier_score_of_100_is_accepted(self, config: ScoringConfig) -> None:
        spo2 = config.stability.spo2.model_dump(mode="json")
        spo2["bands"][-2]["tier"]["score"] = 100
        updated = apply_overrides(config, [ConfigOverride(key="stability.spo2", value=spo2)])
        assert updated.stability.spo2.bands[-2].tier.score == 100

    def test_resolve_from_store(self, config: ScoringConfig) -> None:
        store = InMemoryConfigStore([ConfigOverride(key="risk.minimum_age", value=21)])
        assert resolve_scoring_config(store, config).risk.minimum_age == 21
