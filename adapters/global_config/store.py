"""
Operator overrides for the scoring thresholds.

Operators keep a flat key/value store of overrides (dotted paths into
ScoringConfig, e.g. "stability.weights.glucose" or "risk.low_hdl"). Applying
them produces a NEW validated ScoringConfig; the base config is never mutated,
so engines already holding the old config keep scoring consistently.

Key Concepts:
- ConfigOverride: one key/value entry with its last update time
- ConfigStore: the storage protocol (in-memory here, a database elsewhere)
- apply_overrides: dotted keys -> nested patch -> merge_scoring_config
"""

import threading
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from vitalscore.config import ScoringConfig, get_scoring_config, merge_scoring_config
from vitalscore.domain.errors import ValidationError

logger = structlog.get_logger(__name__)

KEY_PATTERN = r"^(bounds|stability|risk|region)(\.[A-Za-z0-9_]+)+$"


class ConfigOverride(BaseModel):
    """A single operator-set threshold value."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(pattern=KEY_PATTERN, description="Dotted path into ScoringConfig")
    value: Any
    description: str | None = None
    updated_by: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ConfigStore(Protocol):
    """Protocol for override storage backends."""

    def get(self, key: str) -> ConfigOverride | None: ...

    def set(
        self, key: str, value: Any, *, description: str | None = None, updated_by: str | None = None
    ) -> ConfigOverride: ...

    def delete(self, key: str) -> bool: ...

    def all(self) -> list[ConfigOverride]: ...


class InMemoryConfigStore:
    """Thread-safe dict-backed store, mainly for tests and single-process use."""

    def __init__(self, overrides: Iterable[ConfigOverride] = ()) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, ConfigOverride] = {o.key: o for o in overrides}

    def get(self, key: str) -> ConfigOverride | None:
        with self._lock:
            return self._entries.get(key)

    def set(
        self, key: str, value: Any, *, description: str | None = None, updated_by: str | None = None
    ) -> ConfigOverride:
        override = ConfigOverride(
            key=key, value=value, description=description, updated_by=updated_by
        )
        with self._lock:
            self._entries[key] = override
        logger.info("config_override_set", key=key, updated_by=updated_by)
        return override

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.info("config_override_deleted", key=key)
        return removed

    def all(self) -> list[ConfigOverride]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda o: o.key)


def overrides_to_patch(base: ScoringConfig, overrides: Iterable[ConfigOverride]) -> dict[str, Any]:
    """
    Turn dotted keys into a nested dict patch.

    Raises:
        ValidationError: A key does not name an existing config field.
    """
    known = base.model_dump(mode="json")
    patch: dict[str, Any] = {}
    for override in overrides:
        *parents, leaf = override.key.split(".")
        node, target = known, patch
        for part in parents:
            if not isinstance(node, dict) or part not in node:
                raise ValidationError(f"Unknown config key: {override.key}", field=override.key)
            node = node[part]
            target = target.setdefault(part, {})
        if not isinstance(node, dict) or leaf not in node:
            raise ValidationError(f"Unknown config key: {override.key}", field=override.key)
        target[leaf] = override.value
    return patch


def apply_overrides(base: ScoringConfig, overrides: Iterable[ConfigOverride]) -> ScoringConfig:
    """Overlay overrides onto `base`, re-running every config invariant."""
    overrides = list(overrides)
    if not overrides:
        return base
    patch = overrides_to_patch(base, overrides)
    try:
        config = merge_scoring_config(base, patch)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        logger.warning("config_overrides_rejected", field=field, error=first["msg"])
        raise ValidationError(f"Invalid config override: {first['msg']}", field=field) from e

    logger.info("config_overrides_applied", keys=[o.key for o in overrides])
    return config


def resolve_scoring_config(store: ConfigStore, base: ScoringConfig | None = None) -> ScoringConfig:
    """Current scoring config: the loaded one plus everything in the store."""
    return apply_overrides(base or get_scoring_config(), store.all())
