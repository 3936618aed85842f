"""
Generic scoring pipeline shared by the stability and risk engines.

Both engines run the same stages:
validate -> score components -> aggregate -> confidence -> recommend -> build.
Subclasses supply the per-domain stages; this class owns ordering, timing,
logging and the error boundary, so a caller always gets either a complete
result or a typed ScoringError, never a half-built record.
"""

import time
from abc import ABC, abstractmethod
from datetime import UTC, date, datetime
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel

from vitalscore.config import ScoringConfig
from vitalscore.domain.errors import ScoringError
from vitalscore.domain.models import Confidence, PatientSnapshot, Recommendation
from vitalscore.services.validation import NormalizedSnapshot, SnapshotValidator

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)
ScoredT = TypeVar("ScoredT")
AggregateT = TypeVar("AggregateT")
ResultT = TypeVar("ResultT", bound=BaseModel)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Why: Lets request handlers branch on success without try/except around
    every scoring call.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class ScoringPipeline(ABC, Generic[ScoredT, AggregateT, ResultT]):
    """Template for a score -> aggregate -> confidence -> recommend -> build engine."""

    name: str = "scoring"
    minimum_age: int | None = None

    def __init__(self, config: ScoringConfig) -> None:
        self.config = config
        self.validator = SnapshotValidator(config.bounds)
        self.logger = logger.bind(component=self.name)

    @abstractmethod
    def score_components(self, normalized: NormalizedSnapshot) -> ScoredT: ...

    @abstractmethod
    def aggregate(self, normalized: NormalizedSnapshot, scored: ScoredT) -> AggregateT: ...

    @abstractmethod
    def estimate_confidence(
        self, normalized: NormalizedSnapshot, scored: ScoredT, now: datetime
    ) -> Confidence: ...

    @abstractmethod
    def recommend(
        self, normalized: NormalizedSnapshot, scored: ScoredT, aggregate: AggregateT
    ) -> list[Recommendation]: ...

    @abstractmethod
    def build(
        self,
        normalized: NormalizedSnapshot,
        scored: ScoredT,
        aggregate: AggregateT,
        confidence: Confidence,
        recommendations: list[Recommendation],
        now: datetime,
    ) -> ResultT: ...

    def validate(self, snapshot: PatientSnapshot, as_of: date) -> NormalizedSnapshot:
        return self.validator.normalize(snapshot, as_of, minimum_age=self.minimum_age)

    def _run(self, snapshot: PatientSnapshot, as_of: date | None, now: datetime | None) -> ResultT:
        now = now or datetime.now(UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        as_of = as_of or now.date()

        normalized = self.validate(snapshot, as_of)
        scored = self.score_components(normalized)
        aggregate = self.aggregate(normalized, scored)
        confidence = self.estimate_confidence(normalized, scored, now)
        recommendations = self.recommend(normalized, scored, aggregate)
        return self.build(normalized, scored, aggregate, confidence, recommendations, now)

    def calculate(
        self,
        snapshot: PatientSnapshot,
        *,
        as_of: date | None = None,
        now: datetime | None = None,
    ) -> ResultT:
        """
        Run the full pipeline.

        Raises:
            ValidationError: Input outside physiological bounds.
            DomainError: Input violates a business rule.
            ScoringError: Any unexpected internal failure, wrapped.
        """
        start_time = time.perf_counter()
        try:
            result = self._run(snapshot, as_of, now)
        except ScoringError as e:
            self.logger.warning("scoring_rejected", error_code=e.code, field=e.field)
            raise
        except Exception as e:
            self.logger.exception("scoring_failed", error=str(e))
            raise ScoringError(f"{self.name} calculation failed: {e}") from e

        self.logger.debug(
            "scoring_pipeline_completed",
            duration_seconds=round(time.perf_counter() - start_time, 6),
        )
        return result

    def try_calculate(
        self,
        snapshot: PatientSnapshot,
        *,
        as_of: date | None = None,
        now: datetime | None = None,
    ) -> Result[ResultT, ScoringError]:
        """Non-raising variant of calculate()."""
        try:
            return Result.ok(self.calculate(snapshot, as_of=as_of, now=now))
        except ScoringError as e:
            return Result.err(e)
