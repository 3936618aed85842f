"""
Error taxonomy for the scoring engines.

Three tiers:
- ValidationError: malformed or physiologically impossible input, caller must fix it
- DomainError: well-formed input that breaks a business rule, retrying unchanged won't help
- soft data gaps: not exceptions at all, they lower confidence and add warnings

ScoringError is the common base so callers can catch one type at the boundary.
"""


class ScoringError(Exception):
    """Base error for everything the scoring engines raise."""

    code: str = "scoring_error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict[str, str | None]:
        return {"code": self.code, "message": self.message, "field": self.field}


class ValidationError(ScoringError, ValueError):
    """Input outside hard physiological bounds or otherwise malformed."""

    code = "validation_error"


class DomainError(ScoringError):
    """Structurally valid input that the assessment refuses to score."""

    code = "domain_error"
