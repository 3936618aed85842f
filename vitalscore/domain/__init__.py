"""Clinical domain models, error types and threshold tables."""
