"""Data validators package."""

from .schema_validator import (
    validate_decision_request,
    validate_reasoning_response,
    parse_reasoning_response,
    ValidationResult,
)

__all__ = [
    "validate_decision_request",
    "validate_reasoning_response",
    "parse_reasoning_response",
    "ValidationResult",
]
