"""Custom exceptions for Helm AI.

Provides the error taxonomy for the decision governance pipeline.
All Helm AI exceptions inherit from HelmAIException and carry a
machine-readable code that doubles as the taxonomy tag.
"""

from typing import Any, Dict, List, Optional


class HelmAIException(Exception):
    """Base exception for all Helm AI errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code (taxonomy tag)
        details: Additional context about the error
        audit_record: Sealed audit record written for the failure, if any
    """

    def __init__(
        self,
        message: str,
        code: str = "HELM_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.audit_record = None
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(HelmAIException):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class InvalidRequestContract(HelmAIException):
    """Raised when an inbound decision request fails contract validation.

    The caller must fix the input. No reasoning attempt is made.
    """

    def __init__(self, errors: List[str], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(
            message or f"Invalid decision request: {', '.join(self.errors)}",
            code="INVALID_REQUEST_CONTRACT",
            details={"errors": self.errors},
        )


class ReasoningUnavailable(HelmAIException):
    """Raised when the Reasoning Service cannot be reached or answers non-2xx."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, code="REASONING_UNAVAILABLE", details=details)


class ReasoningMalformed(HelmAIException):
    """Raised when the Reasoning Service reply does not parse as expected."""

    def __init__(
        self,
        message: str,
        parse_error: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: str = "REASONING_MALFORMED",
    ):
        details = details or {}
        if parse_error is not None:
            details["parse_error"] = parse_error
        super().__init__(message, code=code, details=details)


class InvalidReasoningContract(ReasoningMalformed):
    """Raised when a parsed reasoning response fails the response contract."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(
            f"Invalid reasoning response: {', '.join(self.errors)}",
            details={"errors": self.errors},
            code="INVALID_REASONING_CONTRACT",
        )


class PersistenceFailure(HelmAIException):
    """Audit write failure.

    Logged by the audit ledger, never raised to callers of the engine.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="PERSISTENCE_FAILURE", details=details)
