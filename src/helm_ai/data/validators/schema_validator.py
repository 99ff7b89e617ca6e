"""Schema validation utilities for Helm AI.

Contract checks for inbound decision requests and for replies from the
Reasoning Service. Validators never raise on bad input; they report
errors in a ValidationResult and leave the decision to the caller.
"""

import json
from datetime import datetime
from numbers import Real
from typing import Any, Dict, List, Mapping, Union

from helm_ai.governance.schemas import (
    DecisionRequest,
    DecisionVerdict,
    MoatValue,
    ReasoningMode,
    ReasoningResponse,
    Urgency,
)


DECISION_REQUEST_REQUIRED = (
    "actor",
    "request_id",
    "timestamp",
    "requested_action",
    "business_context",
    "technical_context",
    "safety_context",
    "urgency",
)
CONTEXT_FIELDS = ("business_context", "technical_context", "safety_context")

REASONING_RESPONSE_REQUIRED = (
    "decision",
    "rationale",
    "risk_score",
    "moat_value",
    "urgency_score",
)
REASONING_LIST_FIELDS = (
    "required_changes",
    "strategic_upgrades",
    "execution_steps",
    "references",
    "warnings",
)

URGENCY_VALUES = [u.value for u in Urgency]
REASONING_MODE_VALUES = [m.value for m in ReasoningMode]
DECISION_VALUES = [d.value for d in DecisionVerdict]
MOAT_VALUES = [m.value for m in MoatValue]


class ValidationResult:
    """Result of validation operation."""

    def __init__(self, errors: List[str] = None):
        self.errors: List[str] = list(errors or [])

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, error: str):
        """Add validation error."""
        self.errors.append(error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "errors": list(self.errors),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationResult):
            return NotImplemented
        return self.errors == other.errors

    def __repr__(self) -> str:
        return f"ValidationResult(valid={self.valid}, errors={self.errors!r})"


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _is_json_object(value: Mapping[str, Any]) -> bool:
    # Contexts are stored verbatim in the signed audit record
    try:
        json.dumps(dict(value))
    except (TypeError, ValueError):
        return False
    return True


def _is_timestamp(value: Any) -> bool:
    if isinstance(value, datetime):
        return True
    if not isinstance(value, str):
        return False
    try:
        # fromisoformat in older interpreters rejects a trailing Z
        datetime.fromisoformat(value.replace("Z", "+00:00"))
        return True
    except ValueError:
        return False


def validate_decision_request(
    request: Union[DecisionRequest, Mapping[str, Any]]
) -> ValidationResult:
    """Validate a decision request against the inbound contract.

    Checks that every required field is present and non-empty, that the
    context fields are objects, and that urgency and reasoning mode
    (when given) belong to their enumerations.

    Args:
        request: DecisionRequest object or dictionary

    Returns:
        ValidationResult with one message per problem found
    """
    result = ValidationResult()

    if isinstance(request, DecisionRequest):
        data: Mapping[str, Any] = request.model_dump()
    elif isinstance(request, Mapping):
        data = request
    else:
        result.add_error(f"Expected DecisionRequest or dict, got {type(request).__name__}")
        return result

    for field_name in DECISION_REQUEST_REQUIRED:
        if field_name in CONTEXT_FIELDS:
            # Empty objects are allowed, absent ones are not
            if data.get(field_name) is None:
                result.add_error(f"Missing required field: {field_name}")
            elif not isinstance(data[field_name], Mapping):
                result.add_error(f"Field {field_name} must be an object")
            elif not _is_json_object(data[field_name]):
                result.add_error(f"Field {field_name} must be JSON-serializable")
        elif _is_blank(data.get(field_name)):
            result.add_error(f"Missing required field: {field_name}")

    for field_name in ("actor", "request_id", "requested_action"):
        value = data.get(field_name)
        if not _is_blank(value) and not isinstance(value, str):
            result.add_error(f"Field {field_name} must be a string")

    timestamp = data.get("timestamp")
    if not _is_blank(timestamp) and not _is_timestamp(timestamp):
        result.add_error(f"Invalid timestamp: {timestamp}")

    urgency = _enum_value(data.get("urgency"))
    if not _is_blank(urgency) and urgency not in URGENCY_VALUES:
        result.add_error(f"Invalid urgency level: {urgency}")

    reasoning_mode = _enum_value(data.get("reasoning_mode"))
    if reasoning_mode is not None and reasoning_mode not in REASONING_MODE_VALUES:
        result.add_error(f"Invalid reasoning mode: {reasoning_mode}")

    token = data.get("human_override_token")
    if token is not None and not isinstance(token, str):
        result.add_error("Field human_override_token must be a string")

    return result


def validate_reasoning_response(
    response: Union[ReasoningResponse, Mapping[str, Any]]
) -> ValidationResult:
    """Validate a Reasoning Service reply against the output contract.

    The Reasoning Service is untrusted: nothing about its shape is assumed
    beyond what this function checks.

    Args:
        response: ReasoningResponse object or parsed JSON dictionary

    Returns:
        ValidationResult with one message per problem found
    """
    result = ValidationResult()

    if isinstance(response, ReasoningResponse):
        data: Mapping[str, Any] = response.model_dump(mode="json")
    elif isinstance(response, Mapping):
        data = response
    else:
        result.add_error(f"Expected JSON object, got {type(response).__name__}")
        return result

    for field_name in REASONING_RESPONSE_REQUIRED:
        if data.get(field_name) is None:
            result.add_error(f"Missing required field: {field_name}")

    decision = data.get("decision")
    if decision is not None and decision not in DECISION_VALUES:
        result.add_error(f"Invalid decision: {decision}")

    rationale = data.get("rationale")
    if rationale is not None and not isinstance(rationale, str):
        result.add_error("Field rationale must be a string")

    for field_name, label in (("risk_score", "Risk score"), ("urgency_score", "Urgency score")):
        value = data.get(field_name)
        if value is None:
            continue
        if not _is_number(value):
            result.add_error(f"{label} must be a number: {value!r}")
        elif value < 0 or value > 100:
            result.add_error(f"{label} out of range: {value}")

    moat_value = data.get("moat_value")
    if moat_value is not None and moat_value not in MOAT_VALUES:
        result.add_error(f"Invalid moat value: {moat_value}")

    cost = data.get("cost_estimate_usd")
    if cost is not None:
        if not _is_number(cost):
            result.add_error(f"Cost estimate must be a number: {cost!r}")
        elif cost < 0:
            result.add_error(f"Cost estimate must not be negative: {cost}")

    for field_name in REASONING_LIST_FIELDS:
        value = data.get(field_name)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            result.add_error(f"Field {field_name} must be a list of strings")

    return result


def parse_reasoning_response(data: Mapping[str, Any]) -> ReasoningResponse:
    """Build a ReasoningResponse from a dictionary that passed validation.

    Accepts the legacy `estimated_execution_steps` key as an
    alias for `execution_steps`. Unknown keys are dropped.
    """
    payload = dict(data)
    if "execution_steps" not in payload and "estimated_execution_steps" in payload:
        payload["execution_steps"] = payload["estimated_execution_steps"]
    known = set(ReasoningResponse.model_fields)
    return ReasoningResponse.model_validate(
        {k: v for k, v in payload.items() if k in known and v is not None}
    )
