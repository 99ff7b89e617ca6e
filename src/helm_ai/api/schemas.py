"""API Schemas - Request/Response models for the API Gateway.

Request bodies are loose: contract validation happens in
the decision pipeline so that every rejected request still leaves an
audit record.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class StrategicDecisionRequest(BaseModel):
    """Request body for POST /strategic-decision."""
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "actor": "cto",
                "request_id": "req_2026_10_18_001",
                "timestamp": "2026-10-18T09:30:00Z",
                "requested_action": "Migrate primary database to a managed service",
                "business_context": {"budget_usd": 40000, "deadline": "Q1"},
                "technical_context": {"current_db": "self-hosted postgres"},
                "safety_context": {"data_classification": "confidential"},
                "urgency": "high",
                "reasoning_mode": "strategic",
            }
        },
    )

    actor: Any = Field(default=None, description="Who is asking")
    request_id: Any = Field(default=None, description="Generated when omitted")
    timestamp: Any = Field(default=None, description="ISO-8601, defaults to now")
    requested_action: Any = Field(default=None, description="Action needing sign-off")
    business_context: Any = Field(default=None)
    technical_context: Any = Field(default=None)
    safety_context: Any = Field(default=None)
    urgency: Any = Field(default=None, description="low | medium | high | critical")
    reasoning_mode: Any = Field(
        default=None, description="strategic | crisis | innovation | investor"
    )
    human_override_token: Any = Field(default=None)


class OverrideRequest(BaseModel):
    """Request body for POST /override."""
    actor: Optional[str] = Field(default=None, description="Approver identity")
    override_reason: Optional[str] = Field(default=None)
    approver_signature: Optional[str] = Field(default=None)
    request_id: Optional[str] = Field(
        default=None, description="Decision the override is granted for"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "actor": "ceo",
                "override_reason": "Board approved the migration despite elevated risk",
                "approver_signature": "ceo-2026-10-18",
                "request_id": "req_2026_10_18_001",
            }
        }
    }


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class StrategicDecisionResponse(BaseModel):
    """Response for POST /strategic-decision."""
    success: bool
    request_id: str
    decision: Dict[str, Any] = Field(..., description="Validated reasoning response")
    safety_check: Dict[str, Any] = Field(..., description="Safety policy result")
    audit_record: Dict[str, Any] = Field(..., description="Sealed audit record")
    processing_time_ms: int


class OverrideResponse(BaseModel):
    """Response for POST /override."""
    token: str
    valid_for_minutes: int
    expires_at: str
    audit_id: str


class StatusResponse(BaseModel):
    """Response for GET /status."""
    status: str = Field(..., description="OPERATIONAL or OFFLINE")
    uptime_ms: int
    uptime_hours: float
    request_count: int
    total_cost_usd: float
    avg_cost_per_request: float
    api_key_configured: bool
    model: str
    policy_version: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: Dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[str] = Field(
        default=None, description="Request ID for debugging"
    )
