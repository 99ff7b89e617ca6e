"""API - governance service and HTTP endpoints.

Endpoints:
    POST /strategic-decision
    POST /override
    GET  /status
    GET  /health, /ready
"""

from helm_ai.api.gateway import app
from helm_ai.api.schemas import (
    ErrorResponse,
    OverrideRequest,
    OverrideResponse,
    StatusResponse,
    StrategicDecisionRequest,
    StrategicDecisionResponse,
)
from helm_ai.api.service import GovernanceService

__all__ = [
    "app",
    "ErrorResponse",
    "OverrideRequest",
    "OverrideResponse",
    "StatusResponse",
    "StrategicDecisionRequest",
    "StrategicDecisionResponse",
    "GovernanceService",
]
