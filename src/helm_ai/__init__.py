"""Helm AI - Strategic Decision Governance Engine."""

__version__ = "0.1.0"
__author__ = "Helm AI Team"

# Core exports
from helm_ai.governance.schemas import DecisionRequest, ReasoningResponse, AuditRecord

__all__ = [
    "DecisionRequest",
    "ReasoningResponse",
    "AuditRecord",
]
