"""Governance - Safety Policy, Human Override and Audit.

Components:
- SafetyPolicyEngine: Risk, cost and urgency circuit breakers (no I/O)
- OverrideTokenManager: Time-boxed human override tokens
- AuditLedger: Signed, append-only audit records for every request
- Schemas: Type definitions for decisions, safety checks and audit

Design principles:
- Every request produces exactly one terminal, signed audit record
- A valid human override token wins over every safety block
- Audit records are never updated after they are written
"""

from helm_ai.governance.override import OverrideTokenManager
from helm_ai.governance.policies.engine import SafetyPolicyEngine, load_policy_rules
from helm_ai.governance.audit.ledger import AuditLedger
from helm_ai.governance.audit.signing import AuditSigner
from helm_ai.governance.schemas import (
    AuditRecord,
    AuditStatus,
    DecisionRequest,
    DecisionState,
    DecisionVerdict,
    MoatValue,
    OverrideToken,
    ReasoningMode,
    ReasoningResponse,
    SafetyCheck,
    SafetyCheckResult,
    SafetyPolicyRules,
    Urgency,
)

__all__ = [
    # Core components
    "SafetyPolicyEngine",
    "OverrideTokenManager",
    "AuditLedger",
    "AuditSigner",
    "load_policy_rules",
    # Schemas
    "AuditRecord",
    "AuditStatus",
    "DecisionRequest",
    "DecisionState",
    "DecisionVerdict",
    "MoatValue",
    "OverrideToken",
    "ReasoningMode",
    "ReasoningResponse",
    "SafetyCheck",
    "SafetyCheckResult",
    "SafetyPolicyRules",
    "Urgency",
]
