"""Governance schemas - type definitions for decisions, safety checks and audit.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from uuid import uuid4

from helm_ai.common.constants import OverrideConstants, SafetyConstants


def utc_now() -> datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.now(timezone.utc)


class Urgency(str, Enum):
    """How urgently the requested action needs a ruling."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReasoningMode(str, Enum):
    """Prompt variant used when consulting the Reasoning Service."""
    STRATEGIC = "strategic"
    CRISIS = "crisis"
    INNOVATION = "innovation"
    INVESTOR = "investor"


class DecisionVerdict(str, Enum):
    """Recommendation returned by the Reasoning Service."""
    APPROVE = "approve"
    REVISE = "revise"
    REJECT = "reject"


class MoatValue(str, Enum):
    """Competitive-advantage label, carried through unmodified."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


class AuditStatus(str, Enum):
    """Audit record status.

    PROCESSING is the only non-terminal decision status.
    HUMAN_OVERRIDE_GRANTED marks override-grant records.
    """
    PROCESSING = "processing"
    APPROVED = "approved"
    BLOCKED = "blocked"
    ERROR = "error"
    HUMAN_OVERRIDE_GRANTED = "human_override_granted"

    @property
    def is_terminal(self) -> bool:
        return self != AuditStatus.PROCESSING


class SafetyCheck(str, Enum):
    """Names of safety circuit breakers."""
    HIGH_RISK_DETECTED = "HIGH_RISK_DETECTED"
    CRITICAL_RISK_BLOCKED = "CRITICAL_RISK_BLOCKED"
    HIGH_COST_DETECTED = "HIGH_COST_DETECTED"
    CRITICAL_URGENCY_REJECTED = "CRITICAL_URGENCY_REJECTED"
    HUMAN_OVERRIDE_APPLIED = "HUMAN_OVERRIDE_APPLIED"


class DecisionState(str, Enum):
    """Orchestrator lifecycle states."""
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    REASONED = "REASONED"
    POLICY_CHECKED = "POLICY_CHECKED"
    APPROVED = "APPROVED"
    BLOCKED = "BLOCKED"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (DecisionState.APPROVED, DecisionState.BLOCKED, DecisionState.ERROR)


class DecisionRequest(BaseModel):
    """A structured request for strategic sign-off.

    Immutable once validated. Referenced by exactly one audit record.
    """
    model_config = ConfigDict(frozen=True)

    actor: str = Field(..., min_length=1, description="Who is asking")
    request_id: str = Field(..., min_length=1, description="Caller-supplied or generated id")
    timestamp: datetime = Field(..., description="When the request was made")
    requested_action: str = Field(..., min_length=1, description="Action needing sign-off")
    business_context: Dict[str, Any] = Field(default_factory=dict)
    technical_context: Dict[str, Any] = Field(default_factory=dict)
    safety_context: Dict[str, Any] = Field(default_factory=dict)
    urgency: Urgency
    reasoning_mode: ReasoningMode = ReasoningMode.STRATEGIC
    human_override_token: Optional[str] = None


class ReasoningResponse(BaseModel):
    """Validated answer from the Reasoning Service (or the offline fallback)."""
    model_config = ConfigDict(frozen=True)

    decision: DecisionVerdict
    rationale: str
    risk_score: float = Field(..., ge=0, le=100)
    moat_value: MoatValue
    urgency_score: float = Field(..., ge=0, le=100)
    cost_estimate_usd: float = Field(default=0.0, ge=0)
    required_changes: List[str] = Field(default_factory=list)
    strategic_upgrades: List[str] = Field(default_factory=list)
    execution_steps: List[str] = Field(default_factory=list)
    references: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    simulated_outcome_summary: Optional[str] = None


class SafetyCheckResult(BaseModel):
    """Outcome of the safety policy for one request."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    requires_human_review: bool
    triggered_checks: List[SafetyCheck] = Field(default_factory=list)
    reasoning: str
    policy_version: str = SafetyConstants.POLICY_VERSION


class OverrideToken(BaseModel):
    """A time-boxed human override credential."""
    model_config = ConfigDict(frozen=True)

    token: str
    issuer: str
    issued_at: datetime
    validity_window: timedelta = Field(
        default=timedelta(minutes=OverrideConstants.VALIDITY_MINUTES)
    )

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + self.validity_window

    @property
    def valid_for_minutes(self) -> int:
        return int(self.validity_window.total_seconds() // 60)


class AuditRecord(BaseModel):
    """The durable unit of truth for one request.

    Opened in PROCESSING, moved once to a terminal status, sealed with
    an HMAC signature, then persisted. Never updated afterwards.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    request_id: str
    actor: str
    timestamp: datetime = Field(default_factory=utc_now)
    request_payload: Dict[str, Any] = Field(default_factory=dict)
    reasoning_response: Optional[ReasoningResponse] = None
    decision_text: Optional[DecisionVerdict] = None
    risk_score: Optional[float] = None
    moat_value: Optional[MoatValue] = None
    status: AuditStatus = AuditStatus.PROCESSING
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    processing_time_ms: Optional[int] = None
    signature: Optional[str] = None

    def to_jsonl(self) -> str:
        """Serialize record to a single JSON line."""
        return self.model_dump_json()

    @classmethod
    def from_jsonl(cls, line: str) -> "AuditRecord":
        """Deserialize record from a JSON line."""
        return cls.model_validate_json(line)


class SafetyPolicyRules(BaseModel):
    """Thresholds used by the safety policy engine.

    Loaded from YAML when a policy file is configured.
    """
    version: str = SafetyConstants.POLICY_VERSION
    high_risk_threshold: float = Field(default=SafetyConstants.HIGH_RISK_THRESHOLD, ge=0, le=100)
    critical_risk_threshold: float = Field(
        default=SafetyConstants.CRITICAL_RISK_THRESHOLD, ge=0, le=100
    )
    high_cost_threshold_usd: float = Field(
        default=SafetyConstants.HIGH_COST_THRESHOLD_USD, ge=0
    )
