"""Decision Flow - The only place strategic decisions are made.

Lifecycle:
    RECEIVED -> VALIDATED -> REASONED -> POLICY_CHECKED -> APPROVED | BLOCKED
    any non-terminal state -> ERROR

Every terminal transition seals and persists exactly one audit record,
then updates telemetry once, before returning or raising. Exceptions
raised from here carry the sealed record in `audit_record`.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, NoReturn, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from helm_ai.common.exceptions import (
    HelmAIException,
    InvalidReasoningContract,
    InvalidRequestContract,
    ReasoningMalformed,
    ReasoningUnavailable,
)
from helm_ai.data.validators import (
    parse_reasoning_response,
    validate_decision_request,
    validate_reasoning_response,
)
from helm_ai.governance.audit.ledger import AuditLedger
from helm_ai.governance.policies.engine import SafetyPolicyEngine
from helm_ai.governance.schemas import (
    AuditRecord,
    AuditStatus,
    DecisionRequest,
    DecisionState,
    ReasoningResponse,
    SafetyCheckResult,
    utc_now,
)
from helm_ai.monitoring.telemetry import TelemetryAggregator
from helm_ai.reasoning.gateway import ReasoningGateway

logger = logging.getLogger(__name__)


@dataclass
class DecisionOutcome:
    """Result of a decision that reached APPROVED or BLOCKED."""
    request_id: str
    decision: ReasoningResponse
    safety_check: SafetyCheckResult
    audit_record: AuditRecord
    processing_time_ms: int
    state: DecisionState
    state_history: List[DecisionState] = field(default_factory=list)
    success: bool = True

    @property
    def approved(self) -> bool:
        return self.state == DecisionState.APPROVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "request_id": self.request_id,
            "decision": self.decision.model_dump(mode="json"),
            "safety_check": self.safety_check.model_dump(mode="json"),
            "audit_record": self.audit_record.model_dump(mode="json"),
            "processing_time_ms": self.processing_time_ms,
        }


def _jsonable(data: Any) -> Dict[str, Any]:
    """Best-effort JSON copy of a raw payload for the audit trail."""
    if isinstance(data, DecisionRequest):
        data = data.model_dump()
    if isinstance(data, Mapping):
        try:
            return json.loads(json.dumps(dict(data), default=str))
        except (TypeError, ValueError):
            return {"raw": repr(data)}
    return {"raw": repr(data)}


class DecisionOrchestrator:
    """Runs one decision request through validation, reasoning and policy.

    Stateless across requests apart from the injected telemetry, so a
    single instance may serve many threads at once.
    """

    def __init__(
        self,
        gateway: ReasoningGateway,
        policy_engine: SafetyPolicyEngine,
        ledger: AuditLedger,
        telemetry: TelemetryAggregator,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.gateway = gateway
        self.policy_engine = policy_engine
        self.ledger = ledger
        self.telemetry = telemetry
        self._clock = clock or utc_now

    def execute(self, request_data: Union[DecisionRequest, Mapping[str, Any]]) -> DecisionOutcome:
        """Process a decision request end to end.

        Args:
            request_data: DecisionRequest or raw request dictionary

        Returns:
            DecisionOutcome in state APPROVED or BLOCKED

        Raises:
            InvalidRequestContract: Request failed the inbound contract
            ReasoningUnavailable: Reasoning Service unreachable or failing
            ReasoningMalformed: Reasoning reply could not be parsed
            InvalidReasoningContract: Reasoning reply failed the output contract
        """
        started = time.monotonic()
        history = [DecisionState.RECEIVED]

        # Step 1: Inbound contract
        request, errors = self._coerce_request(request_data)
        if request is None:
            record = self._open_raw(request_data)
            self._fail(
                record, history, started,
                InvalidRequestContract(errors),
            )

        history.append(DecisionState.VALIDATED)
        record = self.ledger.open(
            request_id=request.request_id,
            actor=request.actor,
            payload=request.model_dump(mode="json"),
        )

        # Step 2: Reasoning Service (no lock held here)
        try:
            raw_response = self.gateway.reason(request)
        except (ReasoningUnavailable, ReasoningMalformed) as e:
            self._fail(record, history, started, e)
        except Exception as e:
            logger.exception(
                "Unexpected reasoning gateway failure",
                extra={"request_id": request.request_id},
            )
            self._fail(
                record, history, started,
                ReasoningUnavailable(
                    f"Reasoning gateway failed: {type(e).__name__}",
                    details={"error_type": type(e).__name__},
                ),
                cause=e,
            )

        # Step 3: Output contract
        validation = validate_reasoning_response(raw_response)
        if not validation.valid:
            self._fail(record, history, started, InvalidReasoningContract(validation.errors))
        try:
            response = parse_reasoning_response(raw_response)
        except ValidationError as e:
            self._fail(
                record, history, started,
                InvalidReasoningContract([err["msg"] for err in e.errors()]),
                cause=e,
            )
        history.append(DecisionState.REASONED)

        # Step 4: Safety policy
        safety_check = self.policy_engine.evaluate(response, request, now=self._clock())
        history.append(DecisionState.POLICY_CHECKED)

        # Step 5: Terminal record
        terminal = DecisionState.APPROVED if safety_check.allowed else DecisionState.BLOCKED
        history.append(terminal)
        processing_time_ms = self._elapsed_ms(started)
        sealed = self.ledger.commit(record.model_copy(update={
            "reasoning_response": response,
            "decision_text": response.decision,
            "risk_score": response.risk_score,
            "moat_value": response.moat_value,
            "status": AuditStatus.APPROVED if safety_check.allowed else AuditStatus.BLOCKED,
            "processing_time_ms": processing_time_ms,
        }))
        self.telemetry.record(cost_usd=response.cost_estimate_usd)

        log = logger.info if safety_check.allowed else logger.warning
        log(
            f"Decision {terminal.value.lower()}: {safety_check.reasoning}",
            extra={
                "request_id": request.request_id,
                "audit_id": sealed.id,
                "risk_score": response.risk_score,
            },
        )

        return DecisionOutcome(
            request_id=request.request_id,
            decision=response,
            safety_check=safety_check,
            audit_record=sealed,
            processing_time_ms=processing_time_ms,
            state=terminal,
            state_history=history,
        )

    @staticmethod
    def _coerce_request(request_data: Any):
        """Return (DecisionRequest, []) or (None, errors)."""
        validation = validate_decision_request(request_data)
        if not validation.valid:
            return None, validation.errors
        if isinstance(request_data, DecisionRequest):
            return request_data, []

        try:
            return DecisionRequest.model_validate(dict(request_data)), []
        except ValidationError as e:
            return None, [
                f"Invalid field {'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]

    def _open_raw(self, request_data: Any) -> AuditRecord:
        if isinstance(request_data, DecisionRequest):
            data: Mapping[str, Any] = request_data.model_dump()
        elif isinstance(request_data, Mapping):
            data = request_data
        else:
            data = {}
        request_id = data.get("request_id")
        actor = data.get("actor")
        return self.ledger.open(
            request_id=str(request_id) if request_id else str(uuid4()),
            actor=str(actor) if actor else "unknown",
            payload=_jsonable(request_data),
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    def _fail(
        self,
        record: AuditRecord,
        history: List[DecisionState],
        started: float,
        error: HelmAIException,
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        """Seal an ERROR record, count it, and raise the error."""
        history.append(DecisionState.ERROR)
        sealed = self.ledger.commit(record.model_copy(update={
            "status": AuditStatus.ERROR,
            "error_code": error.code,
            "error_message": error.message,
            "processing_time_ms": self._elapsed_ms(started),
        }))
        self.telemetry.record()

        error.audit_record = sealed
        logger.warning(
            f"Decision failed with {error.code}: {error.message}",
            extra={"request_id": record.request_id, "audit_id": sealed.id},
        )
        if cause is not None:
            raise error from cause
        raise error
