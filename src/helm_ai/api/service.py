"""Governance Service - Operation surface of the decision engine.

Wires configuration into the pipeline components and exposes the
operations used by the API layer:

- execute_strategic_decision
- issue_override_token
- get_status
- audit queries and decision analytics
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from helm_ai.common.config import Config, get_config
from helm_ai.common.exceptions import InvalidRequestContract
from helm_ai.governance import analytics
from helm_ai.governance.audit.background_writer import BackgroundAuditWriter
from helm_ai.governance.audit.config import create_audit_ledger
from helm_ai.governance.audit.ledger import AuditLedger
from helm_ai.governance.override import OverrideTokenManager
from helm_ai.governance.policies.engine import SafetyPolicyEngine, load_policy_rules
from helm_ai.governance.schemas import AuditRecord, AuditStatus, DecisionRequest, utc_now
from helm_ai.monitoring.telemetry import TelemetryAggregator
from helm_ai.orchestration.decision_flow import DecisionOrchestrator
from helm_ai.reasoning.gateway import ReasoningGateway


logger = logging.getLogger(__name__)


class GovernanceService:
    """Service for governed strategic decisions.

    Every collaborator may be injected; anything missing is built from
    the configuration.

    Raises:
        ConfigurationError: If production runs with the default signing key
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        gateway: Optional[ReasoningGateway] = None,
        ledger: Optional[AuditLedger] = None,
        policy_engine: Optional[SafetyPolicyEngine] = None,
        override_manager: Optional[OverrideTokenManager] = None,
        telemetry: Optional[TelemetryAggregator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or get_config()
        self._clock = clock or utc_now

        self.gateway = gateway or ReasoningGateway(
            api_key=self.config.reasoning_api_key,
            api_url=self.config.reasoning_api_url,
            model=self.config.reasoning_model,
            timeout_seconds=self.config.reasoning_timeout_seconds,
        )
        self.ledger = ledger or create_audit_ledger(self.config, clock=self._clock)
        self.ledger.signer.ensure_safe_for(production=self.config.is_production)

        self.override_manager = override_manager or OverrideTokenManager(clock=self._clock)
        self.policy_engine = policy_engine or SafetyPolicyEngine(
            rules=load_policy_rules(self.config.policy_file),
            override_manager=self.override_manager,
        )
        self.telemetry = telemetry or TelemetryAggregator(clock=self._clock)

        self.orchestrator = DecisionOrchestrator(
            gateway=self.gateway,
            policy_engine=self.policy_engine,
            ledger=self.ledger,
            telemetry=self.telemetry,
            clock=self._clock,
        )

        if not self.gateway.is_configured:
            logger.warning("No reasoning service credential configured, running in offline mode")

    def shutdown(self) -> None:
        """Flush pending audit writes and release the HTTP client."""
        store = self.ledger.store
        if isinstance(store, BackgroundAuditWriter):
            store.shutdown()
        self.gateway.close()
        logger.info("GovernanceService shutdown complete")

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def execute_strategic_decision(
        self, request_data: Union[DecisionRequest, Mapping[str, Any]]
    ) -> Dict[str, Any]:
        """Run a decision request through the governed pipeline.

        A missing request_id is generated and a missing timestamp is set
        to now before validation.

        Returns:
            Dict with success, request_id, decision, safety_check,
            audit_record and processing_time_ms

        Raises:
            InvalidRequestContract, ReasoningUnavailable, ReasoningMalformed,
            InvalidReasoningContract
        """
        if isinstance(request_data, Mapping):
            data = dict(request_data)
            if not data.get("request_id"):
                data["request_id"] = str(uuid4())
            if data.get("timestamp") is None:
                data["timestamp"] = self._clock().isoformat()
            if data.get("reasoning_mode") is None:
                data.pop("reasoning_mode", None)
            request_data = data

        outcome = self.orchestrator.execute(request_data)
        return outcome.to_dict()

    # ------------------------------------------------------------------
    # Human override
    # ------------------------------------------------------------------

    def issue_override_token(
        self,
        actor: Optional[str],
        reason: Optional[str],
        signature: Optional[str],
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Grant a time-boxed override token and record the grant.

        Raises:
            InvalidRequestContract: If actor, reason or signature is missing
        """
        errors = []
        for name, value in (
            ("actor", actor),
            ("override_reason", reason),
            ("approver_signature", signature),
        ):
            if not value or not str(value).strip():
                errors.append(f"Missing required field: {name}")
        if errors:
            raise InvalidRequestContract(errors)

        try:
            token = self.override_manager.issue(actor)
        except ValueError as e:
            raise InvalidRequestContract([str(e)]) from e

        record = self.ledger.open(
            request_id=request_id or str(uuid4()),
            actor=actor,
            payload={
                "override_reason": reason,
                "approver_signature": signature,
                "override_token": token.token,
            },
        )
        sealed = self.ledger.commit(record.model_copy(update={
            "status": AuditStatus.HUMAN_OVERRIDE_GRANTED,
            "processing_time_ms": 0,
        }))

        logger.warning(
            "Human override token issued",
            extra={"actor": actor, "request_id": sealed.request_id, "audit_id": sealed.id},
        )
        return {
            "token": token.token,
            "valid_for_minutes": token.valid_for_minutes,
            "expires_at": token.expires_at.isoformat(),
            "audit_id": sealed.id,
        }

    # ------------------------------------------------------------------
    # Status and audit
    # ------------------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        """Telemetry snapshot plus configuration facts."""
        status = self.telemetry.snapshot(configured=self.gateway.is_configured).to_dict()
        status.update({
            "api_key_configured": self.gateway.is_configured,
            "model": self.gateway.model,
            "policy_version": self.policy_engine.policy_version,
        })
        return status

    def get_audit_records(
        self,
        request_id: Optional[str] = None,
        actor: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = 100,
    ) -> List[AuditRecord]:
        return self.ledger.get_records(
            request_id=request_id,
            actor=actor,
            status=status,
            start=start,
            end=end,
            limit=limit,
        )

    def verify_audit_record(self, record: Union[AuditRecord, Mapping[str, Any]]) -> bool:
        """Check a record's signature, accepting a model or its JSON dict."""
        if not isinstance(record, AuditRecord):
            record = AuditRecord.model_validate(dict(record))
        return self.ledger.verify(record)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def _recent_decisions(self, limit: int, start: Optional[datetime] = None) -> List[AuditRecord]:
        # Override grants share the store, so trim only after dropping them
        records = self.ledger.get_records(start=start, limit=None)
        return analytics.decision_records(records)[:limit]

    def get_decision_feed(self, limit: int = 100) -> Dict[str, Any]:
        return analytics.decision_feed(self._recent_decisions(limit))

    def get_risk_heatmap(self, limit: int = 500) -> Dict[str, Any]:
        return analytics.risk_heatmap(self._recent_decisions(limit), now=self._clock())

    def get_moat_trend(self, days: int = 30, limit: int = 1000) -> Dict[str, Any]:
        start = self._clock() - timedelta(days=days)
        return analytics.moat_trend(self._recent_decisions(limit, start=start))

    def get_cost_metrics(self, limit: int = 1000) -> Dict[str, Any]:
        return analytics.cost_metrics(
            self._recent_decisions(limit),
            telemetry=self.telemetry.snapshot(configured=self.gateway.is_configured).to_dict(),
            today=self._clock(),
        )

    def get_brain_report(self, limit: int = 100) -> Dict[str, Any]:
        return analytics.brain_report(self._recent_decisions(limit), now=self._clock())
