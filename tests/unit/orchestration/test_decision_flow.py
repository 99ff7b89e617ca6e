"""Tests for the decision orchestrator.

Every request must end in exactly one sealed audit record, whatever
happens along the way.
"""

from unittest.mock import MagicMock

import httpx
import pytest

from helm_ai.common.exceptions import (
    InvalidReasoningContract,
    InvalidRequestContract,
    ReasoningMalformed,
    ReasoningUnavailable,
)
from helm_ai.governance.audit.ledger import AuditLedger
from helm_ai.governance.schemas import AuditStatus, DecisionRequest, DecisionState, SafetyCheck
from helm_ai.orchestration.decision_flow import DecisionOrchestrator

from conftest import RecordingHandler, chat_completion, make_gateway, make_reasoning, make_request


def _orchestrator(handler, policy_engine, ledger, telemetry, clock, api_key="xai-test"):
    return DecisionOrchestrator(
        gateway=make_gateway(handler, api_key=api_key),
        policy_engine=policy_engine,
        ledger=ledger,
        telemetry=telemetry,
        clock=clock,
    )


class TestApprovedFlow:
    """Happy path."""

    def test_approved(self, orchestrator, audit_store, ledger):
        outcome = orchestrator.execute(make_request())

        assert outcome.approved
        assert outcome.state == DecisionState.APPROVED
        assert outcome.state_history == [
            DecisionState.RECEIVED,
            DecisionState.VALIDATED,
            DecisionState.REASONED,
            DecisionState.POLICY_CHECKED,
            DecisionState.APPROVED,
        ]
        assert outcome.safety_check.allowed
        assert outcome.audit_record.status == AuditStatus.APPROVED
        assert ledger.verify(outcome.audit_record)
        assert audit_store.get_records() == [outcome.audit_record]

    def test_audit_record_contents(self, orchestrator):
        outcome = orchestrator.execute(make_request())
        record = outcome.audit_record

        assert record.request_id == "req-001"
        assert record.actor == "cto"
        assert record.request_payload["urgency"] == "high"
        assert record.reasoning_response == outcome.decision
        assert record.decision_text == outcome.decision.decision
        assert record.risk_score == 30
        assert record.processing_time_ms == outcome.processing_time_ms
        assert record.error_code is None

    def test_accepts_model(self, orchestrator):
        outcome = orchestrator.execute(DecisionRequest.model_validate(make_request()))

        assert outcome.approved

    def test_to_dict(self, orchestrator):
        result = orchestrator.execute(make_request()).to_dict()

        assert set(result) == {
            "success",
            "request_id",
            "decision",
            "safety_check",
            "audit_record",
            "processing_time_ms",
        }
        assert result["success"] is True
        assert result["decision"]["decision"] == "approve"
        assert result["audit_record"]["status"] == "approved"

    def test_telemetry_counts_cost(self, orchestrator, telemetry):
        orchestrator.execute(make_request())
        orchestrator.execute(make_request(request_id="req-002"))

        snapshot = telemetry.snapshot(configured=True)
        assert snapshot.request_count == 2
        assert snapshot.total_cost_usd == pytest.approx(0.10)

    def test_duplicate_request_ids_both_recorded(self, orchestrator, audit_store):
        orchestrator.execute(make_request())
        orchestrator.execute(make_request())

        assert len(audit_store.get_records(request_id="req-001")) == 2


class TestBlockedFlow:
    """Safety policy blocks and overrides."""

    def test_critical_risk_blocked(self, policy_engine, ledger, telemetry, clock):
        handler = RecordingHandler(chat_completion(make_reasoning(risk_score=96)))
        orchestrator = _orchestrator(handler, policy_engine, ledger, telemetry, clock)

        outcome = orchestrator.execute(make_request(urgency="critical"))

        assert outcome.state == DecisionState.BLOCKED
        assert not outcome.approved
        assert outcome.success is True
        assert SafetyCheck.CRITICAL_RISK_BLOCKED in outcome.safety_check.triggered_checks
        assert outcome.audit_record.status == AuditStatus.BLOCKED

    def test_override_unblocks(self, policy_engine, override_manager, ledger, telemetry, clock):
        token = override_manager.issue("cto").token
        clock.advance(minutes=10)
        handler = RecordingHandler(chat_completion(make_reasoning(risk_score=96)))
        orchestrator = _orchestrator(handler, policy_engine, ledger, telemetry, clock)

        outcome = orchestrator.execute(
            make_request(urgency="critical", human_override_token=token)
        )

        assert outcome.state == DecisionState.APPROVED
        assert outcome.safety_check.triggered_checks[-1] == SafetyCheck.HUMAN_OVERRIDE_APPLIED
        assert outcome.audit_record.status == AuditStatus.APPROVED

    def test_override_token_not_sent_to_reasoning(
        self, policy_engine, override_manager, ledger, telemetry, clock
    ):
        token = override_manager.issue("ceo").token
        handler = RecordingHandler()
        orchestrator = _orchestrator(handler, policy_engine, ledger, telemetry, clock)

        orchestrator.execute(make_request(human_override_token=token))

        assert token not in handler.requests[0].content.decode("utf-8")


class TestOfflineFlow:
    def test_offline_fallback_passes_policy_as_revise(self, policy_engine, ledger, telemetry, clock):
        handler = RecordingHandler()
        orchestrator = _orchestrator(handler, policy_engine, ledger, telemetry, clock, api_key=None)

        outcome = orchestrator.execute(make_request())

        assert handler.call_count == 0
        assert outcome.decision.decision.value == "revise"
        assert outcome.state == DecisionState.APPROVED
        assert outcome.safety_check.triggered_checks == []


class TestErrorFlow:
    """Failures seal an ERROR record and re-raise."""

    def test_invalid_request(self, orchestrator, reasoning_handler, audit_store, ledger, telemetry):
        data = make_request()
        del data["urgency"]

        with pytest.raises(InvalidRequestContract) as exc_info:
            orchestrator.execute(data)

        error = exc_info.value
        assert "Missing required field: urgency" in error.errors
        assert reasoning_handler.call_count == 0

        records = audit_store.get_records()
        assert records == [error.audit_record]
        assert records[0].status == AuditStatus.ERROR
        assert records[0].error_code == "INVALID_REQUEST_CONTRACT"
        assert records[0].request_id == "req-001"
        assert records[0].request_payload["actor"] == "cto"
        assert ledger.verify(records[0])
        assert telemetry.snapshot(configured=True).request_count == 1

    def test_invalid_request_without_ids(self, orchestrator, audit_store):
        with pytest.raises(InvalidRequestContract):
            orchestrator.execute({"requested_action": "Anything"})

        record = audit_store.get_records()[0]
        assert record.actor == "unknown"
        assert record.request_id

    def test_non_mapping_request(self, orchestrator, audit_store):
        with pytest.raises(InvalidRequestContract):
            orchestrator.execute("approve everything")

        assert audit_store.get_records()[0].request_payload == {"raw": "'approve everything'"}

    def test_pydantic_rejection_reported(self, orchestrator):
        with pytest.raises(InvalidRequestContract) as exc_info:
            orchestrator.execute(make_request(actor=123))

        assert exc_info.value.errors

    @pytest.mark.parametrize("context", [
        {"handle": object()},
        {"blob": b"\xff"},
        {"cycle": []},
    ])
    def test_unserializable_context_recorded(
        self, orchestrator, reasoning_handler, audit_store, telemetry, context
    ):
        """Context values that cannot be stored as JSON fail the contract."""
        if "cycle" in context:
            context["cycle"].append(context)

        with pytest.raises(InvalidRequestContract) as exc_info:
            orchestrator.execute(make_request(business_context=context))

        assert exc_info.value.errors == ["Field business_context must be JSON-serializable"]
        assert reasoning_handler.call_count == 0
        [record] = audit_store.get_records()
        assert record.status == AuditStatus.ERROR
        assert record.request_id == "req-001"
        assert telemetry.snapshot(configured=True).request_count == 1

    def test_unserializable_context_on_model(self, orchestrator, audit_store):
        request = DecisionRequest.model_validate(make_request(safety_context={"o": object()}))

        with pytest.raises(InvalidRequestContract):
            orchestrator.execute(request)

        [record] = audit_store.get_records()
        assert record.status == AuditStatus.ERROR
        assert record.actor == "cto"

    def test_non_string_keys_recorded_raw(self, orchestrator, audit_store):
        with pytest.raises(InvalidRequestContract):
            orchestrator.execute({("a",): 1, "actor": "x"})

        [record] = audit_store.get_records()
        assert record.status == AuditStatus.ERROR
        assert record.actor == "x"
        assert "raw" in record.request_payload

    def test_reasoning_unavailable(self, policy_engine, ledger, telemetry, clock, audit_store):
        handler = RecordingHandler(httpx.Response(503, text="down"))
        orchestrator = _orchestrator(handler, policy_engine, ledger, telemetry, clock)

        with pytest.raises(ReasoningUnavailable) as exc_info:
            orchestrator.execute(make_request())

        record = exc_info.value.audit_record
        assert record.status == AuditStatus.ERROR
        assert record.error_code == "REASONING_UNAVAILABLE"
        assert record.reasoning_response is None
        assert audit_store.get_records() == [record]

    def test_reasoning_malformed(self, policy_engine, ledger, telemetry, clock, audit_store):
        handler = RecordingHandler(chat_completion("not json at all"))
        orchestrator = _orchestrator(handler, policy_engine, ledger, telemetry, clock)

        with pytest.raises(ReasoningMalformed) as exc_info:
            orchestrator.execute(make_request())

        assert exc_info.value.audit_record.error_code == "REASONING_MALFORMED"
        assert len(audit_store) == 1

    @pytest.mark.parametrize("reply", [
        make_reasoning(risk_score=150),
        make_reasoning(decision="maybe"),
        {"decision": "approve"},
    ])
    def test_invalid_reasoning_contract(
        self, policy_engine, ledger, telemetry, clock, audit_store, reply
    ):
        handler = RecordingHandler(chat_completion(reply))
        orchestrator = _orchestrator(handler, policy_engine, ledger, telemetry, clock)

        with pytest.raises(InvalidReasoningContract) as exc_info:
            orchestrator.execute(make_request())

        assert exc_info.value.audit_record.error_code == "INVALID_REASONING_CONTRACT"
        assert len(audit_store) == 1
        assert telemetry.snapshot(configured=True).total_cost_usd == 0.0

    def test_unexpected_gateway_error(self, policy_engine, ledger, telemetry, clock, audit_store):
        gateway = MagicMock()
        gateway.reason.side_effect = RuntimeError("bug")
        orchestrator = DecisionOrchestrator(gateway, policy_engine, ledger, telemetry, clock)

        with pytest.raises(ReasoningUnavailable, match="RuntimeError") as exc_info:
            orchestrator.execute(make_request())

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert len(audit_store) == 1

    def test_persistence_failure_does_not_change_outcome(
        self, reasoning_handler, policy_engine, signer, telemetry, clock
    ):
        store = MagicMock()
        store.append_record.side_effect = IOError("disk full")
        ledger = AuditLedger(store, signer=signer, clock=clock)
        orchestrator = _orchestrator(reasoning_handler, policy_engine, ledger, telemetry, clock)

        outcome = orchestrator.execute(make_request())

        assert outcome.approved
        assert ledger.verify(outcome.audit_record)
        assert store.append_record.call_count == 1
