"""Shared fixtures for Helm AI tests."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from helm_ai.common.config import AuditStorageType, Config
from helm_ai.governance.audit.ledger import AuditLedger
from helm_ai.governance.audit.signing import AuditSigner
from helm_ai.governance.audit.store import InMemoryAuditStore
from helm_ai.governance.override import OverrideTokenManager
from helm_ai.governance.policies.engine import SafetyPolicyEngine
from helm_ai.monitoring.telemetry import TelemetryAggregator
from helm_ai.orchestration.decision_flow import DecisionOrchestrator
from helm_ai.reasoning.gateway import ReasoningGateway


TEST_SECRET = "test-audit-secret"
TEST_API_KEY = "xai-test-key-0123456789"
TEST_API_URL = "https://reasoning.test/v1/chat/completions"


class FixedClock:
    """Settable clock so time-dependent behaviour is deterministic."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_request(**overrides):
    """A decision request dict that passes the inbound contract."""
    data = {
        "actor": "cto",
        "request_id": "req-001",
        "timestamp": "2026-10-18T09:30:00+00:00",
        "requested_action": "Migrate primary database to a managed service",
        "business_context": {"budget_usd": 40000},
        "technical_context": {"current_db": "self-hosted postgres"},
        "safety_context": {"data_classification": "confidential"},
        "urgency": "high",
        "reasoning_mode": "strategic",
    }
    data.update(overrides)
    return data


def make_reasoning(**overrides):
    """A reasoning reply dict that passes the output contract."""
    data = {
        "decision": "approve",
        "rationale": "Managed service removes operational toil",
        "required_changes": [],
        "strategic_upgrades": ["Adopt read replicas"],
        "moat_value": "medium",
        "risk_score": 30,
        "urgency_score": 50,
        "cost_estimate_usd": 0.05,
        "execution_steps": ["Provision", "Replicate", "Cut over"],
        "simulated_outcome_summary": "Lower on-call load",
        "references": [],
        "warnings": [],
    }
    data.update(overrides)
    return data


def chat_completion(content, status_code: int = 200) -> httpx.Response:
    """Wrap model content in a chat-completions response body."""
    if not isinstance(content, str):
        content = json.dumps(content)
    return httpx.Response(
        status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
    )


def make_gateway(handler, api_key: str = TEST_API_KEY) -> ReasoningGateway:
    """Configured gateway whose HTTP traffic goes to `handler`."""
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ReasoningGateway(api_key=api_key, api_url=TEST_API_URL, http_client=client)


class RecordingHandler:
    """MockTransport handler that replies with a fixed response and counts calls."""

    def __init__(self, response=None):
        self.response = response if response is not None else chat_completion(make_reasoning())
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        # Fresh response per call so one handler can serve many requests
        return httpx.Response(
            self.response.status_code,
            headers=self.response.headers,
            content=self.response.content,
        )

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def audit_store():
    return InMemoryAuditStore()


@pytest.fixture
def signer():
    return AuditSigner(TEST_SECRET)


@pytest.fixture
def ledger(audit_store, signer, clock):
    return AuditLedger(audit_store, signer=signer, clock=clock)


@pytest.fixture
def override_manager(clock):
    return OverrideTokenManager(clock=clock)


@pytest.fixture
def policy_engine(override_manager):
    return SafetyPolicyEngine(override_manager=override_manager)


@pytest.fixture
def telemetry(clock):
    return TelemetryAggregator(clock=clock)


@pytest.fixture
def reasoning_handler():
    return RecordingHandler()


@pytest.fixture
def orchestrator(reasoning_handler, policy_engine, ledger, telemetry, clock):
    return DecisionOrchestrator(
        gateway=make_gateway(reasoning_handler),
        policy_engine=policy_engine,
        ledger=ledger,
        telemetry=telemetry,
        clock=clock,
    )


@pytest.fixture
def test_config(tmp_path):
    """Development config with in-memory audit storage and no credential."""
    return Config(
        audit_storage_type=AuditStorageType.MEMORY,
        audit_log_dir=tmp_path / "audit",
        audit_secret=TEST_SECRET,
        reasoning_api_key=None,
        policy_file=None,
    )
