"""Orchestration - Decision lifecycle from request to signed audit record."""

from helm_ai.orchestration.decision_flow import DecisionOrchestrator, DecisionOutcome

__all__ = [
    "DecisionOrchestrator",
    "DecisionOutcome",
]
