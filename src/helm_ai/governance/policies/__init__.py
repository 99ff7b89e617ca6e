"""Policies module - Safety circuit breakers.

Deterministic threshold checks with no I/O during evaluation.
"""

from helm_ai.governance.policies.engine import (
    SafetyPolicyEngine,
    load_policy_rules,
)

__all__ = [
    "SafetyPolicyEngine",
    "load_policy_rules",
]
