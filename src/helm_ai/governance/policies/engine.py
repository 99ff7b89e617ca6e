"""Safety Policy Engine - Circuit breakers over reasoning outcomes."""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union
import logging

import yaml

from helm_ai.common.exceptions import ConfigurationError
from helm_ai.governance.override import OverrideTokenManager
from helm_ai.governance.schemas import (
    DecisionRequest,
    DecisionVerdict,
    ReasoningResponse,
    SafetyCheck,
    SafetyCheckResult,
    SafetyPolicyRules,
    Urgency,
)

logger = logging.getLogger(__name__)


def load_policy_rules(policy_file: Optional[Union[str, Path]] = None) -> SafetyPolicyRules:
    """Load safety thresholds from YAML.

    Args:
        policy_file: Path to a safety policy YAML file. Built-in defaults
            are returned when not provided.

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    if policy_file is None:
        return SafetyPolicyRules()

    path = Path(policy_file)
    if not path.exists():
        raise ConfigurationError(
            f"Policy file not found: {path}",
            details={"policy_file": str(path)},
        )

    with open(path, "r") as f:
        raw_config = yaml.safe_load(f) or {}

    # Allow the thresholds to sit under a top-level `safety` key
    if isinstance(raw_config, dict) and isinstance(raw_config.get("safety"), dict):
        section = dict(raw_config["safety"])
        section.setdefault("version", raw_config.get("version", SafetyPolicyRules().version))
        raw_config = section

    try:
        rules = SafetyPolicyRules.model_validate(raw_config)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid policy file: {path}",
            details={"policy_file": str(path), "error": str(e)},
        ) from e

    if rules.critical_risk_threshold < rules.high_risk_threshold:
        raise ConfigurationError(
            "critical_risk_threshold must not be below high_risk_threshold",
            details={"policy_file": str(path)},
        )
    return rules


class SafetyPolicyEngine:
    """Applies safety circuit breakers to a validated reasoning response.

    Rules run in a fixed order and all of them are evaluated; a valid
    human override token is applied last and wins over every block.
    """

    def __init__(
        self,
        rules: Optional[SafetyPolicyRules] = None,
        override_manager: Optional[OverrideTokenManager] = None,
    ):
        self.rules = rules or SafetyPolicyRules()
        self.override_manager = override_manager or OverrideTokenManager()

    @classmethod
    def from_file(
        cls,
        policy_file: Optional[Union[str, Path]],
        override_manager: Optional[OverrideTokenManager] = None,
    ) -> "SafetyPolicyEngine":
        return cls(load_policy_rules(policy_file), override_manager)

    @property
    def policy_version(self) -> str:
        """Get current policy version."""
        return self.rules.version

    def evaluate(
        self,
        response: ReasoningResponse,
        request: DecisionRequest,
        now: Optional[datetime] = None,
    ) -> SafetyCheckResult:
        """Evaluate a reasoning response for one request.

        Args:
            response: Validated Reasoning Service answer
            request: The originating decision request
            now: Time used for override token validation

        Returns:
            SafetyCheckResult with the ordered list of triggered checks
        """
        triggered: List[SafetyCheck] = []
        allowed = True
        requires_review = False

        if response.risk_score >= self.rules.high_risk_threshold:
            triggered.append(SafetyCheck.HIGH_RISK_DETECTED)
            requires_review = True

        if response.risk_score >= self.rules.critical_risk_threshold:
            triggered.append(SafetyCheck.CRITICAL_RISK_BLOCKED)
            allowed = False

        if response.cost_estimate_usd > self.rules.high_cost_threshold_usd:
            triggered.append(SafetyCheck.HIGH_COST_DETECTED)
            requires_review = True

        if request.urgency == Urgency.CRITICAL and response.decision == DecisionVerdict.REJECT:
            triggered.append(SafetyCheck.CRITICAL_URGENCY_REJECTED)
            requires_review = True

        token = request.human_override_token
        if token and self.override_manager.validate(token, now):
            triggered.append(SafetyCheck.HUMAN_OVERRIDE_APPLIED)
            allowed = True
            requires_review = False
            logger.info(
                "Human override applied",
                extra={"request_id": request.request_id, "actor": request.actor},
            )
        elif token:
            logger.warning(
                "Override token rejected",
                extra={"request_id": request.request_id, "actor": request.actor},
            )

        if triggered:
            reasoning = "Safety checks triggered: " + ", ".join(c.value for c in triggered)
        else:
            reasoning = "All safety checks passed"

        return SafetyCheckResult(
            allowed=allowed,
            requires_human_review=requires_review,
            triggered_checks=triggered,
            reasoning=reasoning,
            policy_version=self.policy_version,
        )
