"""Prompt templates for the Reasoning Service - separated from parsing."""

import json
from typing import Any, Dict, List

from helm_ai.common.constants import ReasoningConstants
from helm_ai.governance.schemas import (
    DecisionRequest,
    DecisionVerdict,
    MoatValue,
    ReasoningMode,
)

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

OUTPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["decision", "rationale", "risk_score", "moat_value", "urgency_score"],
    "properties": {
        "decision": {"type": "string", "enum": [v.value for v in DecisionVerdict]},
        "rationale": {"type": "string"},
        "required_changes": _STRING_LIST,
        "strategic_upgrades": _STRING_LIST,
        "moat_value": {"type": "string", "enum": [m.value for m in MoatValue]},
        "risk_score": {"type": "number", "minimum": 0, "maximum": 100},
        "urgency_score": {"type": "number", "minimum": 0, "maximum": 100},
        "cost_estimate_usd": {"type": "number", "minimum": 0},
        "execution_steps": _STRING_LIST,
        "simulated_outcome_summary": {"type": "string"},
        "references": _STRING_LIST,
        "warnings": _STRING_LIST,
    },
}

BASE_PROMPT = [
    "You are the strategic reasoning core of an executive decision governance engine.",
    "Every recommendation must be precise, auditable and strategically sound.",
    "",
    "Core mission:",
    "- Maximize long-term platform survivability and market position",
    "- Detect technical debt, vendor lock-in and scaling bottlenecks early",
    "- Build defensible moats through unique capabilities and data advantages",
    "- Optimize for revenue growth, user retention and differentiation",
    "",
    "Decision framework:",
    "- Architecture: will this scale to millions of users?",
    "- Business: does this drive revenue or competitive advantage?",
    "- Risk: what could go wrong and how is it mitigated?",
    "- Moat: does this make the platform harder to replicate?",
    "- Cost: what are the financial implications?",
    "",
]

MODE_PROMPTS = {
    ReasoningMode.STRATEGIC: [
        "STRATEGIC MODE: Focus on long-term competitive positioning and business value.",
        "Prioritize decisions that build lasting advantages and market leadership.",
    ],
    ReasoningMode.CRISIS: [
        "CRISIS MODE: Focus on immediate containment and system stability.",
        "Prioritize rapid resolution while maintaining data integrity and user trust.",
    ],
    ReasoningMode.INNOVATION: [
        "INNOVATION MODE: Focus on disruptive opportunities and breakthrough features.",
        "Prioritize bold moves that could create new market categories.",
    ],
    ReasoningMode.INVESTOR: [
        "INVESTOR MODE: Focus on metrics and narratives that demonstrate growth potential.",
        "Prioritize decisions that strengthen fundraising and valuation arguments.",
    ],
}

OUTPUT_INSTRUCTIONS = [
    "",
    "CRITICAL: You MUST respond with valid JSON matching this exact schema:",
    json.dumps(OUTPUT_SCHEMA, indent=2),
    "",
    "If you cannot provide a complete response, return decision='reject' "
    "with a rationale explaining why.",
]

OFFLINE_RATIONALE = "Reasoning service offline - manual review required for strategic decisions"


def render_system_prompt(mode: ReasoningMode = ReasoningMode.STRATEGIC) -> str:
    """System prompt for a reasoning mode, ending in the output schema."""
    return "\n".join(BASE_PROMPT + MODE_PROMPTS[ReasoningMode(mode)] + OUTPUT_INSTRUCTIONS)


def render_user_prompt(request: DecisionRequest) -> str:
    """The request itself as indented JSON. Override tokens are not sent."""
    payload = request.model_dump(mode="json", exclude={"human_override_token"})
    return json.dumps(payload, indent=2)


def build_messages(request: DecisionRequest) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": render_system_prompt(request.reasoning_mode)},
        {"role": "user", "content": render_user_prompt(request)},
    ]


def offline_fallback() -> Dict[str, Any]:
    """Fixed answer used when no Reasoning Service credential is configured."""
    return {
        "decision": DecisionVerdict.REVISE.value,
        "rationale": OFFLINE_RATIONALE,
        "required_changes": ["Manual strategic review required - reasoning service unavailable"],
        "strategic_upgrades": [
            "Configure a reasoning service credential",
            "Add a local reasoning fallback",
        ],
        "moat_value": MoatValue.UNKNOWN.value,
        "risk_score": ReasoningConstants.FALLBACK_RISK_SCORE,
        "urgency_score": ReasoningConstants.FALLBACK_URGENCY_SCORE,
        "cost_estimate_usd": 0,
        "execution_steps": ["Wait for reasoning service restoration", "Manual review process"],
        "simulated_outcome_summary": "Cannot simulate - offline mode",
        "references": [],
        "warnings": [],
    }
