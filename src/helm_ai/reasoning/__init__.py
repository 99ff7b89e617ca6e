"""Reasoning - Client and prompt templates for the external Reasoning Service."""

from helm_ai.reasoning.gateway import ReasoningGateway, unwrap_code_fence
from helm_ai.reasoning.prompts import (
    OUTPUT_SCHEMA,
    offline_fallback,
    render_system_prompt,
    render_user_prompt,
)

__all__ = [
    "ReasoningGateway",
    "unwrap_code_fence",
    "OUTPUT_SCHEMA",
    "offline_fallback",
    "render_system_prompt",
    "render_user_prompt",
]
