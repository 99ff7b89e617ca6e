"""Reasoning Gateway - Chat-completions client for the Reasoning Service.

Sends a validated decision request to an OpenAI-compatible endpoint and
parses the reply into a plain dictionary. Shape validation is left to
the response validator.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from helm_ai.common.constants import ReasoningConstants
from helm_ai.common.exceptions import ReasoningMalformed, ReasoningUnavailable
from helm_ai.governance.schemas import DecisionRequest
from helm_ai.reasoning import prompts

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)

ERROR_BODY_PREVIEW = 200


def unwrap_code_fence(content: str) -> str:
    """Strip a surrounding Markdown code fence, if there is one."""
    stripped = content.strip()
    match = _CODE_FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


class ReasoningGateway:
    """Client for the external Reasoning Service.

    Without an API key every call returns the offline fallback. With a
    key, any failure raises; a configured gateway never falls back.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = ReasoningConstants.DEFAULT_API_URL,
        model: str = ReasoningConstants.DEFAULT_MODEL,
        timeout_seconds: float = ReasoningConstants.TIMEOUT_SECONDS,
        temperature: float = ReasoningConstants.TEMPERATURE,
        max_tokens: int = ReasoningConstants.MAX_TOKENS,
        http_client: Optional[httpx.Client] = None,
    ):
        self._api_key = api_key or None
        self.api_url = api_url
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = http_client or httpx.Client(timeout=timeout_seconds)

    def __repr__(self) -> str:
        return (
            f"ReasoningGateway(api_url={self.api_url!r}, model={self.model!r}, "
            f"configured={self.is_configured})"
        )

    @property
    def is_configured(self) -> bool:
        """Whether a Reasoning Service credential is present."""
        return bool(self._api_key)

    def build_messages(self, request: DecisionRequest) -> List[Dict[str, str]]:
        return prompts.build_messages(request)

    def build_payload(self, request: DecisionRequest) -> Dict[str, Any]:
        """Chat-completions request body for a decision request."""
        return {
            "model": self.model,
            "messages": self.build_messages(request),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def _redact(self, text: str) -> str:
        if self._api_key:
            text = text.replace(self._api_key, "***")
        return text

    def reason(self, request: DecisionRequest) -> Dict[str, Any]:
        """Ask the Reasoning Service for a recommendation.

        Args:
            request: Validated decision request

        Returns:
            Parsed JSON object from the model reply (or the offline fallback)

        Raises:
            ReasoningUnavailable: Transport error, timeout or non-2xx status
            ReasoningMalformed: Reply body or content is not the expected JSON
        """
        if not self.is_configured:
            logger.warning(
                "Reasoning service not configured, returning offline fallback",
                extra={"request_id": request.request_id},
            )
            return prompts.offline_fallback()

        try:
            response = self._client.post(
                self.api_url,
                json=self.build_payload(request),
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ReasoningUnavailable(
                f"Reasoning service timed out after {self.timeout_seconds}s",
                details={"error_type": type(e).__name__},
            ) from e
        except httpx.HTTPError as e:
            raise ReasoningUnavailable(
                f"Reasoning service request failed: {self._redact(str(e))}",
                details={"error_type": type(e).__name__},
            ) from e

        if not response.is_success:
            raise ReasoningUnavailable(
                f"Reasoning service returned HTTP {response.status_code}",
                status_code=response.status_code,
                details={"body": self._redact(response.text[:ERROR_BODY_PREVIEW])},
            )

        return self.parse_reply(response)

    def parse_reply(self, response: httpx.Response) -> Dict[str, Any]:
        """Extract the JSON object from choices[0].message.content."""
        try:
            body = response.json()
        except ValueError as e:
            raise ReasoningMalformed(
                "Reasoning service returned a non-JSON body",
                parse_error=str(e),
            ) from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ReasoningMalformed(
                "Reasoning service reply has no message content",
                parse_error=f"{type(e).__name__}: {e}",
            ) from e

        if not isinstance(content, str):
            raise ReasoningMalformed(
                "Reasoning service message content is not text",
                parse_error=f"content is {type(content).__name__}",
            )

        try:
            parsed = json.loads(unwrap_code_fence(content))
        except ValueError as e:
            raise ReasoningMalformed(
                "Reasoning service returned invalid JSON",
                parse_error=str(e),
            ) from e

        if not isinstance(parsed, dict):
            raise ReasoningMalformed(
                "Reasoning service JSON is not an object",
                parse_error=f"top-level value is {type(parsed).__name__}",
            )
        return parsed

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ReasoningGateway":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
