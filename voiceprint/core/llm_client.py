"""Anthropic client wrapper used by every generative step of the pipeline."""

import asyncio
import json
import logging
from typing import Any

from anthropic import AsyncAnthropic

from voiceprint.config import get_settings
from voiceprint.core.exceptions import ExternalServiceError


logger = logging.getLogger(__name__)


def extract_json(content: str) -> dict[str, Any]:
    """Pull the outermost JSON object out of a model response."""
    start = content.find("{")
    end = content.rfind("}") + 1
    if start == -1 or end <= start:
        raise ValueError("No JSON found in response")
    data = json.loads(content[start:end])
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


class LLMClient:
    """
    Thin async wrapper around the Anthropic Messages API.

    Every call is bounded by ``llm_timeout_seconds``. Any failure (timeout,
    API error, empty or unparseable output) is raised as
    ExternalServiceError so callers can switch to their local fallback.
    """

    def __init__(
        self,
        claude_client: AsyncAnthropic | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ):
        """
        Args:
            claude_client: Optional Anthropic client (created lazily from settings if not provided)
            model: Model name override
            timeout: Per-call timeout in seconds
        """
        self.settings = get_settings()
        self._client = claude_client
        self.model = model or self.settings.claude_model
        self.timeout = timeout if timeout is not None else self.settings.llm_timeout_seconds

    @property
    def enabled(self) -> bool:
        """Whether calls can be attempted at all."""
        return self._client is not None or bool(self.settings.anthropic_api_key)

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        return self._client

    async def complete_text(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 1024,
        temperature: float | None = None,
    ) -> str:
        """Free-text completion. Returns the stripped text of the first content block."""
        if not self.enabled:
            raise ExternalServiceError("Anthropic API key is not configured")

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = await asyncio.wait_for(self.client.messages.create(**kwargs), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ExternalServiceError(f"Claude call timed out after {self.timeout}s") from e
        except Exception as e:
            raise ExternalServiceError(f"Claude call failed: {e}") from e

        try:
            text = response.content[0].text.strip()
        except (AttributeError, IndexError, TypeError) as e:
            raise ExternalServiceError("Claude returned no text content") from e

        if not text:
            raise ExternalServiceError("Claude returned an empty response")
        return text

    async def complete_json(self, system: str, prompt: str, max_tokens: int = 1024) -> dict[str, Any]:
        """Structured completion. Returns the JSON object found in the response."""
        content = await self.complete_text(system, prompt, max_tokens=max_tokens)
        try:
            return extract_json(content)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Could not parse JSON from Claude response: {e}")
            raise ExternalServiceError(f"Malformed JSON from Claude: {e}") from e


_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    """Get the shared LLM client instance."""
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
