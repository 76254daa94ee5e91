"""Groq (OpenAI-compatible) completion client over httpx.

Sends ``POST {base_url}/chat/completions`` with JSON response mode and
returns the parsed JSON object from the first choice.  Every failure is
raised as :class:`~devscreen_rules.errors.UpstreamError`; deciding what to
do about it is the analyzer's job.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from devscreen_rules.config import LLMSettings
from devscreen_rules.errors import ConfigurationError, UpstreamError
from devscreen_rules.interfaces import CompletionClient

logger = logging.getLogger(__name__)


def extract_json_object(raw_text: str) -> str | None:
    """Strip code fences and surrounding prose, returning the ``{...}`` span."""
    cleaned = raw_text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
        cleaned = cleaned.strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return cleaned[start: end + 1]


class GroqCompletionClient(CompletionClient):
    """Chat completion client for Groq's OpenAI-compatible API.

    Args:
        settings: completion settings; ``api_key`` is required.
        http_client: optional shared ``httpx.AsyncClient``.  When omitted a
            short-lived client is opened per request.
    """

    def __init__(
        self,
        settings: LLMSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not settings.api_key:
            raise ConfigurationError(
                "Groq API key not configured. Please set GROQ_API_KEY environment variable."
            )
        self._settings = settings
        self._http = http_client

    @property
    def model_name(self) -> str:
        return self._settings.model

    @property
    def provider(self) -> str:
        return self._settings.provider

    async def complete_json(self, *, system: str, user: str) -> dict[str, Any]:
        payload = {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "response_format": {"type": "json_object"},
        }
        url = f"{self._settings.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self._settings.api_key}"}

        try:
            if self._http is not None:
                resp = await self._http.post(
                    url, json=payload, headers=headers,
                    timeout=self._settings.timeout_seconds,
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self._settings.timeout_seconds,
                ) as client:
                    resp = await client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Completion request failed: {exc}") from exc
        except ValueError as exc:
            # resp.json() on a non-JSON body
            raise UpstreamError(f"Completion response is not JSON: {exc}") from exc

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise UpstreamError("No response from completion API")

        json_text = extract_json_object(content)
        if json_text is None:
            raise UpstreamError("Completion content contains no JSON object")
        try:
            parsed = json.loads(json_text)
        except json.JSONDecodeError as exc:
            raise UpstreamError(f"Completion content is malformed JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise UpstreamError("Completion content is not a JSON object")
        return parsed


def build_completion_client(
    settings: LLMSettings,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> CompletionClient | None:
    """Return a client, or ``None`` when no API key is configured.

    A missing key disables the LLM path; the analyzer then always uses its
    deterministic fallback.
    """
    if not settings.enabled:
        logger.warning("GROQ_API_KEY not set; LLM analysis disabled, using fallback")
        return None
    return GroqCompletionClient(settings, http_client=http_client)
