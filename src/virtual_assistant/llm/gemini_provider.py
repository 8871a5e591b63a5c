"""Gemini provider implementation.

Calls the Gemini ``generateContent`` REST endpoint with httpx. Requires
GEMINI_API_KEY to be configured.
"""

import logging
import os
from typing import Any

import httpx

from virtual_assistant.llm.prompts import build_assistant_prompt
from virtual_assistant.llm.provider import LLMProvider, LLMProviderError

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_TIMEOUT_SECONDS = 30.0


class GeminiProvider(LLMProvider):
    """Gemini-backed assistant provider with a bounded request timeout."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the Gemini provider.

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY env var)
            model: Model name (defaults to GEMINI_MODEL env var or gemini-2.0-flash)
            api_url: Base models URL (defaults to GEMINI_API_URL env var)
            timeout: Request timeout in seconds (defaults to GEMINI_TIMEOUT_SECONDS or 30)
            client: Optional httpx client to reuse

        Raises:
            ValueError: If no API key is configured
        """
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY environment variable is required for Gemini provider")

        self.model = model or os.environ.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)
        api_url = api_url or os.environ.get("GEMINI_API_URL", DEFAULT_GEMINI_API_URL)
        self.api_url = api_url.rstrip("/")
        if timeout is None:
            timeout = float(os.environ.get("GEMINI_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)))
        self.timeout = timeout
        self._client = client

        logger.info("Initialized Gemini provider: model=%s, timeout=%s", self.model, self.timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    def generate(self, command: str, assistant_name: str, user_name: str) -> str | None:
        """Send the assistant prompt to Gemini and return the reply text.

        Returns:
            Text of the first candidate, or None if the reply has no text

        Raises:
            LLMProviderError: On network errors, timeouts or non-2xx responses
        """
        prompt = build_assistant_prompt(command, assistant_name, user_name)
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        logger.info("Calling Gemini: model=%s, command_length=%d", self.model, len(command))

        try:
            if self._client is not None:
                response = self._client.post(
                    self.endpoint, json=payload, headers=headers, timeout=self.timeout
                )
            else:
                response = httpx.post(
                    self.endpoint, json=payload, headers=headers, timeout=self.timeout
                )
        except httpx.TimeoutException as e:
            raise LLMProviderError(f"Gemini request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMProviderError(f"Gemini request failed: {type(e).__name__}") from e

        if not 200 <= response.status_code < 300:
            error_msg = f"Gemini API returned HTTP {response.status_code}"
            try:
                error_data = response.json()
                message = (error_data.get("error") or {}).get("message")
                if message:
                    error_msg = f"{error_msg}: {message}"
            except ValueError:
                if response.text:
                    error_msg = f"{error_msg}: {response.text[:200]}"
            logger.error(error_msg)
            raise LLMProviderError(error_msg)

        try:
            data = response.json()
        except ValueError as e:
            raise LLMProviderError("Gemini API returned a non-JSON body") from e

        return extract_candidate_text(data)


def extract_candidate_text(data: Any) -> str | None:
    """Return the text of the first candidate in a generateContent response."""
    if not isinstance(data, dict):
        return None
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    texts = [
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    ]
    if not texts:
        return None
    return "".join(texts)
