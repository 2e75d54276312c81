"""LLM client — HTTP connection to a text-completion backend.

The grading adapter and the recommender take an LLM callable matching:

    async def __call__(self, stage: str, prompt: str) -> str: ...

`stage` names the caller ("grading", "recommendations"). Implementations
may use it for logging; the simplest ignore it.

Two implementations are provided:

    HttpLLM   — real HTTP client for Gemini, OpenAI-compatible and
                KoboldCpp backends, selected by provider_format.
    EchoLLM   — returns the prompt back unchanged. Useful for smoke-testing
                the wiring without a running model.

Tests use StubLLM (tests/helpers.py) instead.
"""

from __future__ import annotations

import logging
from typing import Literal, Protocol

import httpx

from .errors import LLMConfigError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol — every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM — connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["gemini", "openai", "koboldcpp"]

GEMINI_URL = "https://generativelanguage.googleapis.com"
GEMINI_MODEL = "gemini-2.5-flash"

_GEMINI_SAFETY = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


class HttpLLM:
    """Async HTTP client for text-completion backends.

    Supported formats:
      "gemini"     — POST /v1beta/models/{model}:generateContent?key=...
                     Response: {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}
      "openai"     — POST /v1/completions   {"model": ..., "prompt": ...}
                     Response: {"choices": [{"text": "..."}]}
      "koboldcpp"  — POST /api/v1/generate  {"prompt": ...}
                     Response: {"results": [{"text": "..."}]}

    Args:
        provider_url:    Base URL of the backend. Defaults to the Gemini API.
        api_key:         Key or bearer token. Required by the gemini format.
        provider_format: Wire format to use. Defaults to "gemini".
        model:           Model identifier (gemini and openai formats).
        timeout:         HTTP timeout in seconds. Defaults to 120.
        max_output_tokens: Generation cap sent to gemini.
    """

    def __init__(
        self,
        provider_url: str = GEMINI_URL,
        api_key: str = "",
        provider_format: ProviderFormat = "gemini",
        model: str = "",
        timeout: float = 120.0,
        max_output_tokens: int = 1024,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout
        self._max_output_tokens = max_output_tokens

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key and self._format != "gemini":
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, prompt: str) -> tuple[str, dict, dict]:
        """Return (url, query params, body) for the configured format."""
        if self._format == "gemini":
            if not self._api_key:
                raise LLMConfigError("Gemini API key not configured")
            model = self._model or GEMINI_MODEL
            url = f"{self._base_url}/v1beta/models/{model}:generateContent"
            body: dict = {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": 0.7,
                    "topK": 40,
                    "topP": 0.95,
                    "maxOutputTokens": self._max_output_tokens,
                },
                "safetySettings": _GEMINI_SAFETY,
            }
            return url, {"key": self._api_key}, body

        if self._format == "openai":
            url = f"{self._base_url}/v1/completions"
            body = {"prompt": prompt}
            if self._model:
                body["model"] = self._model
            return url, {}, body

        # koboldcpp
        url = f"{self._base_url}/api/v1/generate"
        return url, {}, {"prompt": prompt}

    def _parse_response(self, data: dict) -> str:
        """Extract the completion text from the response body."""
        if self._format == "gemini":
            try:
                return data["candidates"][0]["content"]["parts"][0]["text"]
            except (KeyError, IndexError, TypeError):
                # No candidate text (e.g. safety block): an empty object the
                # grader will reject and retry.
                return "{}"

        if self._format == "openai":
            choices = data.get("choices")
            if not choices or "text" not in choices[0]:
                raise LLMError("Unexpected response format from OpenAI-compatible backend")
            return choices[0]["text"]

        results = data.get("results")
        if not results or "text" not in results[0]:
            raise LLMError("Unexpected response format from KoboldCpp backend")
        return results[0]["text"]

    async def __call__(self, stage: str, prompt: str) -> str:
        url, params, body = self._build_request(prompt)
        logger.debug("llm call stage=%s url=%s prompt_len=%d", stage, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, params=params, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"LLM request failed: {e!r}") from e

        try:
            text = self._parse_response(resp.json())
        except (ValueError, TypeError, AttributeError, KeyError, IndexError) as e:
            # non-JSON body, or JSON of the wrong shape
            raise LLMError(f"Unexpected response format from LLM backend: {e}") from e
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


# ---------------------------------------------------------------------------
# EchoLLM — returns the prompt unchanged; useful for wiring smoke tests
# ---------------------------------------------------------------------------

class EchoLLM:
    """Returns the prompt text as-is. No network calls.

    The output is never valid grading JSON, so every graded submission ends
    in the neutral fallback. Use StubLLM in tests for controlled responses.
    """

    async def __call__(self, stage: str, prompt: str) -> str:
        logger.debug("EchoLLM stage=%s prompt_len=%d", stage, len(prompt))
        return prompt


# ---------------------------------------------------------------------------
# LLMError — raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
