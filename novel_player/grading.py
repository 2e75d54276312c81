"""LLM grading adapter for llm_input nodes.

Protocol for one grade() call:
  1. Render the grading prompt (context, player input, allowed emotions,
     strict JSON shape).
  2. Call the LLM; strip optional ``` fences; parse JSON; validate:
       characterResponse, emotion, evaluation — non-empty strings
       rating — exactly "good", "neutral" or "bad"
     Any violation is a failed attempt, never a partial success.
  3. On failure retry (up to max_attempts, default 3). The retry prompt
     quotes the previous raw output and the validation error so the model
     can correct itself. Transport errors and per-attempt timeouts count as
     failed attempts too.
  4. If every attempt fails, return FALLBACK (neutral rating, generic text,
     error marker) instead of raising — a playthrough never dead-ends on a
     malformed upstream response.

Configuration errors (LLMConfigError) are not retried; they propagate so
the host can show them. The grader keeps no state between calls.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from .errors import InputValidationError, LLMConfigError
from .llm import LLM, LLMError
from .models import DEFAULT_EMOTIONS, GradingResult
from .prompts import grading_prompt, grading_retry_prompt

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RATINGS = ("good", "neutral", "bad")

FALLBACK_RESPONSE = "I'm not sure how to respond to that..."
FALLBACK_EMOTION = "neutral"
FALLBACK_EVALUATION = "Unable to evaluate the response"
FALLBACK_ERROR = "Failed to get valid JSON after multiple attempts"


class GradingParseError(ValueError):
    """The LLM output does not match the grading contract."""


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` marker and a trailing ``` marker."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_grading_response(text: str) -> dict[str, str]:
    """Parse and validate one raw grading response.

    Returns {"characterResponse", "emotion", "evaluation", "rating"}.
    """
    try:
        data: Any = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise GradingParseError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise GradingParseError(f"Expected a JSON object, got {type(data).__name__}")

    for key in ("characterResponse", "emotion", "evaluation"):
        value = data.get(key)
        if not isinstance(value, str) or not value:
            raise GradingParseError(f"Missing or invalid {key}")
    if data.get("rating") not in RATINGS:
        raise GradingParseError("Invalid rating - must be good, neutral, or bad")

    return {
        "characterResponse": data["characterResponse"],
        "emotion": data["emotion"],
        "evaluation": data["evaluation"],
        "rating": data["rating"],
    }


def fallback_result(user_input: str, attempts: int, raw: str = "") -> GradingResult:
    return GradingResult(
        character_response=FALLBACK_RESPONSE,
        emotion=FALLBACK_EMOTION,
        evaluation=FALLBACK_EVALUATION,
        rating="neutral",
        attempts=attempts,
        user_input=user_input,
        raw=raw,
        error=FALLBACK_ERROR,
    )


class Grader:
    """Grades free-text player input through an LLM.

    Args:
        llm:          Any LLM callable (HttpLLM in production, StubLLM in tests).
        max_attempts: Attempts before falling back. Defaults to 3.
        timeout:      Seconds allowed per attempt; expiry is a failed attempt.
    """

    def __init__(self, llm: LLM, max_attempts: int = MAX_ATTEMPTS, timeout: float = 30.0) -> None:
        self._llm = llm
        self._max_attempts = max(1, max_attempts)
        self._timeout = timeout

    async def grade(
        self,
        user_input: str,
        context: str = "",
        allowed_emotions: list[str] | None = None,
    ) -> GradingResult:
        if not user_input:
            raise InputValidationError("User input is required")

        base_prompt = grading_prompt(user_input, context, allowed_emotions or DEFAULT_EMOTIONS)
        last_raw = ""
        last_error = ""

        for attempt in range(1, self._max_attempts + 1):
            prompt = base_prompt
            if attempt > 1 and last_raw:
                prompt = grading_retry_prompt(base_prompt, last_raw, last_error)

            try:
                raw = await asyncio.wait_for(self._llm("grading", prompt), timeout=self._timeout)
            except LLMConfigError:
                raise
            except LLMError as e:
                last_error = str(e)
                logger.warning("Grading attempt %d/%d failed: %s", attempt, self._max_attempts, e)
                continue
            except asyncio.TimeoutError:
                last_error = f"Timed out after {self._timeout}s"
                logger.warning(
                    "Grading attempt %d/%d timed out after %ss",
                    attempt, self._max_attempts, self._timeout,
                )
                continue

            last_raw = raw
            try:
                parsed = parse_grading_response(raw)
            except GradingParseError as e:
                last_error = str(e)
                logger.warning("Grading attempt %d/%d failed: %s", attempt, self._max_attempts, e)
                logger.debug("Raw grading response: %r", raw)
                continue

            return GradingResult(
                character_response=parsed["characterResponse"],
                emotion=parsed["emotion"],
                evaluation=parsed["evaluation"],
                rating=parsed["rating"],
                attempts=attempt,
                user_input=user_input,
                raw=raw,
            )

        logger.warning("All %d grading attempts failed — using fallback", self._max_attempts)
        return fallback_result(user_input, self._max_attempts, last_raw)
