"""Feedback aggregation and end-of-playthrough recommendations.

Every successfully graded llm_input submission appends one FeedbackEntry
to GameState.feedback. summarize() turns that log into counts by rating;
Recommender asks the LLM for a personalised assessment. The recommender
makes a single call: missing fields fall back one by one, and an
unreachable or unparseable response falls back as a whole.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from .errors import LLMConfigError
from .grading import strip_code_fences
from .llm import LLM, LLMError
from .models import FeedbackEntry, Recommendations
from .prompts import recommendations_prompt

logger = logging.getLogger(__name__)


class FeedbackSummary(BaseModel):
    total: int
    good: int
    neutral: int
    bad: int
    entries: list[FeedbackEntry]

    def counts(self) -> dict[str, int]:
        return {"good": self.good, "neutral": self.neutral, "bad": self.bad}


def summarize(entries: Sequence[FeedbackEntry]) -> FeedbackSummary:
    counts = {"good": 0, "neutral": 0, "bad": 0}
    for entry in entries:
        counts[entry.rating] += 1
    return FeedbackSummary(total=len(entries), entries=list(entries), **counts)


# Per-field defaults when the response parses but leaves a field out.
FIELD_DEFAULTS: dict[str, Any] = {
    "overallAssessment": "Good effort throughout the game!",
    "strengths": ["You engaged with every conversation"],
    "areasForImprovement": ["Keep practicing!"],
    "tips": ["Be patient when communicating"],
    "encouragement": "Great job completing the game!",
}

FALLBACK_RECOMMENDATIONS = Recommendations(
    overall_assessment="You completed the game! Thank you for playing and reflecting on each conversation.",
    strengths=["You completed all the interactions", "You showed interest in learning"],
    areas_for_improvement=["Keep practicing thoughtful, inclusive communication"],
    tips=[
        "Face the person you are speaking with",
        "Choose quiet environments for important conversations",
        "Be patient and willing to repeat or rephrase",
        "Ask how the other person prefers to communicate",
    ],
    encouragement="Every interaction is a chance to learn and grow. Keep being curious and kind!",
)


def parse_recommendations(text: str) -> Recommendations:
    """Parse a recommendations response, filling missing fields per field.

    Raises ValueError when the text is not a JSON object.
    """
    data = json.loads(strip_code_fences(text))
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    merged = {key: data.get(key) or default for key, default in FIELD_DEFAULTS.items()}
    return Recommendations.model_validate(merged)


class Recommender:
    def __init__(self, llm: LLM) -> None:
        self._llm = llm

    async def recommend(
        self,
        entries: Sequence[FeedbackEntry],
        player_name: str,
        final_score: float | None = None,
        title: str = "",
    ) -> Recommendations:
        summary = summarize(entries)
        prompt = recommendations_prompt(
            [e.model_dump() for e in summary.entries],
            summary.counts(),
            player_name,
            final_score,
            title=title,
        )
        try:
            raw = await self._llm("recommendations", prompt)
        except LLMConfigError:
            raise
        except LLMError as e:
            logger.warning("Recommendations call failed: %s", e)
            return FALLBACK_RECOMMENDATIONS

        try:
            return parse_recommendations(raw)
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            logger.warning("Failed to parse recommendations JSON: %s", e)
            logger.debug("Raw recommendations response: %r", raw)
            return FALLBACK_RECOMMENDATIONS
