"""Handlebars prompt rendering for the grading and recommendation calls.

Templates use triple-stash ({{{...}}}) for every value: prompts are plain
text, so HTML escaping would corrupt quotes in player input.
"""

from collections.abc import Callable
from typing import Any

import pybars

from .variables import format_value


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


DEFAULT_GRADING_CONTEXT = (
    "You are a character in a visual novel game. Respond to the player's input."
)

GRADING_TEMPLATE = """{{{context}}}

User's input: "{{{user_input}}}"

You MUST respond with a valid JSON object in this exact format (no markdown, no code blocks, just the JSON):
{
  "characterResponse": "What you would say in response to the player",
  "emotion": "one of: {{{emotions}}}",
  "evaluation": "A brief evaluation of how well the player responded from a third person perspective",
  "rating": "good OR neutral OR bad (based on how appropriate/helpful the player's response was)"
}

Rating guidelines:
- "good": The response was thoughtful, kind, helpful, or showed good understanding
- "neutral": The response was acceptable but also irrelevant or unhelpful
- "bad": The response was rude, unhelpful, inappropriate, or showed poor understanding

Respond ONLY with the JSON object, nothing else:"""

GRADING_RETRY_TEMPLATE = """Your previous response was invalid JSON. Here was your response:
"{{{previous}}}"

Error: {{{error}}}

Please try again. {{{prompt}}}"""

RECOMMENDATIONS_TEMPLATE = """You are a helpful guide for a visual novel game{{#if title}} called "{{{title}}}"{{/if}}.

The player "{{{player_name}}}" has just finished playing the game.

Here is a summary of their interactions throughout the game:

{{#each entries}}Interaction {{{number}}}:
- Situation: {{{context}}}
- Player's response: "{{{user_input}}}"
- Evaluation: {{{evaluation}}}
- Rating: {{{rating}}}

{{/each}}Rating Summary:
- Good responses: {{{good}}}
- Neutral responses: {{{neutral}}}
- Bad responses: {{{bad}}}
- Final score: {{{final_score}}}

Please provide personalized feedback for the player. Your response MUST be a valid JSON object with this exact format (no markdown, no code blocks):
{
  "overallAssessment": "A 2-3 sentence overall assessment of how the player did",
  "strengths": ["List 2-3 things the player did well - be specific about their good responses"],
  "areasForImprovement": ["List 2-3 areas where the player could improve - be specific and constructive"],
  "tips": ["List 3-4 practical tips the player can use in real life"],
  "encouragement": "A short encouraging message for the player"
}

Respond ONLY with the JSON object:"""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def grading_prompt(user_input: str, context: str, allowed_emotions: list[str]) -> str:
    emotions = allowed_emotions or ["happy", "sad", "angry", "neutral"]
    return render_prompt(GRADING_TEMPLATE, {
        "context": context or DEFAULT_GRADING_CONTEXT,
        "user_input": user_input,
        "emotions": ", ".join(f'"{e}"' for e in emotions),
    })


def grading_retry_prompt(base_prompt: str, previous: str, error: str) -> str:
    return render_prompt(GRADING_RETRY_TEMPLATE, {
        "previous": previous,
        "error": error or "Invalid JSON format",
        "prompt": base_prompt,
    })


def recommendations_prompt(
    entries: list[dict[str, Any]],
    counts: dict[str, int],
    player_name: str,
    final_score: float | None,
    title: str = "",
) -> str:
    numbered = [{**entry, "number": str(i)} for i, entry in enumerate(entries, start=1)]
    return render_prompt(RECOMMENDATIONS_TEMPLATE, {
        "title": title,
        "player_name": player_name or "Player",
        "entries": numbered,
        "good": str(counts.get("good", 0)),
        "neutral": str(counts.get("neutral", 0)),
        "bad": str(counts.get("bad", 0)),
        "final_score": "N/A" if final_score is None else format_value(final_score),
    })
