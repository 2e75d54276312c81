"""Shared test doubles and story fixtures."""

import asyncio
import json

from novel_player import builder
from novel_player.models import Story


class StubLLM:
    """Deterministic LLM stand-in for tests.

    Provide a dict mapping stage name → list of responses (in call order).
    A response that is an Exception instance is raised instead of returned.
    Raises if a stage is called more times than responses were provided.
    """

    def __init__(self, responses: dict[str, list]) -> None:
        self._queues: dict[str, list] = {k: list(v) for k, v in responses.items()}
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, stage: str, prompt: str) -> str:
        self.calls.append((stage, prompt))
        queue = self._queues.get(stage)
        if not queue:
            raise AssertionError(
                f"StubLLM: unexpected call to stage={stage!r} "
                f"(no responses queued). calls so far: {self.calls}"
            )
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def assert_exhausted(self) -> None:
        """Assert every queued response was consumed."""
        leftover = {k: v for k, v in self._queues.items() if v}
        if leftover:
            raise AssertionError(f"StubLLM: unconsumed responses: {leftover}")


class SlowLLM:
    """Sleeps longer than any test timeout before answering."""

    def __init__(self, delay: float = 1.0) -> None:
        self.delay = delay
        self.calls = 0

    async def __call__(self, stage: str, prompt: str) -> str:
        self.calls += 1
        await asyncio.sleep(self.delay)
        return "{}"


def grading_json(
    response: str = "Thanks, that helps.",
    emotion: str = "happy",
    evaluation: str = "The player was kind.",
    rating: str = "good",
) -> str:
    return json.dumps({
        "characterResponse": response,
        "emotion": emotion,
        "evaluation": evaluation,
        "rating": rating,
    })


def sample_story(ask_for_name: bool = False, **settings) -> Story:
    """Small two-scene story covering every node type.

    cafe:   start(narration) → greet(dialogue) → menu(choice) → drink(input)
            → talk(llm_input) → street/outside
    street: outside(dialogue) → fin(end)
    """
    return builder.story(
        "Sample Story",
        start_scene_id="cafe",
        variables={"score": 0, "coins": 3, "vip": False},
        settings={"ask_for_name": ask_for_name, **settings},
        characters=[
            builder.character(
                "mira", "Mira",
                {"neutral": "/mira-neutral.png", "happy": "/mira-happy.png", "sad": "/mira-sad.png"},
                name_color="#4169E1",
            ),
        ],
        backgrounds=[
            builder.background("cafe", "Cafe", "/bg/cafe.jpg"),
            builder.background("street", "Street", "/bg/street.jpg"),
        ],
        scenes=[
            builder.scene("cafe", "start", [
                builder.narration(
                    "start", "You walk in.", "greet",
                    background="cafe",
                    audio={"type": "bgm", "src": "/audio/cafe.mp3"},
                    set_variables={"score": 1},
                    add_variables={"score": 2},
                ),
                builder.dialogue(
                    "greet", "mira", "Hi {userName}!", "menu",
                    audio={"type": "bgm", "src": "/audio/cafe.mp3"},
                    visible_characters=[{"character_id": "mira", "expression": "happy"}],
                ),
                builder.choice("menu", "Order something?", [
                    {"id": "tea", "text": "Tea", "next_node_id": "drink",
                     "set_variables": {"ordered": "tea"}, "add_variables": {"coins": -1}},
                    {"id": "rich", "text": "Champagne", "next_node_id": "drink",
                     "condition": {"variable": "coins", "operator": ">", "value": 10}},
                    {"id": "secret", "text": "The usual", "next_node_id": "drink",
                     "condition": {"variable": "vip", "operator": "==", "value": True}},
                ]),
                builder.text_input("drink", "Favorite drink?", "favorite", "talk", min_length=2, max_length=10),
                builder.llm_input(
                    "talk", "Mira seems sad.", "street/outside",
                    user_input_variable="said",
                    character_response_variable="reply",
                    emotion_variable="mood",
                    evaluation_variable="eval",
                    context="You are Mira. {userName} likes {favorite}.",
                    rating_config={"variable_to_modify": "score", "good_points": 10,
                                   "neutral_points": 0, "bad_points": -5},
                ),
            ]),
            builder.scene("street", "outside", [
                builder.dialogue(
                    "outside", "mira", "{reply}", "fin",
                    background="street",
                    visible_characters=[{"character_id": "mira", "expression": "{mood}"}],
                ),
                builder.end("fin", "Score: {score}"),
            ]),
        ],
    )
