"""Story builder — small constructors for writing stories in Python.

A convenience for authors and tests; the runtime never needs it. Every
helper returns a validated model, so mistakes surface when the story is
built rather than mid-playthrough:

    demo = story(
        "My First Visual Novel",
        start_scene_id="intro",
        characters=[character("npc", "Stranger", {"neutral": "/npc.png"})],
        scenes=[scene("intro", "start", [
            narration("start", "A quiet street...", "hello"),
            dialogue("hello", "npc", "Hello there!", "fin"),
            end("fin"),
        ])],
    )
"""

from __future__ import annotations

from typing import Any

from .models import (
    Background,
    Character,
    Choice,
    ChoiceNode,
    DialogueNode,
    EndNode,
    InputNode,
    LLMInputNode,
    NarrationNode,
    Node,
    Scene,
    Story,
)


def character(
    id: str,
    display_name: str,
    sprites: dict[str, str],
    default_expression: str = "neutral",
    name_color: str = "#ffffff",
    **extra: Any,
) -> Character:
    return Character(
        id=id,
        name=id,
        display_name=display_name,
        sprites=sprites,
        default_expression=default_expression,
        name_color=name_color,
        **extra,
    )


def background(id: str, name: str, src: str) -> Background:
    return Background(id=id, name=name, src=src)


def dialogue(id: str, character_id: str, text: str, next_node_id: str, **extra: Any) -> DialogueNode:
    return DialogueNode(id=id, character_id=character_id, text=text, next_node_id=next_node_id, **extra)


def narration(id: str, text: str, next_node_id: str, **extra: Any) -> NarrationNode:
    return NarrationNode(id=id, text=text, next_node_id=next_node_id, **extra)


def choice(id: str, prompt: str, choices: list[Choice | dict[str, Any]], **extra: Any) -> ChoiceNode:
    return ChoiceNode(
        id=id,
        text=prompt,
        choices=[c if isinstance(c, Choice) else Choice.model_validate(c) for c in choices],
        **extra,
    )


def text_input(id: str, prompt: str, variable_name: str, next_node_id: str, **config: Any) -> InputNode:
    return InputNode.model_validate({
        "id": id,
        "text": prompt,
        "next_node_id": next_node_id,
        "input_config": {"variable_name": variable_name, **config},
    })


def llm_input(id: str, prompt: str, next_node_id: str, **config: Any) -> LLMInputNode:
    return LLMInputNode.model_validate({
        "id": id,
        "text": prompt,
        "next_node_id": next_node_id,
        "llm_config": config,
    })


def end(id: str, text: str | None = None) -> EndNode:
    return EndNode(id=id, text=text or "The End")


def scene(id: str, start_node_id: str, nodes: list[Node], name: str = "") -> Scene:
    return Scene(id=id, name=name or id, start_node_id=start_node_id, nodes=nodes)


def story(title: str, *, start_scene_id: str, scenes: list[Scene], **extra: Any) -> Story:
    return Story(title=title, start_scene_id=start_scene_id, scenes=scenes, **extra)
