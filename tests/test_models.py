"""Tests for the story document and state models."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from novel_player import builder
from novel_player.models import (
    ChoiceNode,
    FeedbackEntry,
    GameState,
    InputNode,
    LLMInputNode,
    NarrationNode,
    Story,
)

PRESET = Path(__file__).parent.parent / "presets" / "stories" / "the-quiet-library.json"


def test_preset_story_validates():
    story = Story.model_validate(json.loads(PRESET.read_text()))
    assert story.title == "The Quiet Library"
    assert story.start_scene_id == "library"
    assert [s.id for s in story.scenes] == ["library", "garden"]


def test_nodes_are_discriminated_by_type():
    story = Story.model_validate(json.loads(PRESET.read_text()))
    assert isinstance(story.get_node("library", "intro"), NarrationNode)
    assert isinstance(story.get_node("library", "ask"), ChoiceNode)
    card = story.get_node("library", "card")
    assert isinstance(card, InputNode)
    assert card.input_config.input_type == "number"
    talk = story.get_node("library", "talk")
    assert isinstance(talk, LLMInputNode)
    assert talk.llm_config.rating_config.bad_points == -10
    assert talk.llm_config.allowed_emotions == ["happy", "sad", "angry", "neutral"]


def test_unknown_node_type_rejected():
    doc = {
        "title": "Bad",
        "startSceneId": "s",
        "scenes": [{"id": "s", "startNodeId": "n", "nodes": [{"id": "n", "type": "cutscene"}]}],
    }
    with pytest.raises(ValidationError):
        Story.model_validate(doc)


def test_dangling_references_are_not_checked_at_load():
    doc = {
        "title": "Loose",
        "startSceneId": "s",
        "scenes": [{"id": "s", "startNodeId": "n",
                    "nodes": [{"id": "n", "type": "dialogue", "nextNodeId": "other/nowhere"}]}],
    }
    story = Story.model_validate(doc)
    assert story.get_node("s", "n").next_node_id == "other/nowhere"


def test_lookups_return_none_for_unknown_ids():
    story = Story.model_validate(json.loads(PRESET.read_text()))
    assert story.get_scene("nope") is None
    assert story.get_node("library", "nope") is None
    assert story.get_node("nope", "intro") is None
    assert story.get_character("nope") is None
    assert story.get_background("nope") is None


def test_settings_defaults():
    story = builder.story("T", start_scene_id="s", scenes=[builder.scene("s", "e", [builder.end("e")])])
    settings = story.settings
    assert settings.ask_for_name is True
    assert settings.name_min_length == 1
    assert settings.name_max_length == 20
    assert settings.score_variable == "score"


def test_sprite_for_falls_back_to_default_expression():
    mira = builder.character("mira", "Mira", {"neutral": "/n.png", "happy": "/h.png"})
    assert mira.sprite_for("happy") == "/h.png"
    assert mira.sprite_for("furious") == "/n.png"
    assert mira.sprite_for(None) == "/n.png"


def test_game_state_dumps_camel_case():
    state = GameState(current_scene_id="s", current_node_id="n", user_name="Sam")
    data = state.model_dump(by_alias=True)
    assert data["currentSceneId"] == "s"
    assert data["userName"] == "Sam"
    assert data["showFeedbackScreen"] is False
    assert GameState.model_validate(data) == state


def test_feedback_entry_is_frozen():
    entry = FeedbackEntry(node_id="n", scene_id="s", user_input="hi", evaluation="ok",
                          rating="good", context="c")
    with pytest.raises(ValidationError):
        entry.rating = "bad"


def test_feedback_entry_rejects_unknown_rating():
    with pytest.raises(ValidationError):
        FeedbackEntry(node_id="n", scene_id="s", user_input="hi", evaluation="ok",
                      rating="great", context="c")
