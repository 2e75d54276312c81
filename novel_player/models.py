"""Story document and playthrough state models.

The story document is authored with camelCase keys (``nextNodeId``,
``startSceneId``, ...). Every model here uses snake_case attributes with a
camelCase alias, so documents validate as written and snapshots dump back
into the same shape with ``model_dump(by_alias=True)``.

Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

VarValue = Union[bool, int, float, str]
Variables = dict[str, VarValue]

Rating = Literal["good", "neutral", "bad"]
Position = Literal["left", "center", "right"]
Transition = Literal["fade", "slide", "none"]


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Cast and scenery
# ---------------------------------------------------------------------------

class Character(_Model):
    """A speaking character with one sprite per expression."""

    id: str
    name: str = ""
    display_name: str
    sprites: dict[str, str] = Field(default_factory=dict)
    default_expression: str = "neutral"
    position: Position | None = None
    name_color: str | None = None
    scale: float | None = None

    def sprite_for(self, expression: str | None) -> str | None:
        """Sprite for `expression`, degrading to the default expression."""
        if expression and expression in self.sprites:
            return self.sprites[expression]
        return self.sprites.get(self.default_expression)


class Background(_Model):
    id: str
    name: str = ""
    src: str


class VisibleCharacter(_Model):
    character_id: str
    position: Position = "center"
    expression: str | None = None  # may contain {variables}
    scale: float | None = None
    offset_x: float | None = None
    offset_y: float | None = None


class AudioDirective(_Model):
    type: Literal["bgm", "sfx"]
    src: str
    loop: bool | None = None


# ---------------------------------------------------------------------------
# Choices and interactive payloads
# ---------------------------------------------------------------------------

class Condition(_Model):
    variable: str
    operator: str = "=="  # == != > < >= <= ; anything else fails open
    value: VarValue | None = None


class Choice(_Model):
    id: str
    text: str
    next_node_id: str
    condition: Condition | None = None
    set_variables: Variables | None = None
    add_variables: dict[str, int | float] | None = None


class InputConfig(_Model):
    variable_name: str
    placeholder: str = "Type here..."
    min_length: int = 1
    max_length: int = 100
    input_type: Literal["text", "number", "email"] = "text"
    validation: str | None = None  # regex
    validation_message: str = "Invalid input"


class RatingConfig(_Model):
    variable_to_modify: str
    good_points: int | float = 0
    neutral_points: int | float = 0
    bad_points: int | float = 0

    def points_for(self, rating: str) -> int | float:
        if rating == "good":
            return self.good_points
        if rating == "bad":
            return self.bad_points
        return self.neutral_points


DEFAULT_EMOTIONS = ["happy", "sad", "angry", "neutral"]


class LLMConfig(_Model):
    user_input_variable: str
    character_response_variable: str
    emotion_variable: str
    evaluation_variable: str
    allowed_emotions: list[str] = Field(default_factory=lambda: list(DEFAULT_EMOTIONS))
    context: str = ""
    placeholder: str = "Type your response..."
    min_length: int = 1
    max_length: int = 500
    rating_config: RatingConfig | None = None


# ---------------------------------------------------------------------------
# Nodes — one variant per node type
# ---------------------------------------------------------------------------

class _BaseNode(_Model):
    id: str
    text: str | None = None
    speaker_name: str | None = None  # may contain {variables}
    character_id: str | None = None
    expression: str | None = None
    background: str | None = None
    visible_characters: list[VisibleCharacter] = Field(default_factory=list)
    audio: AudioDirective | None = None
    set_variables: Variables | None = None
    add_variables: dict[str, int | float] | None = None
    next_node_id: str | None = None
    transition: Transition | None = None


class DialogueNode(_BaseNode):
    type: Literal["dialogue"] = "dialogue"


class NarrationNode(_BaseNode):
    type: Literal["narration"] = "narration"


class EndNode(_BaseNode):
    type: Literal["end"] = "end"


class ChoiceNode(_BaseNode):
    type: Literal["choice"] = "choice"
    choices: list[Choice] = Field(default_factory=list)


class InputNode(_BaseNode):
    type: Literal["input"] = "input"
    input_config: InputConfig


class LLMInputNode(_BaseNode):
    type: Literal["llm_input"] = "llm_input"
    llm_config: LLMConfig


Node = Annotated[
    Union[DialogueNode, NarrationNode, EndNode, ChoiceNode, InputNode, LLMInputNode],
    Field(discriminator="type"),
]

NodeType = Literal["dialogue", "narration", "end", "choice", "input", "llm_input"]


class Scene(_Model):
    id: str
    name: str = ""
    start_node_id: str
    nodes: list[Node] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


# ---------------------------------------------------------------------------
# Story document
# ---------------------------------------------------------------------------

class StorySettings(_Model):
    ask_for_name: bool = True
    name_input_title: str | None = None
    name_input_prompt: str = "Please enter your name:"
    name_input_placeholder: str = "Your name..."
    name_min_length: int = 1
    name_max_length: int = 20
    default_player_name: str = ""
    default_bgm: str | None = None
    click_sfx: str | None = None
    score_variable: str = "score"


class Story(_Model):
    """The immutable script, loaded once per playthrough.

    References between nodes are not checked here; a dangling id surfaces
    at runtime as a NodeNotFoundError.
    """

    title: str
    author: str | None = None
    version: str | None = None
    characters: list[Character] = Field(default_factory=list)
    backgrounds: list[Background] = Field(default_factory=list)
    scenes: list[Scene] = Field(default_factory=list)
    start_scene_id: str
    variables: Variables = Field(default_factory=dict)
    settings: StorySettings = Field(default_factory=StorySettings)

    def get_scene(self, scene_id: str) -> Scene | None:
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        return None

    def get_node(self, scene_id: str, node_id: str) -> Node | None:
        scene = self.get_scene(scene_id)
        if scene is None:
            return None
        return scene.get_node(node_id)

    def get_character(self, character_id: str) -> Character | None:
        for character in self.characters:
            if character.id == character_id:
                return character
        return None

    def get_background(self, background_id: str) -> Background | None:
        for bg in self.backgrounds:
            if bg.id == background_id:
                return bg
        return None


# ---------------------------------------------------------------------------
# Playthrough state
# ---------------------------------------------------------------------------

class HistoryEntry(_Model):
    scene_id: str
    node_id: str
    choice_id: str | None = None


class FeedbackEntry(_Model):
    """One graded llm_input submission. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    scene_id: str
    user_input: str
    evaluation: str
    rating: Rating
    context: str


class GameState(_Model):
    """The only mutable entity of a playthrough.

    Engine transitions never modify an instance in place; each one returns a
    new GameState built with model_copy(update=...).
    """

    current_scene_id: str
    current_node_id: str
    variables: Variables = Field(default_factory=dict)
    history: list[HistoryEntry] = Field(default_factory=list)
    user_name: str = ""
    game_started: bool = False
    feedback: list[FeedbackEntry] = Field(default_factory=list)
    show_feedback_screen: bool = False


# ---------------------------------------------------------------------------
# External-service results
# ---------------------------------------------------------------------------

class GradingResult(_Model):
    character_response: str
    emotion: str
    evaluation: str
    rating: Rating
    attempts: int
    user_input: str = ""
    raw: str = ""
    error: str | None = None  # set only on the fallback result


class Recommendations(_Model):
    overall_assessment: str
    strengths: list[str]
    areas_for_improvement: list[str]
    tips: list[str]
    encouragement: str
