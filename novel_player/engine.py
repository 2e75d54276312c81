"""Node state machine — the story interpreter.

Exactly one node is current at a time. Pure transition functions take the
story and the current GameState and return a new GameState; they never
modify their input, so a raised error leaves the caller's state intact.
The Engine class holds the live state and routes every player action
through those functions.

Node entry (once per arrival, whatever the type):
  1. background — set when the node names one, otherwise the previous one
     stays (backgrounds are sticky);
  2. audio — bgm through the playback controller's dedup rule, sfx always;
  3. node set_variables, then add_variables.

Completion by type:
  dialogue / narration  acknowledge → next_node_id
  end                   terminal; acknowledge is a no-op; host is notified
  choice                select one available choice → its own set/add,
                        history with choice id, choice.next_node_id
  input                 validated text → variable_name, next_node_id
  llm_input             validated text → grader → four variables, rating
                        points, one FeedbackEntry, next_node_id

Every completion builds the whole next state (variables, feedback, history,
position) in a single model_copy, so no observer ever sees a partial update.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, Field

from .audio import AudioCommand, PlaybackController
from .errors import (
    GradingInProgressError,
    InputValidationError,
    InvalidActionError,
    NodeNotFoundError,
)
from .grading import Grader
from .models import (
    ChoiceNode,
    EndNode,
    FeedbackEntry,
    GameState,
    GradingResult,
    InputNode,
    LLMInputNode,
    Node,
    Story,
)
from .navigation import Position, navigate
from .variables import apply_mutations, available_choices, interpolate

logger = logging.getLogger(__name__)

ACKNOWLEDGEABLE = ("dialogue", "narration", "end")
INTERACTIVE = ("choice", "input", "llm_input")

DEFAULT_INPUT_PROMPT = "Enter your response:"
DEFAULT_FEEDBACK_CONTEXT = "Interaction"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ---------------------------------------------------------------------------
# Views and effects returned to the presentation layer
# ---------------------------------------------------------------------------

class EntryEffects(BaseModel):
    """What changed on screen/speakers when the current node was entered."""

    background: str | None = None
    background_changed: bool = False
    transition: str | None = None
    audio: list[AudioCommand] = Field(default_factory=list)
    game_ended: bool = False


class CharacterView(BaseModel):
    character_id: str
    display_name: str
    expression: str | None
    sprite: str | None
    position: str
    scale: float | None = None
    offset_x: float | None = None
    offset_y: float | None = None
    is_active: bool = False


class ChoiceView(BaseModel):
    id: str
    text: str


class InputView(BaseModel):
    kind: Literal["input", "llm_input"]
    placeholder: str
    min_length: int
    max_length: int
    input_type: str = "text"
    pending: bool = False


class NameEntryView(BaseModel):
    title: str
    prompt: str
    placeholder: str
    min_length: int
    max_length: int


class NodeView(BaseModel):
    screen: Literal["name_entry", "node"]
    scene_id: str
    node_id: str
    type: str | None = None
    text: str | None = None
    speaker: str | None = None
    name_color: str | None = None
    is_narration: bool = False
    background: str | None = None
    transition: str | None = None
    characters: list[CharacterView] = Field(default_factory=list)
    choices: list[ChoiceView] = Field(default_factory=list)
    input: InputView | None = None
    name_entry: NameEntryView | None = None
    is_terminal: bool = False
    awaiting_input: bool = False
    show_feedback_screen: bool = False


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------

def new_game(story: Story) -> GameState:
    start_scene = story.get_scene(story.start_scene_id)
    settings = story.settings
    return GameState(
        current_scene_id=story.start_scene_id,
        current_node_id=start_scene.start_node_id if start_scene else "",
        variables=dict(story.variables),
        history=[],
        user_name=settings.default_player_name,
        game_started=not settings.ask_for_name,
        feedback=[],
        show_feedback_screen=False,
    )


def current_node(story: Story, state: GameState) -> Node:
    node = story.get_node(state.current_scene_id, state.current_node_id)
    if node is None:
        raise NodeNotFoundError(state.current_scene_id, state.current_node_id)
    return node


def _require_started(state: GameState) -> None:
    if not state.game_started:
        raise InvalidActionError("The game has not started yet")


def validate_text(
    value: str,
    min_length: int,
    max_length: int,
    pattern: str | None = None,
    message: str = "Invalid input",
    input_type: str = "text",
) -> str:
    """Return the trimmed value, or raise InputValidationError."""
    trimmed = value.strip()
    if len(trimmed) < min_length:
        plural = "s" if min_length > 1 else ""
        raise InputValidationError(f"Please enter at least {min_length} character{plural}")
    if len(trimmed) > max_length:
        raise InputValidationError(f"Please enter {max_length} characters or less")
    if input_type == "number":
        try:
            number = float(trimmed)
        except ValueError:
            raise InputValidationError("Please enter a number") from None
        if math.isnan(number):
            raise InputValidationError("Please enter a number")
    elif input_type == "email" and not _EMAIL_RE.match(trimmed):
        raise InputValidationError("Please enter an email address")
    if pattern:
        try:
            matched = re.search(pattern, trimmed)
        except re.error as e:
            logger.warning("Invalid validation pattern %r ignored: %s", pattern, e)
        else:
            if not matched:
                raise InputValidationError(message)
    return trimmed


def start_game(story: Story, state: GameState, name: str) -> GameState:
    """Leave the name-entry gate with a validated player name."""
    settings = story.settings
    trimmed = validate_text(name, settings.name_min_length, settings.name_max_length)
    return state.model_copy(update={"user_name": trimmed, "game_started": True})


def resolve_background(story: Story, node: Node, previous: str | None) -> str | None:
    if not node.background:
        return previous
    bg = story.get_background(node.background)
    if bg is None:
        logger.warning("Unknown background %r on node %s — keeping previous", node.background, node.id)
        return previous
    return bg.src


def enter_node(
    story: Story,
    state: GameState,
    playback: PlaybackController,
    background: str | None = None,
) -> tuple[GameState, EntryEffects]:
    """Run the common entry behaviour of the current node."""
    node = current_node(story, state)

    new_background = resolve_background(story, node, background)
    effects = EntryEffects(
        background=new_background,
        background_changed=new_background != background,
        transition=node.transition,
        game_ended=isinstance(node, EndNode),
    )
    command = playback.play(node.audio)
    if command is not None:
        effects.audio.append(command)

    if node.set_variables or node.add_variables:
        variables = apply_mutations(state.variables, node.set_variables, node.add_variables)
        state = state.model_copy(update={"variables": variables})
    return state, effects


def acknowledge(story: Story, state: GameState) -> GameState:
    """Click / Enter / Space on a non-interactive node."""
    _require_started(state)
    node = current_node(story, state)
    if node.type not in ACKNOWLEDGEABLE:
        raise InvalidActionError(f"A {node.type} node cannot be acknowledged")
    if isinstance(node, EndNode):
        return state
    return navigate(state, node.next_node_id)


def select_choice(story: Story, state: GameState, choice_id: str) -> GameState:
    _require_started(state)
    node = current_node(story, state)
    if not isinstance(node, ChoiceNode):
        raise InvalidActionError(f"A {node.type} node has no choices")
    for choice in available_choices(node.choices, state.variables):
        if choice.id == choice_id:
            break
    else:
        raise InvalidActionError(f"Choice {choice_id!r} is not available")

    variables = apply_mutations(state.variables, choice.set_variables, choice.add_variables)
    return navigate(state, choice.next_node_id, choice_id=choice.id, variables=variables)


def submit_input(story: Story, state: GameState, value: str) -> GameState:
    _require_started(state)
    node = current_node(story, state)
    if not isinstance(node, InputNode):
        raise InvalidActionError(f"A {node.type} node does not take text input")
    config = node.input_config
    trimmed = validate_text(
        value,
        config.min_length,
        config.max_length,
        pattern=config.validation,
        message=config.validation_message,
        input_type=config.input_type,
    )
    variables = {**state.variables, config.variable_name: trimmed}
    return navigate(state, node.next_node_id, variables=variables)


def validate_llm_input(story: Story, state: GameState, value: str) -> tuple[LLMInputNode, str]:
    _require_started(state)
    node = current_node(story, state)
    if not isinstance(node, LLMInputNode):
        raise InvalidActionError(f"A {node.type} node does not take a graded response")
    config = node.llm_config
    return node, validate_text(value, config.min_length, config.max_length)


def apply_grading(story: Story, state: GameState, user_input: str, result: GradingResult) -> GameState:
    """Fold one grading result into the state as a single transition."""
    node = current_node(story, state)
    if not isinstance(node, LLMInputNode):
        raise InvalidActionError(f"A {node.type} node does not take a graded response")
    config = node.llm_config

    variables = {
        **state.variables,
        config.user_input_variable: user_input,
        config.character_response_variable: result.character_response,
        config.emotion_variable: result.emotion,
        config.evaluation_variable: result.evaluation,
    }
    rating = config.rating_config
    if rating is not None:
        points = rating.points_for(result.rating)
        variables = apply_mutations(variables, add_map={rating.variable_to_modify: points})
        logger.info(
            "rating %s: %+g points → %s = %s",
            result.rating, points, rating.variable_to_modify, variables[rating.variable_to_modify],
        )

    entry = FeedbackEntry(
        node_id=node.id,
        scene_id=state.current_scene_id,
        user_input=user_input,
        evaluation=result.evaluation,
        rating=result.rating,
        context=interpolate(node.text, state.variables, state.user_name) or DEFAULT_FEEDBACK_CONTEXT,
    )
    return navigate(
        state,
        node.next_node_id,
        variables=variables,
        feedback=[*state.feedback, entry],
    )


def set_feedback_screen(state: GameState, visible: bool) -> GameState:
    return state.model_copy(update={"show_feedback_screen": visible})


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _speaker(story: Story, node: Node, state: GameState) -> tuple[str | None, str | None]:
    character = story.get_character(node.character_id) if node.character_id else None
    color = character.name_color if character else None
    if node.speaker_name:
        return interpolate(node.speaker_name, state.variables, state.user_name), color
    if character:
        return character.display_name, color
    return None, None


def render(
    story: Story,
    state: GameState,
    background: str | None = None,
    pending: bool = False,
) -> NodeView:
    """Everything the presentation layer needs to draw the current node."""
    base = {
        "scene_id": state.current_scene_id,
        "node_id": state.current_node_id,
        "show_feedback_screen": state.show_feedback_screen,
    }
    if not state.game_started:
        settings = story.settings
        return NodeView(
            screen="name_entry",
            name_entry=NameEntryView(
                title=settings.name_input_title or story.title,
                prompt=settings.name_input_prompt,
                placeholder=settings.name_input_placeholder,
                min_length=settings.name_min_length,
                max_length=settings.name_max_length,
            ),
            **base,
        )

    node = current_node(story, state)

    def _i(text: str | None) -> str | None:
        return interpolate(text, state.variables, state.user_name)

    characters: list[CharacterView] = []
    for vc in node.visible_characters:
        character = story.get_character(vc.character_id)
        if character is None:
            continue
        expression = _i(vc.expression)
        characters.append(CharacterView(
            character_id=character.id,
            display_name=character.display_name,
            expression=expression or character.default_expression,
            sprite=character.sprite_for(expression),
            position=vc.position,
            scale=vc.scale if vc.scale is not None else character.scale,
            offset_x=vc.offset_x,
            offset_y=vc.offset_y,
            is_active=node.character_id == vc.character_id,
        ))

    view = NodeView(
        screen="node",
        type=node.type,
        background=resolve_background(story, node, background),
        transition=node.transition,
        characters=characters,
        is_terminal=isinstance(node, EndNode),
        awaiting_input=node.type in INTERACTIVE,
        **base,
    )

    if isinstance(node, ChoiceNode):
        view.text = _i(node.text) or ""
        view.choices = [
            ChoiceView(id=c.id, text=_i(c.text) or "")
            for c in available_choices(node.choices, state.variables)
        ]
    elif isinstance(node, InputNode):
        config = node.input_config
        view.text = _i(node.text) or DEFAULT_INPUT_PROMPT
        view.input = InputView(
            kind="input",
            placeholder=config.placeholder,
            min_length=config.min_length,
            max_length=config.max_length,
            input_type=config.input_type,
        )
    elif isinstance(node, LLMInputNode):
        config = node.llm_config
        view.text = _i(node.text) or DEFAULT_INPUT_PROMPT
        view.input = InputView(
            kind="llm_input",
            placeholder=config.placeholder,
            min_length=config.min_length,
            max_length=config.max_length,
            pending=pending,
        )
    else:
        view.text = _i(node.text)
        view.speaker, view.name_color = _speaker(story, node, state)
        view.is_narration = node.type in ("narration", "end")
    return view


# ---------------------------------------------------------------------------
# Engine — the state holder
# ---------------------------------------------------------------------------

class PendingGrade(BaseModel):
    """Identity of the node a grading request was issued for."""

    scene_id: str
    node_id: str
    history_len: int
    user_input: str


class Engine:
    """Holds one playthrough and routes player actions through transitions.

    The engine never lets presentation code touch `state` directly: every
    handler computes a complete next state first and then swaps it in.

    Args:
        story:        The story document.
        state:        A restored GameState; a fresh one when omitted.
        playback:     Playback controller (kept apart from GameState).
        on_game_end:  Called with the state each time an end node is entered.
    """

    def __init__(
        self,
        story: Story,
        state: GameState | None = None,
        playback: PlaybackController | None = None,
        on_game_end: Callable[[GameState], Any] | None = None,
        background: str | None = None,
    ) -> None:
        self.story = story
        self.playback = playback or PlaybackController()
        self.on_game_end = on_game_end
        self.background = background
        self.effects = EntryEffects(background=background)
        self._pending: PendingGrade | None = None
        self._entered: tuple[str, str, int] | None = None
        if state is None:
            self.state = new_game(story)
            self._enter()
        else:
            # A restored state already carries its node's entry mutations,
            # unless it is still waiting at the name gate.
            self.state = state
            self._entered = self._marker() if state.game_started else None

    # ── Entry bookkeeping ──

    def _marker(self) -> tuple[str, str, int]:
        s = self.state
        return (s.current_scene_id, s.current_node_id, len(s.history))

    def _mark_entered(self) -> None:
        self._entered = self._marker()

    def _enter(self) -> None:
        if not self.state.game_started or self._marker() == self._entered:
            return
        self._mark_entered()
        try:
            self.state, self.effects = enter_node(
                self.story, self.state, self.playback, self.background,
            )
        except NodeNotFoundError as e:
            logger.warning("Cannot continue: %s", e)
            self.effects = EntryEffects(background=self.background)
            return
        self.background = self.effects.background
        if self.effects.game_ended:
            logger.info("Reached end node %s/%s", self.state.current_scene_id, self.state.current_node_id)
            if self.on_game_end is not None:
                self.on_game_end(self.state)

    def _commit(self, state: GameState) -> GameState:
        self.state = state
        self._enter()
        return self.state

    def _require_idle(self) -> None:
        if self._pending is not None:
            raise GradingInProgressError("Waiting for the current response to be graded")

    # ── Queries ──

    @property
    def pending(self) -> PendingGrade | None:
        return self._pending

    @property
    def position(self) -> Position:
        return Position(self.state.current_scene_id, self.state.current_node_id)

    def node(self) -> Node:
        return current_node(self.story, self.state)

    def view(self) -> NodeView:
        return render(self.story, self.state, self.background, pending=self._pending is not None)

    def snapshot(self) -> dict[str, Any]:
        return self.state.model_dump(by_alias=True, mode="json")

    # ── Player actions ──

    def start(self, name: str) -> GameState:
        if self.state.game_started:
            raise InvalidActionError("The game has already started")
        state = start_game(self.story, self.state, name)
        audio: list[AudioCommand] = []
        if self.story.settings.default_bgm:
            command = self.playback.play_bgm(self.story.settings.default_bgm)
            if command is not None:
                audio.append(command)
        self._commit(state)
        self.effects.audio[:0] = audio
        logger.info("Game started for %s", state.user_name)
        return self.state

    def advance(self) -> GameState:
        self._require_idle()
        return self._commit(acknowledge(self.story, self.state))

    def choose(self, choice_id: str) -> GameState:
        self._require_idle()
        state = select_choice(self.story, self.state, choice_id)
        click = self.story.settings.click_sfx
        self._commit(state)
        if click:
            self.effects.audio.insert(0, self.playback.play_sfx(click))
        return self.state

    def submit(self, value: str) -> GameState:
        self._require_idle()
        return self._commit(submit_input(self.story, self.state, value))

    def begin_grading(self, value: str) -> PendingGrade:
        """Validate a graded submission and tag it with the current node."""
        self._require_idle()
        _, trimmed = validate_llm_input(self.story, self.state, value)
        scene_id, node_id, history_len = self._marker()
        self._pending = PendingGrade(
            scene_id=scene_id, node_id=node_id, history_len=history_len, user_input=trimmed,
        )
        return self._pending

    def finish_grading(self, token: PendingGrade, result: GradingResult) -> bool:
        """Apply a grading result; False if it was discarded as stale."""
        if token is not self._pending:
            logger.warning("Discarding grading result for %s/%s: not the pending request",
                           token.scene_id, token.node_id)
            return False
        self._pending = None
        if (token.scene_id, token.node_id, token.history_len) != self._marker():
            logger.warning("Discarding grading result for %s/%s: state has moved on",
                           token.scene_id, token.node_id)
            return False
        self._commit(apply_grading(self.story, self.state, token.user_input, result))
        return True

    def cancel_grading(self) -> None:
        self._pending = None

    async def respond(self, value: str, grader: Grader) -> GradingResult:
        """Validate, grade and apply a response to the current llm_input node."""
        token = self.begin_grading(value)
        node, _ = validate_llm_input(self.story, self.state, token.user_input)
        context = interpolate(node.llm_config.context, self.state.variables, self.state.user_name)
        try:
            result = await grader.grade(token.user_input, context or "", node.llm_config.allowed_emotions)
        except BaseException:
            if self._pending is token:
                self._pending = None
            raise
        self.finish_grading(token, result)
        return result

    def show_feedback(self, visible: bool = True) -> GameState:
        self.state = set_feedback_screen(self.state, visible)
        return self.state

    # ── Lifecycle ──

    def restart(self) -> GameState:
        self._pending = None
        stop = self.playback.stop()
        self.background = None
        self._entered = None
        self.state = new_game(self.story)
        self.effects = EntryEffects()
        self._enter()
        if stop is not None:
            self.effects.audio.insert(0, stop)
        logger.info("Playthrough restarted")
        return self.state

    def load(self, state: GameState | dict[str, Any]) -> GameState:
        """Replace the GameState wholesale with a restored snapshot."""
        if isinstance(state, dict):
            state = GameState.model_validate(state)
        self._pending = None
        self.state = state
        self._entered = self._marker() if state.game_started else None
        node = self.story.get_node(state.current_scene_id, state.current_node_id)
        if node is not None:
            self.background = resolve_background(self.story, node, None)
            command = self.playback.play(node.audio)
            self.effects = EntryEffects(
                background=self.background,
                background_changed=True,
                transition=node.transition,
                audio=[command] if command else [],
                game_ended=isinstance(node, EndNode),
            )
        logger.info("Loaded playthrough at %s/%s", state.current_scene_id, state.current_node_id)
        return self.state
