"""Playthrough endpoints: every player action on a story's live engine.

Each action returns {"view", "effects", "state"}:
  view     what to draw for the (new) current node
  effects  background/audio changes from entering it
  state    the full GameState snapshot

Error mapping:
  422  input failed validation (node stays active, nothing changed)
  409  action does not apply here, a graded response is pending,
       or the story cannot continue (node not found)
  503  the LLM connection is not configured
  404  unknown story / no playthrough / empty save slot
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from backend import sessions, storage
from novel_player.engine import Engine
from novel_player.errors import (
    InputValidationError,
    LLMConfigError,
    NodeNotFoundError,
    NovelError,
)
from novel_player.feedback import summarize
from novel_player.variables import get_number

from .models import ChoiceBody, FeedbackScreenBody, NameBody, TextBody

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: NovelError) -> HTTPException:
    if isinstance(e, InputValidationError):
        return HTTPException(422, str(e))
    if isinstance(e, NodeNotFoundError):
        return HTTPException(409, f"Cannot continue: {e}")
    if isinstance(e, LLMConfigError):
        return HTTPException(503, str(e))
    return HTTPException(409, str(e))


def _engine(slug: str) -> Engine:
    if storage.get_story(slug) is None:
        raise HTTPException(404, "Story not found")
    engine = sessions.get_engine(slug)
    if engine is None:
        raise HTTPException(404, "No playthrough — start one first")
    return engine


def _response(slug: str, engine: Engine) -> dict[str, Any]:
    sessions.persist(slug, engine)
    try:
        view = engine.view()
    except NovelError as e:
        raise _http_error(e)
    return {
        "view": view.model_dump(),
        "effects": engine.effects.model_dump(),
        "state": engine.snapshot(),
    }


@router.post("/stories/{slug}/play")
async def new_playthrough(slug: str):
    """Start a fresh playthrough, replacing the live one."""
    engine = sessions.new_engine(slug)
    if engine is None:
        raise HTTPException(404, "Story not found")
    return _response(slug, engine)


@router.get("/stories/{slug}/play")
async def get_playthrough(slug: str):
    """Current view of the live playthrough."""
    engine = _engine(slug)
    return _response(slug, engine)


@router.post("/stories/{slug}/play/name")
async def enter_name(slug: str, body: NameBody):
    """Submit the player name and start the game."""
    engine = _engine(slug)
    try:
        engine.start(body.name)
    except NovelError as e:
        raise _http_error(e)
    return _response(slug, engine)


@router.post("/stories/{slug}/play/advance")
async def advance(slug: str):
    """Acknowledge a dialogue/narration node (click, Enter, Space)."""
    engine = _engine(slug)
    try:
        engine.advance()
    except NovelError as e:
        raise _http_error(e)
    return _response(slug, engine)


@router.post("/stories/{slug}/play/choice")
async def choose(slug: str, body: ChoiceBody):
    """Select one of the available choices."""
    engine = _engine(slug)
    try:
        engine.choose(body.choice_id)
    except NovelError as e:
        raise _http_error(e)
    return _response(slug, engine)


@router.post("/stories/{slug}/play/input")
async def submit_input(slug: str, body: TextBody):
    """Submit free text to an input node."""
    engine = _engine(slug)
    try:
        engine.submit(body.value)
    except NovelError as e:
        raise _http_error(e)
    return _response(slug, engine)


@router.post("/stories/{slug}/play/respond")
async def respond(slug: str, body: TextBody):
    """Submit a response to an llm_input node and wait for its grade."""
    engine = _engine(slug)
    grader = sessions.build_grader(storage.get_config())
    try:
        result = await engine.respond(body.value, grader)
    except NovelError as e:
        raise _http_error(e)
    payload = _response(slug, engine)
    payload["grading"] = result.model_dump(by_alias=True)
    return payload


@router.post("/stories/{slug}/play/feedback")
async def feedback_screen(slug: str, body: FeedbackScreenBody):
    """Show or hide the feedback summary screen."""
    engine = _engine(slug)
    engine.show_feedback(body.visible)
    return _response(slug, engine)


@router.get("/stories/{slug}/play/feedback")
async def feedback_summary(slug: str):
    """Counts by rating plus every graded interaction so far."""
    engine = _engine(slug)
    return summarize(engine.state.feedback).model_dump(by_alias=True)


@router.post("/stories/{slug}/play/feedback/recommendations")
async def recommendations(slug: str):
    """Personalised end-of-game recommendations from the LLM."""
    engine = _engine(slug)
    state = engine.state
    score_var = engine.story.settings.score_variable
    recommender = sessions.build_recommender(storage.get_config())
    try:
        result = await recommender.recommend(
            state.feedback,
            state.user_name or "Player",
            get_number(state.variables, score_var),
            title=engine.story.title,
        )
    except NovelError as e:
        raise _http_error(e)
    return result.model_dump(by_alias=True)


@router.post("/stories/{slug}/play/save")
async def save_game(slug: str):
    """Write the playthrough to the single save slot (last write wins)."""
    engine = _engine(slug)
    snapshot = storage.save_snapshot(slug, engine.snapshot())
    logger.info("Saved %s at %s/%s", slug, engine.state.current_scene_id, engine.state.current_node_id)
    return {"ok": True, "saved_at": snapshot["saved_at"]}


@router.post("/stories/{slug}/play/load")
async def load_game(slug: str):
    """Replace the playthrough wholesale with the saved snapshot."""
    snapshot = storage.get_snapshot()
    if snapshot is None:
        raise HTTPException(404, "No save data found")
    if snapshot.get("story") != slug:
        raise HTTPException(409, f"The save slot belongs to story {snapshot.get('story')!r}")
    engine = sessions.get_engine(slug) or sessions.new_engine(slug)
    if engine is None:
        raise HTTPException(404, "Story not found")
    try:
        engine.load(snapshot.get("state") or {})
    except ValidationError as e:
        logger.warning("Save slot is unreadable: %s", e)
        raise HTTPException(422, "Save data is corrupt")
    return _response(slug, engine)


@router.post("/stories/{slug}/play/restart")
async def restart(slug: str):
    """Start over from the beginning; clears the save slot."""
    engine = _engine(slug)
    engine.restart()
    storage.delete_snapshot()
    return _response(slug, engine)
