"""Live engines, one per story slug, backed by playthrough files.

An Engine stays in memory between requests so a pending grading request
is visible to every later request: while one is in flight, further
submissions for that story are refused instead of racing it. Every
completed action is written through to data/playthroughs/<slug>.json.
"""

import logging
import os

from pydantic import ValidationError

from backend import storage
from novel_player.audio import PlaybackController
from novel_player.engine import Engine
from novel_player.feedback import Recommender
from novel_player.grading import Grader
from novel_player.llm import HttpLLM
from novel_player.models import GameState, Story

logger = logging.getLogger(__name__)

_engines: dict[str, Engine] = {}


def reset_sessions() -> None:
    """Forget all in-memory engines (tests, storage re-init)."""
    _engines.clear()


def drop_session(slug: str) -> None:
    _engines.pop(slug, None)


# ── LLM wiring ───────────────────────────────────────────


def build_llm(config: dict) -> HttpLLM:
    """HttpLLM from config; the GEMINI_API_KEY env var fills an empty key."""
    conn = config["llm_connection"]
    return HttpLLM(
        provider_url=conn["provider_url"],
        api_key=conn.get("api_key") or os.getenv("GEMINI_API_KEY", ""),
        provider_format=conn.get("provider_format", "gemini"),
        model=conn.get("model", ""),
        timeout=conn.get("timeout", 120),
    )


def build_grader(config: dict) -> Grader:
    grading = config["grading"]
    return Grader(
        build_llm(config),
        max_attempts=grading.get("max_attempts", 3),
        timeout=grading.get("attempt_timeout", 30),
    )


def build_recommender(config: dict) -> Recommender:
    return Recommender(build_llm(config))


# ── Engines ──────────────────────────────────────────────


def load_story(slug: str) -> Story | None:
    document = storage.get_story(slug)
    if document is None:
        return None
    return Story.model_validate(document)


def _notify_end(slug: str):
    def _on_game_end(state: GameState) -> None:
        logger.info("Playthrough of %s ended for %s", slug, state.user_name or "Player")
    return _on_game_end


def _playback_from_config() -> PlaybackController:
    audio = storage.get_config()["audio"]
    return PlaybackController(bgm_volume=audio["bgm_volume"], sfx_volume=audio["sfx_volume"])


def new_engine(slug: str) -> Engine | None:
    """Start a fresh playthrough of a story, replacing any live one."""
    story = load_story(slug)
    if story is None:
        return None
    engine = Engine(story, playback=_playback_from_config(), on_game_end=_notify_end(slug))
    _engines[slug] = engine
    persist(slug, engine)
    logger.info("New playthrough of %s", slug)
    return engine


def get_engine(slug: str) -> Engine | None:
    """The live engine for a story, restored from disk if needed."""
    engine = _engines.get(slug)
    if engine is not None:
        return engine
    record = storage.get_playthrough(slug)
    if record is None:
        return None
    story = load_story(slug)
    if story is None:
        return None
    try:
        state = GameState.model_validate(record["state"])
    except (KeyError, ValidationError) as e:
        logger.warning("Playthrough for %s is unreadable, ignoring it: %s", slug, e)
        return None
    engine = Engine(
        story,
        state=state,
        playback=PlaybackController.from_dict(record.get("playback") or {}),
        on_game_end=_notify_end(slug),
        background=record.get("background"),
    )
    _engines[slug] = engine
    return engine


def persist(slug: str, engine: Engine) -> None:
    storage.save_playthrough(
        slug,
        engine.snapshot(),
        playback=engine.playback.to_dict(),
        background=engine.background,
    )
