"""Tests for live engine sessions and LLM wiring from config."""

from backend import sessions, storage

from tests.helpers import sample_story

SLUG = "the-quiet-library"


def test_build_llm_uses_env_key_when_config_empty(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    llm = sessions.build_llm(storage.get_config())
    assert llm._api_key == "from-env"


def test_build_llm_prefers_config_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    config = storage.update_config({"llm_connection": {"api_key": "from-config"}})
    assert sessions.build_llm(config)._api_key == "from-config"


def test_build_grader_uses_grading_policy():
    config = storage.update_config({"grading": {"max_attempts": 5, "attempt_timeout": 2}})
    grader = sessions.build_grader(config)
    assert grader._max_attempts == 5
    assert grader._timeout == 2


def test_new_engine_persists_playthrough():
    engine = sessions.new_engine(SLUG)
    assert engine is not None
    record = storage.get_playthrough(SLUG)
    assert record["state"]["currentSceneId"] == "library"


def test_new_engine_unknown_story():
    assert sessions.new_engine("nope") is None


def test_get_engine_restores_playback_and_background():
    engine = sessions.new_engine(SLUG)
    engine.start("Sam")
    sessions.persist(SLUG, engine)
    sessions.reset_sessions()

    restored = sessions.get_engine(SLUG)
    assert restored is not engine
    assert restored.state.user_name == "Sam"
    assert restored.background == "/backgrounds/library.jpg"
    assert restored.playback.current_track() == "/audio/library.mp3"


def test_get_engine_ignores_unreadable_playthrough():
    storage.save_playthrough(SLUG, {"currentSceneId": 5})
    assert sessions.get_engine(SLUG) is None


def test_playback_volumes_come_from_config():
    storage.update_config({"audio": {"bgm_volume": 0.8}})
    engine = sessions.new_engine(SLUG)
    assert engine.playback.bgm_volume == 0.8


def test_restored_playthrough_at_name_gate_enters_start_node():
    story = sample_story(ask_for_name=True)
    slug = storage.save_story(story.model_dump(mode="json", by_alias=True), slug="sample")
    sessions.new_engine(slug)
    sessions.reset_sessions()

    restored = sessions.get_engine(slug)
    restored.start("Sam")
    assert restored.state.variables["score"] == 3
    assert restored.background == "/bg/cafe.jpg"
    assert restored.playback.current_track() == "/audio/cafe.mp3"
