"""Tests for config storage: defaults and per-section merge."""

import json

from backend import storage


def test_get_config_defaults():
    config = storage.get_config()
    assert config["llm_connection"]["provider_format"] == "gemini"
    assert config["llm_connection"]["api_key"] == ""
    assert config["grading"] == {"max_attempts": 3, "attempt_timeout": 30}
    assert config["audio"] == {"bgm_volume": 0.3, "sfx_volume": 0.5}


def test_update_config_merges_section_keys():
    result = storage.update_config({"llm_connection": {"api_key": "k"}})
    assert result["llm_connection"]["api_key"] == "k"
    assert result["llm_connection"]["model"] == "gemini-2.5-flash"

    reloaded = storage.get_config()
    assert reloaded["llm_connection"]["api_key"] == "k"


def test_update_config_ignores_unknown_sections():
    result = storage.update_config({"theme": {"dark": True}, "grading": "not a dict"})
    assert "theme" not in result
    assert result["grading"]["max_attempts"] == 3


def test_defaults_are_not_shared_between_reads():
    config = storage.get_config()
    config["audio"]["bgm_volume"] = 1.0
    assert storage.get_config()["audio"]["bgm_volume"] == 0.3


def test_stored_partial_file_is_merged_with_defaults():
    path = storage.data_dir() / "config.json"
    path.write_text(json.dumps({"grading": {"max_attempts": 5}}))
    config = storage.get_config()
    assert config["grading"] == {"max_attempts": 5, "attempt_timeout": 30}
    assert config["audio"]["sfx_volume"] == 0.5
