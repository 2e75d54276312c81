"""Global app configuration (LLM connection, grading policy, audio defaults)."""

import json
from pathlib import Path
from typing import Any

from .core import data_dir

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm_connection": {
        "provider_url": "https://generativelanguage.googleapis.com",
        "provider_format": "gemini",
        "api_key": "",
        "model": "gemini-2.5-flash",
        "timeout": 120,
    },
    "grading": {
        "max_attempts": 3,
        "attempt_timeout": 30,
    },
    "audio": {
        "bgm_volume": 0.3,
        "sfx_volume": 0.5,
    },
}

# Sections merged key-by-key on update; anything else is rejected silently.
_SECTIONS = ("llm_connection", "grading", "audio")


def _config_path() -> Path:
    return data_dir() / "config.json"


def _defaults() -> dict[str, Any]:
    return json.loads(json.dumps(_CONFIG_DEFAULTS))


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = _defaults()
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        for section in _SECTIONS:
            vals = stored.get(section)
            if isinstance(vals, dict):
                config[section].update(vals)
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config."""
    config = get_config()
    for section in _SECTIONS:
        vals = fields.get(section)
        if isinstance(vals, dict):
            config[section].update(vals)
    _config_path().write_text(json.dumps(config, indent=2))
    return config
