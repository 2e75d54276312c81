"""The single global save slot.

One well-known key, last write wins. The snapshot is the entire GameState
plus the slug of the story it belongs to. A missing slot is normal and
reads as None.
"""

import json
from datetime import datetime, timezone
from typing import Any

from .core import saves_dir

SAVE_KEY = "visual_novel_save"


def _slot_path():
    return saves_dir() / f"{SAVE_KEY}.json"


def get_snapshot() -> dict[str, Any] | None:
    path = _slot_path()
    if not path.is_file():
        return None
    return json.loads(path.read_text())


def save_snapshot(story_slug: str, state: dict[str, Any]) -> dict[str, Any]:
    snapshot = {
        "story": story_slug,
        "state": state,
        "saved_at": datetime.now(timezone.utc).isoformat(),
    }
    _slot_path().write_text(json.dumps(snapshot, indent=2))
    return snapshot


def delete_snapshot() -> bool:
    path = _slot_path()
    if not path.is_file():
        return False
    path.unlink()
    return True
