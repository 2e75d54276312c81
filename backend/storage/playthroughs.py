"""Live playthrough per story, written after every player action.

File: data/playthroughs/<slug>.json
  {"state": <GameState by alias>, "playback": {...}, "background": "...",
   "updated_at": "..."}

The playback controller's state and the sticky background are kept beside
the GameState, not inside it.
"""

import json
from datetime import datetime, timezone
from typing import Any

from .core import playthroughs_dir


def get_playthrough(slug: str) -> dict[str, Any] | None:
    path = playthroughs_dir() / f"{slug}.json"
    if not path.is_file():
        return None
    return json.loads(path.read_text())


def save_playthrough(
    slug: str,
    state: dict[str, Any],
    playback: dict[str, Any] | None = None,
    background: str | None = None,
) -> dict[str, Any]:
    record = {
        "state": state,
        "playback": playback or {},
        "background": background,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    (playthroughs_dir() / f"{slug}.json").write_text(json.dumps(record, indent=2))
    return record


def delete_playthrough(slug: str) -> bool:
    path = playthroughs_dir() / f"{slug}.json"
    if not path.is_file():
        return False
    path.unlink()
    return True
