"""Story documents (merged presets + user uploads).

Preset stories ship read-only under presets/stories/. Uploaded stories
live in data/stories/ and win on slug collision; deleting an upload
reveals the preset again.
"""

import json
from typing import Any

from .core import preset_stories_dir, slugify, stories_dir


def _summary(data: dict[str, Any], slug: str, source: str) -> dict[str, Any]:
    return {
        "slug": slug,
        "title": data.get("title", slug),
        "author": data.get("author"),
        "version": data.get("version"),
        "source": source,
    }


def list_stories() -> list[dict[str, Any]]:
    by_slug: dict[str, dict[str, Any]] = {}
    # Presets first (lower priority)
    if preset_stories_dir().is_dir():
        for path in sorted(preset_stories_dir().glob("*.json")):
            by_slug[path.stem] = _summary(json.loads(path.read_text()), path.stem, "preset")
    # User stories override
    for path in sorted(stories_dir().glob("*.json")):
        by_slug[path.stem] = _summary(json.loads(path.read_text()), path.stem, "user")
    return list(by_slug.values())


def get_story(slug: str) -> dict[str, Any] | None:
    """Raw story document (camelCase, as authored), or None."""
    user_path = stories_dir() / f"{slug}.json"
    if user_path.is_file():
        return json.loads(user_path.read_text())
    preset_path = preset_stories_dir() / f"{slug}.json"
    if preset_path.is_file():
        return json.loads(preset_path.read_text())
    return None


def save_story(document: dict[str, Any], slug: str | None = None) -> str:
    """Store a story document; returns its slug (derived from the title if omitted)."""
    slug = slug or slugify(document.get("title", ""))
    (stories_dir() / f"{slug}.json").write_text(json.dumps(document, indent=2))
    return slug


def delete_story(slug: str) -> bool:
    path = stories_dir() / f"{slug}.json"
    if not path.is_file():
        return False
    path.unlink()
    return True
