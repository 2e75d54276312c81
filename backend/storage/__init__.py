"""File-based JSON storage.

Data layout:
  data/
    stories/             Uploaded story documents (<slug>.json, camelCase as authored)
    playthroughs/        Live playthrough per story (<slug>.json: state + playback)
    saves/
      visual_novel_save.json   The single global save slot
    config.json          App settings (LLM connection, grading policy, audio)
  presets/
    stories/             Built-in read-only stories (merged at read time)

Slug rules: title → Unicode normalize → strip non-ASCII → lowercase →
replace non-alnum runs with hyphen → strip leading/trailing hyphens.

Preset merging: list_stories() and get_story() merge preset + user data;
user data wins on slug collision.

Config: get_config() returns defaults merged with stored values.
update_config() merges each section key-by-key.
"""

# Re-export all public symbols so `from backend import storage` keeps working.

from .core import (  # noqa: F401
    data_dir,
    init_storage,
    playthroughs_dir,
    preset_stories_dir,
    presets_dir,
    saves_dir,
    slugify,
    stories_dir,
)

from .stories import (  # noqa: F401
    delete_story,
    get_story,
    list_stories,
    save_story,
)

from .playthroughs import (  # noqa: F401
    delete_playthrough,
    get_playthrough,
    save_playthrough,
)

from .saves import (  # noqa: F401
    SAVE_KEY,
    delete_snapshot,
    get_snapshot,
    save_snapshot,
)

from .config import (  # noqa: F401
    get_config,
    update_config,
)
