"""Navigation resolver.

A target id is either local ("node_5", same scene) or scene-qualified
("scene_2/node_1"). Node ids are unique only within their scene, so a
cross-scene jump must name the scene. Resolution is optimistic: nothing
checks that the target exists until the engine tries to enter it.
"""

from __future__ import annotations

from typing import Any, NamedTuple

from .models import GameState, HistoryEntry

SCENE_SEPARATOR = "/"


class Position(NamedTuple):
    scene_id: str
    node_id: str


def resolve(target_id: str, current_scene_id: str) -> Position:
    if SCENE_SEPARATOR in target_id:
        # only the first two segments count; "a/b/c" targets a/b
        parts = target_id.split(SCENE_SEPARATOR)
        return Position(parts[0], parts[1])
    return Position(current_scene_id, target_id)


def record_history(state: GameState, choice_id: str | None = None) -> list[HistoryEntry]:
    """History with the pre-transition position appended."""
    entry = HistoryEntry(
        scene_id=state.current_scene_id,
        node_id=state.current_node_id,
        choice_id=choice_id,
    )
    return [*state.history, entry]


def navigate(
    state: GameState,
    target_id: str | None,
    choice_id: str | None = None,
    **updates: Any,
) -> GameState:
    """Build the next state in one step: field updates, history, position.

    With no target only `updates` are applied and the position is kept;
    no history entry is recorded since nothing moved.
    """
    if target_id:
        pos = resolve(target_id, state.current_scene_id)
        updates.update(
            current_scene_id=pos.scene_id,
            current_node_id=pos.node_id,
            history=record_history(state, choice_id),
        )
    return state.model_copy(update=updates)
