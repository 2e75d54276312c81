"""FastMCP server exposing a story playthrough as MCP tools.

Lets an agent playtest a story through the same engine the HTTP API uses.

Tools:
  - start_story(slug, player_name)  — fresh playthrough, past the name gate
  - view_node(slug)                 — what the player currently sees
  - advance(slug)                   — acknowledge a dialogue/narration node
  - choose(slug, choice_id)         — select an available choice
  - submit_text(slug, value)        — answer an input node

Graded (llm_input) nodes are not exposed: they need the LLM connection and
are played through the HTTP API.

Usage:
    uv run python -m backend.mcp_server
"""

from mcp.server.fastmcp import FastMCP

from backend import sessions
from novel_player.engine import Engine
from novel_player.errors import NovelError

mcp = FastMCP("novel-player")


def _engine(slug: str) -> Engine:
    engine = sessions.get_engine(slug)
    if engine is None:
        raise ValueError(f"No playthrough for story {slug!r} — call start_story first")
    return engine


def _act(slug: str, action) -> dict:
    engine = _engine(slug)
    try:
        action(engine)
        view = engine.view()
    except NovelError as e:
        return {"error": str(e)}
    sessions.persist(slug, engine)
    return view.model_dump(exclude_none=True)


@mcp.tool()
def start_story(slug: str, player_name: str = "Player") -> dict:
    """Start a fresh playthrough of a story and return the first node."""
    engine = sessions.new_engine(slug)
    if engine is None:
        return {"error": f"Story {slug!r} not found"}
    return _act(slug, lambda e: e.start(player_name) if not e.state.game_started else None)


@mcp.tool()
def view_node(slug: str) -> dict:
    """Return the current node as the player sees it."""
    return _act(slug, lambda e: None)


@mcp.tool()
def advance(slug: str) -> dict:
    """Acknowledge the current dialogue or narration node."""
    return _act(slug, lambda e: e.advance())


@mcp.tool()
def choose(slug: str, choice_id: str) -> dict:
    """Select one of the choices listed by view_node."""
    return _act(slug, lambda e: e.choose(choice_id))


@mcp.tool()
def submit_text(slug: str, value: str) -> dict:
    """Answer a free-text input node."""
    return _act(slug, lambda e: e.submit(value))


if __name__ == "__main__":
    import os
    from pathlib import Path

    from backend import storage

    data_path = Path(os.getenv("DATA_DIR", Path(__file__).parent.parent / "data"))
    storage.init_storage(data_path)
    mcp.run()
