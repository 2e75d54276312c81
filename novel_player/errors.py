"""Exceptions raised by the story interpreter.

A raised error always leaves the Engine's GameState exactly as it was
before the attempted action.
"""


class NovelError(Exception):
    """Base class for interpreter errors."""


class NodeNotFoundError(NovelError):
    """The current (scene, node) position does not exist in the story.

    Terminal for the current render pass: the playthrough cannot continue
    from here.
    """

    def __init__(self, scene_id: str, node_id: str) -> None:
        super().__init__(f"Node not found: {scene_id}/{node_id}")
        self.scene_id = scene_id
        self.node_id = node_id


class InputValidationError(NovelError):
    """Player text was rejected; the node stays active and nothing changes."""


class InvalidActionError(NovelError):
    """The action does not apply to the current node type."""


class GradingInProgressError(NovelError):
    """A graded submission is already waiting for its result."""


class LLMConfigError(NovelError):
    """The LLM connection is missing credentials or is not configured."""
