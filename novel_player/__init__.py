"""Visual novel story interpreter.

Walks a branching story graph of scenes and nodes, tracking variables,
history and graded-feedback across a playthrough. See engine.py for the
node state machine.
"""

from .engine import Engine, NodeView, new_game  # noqa: F401
from .errors import (  # noqa: F401
    GradingInProgressError,
    InputValidationError,
    InvalidActionError,
    LLMConfigError,
    NodeNotFoundError,
    NovelError,
)
from .models import GameState, Story  # noqa: F401
