"""Action vocabulary, pricing helpers, selection and availability rules.

Handlers live in ``actions.catalog``, which is imported explicitly by the
engine.
"""

from actions.availability import available_actions
from actions.selection import pick_random, weighted_random
from actions.types import (
    ALL_ACTIONS,
    DEFAULT_WEIGHTS,
    ActionResult,
    ActionType,
    AgentConfig,
    AgentLogEntry,
    LogType,
)

__all__ = [
    "ALL_ACTIONS",
    "DEFAULT_WEIGHTS",
    "ActionResult",
    "ActionType",
    "AgentConfig",
    "AgentLogEntry",
    "LogType",
    "available_actions",
    "pick_random",
    "weighted_random",
]
