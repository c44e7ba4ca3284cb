"""Lookup table from ActionType to its registered handler.

Importing this module imports every handler module, which registers them.
"""

from __future__ import annotations

from actions import funding, liquidity, orders, strategy, swaps, triggers  # noqa: F401
from actions.funding import auto_deposit
from actions.registry import ActionFn, registered_actions
from actions.types import ALL_ACTIONS, ActionType

ACTIONS: dict[ActionType, ActionFn] = registered_actions()

_missing = [action.value for action in ALL_ACTIONS if action not in ACTIONS]
if _missing:
    raise RuntimeError(f"No handler registered for actions: {', '.join(_missing)}")


def get_action(kind: ActionType) -> ActionFn:
    return ACTIONS[ActionType(kind)]


__all__ = ["ACTIONS", "auto_deposit", "get_action"]
