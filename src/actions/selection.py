"""Weighted random action selection."""

from __future__ import annotations

import random
from typing import Mapping, Sequence, TypeVar

from actions.types import ActionType

T = TypeVar("T")


def weighted_random(
    rng: random.Random,
    available: Sequence[ActionType],
    weights: Mapping[ActionType, float],
) -> ActionType:
    """Pick one action with probability proportional to its weight.

    Falls back to a uniform pick when every candidate weighs zero.
    """
    if not available:
        raise ValueError("Cannot select from an empty action list.")
    total = sum(max(weights.get(action, 0.0), 0.0) for action in available)
    if total <= 0:
        return available[rng.randrange(len(available))]

    threshold = rng.random() * total
    for action in available:
        weight = max(weights.get(action, 0.0), 0.0)
        if weight <= 0:
            continue
        threshold -= weight
        if threshold < 0:
            return action
    # Float rounding can leave a sliver of the range unassigned.
    return next(
        action for action in reversed(available) if weights.get(action, 0.0) > 0
    )


def pick_random(rng: random.Random, items: Sequence[T]) -> T:
    if not items:
        raise ValueError("Cannot pick from an empty list.")
    return items[rng.randrange(len(items))]
