"""Which actions are currently legal for a tracker snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from actions.pricing import usable_budget
from actions.types import ALL_ACTIONS, ActionType, AgentConfig

if TYPE_CHECKING:
    from engine.tracker import AgentTracker

MAX_OPEN_ORDERS = 50
MAX_TRIGGERS = 20
MAX_POSITIONS = 10

# Actions that can run without a reference tick.
TICKLESS_ACTIONS = frozenset(
    {
        ActionType.CANCEL_ORDER,
        ActionType.CANCEL_TRIGGER,
        ActionType.DECREASE_LIQUIDITY,
        ActionType.COLLECT_FEES,
        ActionType.DEPOSIT,
        ActionType.WITHDRAW,
    }
)


@dataclass(frozen=True)
class TrackerFacts:
    has_quote: bool
    has_base: bool
    has_orders: bool
    has_triggers: bool
    has_positions: bool
    order_slots: bool
    trigger_slots: bool
    position_slots: bool
    has_tick: bool

    @classmethod
    def from_tracker(cls, tracker: "AgentTracker") -> "TrackerFacts":
        return cls(
            has_quote=usable_budget(tracker.available_quote, tracker.quote_fee) > 0,
            has_base=usable_budget(tracker.available_base, tracker.base_fee) > 0,
            has_orders=len(tracker.orders) > 0,
            has_triggers=len(tracker.triggers) > 0,
            has_positions=len(tracker.positions) > 0,
            order_slots=len(tracker.orders) < MAX_OPEN_ORDERS,
            trigger_slots=len(tracker.triggers) < MAX_TRIGGERS,
            position_slots=len(tracker.positions) < MAX_POSITIONS,
            has_tick=tracker.tick is not None,
        )

    @property
    def has_funds(self) -> bool:
        return self.has_quote or self.has_base


def unlocked_actions(facts: TrackerFacts) -> set[ActionType]:
    """Map balance/slot facts to the actions they unlock."""
    unlocked: set[ActionType] = set()

    def unlock(condition: bool, *actions: ActionType) -> None:
        if condition:
            unlocked.update(actions)

    # Orders
    unlock(
        facts.has_quote and facts.order_slots,
        ActionType.CREATE_BUY_ORDER,
        ActionType.GRID_BUY,
    )
    unlock(
        facts.has_base and facts.order_slots,
        ActionType.CREATE_SELL_ORDER,
        ActionType.GRID_SELL,
    )
    unlock(
        facts.has_orders,
        ActionType.CANCEL_ORDER,
        ActionType.UPDATE_ORDER,
        ActionType.CONVERT_TO_MARKET,
    )
    unlock(
        facts.has_orders and facts.has_funds and facts.order_slots,
        ActionType.REPLACE_ORDERS,
    )

    # Triggers
    unlock(facts.has_quote and facts.trigger_slots, ActionType.CREATE_BUY_TRIGGER)
    unlock(facts.has_base and facts.trigger_slots, ActionType.CREATE_SELL_TRIGGER)
    unlock(facts.has_triggers, ActionType.CANCEL_TRIGGER)
    unlock(
        facts.has_triggers and facts.has_funds and facts.trigger_slots,
        ActionType.REPLACE_TRIGGERS,
    )

    # Brackets need a free order slot and a free trigger slot
    unlock(
        facts.has_quote and facts.order_slots and facts.trigger_slots,
        ActionType.BRACKET_BUY,
    )
    unlock(
        facts.has_base and facts.order_slots and facts.trigger_slots,
        ActionType.BRACKET_SELL,
    )

    # Liquidity
    unlock(facts.has_funds and facts.position_slots, ActionType.ADD_LIQUIDITY)
    unlock(facts.has_positions and facts.has_funds, ActionType.INCREASE_LIQUIDITY)
    unlock(
        facts.has_positions,
        ActionType.DECREASE_LIQUIDITY,
        ActionType.COLLECT_FEES,
    )

    # Swaps and funding; deposit is reserved for the auto-deposit paths
    unlock(facts.has_quote, ActionType.SWAP_BUY)
    unlock(facts.has_base, ActionType.SWAP_SELL)
    unlock(facts.has_funds, ActionType.ROUTED_ORDER, ActionType.WITHDRAW)

    if not facts.has_tick:
        unlocked &= TICKLESS_ACTIONS
    return unlocked


def available_actions(tracker: "AgentTracker", config: AgentConfig) -> list[ActionType]:
    """Return the legal, enabled actions in catalog order."""
    unlocked = unlocked_actions(TrackerFacts.from_tracker(tracker))
    return [
        action
        for action in ALL_ACTIONS
        if action in unlocked and config.is_enabled(action)
    ]
