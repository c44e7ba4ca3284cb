"""Action enum, configuration, log entries and default weights for the agent."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping


class ActionType(str, Enum):
    CREATE_BUY_ORDER = "create_buy_order"
    CREATE_SELL_ORDER = "create_sell_order"
    CANCEL_ORDER = "cancel_order"
    UPDATE_ORDER = "update_order"
    REPLACE_ORDERS = "replace_orders"
    CONVERT_TO_MARKET = "convert_to_market"
    CREATE_BUY_TRIGGER = "create_buy_trigger"
    CREATE_SELL_TRIGGER = "create_sell_trigger"
    CANCEL_TRIGGER = "cancel_trigger"
    REPLACE_TRIGGERS = "replace_triggers"
    BRACKET_BUY = "bracket_buy"
    BRACKET_SELL = "bracket_sell"
    GRID_BUY = "grid_buy"
    GRID_SELL = "grid_sell"
    ADD_LIQUIDITY = "add_liquidity"
    INCREASE_LIQUIDITY = "increase_liquidity"
    DECREASE_LIQUIDITY = "decrease_liquidity"
    COLLECT_FEES = "collect_fees"
    SWAP_BUY = "swap_buy"
    SWAP_SELL = "swap_sell"
    ROUTED_ORDER = "routed_order"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


ALL_ACTIONS: tuple[ActionType, ...] = tuple(ActionType)


class ActionCategory(str, Enum):
    ORDER = "order"
    TRIGGER = "trigger"
    STRATEGY = "strategy"
    LIQUIDITY = "liquidity"
    SWAP = "swap"


@dataclass(frozen=True)
class ActionMeta:
    action: ActionType
    category: ActionCategory
    label: str


def _meta(action: ActionType, category: ActionCategory) -> ActionMeta:
    label = action.value.replace("_", " ").title()
    return ActionMeta(action=action, category=category, label=label)


ACTION_META: dict[ActionType, ActionMeta] = {
    meta.action: meta
    for meta in (
        _meta(ActionType.CREATE_BUY_ORDER, ActionCategory.ORDER),
        _meta(ActionType.CREATE_SELL_ORDER, ActionCategory.ORDER),
        _meta(ActionType.CANCEL_ORDER, ActionCategory.ORDER),
        _meta(ActionType.UPDATE_ORDER, ActionCategory.ORDER),
        _meta(ActionType.REPLACE_ORDERS, ActionCategory.ORDER),
        _meta(ActionType.CONVERT_TO_MARKET, ActionCategory.ORDER),
        _meta(ActionType.CREATE_BUY_TRIGGER, ActionCategory.TRIGGER),
        _meta(ActionType.CREATE_SELL_TRIGGER, ActionCategory.TRIGGER),
        _meta(ActionType.CANCEL_TRIGGER, ActionCategory.TRIGGER),
        ActionMeta(ActionType.REPLACE_TRIGGERS, ActionCategory.TRIGGER, "Replace Trigger"),
        _meta(ActionType.BRACKET_BUY, ActionCategory.STRATEGY),
        _meta(ActionType.BRACKET_SELL, ActionCategory.STRATEGY),
        _meta(ActionType.GRID_BUY, ActionCategory.STRATEGY),
        _meta(ActionType.GRID_SELL, ActionCategory.STRATEGY),
        _meta(ActionType.ADD_LIQUIDITY, ActionCategory.LIQUIDITY),
        _meta(ActionType.INCREASE_LIQUIDITY, ActionCategory.LIQUIDITY),
        _meta(ActionType.DECREASE_LIQUIDITY, ActionCategory.LIQUIDITY),
        _meta(ActionType.COLLECT_FEES, ActionCategory.LIQUIDITY),
        _meta(ActionType.SWAP_BUY, ActionCategory.SWAP),
        _meta(ActionType.SWAP_SELL, ActionCategory.SWAP),
        _meta(ActionType.ROUTED_ORDER, ActionCategory.SWAP),
        _meta(ActionType.DEPOSIT, ActionCategory.SWAP),
        _meta(ActionType.WITHDRAW, ActionCategory.SWAP),
    )
}

DEFAULT_WEIGHTS: dict[ActionType, float] = {
    ActionType.CREATE_BUY_ORDER: 15,
    ActionType.CREATE_SELL_ORDER: 15,
    ActionType.CANCEL_ORDER: 8,
    ActionType.UPDATE_ORDER: 4,
    ActionType.REPLACE_ORDERS: 10,
    ActionType.CONVERT_TO_MARKET: 3,
    ActionType.CREATE_BUY_TRIGGER: 8,
    ActionType.CREATE_SELL_TRIGGER: 8,
    ActionType.CANCEL_TRIGGER: 5,
    ActionType.REPLACE_TRIGGERS: 5,
    ActionType.BRACKET_BUY: 6,
    ActionType.BRACKET_SELL: 6,
    ActionType.GRID_BUY: 10,
    ActionType.GRID_SELL: 10,
    ActionType.ADD_LIQUIDITY: 6,
    ActionType.INCREASE_LIQUIDITY: 4,
    ActionType.DECREASE_LIQUIDITY: 4,
    ActionType.COLLECT_FEES: 3,
    ActionType.SWAP_BUY: 6,
    ActionType.SWAP_SELL: 15,
    ActionType.ROUTED_ORDER: 15,
    ActionType.DEPOSIT: 0,
    ActionType.WITHDRAW: 0,
}


def actions_in_category(category: ActionCategory) -> list[ActionType]:
    return [action for action, meta in ACTION_META.items() if meta.category is category]


@dataclass(frozen=True)
class AgentConfig:
    market_id: str = ""
    delay_ms: int = 3000
    jitter_ms: int = 1000
    weights: Mapping[ActionType, float] = field(
        default_factory=lambda: dict(DEFAULT_WEIGHTS)
    )
    enabled_actions: frozenset[ActionType] = frozenset(ALL_ACTIONS)
    amount_range_usd: tuple[float, float] = (20.0, 200.0)
    auto_deposit: bool = True
    dry_run: bool = False

    def __post_init__(self) -> None:
        # Every action carries a weight; partial mappings are completed from defaults.
        weights = dict(DEFAULT_WEIGHTS)
        weights.update({ActionType(key): float(value) for key, value in self.weights.items()})
        object.__setattr__(self, "weights", weights)
        object.__setattr__(
            self,
            "enabled_actions",
            frozenset(ActionType(action) for action in self.enabled_actions),
        )

    @classmethod
    def default(cls) -> "AgentConfig":
        return cls()

    def with_changes(self, **changes: Any) -> "AgentConfig":
        return replace(self, **changes)

    def weight_of(self, action: ActionType) -> float:
        return self.weights[action]

    def is_enabled(self, action: ActionType) -> bool:
        return action in self.enabled_actions


@dataclass(frozen=True)
class ActionResult:
    success: bool
    error: str | None = None


class LogType(str, Enum):
    PROMPT = "prompt"
    ACTION = "action"
    RESULT = "result"
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class AgentLogEntry:
    id: int
    timestamp: float
    type: LogType
    text: str
    action_type: ActionType | None = None
    duration_ms: float | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "text": self.text,
            "action_type": self.action_type.value if self.action_type else None,
            "duration_ms": self.duration_ms,
        }
