"""Per-tick snapshot of account and market state used for action selection."""

from __future__ import annotations

from dataclasses import dataclass

from actions.pricing import tick_spacing_from_fee_pips
from spot_client.models import MarketState, Side

DEFAULT_LEDGER_FEE = 10_000


@dataclass(frozen=True)
class TrackedOrder:
    order_id: int
    side: Side
    tick: int
    amount: int


@dataclass(frozen=True)
class TrackedTrigger:
    trigger_id: int
    side: Side
    trigger_tick: int
    limit_tick: int
    amount: int


@dataclass(frozen=True)
class TrackedPosition:
    position_id: int
    tick_lower: int
    tick_upper: int
    liquidity: int


@dataclass(frozen=True)
class AgentTracker:
    tick: int | None
    available_base: int
    available_quote: int
    orders: tuple[TrackedOrder, ...]
    triggers: tuple[TrackedTrigger, ...]
    positions: tuple[TrackedPosition, ...]
    base_decimals: int
    quote_decimals: int
    base_fee: int
    quote_fee: int
    fee_pips: int
    tick_spacing: int
    market_id: str
    symbol: str

    @property
    def has_reference_tick(self) -> bool:
        return self.tick is not None

    @property
    def is_unfunded(self) -> bool:
        return self.available_base == 0 and self.available_quote == 0


def build_tracker(state: MarketState) -> AgentTracker:
    """Snapshot a market state into an immutable tracker."""
    orders = tuple(
        TrackedOrder(
            order_id=order.order_id,
            side=order.side,
            tick=order.tick,
            # Locked input: quote for bids, base for asks.
            amount=order.quote_amount if order.side is Side.BUY else order.base_amount,
        )
        for order in state.orders
    )
    triggers = tuple(
        TrackedTrigger(
            trigger_id=trigger.trigger_id,
            side=trigger.side,
            trigger_tick=trigger.trigger_tick,
            limit_tick=trigger.limit_tick,
            amount=trigger.input_amount,
        )
        for trigger in state.triggers
    )
    positions = tuple(
        TrackedPosition(
            position_id=position.position_id,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
            liquidity=position.liquidity,
        )
        for position in state.positions
    )
    tick_spacing = state.tick_spacing or tick_spacing_from_fee_pips(state.fee_pips)
    return AgentTracker(
        tick=state.last_trade_tick,
        available_base=state.available_base,
        available_quote=state.available_quote,
        orders=orders,
        triggers=triggers,
        positions=positions,
        base_decimals=state.base_token.decimals,
        quote_decimals=state.quote_token.decimals,
        base_fee=(
            state.base_token.fee
            if state.base_token.fee is not None
            else DEFAULT_LEDGER_FEE
        ),
        quote_fee=(
            state.quote_token.fee
            if state.quote_token.fee is not None
            else DEFAULT_LEDGER_FEE
        ),
        fee_pips=state.fee_pips,
        tick_spacing=tick_spacing,
        market_id=state.market_id,
        symbol=state.symbol,
    )
