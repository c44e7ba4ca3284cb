"""Exchange client interface consumed by the trading agent."""

from __future__ import annotations

from typing import Protocol, Sequence

from spot_client.models import (
    BatchResult,
    BookOrderSpec,
    LiquidityResult,
    MarketState,
    PoolSwapSpec,
    QuoteResult,
    Side,
    TokenSide,
    TriggerBatchResult,
    TriggerSpec,
    UpdateOrderResult,
)


class ExchangeClient(Protocol):
    async def create_orders(
        self,
        cancel_ids: Sequence[int],
        new_orders: Sequence[BookOrderSpec],
        pool_swaps: Sequence[PoolSwapSpec],
    ) -> BatchResult:
        """Cancel then create orders atomically; outcomes are reported per index."""

    async def create_triggers(
        self, cancel_ids: Sequence[int], new_triggers: Sequence[TriggerSpec]
    ) -> TriggerBatchResult:
        """Cancel then create triggers atomically."""

    async def cancel_order(self, order_id: int) -> None:
        """Cancel a single order by id."""

    async def cancel_trigger(self, trigger_id: int) -> None:
        """Cancel a single trigger by id."""

    async def update_order(
        self, order_id: int, new_tick: int, new_amount: int
    ) -> UpdateOrderResult:
        """Modify an order in place, or replace it when the exchange requires."""

    async def quote_order(
        self, side: Side, amount: int, limit_tick: int
    ) -> QuoteResult:
        """Preview an order without submitting it."""

    async def deposit(self, token: TokenSide, amount: int) -> None:
        """Move funds from the wallet into the trading balance."""

    async def withdraw(self, token: TokenSide, amount: int) -> None:
        """Move funds from the trading balance back to the wallet."""

    async def ensure_allowance(self, token: TokenSide) -> None:
        """Make sure the exchange may pull ``token`` from the wallet."""

    async def add_liquidity(
        self,
        fee_pips: int,
        tick_lower: int,
        tick_upper: int,
        amount0: int,
        amount1: int,
    ) -> LiquidityResult:
        """Open a liquidity position."""

    async def increase_liquidity(
        self, position_id: int, amount0: int, amount1: int
    ) -> LiquidityResult:
        """Add funds to an existing position."""

    async def decrease_liquidity(
        self, position_id: int, liquidity_delta: int
    ) -> LiquidityResult:
        """Remove liquidity from a position."""

    async def collect_fees(self, position_id: int) -> LiquidityResult:
        """Collect accrued fees from a position."""


class SpotMarket(ExchangeClient, Protocol):
    """An exchange client bound to one market that can report its state."""

    market_id: str

    async def fetch_state(self) -> MarketState:
        """Return the current account and market state."""
