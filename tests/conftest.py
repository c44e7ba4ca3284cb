from __future__ import annotations

import random
from typing import Any

import pytest

from engine.tracker import AgentTracker, build_tracker
from spot_client.models import (
    BatchResult,
    BookOrderSpec,
    LiquidityResult,
    MarketState,
    OrderOutcome,
    OrderView,
    PoolSwapSpec,
    PositionView,
    QuoteResult,
    Side,
    TokenInfo,
    TriggerBatchResult,
    TriggerOutcome,
    TriggerView,
    UpdateOrderResult,
)

UNIT = 10**8


def make_state(**overrides: Any) -> MarketState:
    data: dict[str, Any] = {
        "market_id": "mkt-1",
        "symbol": "ABC/USDC",
        "last_trade_tick": 1000,
        "available_base": 1_000 * UNIT,
        "available_quote": 1_000 * UNIT,
        "base_token": TokenInfo(ledger_id="base-ledger", symbol="ABC", fee=10_000),
        "quote_token": TokenInfo(ledger_id="quote-ledger", symbol="USDC", fee=10_000),
        "fee_pips": 3000,
    }
    data.update(overrides)
    return MarketState(**data)


def make_tracker(**overrides: Any) -> AgentTracker:
    return build_tracker(make_state(**overrides))


def sample_orders(count: int = 2) -> list[OrderView]:
    return [
        OrderView(
            order_id=10 + index,
            side=Side.BUY if index % 2 == 0 else Side.SELL,
            tick=950 + index,
            base_amount=5 * UNIT,
            quote_amount=7 * UNIT,
        )
        for index in range(count)
    ]


def sample_triggers(count: int = 1) -> list[TriggerView]:
    return [
        TriggerView(
            trigger_id=20 + index,
            side=Side.SELL,
            trigger_tick=900,
            limit_tick=880,
            input_amount=3 * UNIT,
        )
        for index in range(count)
    ]


def sample_positions(count: int = 1) -> list[PositionView]:
    return [
        PositionView(
            position_id=30 + index, tick_lower=-600, tick_upper=1800, liquidity=1_000_000
        )
        for index in range(count)
    ]


class FakeMarket:
    """In-memory exchange that records every call.

    ``fail(method, *errors)`` queues exceptions raised by the next calls to
    ``method``.
    """

    def __init__(self, state: MarketState | None = None) -> None:
        self.state = state or make_state()
        self.market_id = self.state.market_id
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, list[Exception]] = {}
        self.liquidity_error: str | None = None
        self.quote_book_order = True
        self._next_id = 100

    def fail(self, method: str, *errors: Exception) -> None:
        self.failures.setdefault(method, []).extend(errors)

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def exchange_calls(self) -> list[str]:
        return [name for name, _ in self.calls if name != "fetch_state"]

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        queued = self.failures.get(method)
        if queued:
            raise queued.pop(0)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    async def fetch_state(self) -> MarketState:
        self._record("fetch_state")
        return self.state

    async def create_orders(self, cancel_ids, new_orders, pool_swaps) -> BatchResult:
        self._record("create_orders", list(cancel_ids), list(new_orders), list(pool_swaps))
        return BatchResult(
            order_results=[
                OrderOutcome(index=index, order_id=self._new_id())
                for index, _ in enumerate(new_orders)
            ],
            cancelled_ids=list(cancel_ids),
        )

    async def create_triggers(self, cancel_ids, new_triggers) -> TriggerBatchResult:
        self._record("create_triggers", list(cancel_ids), list(new_triggers))
        return TriggerBatchResult(
            results=[
                TriggerOutcome(index=index, trigger_id=self._new_id())
                for index, _ in enumerate(new_triggers)
            ],
            cancelled_ids=list(cancel_ids),
        )

    async def cancel_order(self, order_id: int) -> None:
        self._record("cancel_order", order_id)

    async def cancel_trigger(self, trigger_id: int) -> None:
        self._record("cancel_trigger", trigger_id)

    async def update_order(self, order_id, new_tick, new_amount) -> UpdateOrderResult:
        self._record("update_order", order_id, new_tick, new_amount)
        return UpdateOrderResult(order_id=order_id, was_replaced=False)

    async def quote_order(self, side, amount, limit_tick) -> QuoteResult:
        self._record("quote_order", side, amount, limit_tick)
        book_order = (
            BookOrderSpec(side=side, limit_tick=limit_tick, input_amount=amount // 2)
            if self.quote_book_order
            else None
        )
        return QuoteResult(
            input_amount=amount,
            output_amount=amount * 2,
            price_impact_bps=12,
            pool_swaps=(
                PoolSwapSpec(
                    side=side,
                    limit_tick=limit_tick,
                    input_amount=amount - amount // 2,
                    fee_pips=3000,
                ),
            ),
            book_order=book_order,
        )

    async def deposit(self, token, amount) -> None:
        self._record("deposit", token, amount)

    async def withdraw(self, token, amount) -> None:
        self._record("withdraw", token, amount)

    async def ensure_allowance(self, token) -> None:
        self._record("ensure_allowance", token)

    def _liquidity(self, **fields: Any) -> LiquidityResult:
        if self.liquidity_error is not None:
            return LiquidityResult(error=self.liquidity_error)
        return LiquidityResult(**fields)

    async def add_liquidity(self, fee_pips, tick_lower, tick_upper, amount0, amount1):
        self._record("add_liquidity", fee_pips, tick_lower, tick_upper, amount0, amount1)
        return self._liquidity(position_id=self._new_id(), amount0=amount0, amount1=amount1)

    async def increase_liquidity(self, position_id, amount0, amount1):
        self._record("increase_liquidity", position_id, amount0, amount1)
        return self._liquidity(position_id=position_id, amount0=amount0, amount1=amount1)

    async def decrease_liquidity(self, position_id, liquidity_delta):
        self._record("decrease_liquidity", position_id, liquidity_delta)
        return self._liquidity(position_id=position_id, amount0=500, amount1=700)

    async def collect_fees(self, position_id):
        self._record("collect_fees", position_id)
        return self._liquidity(position_id=position_id, amount0=3, amount1=4)


class RecordingLog:
    def __init__(self) -> None:
        self.entries: list[tuple[Any, str, float | None]] = []

    def __call__(self, type, text, duration_ms=None) -> None:
        self.entries.append((type, text, duration_ms))

    def texts(self, type=None) -> list[str]:
        return [text for kind, text, _ in self.entries if type is None or kind is type]


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def market() -> FakeMarket:
    return FakeMarket()


@pytest.fixture
def action_log() -> RecordingLog:
    return RecordingLog()
