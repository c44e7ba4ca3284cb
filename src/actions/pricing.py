"""Tick/price conversion, random amount generation and tick alignment.

Every function that draws randomness takes an explicit ``random.Random`` so the
agent can be replayed from a seed.
"""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING

from spot_client.models import Side, TokenSide

if TYPE_CHECKING:
    from engine.tracker import AgentTracker

TICK_BASE = 1.0001
MIN_PRICE_USD = 1e-12

ORDER_USD_RANGE = (20.0, 200.0)
DEPOSIT_USD_RANGE = (5000.0, 20000.0)
LIQUIDITY_USD_RANGE = (50.0, 500.0)

# Offsets from the reference tick, inclusive.
AGGRESSIVE_PROBABILITY = 0.3
AGGRESSIVE_OFFSET = (0, 200)
PASSIVE_OFFSET = (10, 200)
TRIGGER_OFFSET = (20, 200)
TRIGGER_LIMIT_OFFSET = (20, 100)
BRACKET_ENTRY_OFFSET = (0, 100)
BRACKET_STOP_OFFSET = (30, 150)
BRACKET_LIMIT_OFFSET = (20, 80)
GRID_SPACING = (20, 80)
LIQUIDITY_HALF_WIDTH = (100, 1000)
UPDATE_OFFSET = (-50, 50)
SWAP_LIMIT_OFFSET = 500

_TICK_SPACING_BY_FEE_PIPS = {100: 1, 500: 10, 3000: 60, 10000: 200}
DEFAULT_TICK_SPACING = 60


def rand_int(rng: random.Random, low: int, high: int) -> int:
    """Uniform integer in ``[low, high]``."""
    return rng.randint(low, high)


def quote_usd_multiplier(symbol: str) -> float:
    return 3.0 if symbol.endswith("/ICP") else 1.0


def price_from_tick(
    tick: int | None, base_decimals: int, quote_decimals: int, symbol: str
) -> float:
    """Return the USD price of one base unit at ``tick``; falls back to 1.0."""
    if tick is None:
        return 1.0
    log_price = tick * math.log(TICK_BASE) + math.log(10) * (
        base_decimals - quote_decimals
    )
    try:
        price_human = math.exp(log_price)
    except OverflowError:
        return 1.0
    result = price_human * quote_usd_multiplier(symbol)
    if not math.isfinite(result) or result <= 0:
        return 1.0
    return result


def tracker_price_usd(tracker: "AgentTracker") -> float:
    return price_from_tick(
        tracker.tick, tracker.base_decimals, tracker.quote_decimals, tracker.symbol
    )


def random_amount(
    rng: random.Random,
    min_usd: float,
    max_usd: float,
    decimals: int,
    price_usd: float,
) -> int:
    """Draw a USD notional in ``[min_usd, max_usd]`` and convert it to smallest units."""
    safe_price = max(price_usd, MIN_PRICE_USD)
    usd = min_usd + rng.random() * (max_usd - min_usd)
    units = (usd / safe_price) * 10**decimals
    return max(1, math.floor(units))


def buy_order_tick(rng: random.Random, current_tick: int) -> int:
    if rng.random() < AGGRESSIVE_PROBABILITY:
        return current_tick + rand_int(rng, *AGGRESSIVE_OFFSET)
    return current_tick - rand_int(rng, *PASSIVE_OFFSET)


def sell_order_tick(rng: random.Random, current_tick: int) -> int:
    if rng.random() < AGGRESSIVE_PROBABILITY:
        return current_tick - rand_int(rng, *AGGRESSIVE_OFFSET)
    return current_tick + rand_int(rng, *PASSIVE_OFFSET)


def order_tick(rng: random.Random, side: Side, current_tick: int) -> int:
    if side is Side.BUY:
        return buy_order_tick(rng, current_tick)
    return sell_order_tick(rng, current_tick)


def order_amount(
    rng: random.Random,
    side: Side,
    tracker: "AgentTracker",
    usd_range: tuple[float, float] = ORDER_USD_RANGE,
) -> int:
    """Size an order in its input token: quote for buys, base for sells."""
    min_usd, max_usd = usd_range
    if side is Side.BUY:
        return random_amount(
            rng,
            min_usd,
            max_usd,
            tracker.quote_decimals,
            quote_usd_multiplier(tracker.symbol),
        )
    return random_amount(
        rng, min_usd, max_usd, tracker.base_decimals, tracker_price_usd(tracker)
    )


swap_amount = order_amount
trigger_amount = order_amount


def deposit_amount(
    rng: random.Random, token: TokenSide, tracker: "AgentTracker"
) -> int:
    min_usd, max_usd = DEPOSIT_USD_RANGE
    if token is TokenSide.BASE:
        return random_amount(
            rng, min_usd, max_usd, tracker.base_decimals, tracker_price_usd(tracker)
        )
    return random_amount(
        rng,
        min_usd,
        max_usd,
        tracker.quote_decimals,
        quote_usd_multiplier(tracker.symbol),
    )


def trigger_ticks(
    rng: random.Random, side: Side, current_tick: int
) -> tuple[int, int]:
    """Return ``(trigger_tick, limit_tick)``; buys trigger above, sells below."""
    offset = rand_int(rng, *TRIGGER_OFFSET)
    slippage = rand_int(rng, *TRIGGER_LIMIT_OFFSET)
    if side is Side.BUY:
        return current_tick + offset, current_tick + offset + slippage
    return current_tick - offset, current_tick - offset - slippage


def bracket_ticks(
    rng: random.Random, side: Side, current_tick: int
) -> tuple[int, int, int]:
    """Return ``(order_tick, trigger_tick, limit_tick)`` for a bracket entry.

    A bracket buy rests slightly above the market and protects it with a
    sell stop below; a bracket sell is the mirror image.
    """
    entry = rand_int(rng, *BRACKET_ENTRY_OFFSET)
    stop = rand_int(rng, *BRACKET_STOP_OFFSET)
    slippage = rand_int(rng, *BRACKET_LIMIT_OFFSET)
    if side is Side.BUY:
        return current_tick + entry, current_tick - stop, current_tick - stop - slippage
    return current_tick - entry, current_tick + stop, current_tick + stop + slippage


def grid_ticks(
    rng: random.Random, current_tick: int, side: Side, count: int = 3
) -> list[int]:
    spacing = rand_int(rng, *GRID_SPACING)
    if side is Side.BUY:
        return [current_tick - spacing * level for level in range(1, count + 1)]
    return [current_tick + spacing * level for level in range(1, count + 1)]


def tick_spacing_from_fee_pips(fee_pips: int) -> int:
    return _TICK_SPACING_BY_FEE_PIPS.get(fee_pips, DEFAULT_TICK_SPACING)


def align_down(tick: int, spacing: int) -> int:
    """Align toward negative infinity to a multiple of ``spacing``."""
    return (tick // spacing) * spacing


def align_up(tick: int, spacing: int) -> int:
    """Align toward positive infinity to a multiple of ``spacing``."""
    return -((-tick) // spacing) * spacing


def liquidity_range(
    rng: random.Random, current_tick: int, fee_pips: int
) -> tuple[int, int]:
    spacing = tick_spacing_from_fee_pips(fee_pips)
    half_width = rand_int(rng, *LIQUIDITY_HALF_WIDTH)
    tick_lower = align_down(current_tick - half_width, spacing)
    tick_upper = align_up(current_tick + half_width, spacing)
    return tick_lower, max(tick_upper, tick_lower + spacing)


def liquidity_amounts(rng: random.Random, tracker: "AgentTracker") -> tuple[int, int]:
    min_usd, max_usd = LIQUIDITY_USD_RANGE
    amount0 = random_amount(
        rng, min_usd, max_usd, tracker.base_decimals, tracker_price_usd(tracker)
    )
    amount1 = random_amount(
        rng,
        min_usd,
        max_usd,
        tracker.quote_decimals,
        quote_usd_multiplier(tracker.symbol),
    )
    return amount0, amount1


def update_order_tick(rng: random.Random, current_tick: int) -> int:
    return current_tick + rand_int(rng, *UPDATE_OFFSET)


def usable_budget(available: int, fee: int) -> int:
    """Balance left after reserving two ledger transfer fees."""
    reserve = fee * 2
    return available - reserve if available > reserve else 0


def above_minimum(amount: int, fee: int) -> bool:
    return amount > fee * 10


def fmt_nat(value: int | float) -> str:
    """Format a natural number with ``_`` thousands separators."""
    return f"{int(value):,}".replace(",", "_")
