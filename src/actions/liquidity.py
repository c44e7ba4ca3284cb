"""Concentrated liquidity position actions."""

from __future__ import annotations

import math

from actions.pricing import fmt_nat, liquidity_amounts, liquidity_range
from actions.registry import ActionFailed, register, require_tick
from actions.selection import pick_random
from actions.types import ActionType, LogType
from spot_client.models import LiquidityResult

DECREASE_FRACTION = (0.1, 0.8)


def _checked(result: LiquidityResult) -> LiquidityResult:
    if not result.ok:
        raise ActionFailed(result.error)
    return result


@register(ActionType.ADD_LIQUIDITY)
async def add_liquidity(client, tracker, config, log, rng) -> str:
    tick_lower, tick_upper = liquidity_range(rng, require_tick(tracker), tracker.fee_pips)
    amount0, amount1 = liquidity_amounts(rng, tracker)
    log(LogType.PROMPT, f"add liquidity [{tick_lower}, {tick_upper}]")
    log(
        LogType.ACTION,
        f"addLiquidity({tracker.fee_pips}, {tick_lower}, {tick_upper}, "
        f"{fmt_nat(amount0)}, {fmt_nat(amount1)})",
    )
    result = _checked(
        await client.add_liquidity(
            tracker.fee_pips, tick_lower, tick_upper, amount0, amount1
        )
    )
    return f"position_id: {result.position_id}"


@register(ActionType.INCREASE_LIQUIDITY)
async def increase_liquidity(client, tracker, config, log, rng) -> str:
    position = pick_random(rng, tracker.positions)
    amount0, amount1 = liquidity_amounts(rng, tracker)
    log(LogType.PROMPT, f"increase liquidity on position #{position.position_id}")
    log(
        LogType.ACTION,
        f"increaseLiquidity({position.position_id}, "
        f"{fmt_nat(amount0)}, {fmt_nat(amount1)})",
    )
    _checked(
        await client.increase_liquidity(position.position_id, amount0, amount1)
    )
    return f"liquidity increased on #{position.position_id}"


@register(ActionType.DECREASE_LIQUIDITY)
async def decrease_liquidity(client, tracker, config, log, rng) -> str:
    position = pick_random(rng, tracker.positions)
    low, high = DECREASE_FRACTION
    fraction = low + rng.random() * (high - low)
    delta = math.floor(position.liquidity * fraction)
    log(
        LogType.PROMPT,
        f"decrease liquidity on position #{position.position_id} "
        f"by {fraction * 100:.0f}%",
    )
    log(LogType.ACTION, f"decreaseLiquidity({position.position_id}, {fmt_nat(delta)})")
    result = _checked(await client.decrease_liquidity(position.position_id, delta))
    return f"removed {fmt_nat(result.amount0)} base + {fmt_nat(result.amount1)} quote"


@register(ActionType.COLLECT_FEES)
async def collect_fees(client, tracker, config, log, rng) -> str:
    position = pick_random(rng, tracker.positions)
    log(LogType.PROMPT, f"collect fees from position #{position.position_id}")
    log(LogType.ACTION, f"collectFees({position.position_id})")
    _checked(await client.collect_fees(position.position_id))
    return f"collected fees on #{position.position_id}"
