"""Composite strategies: brackets (entry plus protective trigger) and grids."""

from __future__ import annotations

from actions.orders import describe_order
from actions.pricing import bracket_ticks, grid_ticks, order_amount, trigger_amount
from actions.registry import register, require_tick
from actions.triggers import build_trigger, describe_trigger
from actions.types import ActionType, LogType
from spot_client.models import BookOrderSpec, Side

GRID_LEVELS = (3, 5)

_PROTECTION_LABEL = {Side.BUY: "stop-loss", Side.SELL: "stop-buy"}


async def _bracket(side: Side, client, tracker, config, log, rng) -> str:
    # Two independent calls; a failed trigger leaves the entry order resting.
    current_tick = require_tick(tracker)
    entry_tick, trigger_tick, limit_tick = bracket_ticks(rng, side, current_tick)
    order = BookOrderSpec(
        side=side,
        limit_tick=entry_tick,
        input_amount=order_amount(rng, side, tracker, config.amount_range_usd),
    )
    protection = build_trigger(
        side.opposite,
        trigger_tick,
        limit_tick,
        trigger_amount(rng, side.opposite, tracker, config.amount_range_usd),
        current_tick,
    )
    log(
        LogType.PROMPT,
        f"bracket {side.value}: order at {entry_tick} + "
        f"{_PROTECTION_LABEL[side]} at {trigger_tick}",
    )
    log(LogType.ACTION, f"createOrders([], [{describe_order(order)}], [])")
    order_result = await client.create_orders([], [order], [])
    order_id = order_result.first_order_id()
    order_text = "?" if order_id is None else str(order_id)
    log(LogType.RESULT, f"order_id: {order_text}")
    log(LogType.ACTION, f"createTriggers([], [{describe_trigger(protection)}])")
    trigger_result = await client.create_triggers([], [protection])
    trigger_id = trigger_result.first_trigger_id()
    trigger_text = "?" if trigger_id is None else str(trigger_id)
    return f"bracket done  order: {order_text}  trigger: {trigger_text}"


@register(ActionType.BRACKET_BUY)
async def bracket_buy(client, tracker, config, log, rng) -> str:
    return await _bracket(Side.BUY, client, tracker, config, log, rng)


@register(ActionType.BRACKET_SELL)
async def bracket_sell(client, tracker, config, log, rng) -> str:
    return await _bracket(Side.SELL, client, tracker, config, log, rng)


async def _grid(side: Side, client, tracker, config, log, rng) -> str:
    count = rng.randint(*GRID_LEVELS)
    ticks = grid_ticks(rng, require_tick(tracker), side, count)
    where = "below" if side is Side.BUY else "above"
    log(LogType.PROMPT, f"grid {side.value}: {count} orders {where} market")
    orders = [
        BookOrderSpec(
            side=side,
            limit_tick=tick,
            input_amount=order_amount(rng, side, tracker, config.amount_range_usd),
        )
        for tick in ticks
    ]
    log(LogType.ACTION, f"createOrders([], {count} {side.value} orders, [])")
    result = await client.create_orders([], orders, [])
    placed = ", ".join(str(order_id) for order_id in result.created_ids())
    return f"grid placed [{placed}]"


@register(ActionType.GRID_BUY)
async def grid_buy(client, tracker, config, log, rng) -> str:
    return await _grid(Side.BUY, client, tracker, config, log, rng)


@register(ActionType.GRID_SELL)
async def grid_sell(client, tracker, config, log, rng) -> str:
    return await _grid(Side.SELL, client, tracker, config, log, rng)
