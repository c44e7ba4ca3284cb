"""Order book actions: create, cancel, update, replace and convert to market."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from actions.pricing import fmt_nat, order_amount, order_tick, update_order_tick
from actions.registry import ActionLogger, register, require_tick
from actions.selection import pick_random
from actions.swaps import routed_book_orders
from actions.types import ActionType, AgentConfig, LogType
from spot_client.models import BookOrderSpec, Side

if TYPE_CHECKING:
    from engine.tracker import AgentTracker
    from spot_client.exchange import ExchangeClient


def describe_order(order: BookOrderSpec) -> str:
    return f"#{order.side.value} {order.limit_tick} {fmt_nat(order.input_amount)}"


def _order_id_text(order_id: int | None) -> str:
    return "?" if order_id is None else str(order_id)


async def _create_limit_order(
    side: Side,
    client: "ExchangeClient",
    tracker: "AgentTracker",
    config: AgentConfig,
    log: ActionLogger,
    rng: random.Random,
) -> str:
    current_tick = require_tick(tracker)
    order = BookOrderSpec(
        side=side,
        limit_tick=order_tick(rng, side, current_tick),
        input_amount=order_amount(rng, side, tracker, config.amount_range_usd),
    )
    log(LogType.PROMPT, f"place {side.value} order at tick {order.limit_tick}")
    log(LogType.ACTION, f"createOrders([], [{describe_order(order)}], [])")
    result = await client.create_orders([], [order], [])
    return f"order_id: {_order_id_text(result.first_order_id())}"


@register(ActionType.CREATE_BUY_ORDER)
async def create_buy_order(client, tracker, config, log, rng) -> str:
    return await _create_limit_order(Side.BUY, client, tracker, config, log, rng)


@register(ActionType.CREATE_SELL_ORDER)
async def create_sell_order(client, tracker, config, log, rng) -> str:
    return await _create_limit_order(Side.SELL, client, tracker, config, log, rng)


@register(ActionType.CANCEL_ORDER)
async def cancel_order(client, tracker, config, log, rng) -> str:
    order = pick_random(rng, tracker.orders)
    log(LogType.PROMPT, f"cancel order #{order.order_id}")
    log(LogType.ACTION, f"cancelOrder({order.order_id})")
    await client.cancel_order(order.order_id)
    return f"cancelled order #{order.order_id}"


@register(ActionType.UPDATE_ORDER)
async def update_order(client, tracker, config, log, rng) -> str:
    order = pick_random(rng, tracker.orders)
    new_tick = update_order_tick(rng, require_tick(tracker))
    new_amount = order_amount(rng, order.side, tracker, config.amount_range_usd)
    log(LogType.PROMPT, f"update order #{order.order_id} -> tick {new_tick}")
    log(
        LogType.ACTION,
        f"updateOrder({order.order_id}, {new_tick}, {fmt_nat(new_amount)})",
    )
    result = await client.update_order(order.order_id, new_tick, new_amount)
    return f"order_id: {result.order_id} replaced: {str(result.was_replaced).lower()}"


@register(ActionType.REPLACE_ORDERS)
async def replace_orders(client, tracker, config, log, rng) -> str:
    # Cancel one random order and create its successor in a single batch
    order = pick_random(rng, tracker.orders)
    replacement = BookOrderSpec(
        side=order.side,
        limit_tick=order_tick(rng, order.side, require_tick(tracker)),
        input_amount=order_amount(rng, order.side, tracker, config.amount_range_usd),
    )
    log(
        LogType.PROMPT,
        f"replace order #{order.order_id} with new {order.side.value} "
        f"at {replacement.limit_tick}",
    )
    log(
        LogType.ACTION,
        f"createOrders([{order.order_id}], [{describe_order(replacement)}], [])",
    )
    result = await client.create_orders([order.order_id], [replacement], [])
    return f"replaced -> order_id: {_order_id_text(result.first_order_id())}"


@register(ActionType.CONVERT_TO_MARKET)
async def convert_to_market(client, tracker, config, log, rng) -> str:
    order = pick_random(rng, tracker.orders)
    current_tick = require_tick(tracker)
    log(LogType.PROMPT, f"convert order #{order.order_id} to market")
    log(
        LogType.ACTION,
        f"quoteOrder(#{order.side.value}, {fmt_nat(order.amount)}, {current_tick})",
    )
    quote = await client.quote_order(order.side, order.amount, current_tick)
    log(LogType.RESULT, f"quote ready, output: {fmt_nat(quote.output_amount)}")
    book_orders = routed_book_orders(quote, immediate_or_cancel=True)
    log(LogType.ACTION, f"createOrders([{order.order_id}], bookOrders, poolSwaps)")
    await client.create_orders([order.order_id], book_orders, list(quote.pool_swaps))
    return f"executed (cancelled #{order.order_id})"
