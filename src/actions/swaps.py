"""Quote-driven swaps and routed limit orders."""

from __future__ import annotations

from actions.pricing import SWAP_LIMIT_OFFSET, fmt_nat, order_amount, order_tick, swap_amount
from actions.registry import register, require_tick
from actions.types import ActionType, LogType
from spot_client.models import BookOrderSpec, QuoteResult, Side

_INPUT_TOKEN = {Side.BUY: "quote", Side.SELL: "base"}


def routed_book_orders(quote: QuoteResult, immediate_or_cancel: bool) -> list[BookOrderSpec]:
    """Book leg of a quote with its time-in-force overridden."""
    if quote.book_order is None:
        return []
    return [
        quote.book_order.model_copy(update={"immediate_or_cancel": immediate_or_cancel})
    ]


def _order_id_text(order_id: int | None) -> str:
    return "?" if order_id is None else str(order_id)


async def _swap(side: Side, client, tracker, config, log, rng) -> str:
    current_tick = require_tick(tracker)
    amount = swap_amount(rng, side, tracker, config.amount_range_usd)
    if side is Side.BUY:
        limit_tick = current_tick + SWAP_LIMIT_OFFSET
    else:
        limit_tick = current_tick - SWAP_LIMIT_OFFSET
    log(LogType.PROMPT, f"swap {side.value} {fmt_nat(amount)} {_INPUT_TOKEN[side]}")
    log(LogType.ACTION, f"quoteOrder(#{side.value}, {fmt_nat(amount)}, {limit_tick})")
    quote = await client.quote_order(side, amount, limit_tick)
    log(
        LogType.RESULT,
        f"output: {fmt_nat(quote.output_amount)}  impact: {quote.price_impact_bps}bps",
    )
    log(LogType.ACTION, "createOrders([], bookOrders, poolSwaps)")
    result = await client.create_orders(
        [], routed_book_orders(quote, True), list(quote.pool_swaps)
    )
    return f"filled order_id: {_order_id_text(result.first_order_id())}"


@register(ActionType.SWAP_BUY)
async def swap_buy(client, tracker, config, log, rng) -> str:
    return await _swap(Side.BUY, client, tracker, config, log, rng)


@register(ActionType.SWAP_SELL)
async def swap_sell(client, tracker, config, log, rng) -> str:
    return await _swap(Side.SELL, client, tracker, config, log, rng)


@register(ActionType.ROUTED_ORDER)
async def routed_order(client, tracker, config, log, rng) -> str:
    side = Side.BUY if rng.random() > 0.5 else Side.SELL
    amount = order_amount(rng, side, tracker, config.amount_range_usd)
    limit_tick = order_tick(rng, side, require_tick(tracker))
    log(LogType.PROMPT, f"routed {side.value} order at {limit_tick}")
    log(LogType.ACTION, f"quoteOrder(#{side.value}, {fmt_nat(amount)}, {limit_tick})")
    quote = await client.quote_order(side, amount, limit_tick)
    log(LogType.RESULT, f"quote ready  output: {fmt_nat(quote.output_amount)}")
    # Resting remainder stays on the book.
    log(LogType.ACTION, "createOrders([], bookOrders, poolSwaps)")
    result = await client.create_orders(
        [], routed_book_orders(quote, False), list(quote.pool_swaps)
    )
    return f"order_id: {_order_id_text(result.first_order_id())}"
