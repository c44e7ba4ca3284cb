"""Trigger (stop) actions."""

from __future__ import annotations

from actions.pricing import fmt_nat, trigger_amount, trigger_ticks
from actions.registry import register, require_tick
from actions.selection import pick_random
from actions.types import ActionType, LogType
from spot_client.models import Side, TriggerSpec


def build_trigger(
    side: Side, trigger_tick: int, limit_tick: int, amount: int, reference_tick: int
) -> TriggerSpec:
    return TriggerSpec(
        side=side,
        trigger_tick=trigger_tick,
        limit_tick=limit_tick,
        input_amount=amount,
        reference_tick=reference_tick,
    )


def describe_trigger(trigger: TriggerSpec) -> str:
    return (
        f"#{trigger.side.value} {trigger.trigger_tick} "
        f"{fmt_nat(trigger.input_amount)} {trigger.limit_tick}"
    )


def _trigger_id_text(trigger_id: int | None) -> str:
    return "?" if trigger_id is None else str(trigger_id)


async def _create_trigger(side: Side, client, tracker, config, log, rng) -> str:
    current_tick = require_tick(tracker)
    trigger_tick, limit_tick = trigger_ticks(rng, side, current_tick)
    trigger = build_trigger(
        side,
        trigger_tick,
        limit_tick,
        trigger_amount(rng, side, tracker, config.amount_range_usd),
        current_tick,
    )
    log(
        LogType.PROMPT,
        f"create {side.value} trigger at {trigger_tick} -> limit {limit_tick}",
    )
    log(LogType.ACTION, f"createTriggers([], [{describe_trigger(trigger)}])")
    result = await client.create_triggers([], [trigger])
    return f"trigger_id: {_trigger_id_text(result.first_trigger_id())}"


@register(ActionType.CREATE_BUY_TRIGGER)
async def create_buy_trigger(client, tracker, config, log, rng) -> str:
    return await _create_trigger(Side.BUY, client, tracker, config, log, rng)


@register(ActionType.CREATE_SELL_TRIGGER)
async def create_sell_trigger(client, tracker, config, log, rng) -> str:
    return await _create_trigger(Side.SELL, client, tracker, config, log, rng)


@register(ActionType.CANCEL_TRIGGER)
async def cancel_trigger(client, tracker, config, log, rng) -> str:
    trigger = pick_random(rng, tracker.triggers)
    log(LogType.PROMPT, f"cancel trigger #{trigger.trigger_id}")
    log(LogType.ACTION, f"cancelTrigger({trigger.trigger_id})")
    await client.cancel_trigger(trigger.trigger_id)
    return f"cancelled trigger #{trigger.trigger_id}"


@register(ActionType.REPLACE_TRIGGERS)
async def replace_triggers(client, tracker, config, log, rng) -> str:
    old = pick_random(rng, tracker.triggers)
    current_tick = require_tick(tracker)
    trigger_tick, limit_tick = trigger_ticks(rng, old.side, current_tick)
    replacement = build_trigger(
        old.side,
        trigger_tick,
        limit_tick,
        trigger_amount(rng, old.side, tracker, config.amount_range_usd),
        current_tick,
    )
    log(LogType.PROMPT, f"replace trigger #{old.trigger_id}")
    log(
        LogType.ACTION,
        f"createTriggers([{old.trigger_id}], [{describe_trigger(replacement)}])",
    )
    result = await client.create_triggers([old.trigger_id], [replacement])
    return f"new trigger_id: {_trigger_id_text(result.first_trigger_id())}"
