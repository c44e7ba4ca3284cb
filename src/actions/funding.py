"""Moving funds between the wallet and the trading balance."""

from __future__ import annotations

import logging
import math
import random
import time
from typing import TYPE_CHECKING

from actions.pricing import deposit_amount, fmt_nat
from actions.registry import ActionLogger, elapsed_ms, register
from actions.types import ActionType, LogType
from spot_client.models import TokenSide

if TYPE_CHECKING:
    from engine.tracker import AgentTracker
    from spot_client.exchange import ExchangeClient

LOGGER = logging.getLogger("spot_agent.funding")

LOW_BALANCE_UNITS = 100
WITHDRAW_FRACTION = (0.05, 0.20)


def low_balance_threshold(decimals: int) -> int:
    return 10**decimals * LOW_BALANCE_UNITS


@register(ActionType.DEPOSIT)
async def deposit(client, tracker, config, log, rng) -> str:
    legs = (
        (TokenSide.BASE, tracker.available_base, tracker.base_decimals),
        (TokenSide.QUOTE, tracker.available_quote, tracker.quote_decimals),
    )
    started = time.perf_counter()
    topped_up = []
    for token, available, decimals in legs:
        if available >= low_balance_threshold(decimals):
            continue
        amount = deposit_amount(rng, token, tracker)
        log(LogType.PROMPT, f"deposit {token.value} (low balance)")
        log(LogType.ACTION, f"deposit(#{token.value}, {fmt_nat(amount)})")
        await client.deposit(token, amount)
        log(LogType.RESULT, f"deposited {token.value}", elapsed_ms(started))
        topped_up.append(token.value)
    if not topped_up:
        log(LogType.INFO, "balances sufficient, skipping deposit")
        return "no deposit needed"
    return f"deposit done ({', '.join(topped_up)})"


@register(ActionType.WITHDRAW)
async def withdraw(client, tracker, config, log, rng) -> str:
    low, high = WITHDRAW_FRACTION
    fraction = low + rng.random() * (high - low)
    amount = math.floor(tracker.available_base * fraction)
    if tracker.available_base <= 0 or amount <= tracker.base_fee * 10:
        return "nothing to withdraw"
    log(LogType.PROMPT, f"withdraw {fraction * 100:.0f}% base")
    log(LogType.ACTION, f"withdraw(#base, {fmt_nat(amount)})")
    await client.withdraw(TokenSide.BASE, amount)
    return "withdrawn base"


async def auto_deposit(
    client: "ExchangeClient",
    tracker: "AgentTracker",
    log: ActionLogger,
    rng: random.Random,
) -> bool:
    """Approve and deposit both legs; return True if any deposit went through.

    Each leg is attempted independently so a failing base deposit does not
    prevent the quote deposit.
    """
    deposited = False
    started = time.perf_counter()
    for token in (TokenSide.BASE, TokenSide.QUOTE):
        try:
            log(LogType.ACTION, f"checking approval for {token.value} token...")
            await client.ensure_allowance(token)
            amount = deposit_amount(rng, token, tracker)
            log(LogType.ACTION, f"deposit(#{token.value}, {fmt_nat(amount)})")
            await client.deposit(token, amount)
        except Exception as exc:
            LOGGER.warning("Auto-deposit of %s failed: %s", token.value, exc)
            log(
                LogType.ERROR,
                f"{token.value} deposit failed: {exc}",
                elapsed_ms(started),
            )
            continue
        log(LogType.SUCCESS, f"deposited {token.value}", elapsed_ms(started))
        deposited = True
    return deposited
