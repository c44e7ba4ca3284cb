"""Wiring between a config mapping, the REST client and the agent engine."""

from __future__ import annotations

import asyncio
import logging
import os
import random
from pathlib import Path
from typing import Any, Mapping

from actions.types import ALL_ACTIONS, AgentConfig
from engine.agent_engine import AgentEngine, SleepFn
from spot_client.async_rest import AsyncSpotClient
from utils.config_validator import validate_agent_config
from utils.credentials import load_api_token
from utils.logging_config import LogContext, get_logger

LOGGER = logging.getLogger("spot_agent.runner")

DEFAULT_BASE_URL = "http://127.0.0.1:8080/api/v1"
BASE_URL_ENV = "SPOT_AGENT_BASE_URL"
DEFAULT_LOG_CAPACITY = 200


def default_base_url() -> str:
    return os.getenv(BASE_URL_ENV, DEFAULT_BASE_URL)


def build_agent_config(config: Mapping[str, Any]) -> AgentConfig:
    defaults = AgentConfig.default()
    amount_range = config.get("amount_range_usd", defaults.amount_range_usd)
    return AgentConfig(
        market_id=str(config["market_id"]),
        delay_ms=int(config.get("delay_ms", defaults.delay_ms)),
        jitter_ms=int(config.get("jitter_ms", defaults.jitter_ms)),
        weights=dict(config.get("weights") or {}),
        enabled_actions=frozenset(config.get("enabled_actions", ALL_ACTIONS)),
        amount_range_usd=(float(amount_range[0]), float(amount_range[1])),
        auto_deposit=bool(config.get("auto_deposit", defaults.auto_deposit)),
        dry_run=bool(config.get("dry_run", defaults.dry_run)),
    )


def build_spot_client(config: Mapping[str, Any]) -> AsyncSpotClient:
    """Single place where the gateway client is configured from a config mapping."""
    return AsyncSpotClient(
        base_url=str(config.get("base_url") or default_base_url()),
        market_id=str(config["market_id"]),
        api_token=load_api_token(config),
        timeout=float(config.get("rest_timeout_sec", 10.0)),
        max_retries=int(config.get("rest_retries", 3)),
        backoff_factor=float(config.get("rest_backoff_factor", 0.5)),
        verify_ssl=bool(config.get("verify_ssl", True)),
    )


def build_engine(
    config: Mapping[str, Any], *, sleep: SleepFn | None = None
) -> AgentEngine:
    seed = config.get("seed")
    return AgentEngine(
        build_agent_config(config),
        rng=random.Random(seed) if seed is not None else random.Random(),
        log_capacity=int(config.get("log_capacity", DEFAULT_LOG_CAPACITY)),
        sleep=sleep,
    )


async def run_agent(
    config: Mapping[str, Any],
    *,
    client: AsyncSpotClient | None = None,
    stop_event: asyncio.Event | None = None,
    state_path: Path | None = None,
) -> AgentEngine:
    """Run the agent until ``stop_event`` is set or the task is cancelled."""
    validate_agent_config(config)
    engine = build_engine(config)
    stop_event = stop_event or asyncio.Event()
    client = client or build_spot_client(config)
    async with client:
        with LogContext(market_id=engine.config.market_id):
            state = await client.fetch_state()
            LOGGER.info(
                "Starting agent on %s (market %s, dry_run=%s)",
                state.symbol,
                client.market_id,
                engine.config.dry_run,
            )
            engine.start(client, symbol=state.symbol)
            try:
                await stop_event.wait()
            finally:
                engine.stop()
                LOGGER.info(
                    "Agent stopped after %s ticks with %s errors",
                    engine.tick_count,
                    engine.error_count,
                )
                if state_path is not None:
                    engine.state.save(state_path)
    return engine


async def run_cancel_all(
    config: Mapping[str, Any],
    *,
    include_triggers: bool = False,
    client: AsyncSpotClient | None = None,
) -> tuple[int, int]:
    """Run the kill switches once; returns ``(orders, triggers)`` cancelled."""
    validate_agent_config(config)
    engine = build_engine(config)
    client = client or build_spot_client(config)
    async with client:
        orders = await engine.cancel_all_orders(client)
        triggers = await engine.cancel_all_triggers(client) if include_triggers else 0
    get_logger("spot_agent.runner", market_id=engine.config.market_id).info(
        "Kill switches cancelled %s orders and %s triggers", orders, triggers
    )
    return orders, triggers
