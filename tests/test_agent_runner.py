import asyncio
import json
import logging

import pytest

from actions.types import ActionType
from conftest import FakeMarket, make_state, sample_orders, sample_triggers
from engine import agent_runner
from engine.agent_runner import (
    build_agent_config,
    build_engine,
    build_spot_client,
    run_agent,
    run_cancel_all,
)
from utils.config_validator import ConfigValidationError


class ManagedMarket(FakeMarket):
    closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True


def test_build_agent_config_maps_fields():
    config = build_agent_config(
        {
            "market_id": "mkt-1",
            "delay_ms": 10,
            "jitter_ms": 0,
            "weights": {"swap_buy": 9},
            "enabled_actions": ["swap_buy", "deposit"],
            "amount_range_usd": [1, 2],
            "dry_run": True,
        }
    )

    assert config.market_id == "mkt-1"
    assert config.delay_ms == 10
    assert config.weight_of(ActionType.SWAP_BUY) == 9.0
    assert config.weight_of(ActionType.SWAP_SELL) > 0
    assert config.enabled_actions == {ActionType.SWAP_BUY, ActionType.DEPOSIT}
    assert config.amount_range_usd == (1.0, 2.0)
    assert config.dry_run is True
    assert config.auto_deposit is True


def test_build_spot_client_uses_env_defaults(monkeypatch):
    monkeypatch.setenv(agent_runner.BASE_URL_ENV, "http://gateway.local/api")
    monkeypatch.setenv("SPOT_AGENT_API_TOKEN", "env-token")

    client = build_spot_client({"market_id": "mkt-1", "rest_retries": 1})

    assert client.base_url == "http://gateway.local/api"
    assert client.api_token == "env-token"
    assert client.max_retries == 1


def test_seeded_engines_pick_identically():
    first = build_engine({"market_id": "m", "seed": 5, "log_capacity": 10})
    second = build_engine({"market_id": "m", "seed": 5})

    assert first.log.capacity == 10
    assert first.rng.random() == second.rng.random()


@pytest.mark.asyncio
async def test_run_agent_ticks_until_stopped_and_saves_state(tmp_path):
    market = ManagedMarket()
    stop_event = asyncio.Event()
    config = {"market_id": "mkt-1", "delay_ms": 0, "jitter_ms": 0, "dry_run": True}

    async def stop_soon():
        for _ in range(10):
            await asyncio.sleep(0)
        stop_event.set()

    stopper = asyncio.create_task(stop_soon())
    engine = await run_agent(
        config, client=market, stop_event=stop_event, state_path=tmp_path / "state.json"
    )
    await stopper

    assert market.closed
    assert engine.tick_count >= 1
    assert market.exchange_calls() == []
    saved = json.loads((tmp_path / "state.json").read_text())
    assert saved["status"] == "idle"
    assert saved["tick_count"] == engine.tick_count
    texts = [entry.text for entry in engine.log.entries()]
    assert texts[0] == "agent started on ABC/USDC"
    assert texts[-1] == "agent stopped"


@pytest.mark.asyncio
async def test_run_agent_validates_before_connecting():
    market = ManagedMarket()

    with pytest.raises(ConfigValidationError):
        await run_agent({"market_id": ""}, client=market)

    assert market.calls == []


@pytest.mark.asyncio
async def test_run_cancel_all_without_starting_engine(caplog):
    caplog.set_level(logging.INFO, logger="spot_agent.runner")
    market = ManagedMarket(make_state(orders=sample_orders(2), triggers=sample_triggers(3)))

    orders, triggers = await run_cancel_all(
        {"market_id": "mkt-1"}, include_triggers=True, client=market
    )

    assert (orders, triggers) == (2, 3)
    assert market.closed
    assert len(market.calls_to("cancel_trigger")) == 3
    record = caplog.records[-1]
    assert record.getMessage() == "Kill switches cancelled 2 orders and 3 triggers"
    assert record.market_id == "mkt-1"
