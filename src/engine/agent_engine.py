"""Agent loop that picks weighted-random actions and runs them against a market.

The engine owns a single worker task. Each iteration sleeps for
``delay_ms + U(0, jitter_ms)`` and then runs exactly one tick, so a tick is
never in flight twice. ``pause`` and ``stop`` cancel the worker only while it
is sleeping; a tick that already started runs to completion and its results
are logged into whatever state the engine is in by then.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

from actions.availability import available_actions
from actions.catalog import auto_deposit, get_action
from actions.registry import ActionLogger
from actions.selection import weighted_random
from actions.types import ActionType, AgentConfig, AgentLogEntry, LogType
from engine.agent_log import AgentLog
from engine.state import EngineState, EngineStatus
from engine.tracker import AgentTracker, build_tracker
from spot_client.errors import is_insufficient_balance
from spot_client.exchange import SpotMarket

LOGGER = logging.getLogger("spot_agent.engine")

LogObserver = Callable[[AgentLogEntry], None]
SleepFn = Callable[[float], Awaitable[Any]]


class AgentEngine:
    def __init__(
        self,
        config: AgentConfig | None = None,
        *,
        rng: random.Random | None = None,
        log_capacity: int = 200,
        sleep: SleepFn | None = None,
    ) -> None:
        self.config = config or AgentConfig.default()
        self.rng = rng or random.Random()
        self.log = AgentLog(log_capacity)
        self.state = EngineState()
        self._sleep = sleep or asyncio.sleep
        self._market: SpotMarket | None = None
        self._worker: asyncio.Task | None = None
        self._sleeping = False
        self._generation = 0
        self._in_tick = False
        self._observers: list[LogObserver] = []

    # -- read-only views -------------------------------------------------

    @property
    def status(self) -> EngineStatus:
        return self.state.status

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    @property
    def tick_count(self) -> int:
        return self.state.tick_count

    @property
    def error_count(self) -> int:
        return self.state.error_count

    @property
    def last_action(self) -> ActionType | None:
        return self.state.last_action

    @property
    def market(self) -> SpotMarket | None:
        return self._market

    # -- lifecycle -------------------------------------------------------

    def start(self, market: SpotMarket, symbol: str | None = None) -> None:
        """Bind ``market`` and start ticking. Must be called inside a running loop."""
        if self.state.status is not EngineStatus.IDLE:
            raise RuntimeError(f"Cannot start agent while {self.state.status.value}")
        self._market = market
        self.config = self.config.with_changes(market_id=market.market_id)
        self.state.reset_counters()
        self.state.market_id = market.market_id
        self.state.status = EngineStatus.RUNNING
        self._push(LogType.INFO, f"agent started on {symbol or market.market_id}")
        self._spawn_worker()

    def pause(self) -> None:
        if self.state.status is not EngineStatus.RUNNING:
            return
        self.state.status = EngineStatus.PAUSED
        self._cancel_sleeping_worker()
        self._push(LogType.INFO, "agent paused")

    def resume(self) -> None:
        if self.state.status is not EngineStatus.PAUSED:
            return
        self.state.status = EngineStatus.RUNNING
        self._push(LogType.INFO, "agent resumed")
        if self._worker is None or self._worker.done():
            self._spawn_worker()

    def stop(self) -> None:
        if self.state.status is EngineStatus.IDLE and self._market is None:
            return
        self.state.status = EngineStatus.STOPPING
        self._cancel_sleeping_worker()
        # An in-flight tick keeps running but its worker exits afterwards.
        self._generation += 1
        self._worker = None
        self._push(LogType.INFO, "agent stopped")
        self.state.status = EngineStatus.IDLE
        self._market = None

    def update_config(self, **changes: Any) -> AgentConfig:
        if self.state.status is EngineStatus.RUNNING:
            raise RuntimeError("Pause or stop the agent before changing its config")
        self.config = self.config.with_changes(**changes)
        return self.config

    def clear_log(self) -> None:
        self.log.clear()

    def subscribe(self, observer: LogObserver) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: LogObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # -- worker ----------------------------------------------------------

    def _spawn_worker(self) -> None:
        self._generation += 1
        self._worker = asyncio.get_running_loop().create_task(
            self._run(self._generation), name="spot-agent-worker"
        )

    def _cancel_sleeping_worker(self) -> None:
        if self._worker is not None and self._sleeping:
            self._worker.cancel()
            self._worker = None
            self._sleeping = False

    def _next_delay(self) -> float:
        jitter = self.rng.random() * self.config.jitter_ms
        return (self.config.delay_ms + jitter) / 1000.0

    def _owns_loop(self, generation: int) -> bool:
        return generation == self._generation and self.state.is_running

    async def _run(self, generation: int) -> None:
        while self._owns_loop(generation):
            self._sleeping = True
            try:
                await self._sleep(self._next_delay())
            finally:
                self._sleeping = False
            if not self._owns_loop(generation):
                break
            await self.tick()
        LOGGER.debug("Agent worker %s exited", generation)

    # -- tick ------------------------------------------------------------

    async def tick(self) -> None:
        """Run one selection/execution step against the bound market."""
        market = self._market
        if not self.state.is_running or market is None:
            return
        if self._in_tick:
            LOGGER.debug("Tick already in flight; skipping")
            return
        self._in_tick = True
        try:
            await self._tick(market, self._generation)
        except Exception as exc:
            LOGGER.debug("Tick failed", exc_info=True)
            self.state.error_count += 1
            self._push(LogType.ERROR, f"tick error: {exc}")
        finally:
            self._in_tick = False

    def _tick_current(self, generation: int) -> bool:
        return generation == self._generation and self.state.is_running

    async def _tick(self, market: SpotMarket, generation: int) -> None:
        tracker = await self._snapshot(market)
        if not self._tick_current(generation):
            return
        available = available_actions(tracker, self.config)

        if not available:
            if self.config.auto_deposit and tracker.is_unfunded:
                self._push(
                    LogType.INFO, "no trading balance — performing initial deposit..."
                )
                await auto_deposit(
                    market, tracker, self._action_logger(ActionType.DEPOSIT), self.rng
                )
                return
            self._push(
                LogType.INFO, "no available actions (insufficient balance/entities)"
            )
            return

        action = weighted_random(self.rng, available, self.config.weights)
        self.state.last_action = action
        self.state.tick_count += 1

        if self.config.dry_run:
            self._push(
                LogType.INFO, f"[DRY RUN] would execute: {action.value}", action
            )
            return

        run = get_action(action)
        log = self._action_logger(action)
        result = await run(market, tracker, self.config, log, self.rng)
        if result.success:
            return

        recover = self.config.auto_deposit and is_insufficient_balance(result.error)
        if recover and not self._tick_current(generation):
            LOGGER.info("Agent stopped mid-tick; skipping deposit recovery")
            recover = False
        if recover:
            self._push(LogType.INFO, "insufficient balance — auto-depositing...", action)
            if not await auto_deposit(market, tracker, log, self.rng):
                self.state.error_count += 1
                return
            if not self._tick_current(generation):
                self.state.error_count += 1
                return
            self._push(LogType.INFO, f"retrying {action.value}...", action)
            fresh = await self._snapshot(market)
            retry = await run(market, fresh, self.config, log, self.rng)
            if not retry.success:
                self.state.error_count += 1
            return

        self.state.error_count += 1

    async def _snapshot(self, market: SpotMarket) -> AgentTracker:
        return build_tracker(await market.fetch_state())

    # -- kill switches ---------------------------------------------------

    async def cancel_all_orders(self, market: SpotMarket | None = None) -> int:
        """Cancel every open order one by one; returns how many were cancelled."""
        target = market or self._market
        if target is None:
            LOGGER.warning("No market bound; nothing to cancel")
            return 0
        orders = (await target.fetch_state()).orders
        self._push(LogType.INFO, f"cancelling {len(orders)} orders...")
        cancelled = 0
        for order in orders:
            try:
                await target.cancel_order(order.order_id)
            except Exception as exc:
                self._push(
                    LogType.ERROR, f"failed to cancel #{order.order_id}: {exc}"
                )
                continue
            cancelled += 1
            self._push(LogType.SUCCESS, f"cancelled order #{order.order_id}")
        return cancelled

    async def cancel_all_triggers(self, market: SpotMarket | None = None) -> int:
        """Cancel every open trigger one by one; returns how many were cancelled."""
        target = market or self._market
        if target is None:
            LOGGER.warning("No market bound; nothing to cancel")
            return 0
        triggers = (await target.fetch_state()).triggers
        self._push(LogType.INFO, f"cancelling {len(triggers)} triggers...")
        cancelled = 0
        for trigger in triggers:
            try:
                await target.cancel_trigger(trigger.trigger_id)
            except Exception as exc:
                self._push(
                    LogType.ERROR,
                    f"failed to cancel trigger #{trigger.trigger_id}: {exc}",
                )
                continue
            cancelled += 1
            self._push(LogType.SUCCESS, f"cancelled trigger #{trigger.trigger_id}")
        return cancelled

    # -- logging ---------------------------------------------------------

    def _action_logger(self, action: ActionType) -> ActionLogger:
        def log(type: LogType, text: str, duration_ms: float | None = None) -> None:
            self._push(type, text, action, duration_ms)

        return log

    def _push(
        self,
        type: LogType,
        text: str,
        action_type: ActionType | None = None,
        duration_ms: float | None = None,
    ) -> AgentLogEntry:
        entry = self.log.push(type, text, action_type, duration_ms)
        level = logging.WARNING if type is LogType.ERROR else logging.INFO
        if action_type is not None:
            LOGGER.log(level, "[%s] %s: %s", type.value, action_type.value, text)
        else:
            LOGGER.log(level, "[%s] %s", type.value, text)
        for observer in list(self._observers):
            try:
                observer(entry)
            except Exception:
                LOGGER.exception("Log observer %r failed", observer)
        return entry
