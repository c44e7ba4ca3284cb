"""Registration and shared execution wrapper for catalog actions."""

from __future__ import annotations

import functools
import random
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Protocol

from actions.types import ActionResult, ActionType, AgentConfig, LogType

if TYPE_CHECKING:
    from engine.tracker import AgentTracker
    from spot_client.exchange import ExchangeClient


class ActionLogger(Protocol):
    def __call__(
        self, type: LogType, text: str, duration_ms: float | None = None
    ) -> None: ...


ActionBody = Callable[
    ["ExchangeClient", "AgentTracker", AgentConfig, ActionLogger, random.Random],
    Awaitable[str],
]
ActionFn = Callable[
    ["ExchangeClient", "AgentTracker", AgentConfig, ActionLogger, random.Random],
    Awaitable[ActionResult],
]

_REGISTRY: dict[ActionType, ActionFn] = {}


class ActionFailed(Exception):
    """Raised by an action body when the exchange returned an error payload."""


def elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


def require_tick(tracker: "AgentTracker") -> int:
    if tracker.tick is None:
        raise ValueError(f"market {tracker.symbol} has no reference tick yet")
    return tracker.tick


def register(kind: ActionType) -> Callable[[ActionBody], ActionFn]:
    """Register ``body`` as the handler for ``kind``.

    The body logs its own prompt/action/result lines and returns the text of
    the final success line. Any exception is logged as an error line and
    turned into a failed ActionResult.
    """

    def decorator(body: ActionBody) -> ActionFn:
        if kind in _REGISTRY:
            raise ValueError(f"Duplicate handler registered for action {kind.value}")

        @functools.wraps(body)
        async def run(
            client: "ExchangeClient",
            tracker: "AgentTracker",
            config: AgentConfig,
            log: ActionLogger,
            rng: random.Random,
        ) -> ActionResult:
            started = time.perf_counter()
            try:
                message = await body(client, tracker, config, log, rng)
            except Exception as exc:
                error = str(exc) or exc.__class__.__name__
                log(LogType.ERROR, error, elapsed_ms(started))
                return ActionResult(success=False, error=error)
            log(LogType.SUCCESS, message, elapsed_ms(started))
            return ActionResult(success=True)

        _REGISTRY[kind] = run
        return run

    return decorator


def registered_actions() -> dict[ActionType, ActionFn]:
    return dict(_REGISTRY)
