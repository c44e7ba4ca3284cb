"""Status snapshot of a trading agent."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from actions.types import ActionType


class EngineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPING = "stopping"


@dataclass
class EngineState:
    status: EngineStatus = EngineStatus.IDLE
    tick_count: int = 0
    error_count: int = 0
    last_action: ActionType | None = None
    market_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self.status is EngineStatus.RUNNING

    def reset_counters(self) -> None:
        self.tick_count = 0
        self.error_count = 0
        self.last_action = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "tick_count": self.tick_count,
            "error_count": self.error_count,
            "last_action": self.last_action.value if self.last_action else None,
            "market_id": self.market_id,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "EngineState":
        last_action = payload.get("last_action")
        return cls(
            status=EngineStatus(payload.get("status", EngineStatus.IDLE.value)),
            tick_count=int(payload.get("tick_count", 0)),
            error_count=int(payload.get("error_count", 0)),
            last_action=ActionType(last_action) if last_action else None,
            market_id=payload.get("market_id"),
        )

    def save(self, path: str | Path) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(self.to_payload(), indent=2, sort_keys=True), encoding="utf-8"
        )

    @classmethod
    def load(cls, path: str | Path) -> "EngineState":
        target = Path(path)
        if not target.exists():
            return cls()
        return cls.from_payload(json.loads(target.read_text(encoding="utf-8")))
