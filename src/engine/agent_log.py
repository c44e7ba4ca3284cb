"""Bounded, append-only activity log for an agent."""

from __future__ import annotations

import time
from collections import deque
from typing import Iterator

from actions.types import ActionType, AgentLogEntry, LogType


class AgentLog:
    """Ring buffer of log entries; the oldest entries are evicted first."""

    def __init__(self, capacity: int = 200) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: deque[AgentLogEntry] = deque(maxlen=capacity)
        self._next_id = 0

    def push(
        self,
        type: LogType,
        text: str,
        action_type: ActionType | None = None,
        duration_ms: float | None = None,
    ) -> AgentLogEntry:
        entry = AgentLogEntry(
            id=self._next_id,
            timestamp=time.time(),
            type=type,
            text=text,
            action_type=action_type,
            duration_ms=duration_ms,
        )
        self._next_id += 1
        self._entries.append(entry)
        return entry

    def entries(self) -> list[AgentLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AgentLogEntry]:
        return iter(list(self._entries))
