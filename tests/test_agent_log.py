import pytest

from actions.types import ActionType, LogType
from engine.agent_log import AgentLog


def test_log_keeps_most_recent_entries_in_order():
    log = AgentLog(capacity=10)

    for index in range(15):
        log.push(LogType.INFO, f"entry {index}")

    assert len(log) == 10
    assert [entry.text for entry in log.entries()] == [
        f"entry {index}" for index in range(5, 15)
    ]
    assert [entry.id for entry in log] == list(range(5, 15))


def test_clear_resets_ids():
    log = AgentLog(capacity=3)
    log.push(LogType.INFO, "a")
    log.push(LogType.INFO, "b")

    log.clear()
    entry = log.push(LogType.ERROR, "c", ActionType.SWAP_BUY, 1.5)

    assert len(log) == 1
    assert entry.id == 0
    assert entry.to_payload() == {
        "id": 0,
        "timestamp": entry.timestamp,
        "type": "error",
        "text": "c",
        "action_type": "swap_buy",
        "duration_ms": 1.5,
    }


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        AgentLog(capacity=0)
