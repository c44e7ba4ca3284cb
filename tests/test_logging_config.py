import json
import logging

from utils.logging_config import (
    LogContext,
    SanitizingFormatter,
    StructuredFormatter,
    get_logger,
)


def make_record(msg, *args, **extra):
    record = logging.LogRecord("spot_agent.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_sanitizer_redacts_bearer_tokens_and_secrets():
    formatter = SanitizingFormatter("%(message)s")

    rendered = formatter.format(
        make_record("sent Bearer abc.def-123 with api_token=%s", "s3cr3t")
    )

    assert "abc.def-123" not in rendered
    assert "s3cr3t" not in rendered
    assert "Bearer [REDACTED]" in rendered
    assert "api_token=[REDACTED]" in rendered


def test_sanitizer_keeps_ordinary_messages():
    formatter = SanitizingFormatter("%(message)s")

    assert formatter.redact("placed order 42 at tick 990") == "placed order 42 at tick 990"
    assert formatter.redact("password: hunter2") == "password=[REDACTED]"


def test_structured_formatter_includes_extra_fields():
    formatter = StructuredFormatter()

    payload = json.loads(formatter.format(make_record("tick %s", 3, market_id="mkt-1")))

    assert payload["message"] == "tick 3"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "spot_agent.test"
    assert payload["market_id"] == "mkt-1"


def test_log_context_attaches_fields_and_restores_factory():
    original = logging.getLogRecordFactory()

    with LogContext(market_id="mkt-9") as context:
        record = logging.getLogger("spot_agent.test").makeRecord(
            "spot_agent.test", logging.INFO, __file__, 1, "hello", (), None
        )
        assert context.fields == {"market_id": "mkt-9"}

    assert record.market_id == "mkt-9"
    assert logging.getLogRecordFactory() is original


def test_get_logger_carries_context(caplog):
    caplog.set_level(logging.INFO, logger="spot_agent.test")

    get_logger("spot_agent.test", market_id="mkt-2").info("ready")

    assert caplog.records[-1].market_id == "mkt-2"
