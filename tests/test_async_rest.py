"""Tests for async REST client request formation and error mapping."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from spot_client import async_rest
from spot_client.async_rest import AsyncRestRequest, AsyncSpotClient
from spot_client.errors import SpotApiError, SpotRateLimitError, SpotTransientError
from spot_client.models import BookOrderSpec, Side, TokenSide


class FakeResponse:
    def __init__(
        self,
        status: int,
        payload: Any,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status = status
        self._payload = payload
        self.headers = headers or {}

    async def text(self) -> str:
        if isinstance(self._payload, str):
            return self._payload
        return json.dumps(self._payload)

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class FakeSession:
    def __init__(self, responses: list[FakeResponse | Exception]) -> None:
        self.responses = responses
        self.requests: list[dict[str, Any]] = []

    def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        data: bytes | None = None,
        timeout: Any | None = None,
    ) -> FakeResponse:
        self.requests.append(
            {
                "method": method,
                "url": url,
                "params": params,
                "headers": headers or {},
                "data": data,
                "timeout": timeout,
            }
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        return None


@pytest.fixture
def no_sleep(monkeypatch):
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(async_rest.asyncio, "sleep", fake_sleep)
    return delays


def make_client(responses, **kwargs) -> tuple[AsyncSpotClient, FakeSession]:
    session = FakeSession(responses)
    client = AsyncSpotClient(
        "https://gateway.test/api/v1/",
        "mkt-1",
        api_token="secret-token",
        session=session,  # type: ignore[arg-type]
        **kwargs,
    )
    return client, session


@pytest.mark.asyncio
async def test_post_formation_includes_bearer_token_and_json_body() -> None:
    client, session = make_client([FakeResponse(200, {"ok": {"order_results": []}})])

    await client.create_orders(
        [7],
        [BookOrderSpec(side=Side.BUY, limit_tick=990, input_amount=1_000)],
        [],
    )

    request = session.requests[0]
    assert request["method"] == "POST"
    assert request["url"] == "https://gateway.test/api/v1/markets/mkt-1/orders"
    assert request["headers"]["Authorization"] == "Bearer secret-token"
    assert request["headers"]["Content-Type"] == "application/json"
    assert json.loads(request["data"]) == {
        "cancel_ids": ["7"],
        "orders": [
            {
                "side": "buy",
                "limit_tick": 990,
                "input_amount": 1000,
                "immediate_or_cancel": False,
            }
        ],
        "pool_swaps": [],
    }


@pytest.mark.asyncio
async def test_get_request_passes_params_without_body() -> None:
    client, session = make_client([FakeResponse(200, {"ok": {"value": 1}})])

    result = await client.send(
        AsyncRestRequest(method="get", path="/ping", params={"verbose": "1"})
    )

    assert result == {"value": 1}
    request = session.requests[0]
    assert request["method"] == "GET"
    assert request["params"] == {"verbose": "1"}
    assert request["data"] is None


@pytest.mark.asyncio
async def test_error_arm_raises_formatted_api_error() -> None:
    client, _ = make_client(
        [
            FakeResponse(
                200,
                {
                    "err": {
                        "code": "INSUFFICIENT_BALANCE",
                        "message": "Insufficient balance",
                        "category": {"user_error": None},
                    }
                },
            )
        ]
    )

    with pytest.raises(SpotApiError) as excinfo:
        await client.deposit(TokenSide.BASE, 10)

    assert str(excinfo.value) == "[INSUFFICIENT_BALANCE] Insufficient balance (user_error)"
    assert excinfo.value.code == "INSUFFICIENT_BALANCE"


@pytest.mark.asyncio
async def test_http_error_uses_error_payload_when_present() -> None:
    client, _ = make_client(
        [FakeResponse(400, {"err": {"code": "BAD_TICK", "message": "tick out of range"}})]
    )

    with pytest.raises(SpotApiError, match=r"\[BAD_TICK\] tick out of range"):
        await client.cancel_order(5)


@pytest.mark.asyncio
async def test_http_error_without_json_payload() -> None:
    client, _ = make_client([FakeResponse(404, "not here")])

    with pytest.raises(SpotApiError, match="HTTP error 404: not here"):
        await client.cancel_trigger(5)


@pytest.mark.asyncio
async def test_rate_limit_honours_retry_after(no_sleep) -> None:
    client, session = make_client(
        [
            FakeResponse(429, {}, headers={"Retry-After": "2"}),
            FakeResponse(200, {"ok": {}}),
        ]
    )

    await client.ensure_allowance(TokenSide.QUOTE)

    assert no_sleep == [2.0]
    assert len(session.requests) == 2


@pytest.mark.asyncio
async def test_rate_limit_gives_up_after_max_retries(no_sleep) -> None:
    client, _ = make_client(
        [FakeResponse(429, {}), FakeResponse(429, {})], max_retries=1
    )

    with pytest.raises(SpotRateLimitError):
        await client.withdraw(TokenSide.BASE, 1)

    assert len(no_sleep) == 1


@pytest.mark.asyncio
async def test_timeouts_and_server_errors_are_retried(no_sleep) -> None:
    client, session = make_client(
        [
            asyncio.TimeoutError(),
            FakeResponse(503, "unavailable"),
            FakeResponse(200, {"ok": {"order_id": "9", "replaced": True}}),
        ],
        backoff_factor=0.1,
    )

    result = await client.update_order(9, 1010, 500)

    assert result.order_id == 9
    assert result.was_replaced is True
    assert len(session.requests) == 3
    assert 0.1 <= no_sleep[0] <= 0.2
    assert 0.2 <= no_sleep[1] <= 0.4


@pytest.mark.asyncio
async def test_transient_errors_surface_after_retries(no_sleep) -> None:
    client, _ = make_client([FakeResponse(502, ""), FakeResponse(502, "")], max_retries=1)

    with pytest.raises(SpotTransientError):
        await client.fetch_state()


@pytest.mark.asyncio
async def test_fetch_state_parses_payload_and_defaults_market_id() -> None:
    payload = {
        "ok": {
            "symbol": "ABC/USDC",
            "last_trade_tick": -120,
            "available_base": "5000",
            "available_quote": None,
            "base_token": {"symbol": "ABC", "decimals": 8, "fee": 10000},
            "orders": [
                {"order_id": 3, "side": "sell", "tick": -100, "base_amount": 40}
            ],
            "positions": [
                {"position_id": 4, "tick_lower": -600, "tick_upper": 600, "liquidity": 9}
            ],
        }
    }
    client, session = make_client([FakeResponse(200, payload)])

    state = await client.fetch_state()

    assert session.requests[0]["method"] == "GET"
    assert session.requests[0]["url"].endswith("/markets/mkt-1/state")
    assert state.market_id == "mkt-1"
    assert state.available_base == 5000
    assert state.available_quote == 0
    assert state.base_token.fee == 10000
    assert state.orders[0].side is Side.SELL
    assert state.positions[0].liquidity == 9


@pytest.mark.asyncio
async def test_batch_outcomes_keep_per_index_errors() -> None:
    payload = {
        "ok": {
            "order_results": [
                {"ok": {"order_id": "41"}},
                {"err": {"code": "BAD_TICK", "message": "no"}},
            ],
            "cancelled_ids": ["3"],
        }
    }
    client, _ = make_client([FakeResponse(200, payload)])

    result = await client.create_orders([3], [], [])

    assert result.first_order_id() == 41
    assert result.order_results[1].error == "[BAD_TICK] no"
    assert list(result.cancelled_ids) == [3]


@pytest.mark.asyncio
async def test_trigger_batch_outcome() -> None:
    client, _ = make_client(
        [FakeResponse(200, {"ok": {"results": [{"ok": {"trigger_id": 12}}]}})]
    )

    result = await client.create_triggers([], [])

    assert result.first_trigger_id() == 12


@pytest.mark.asyncio
async def test_quote_accepts_list_form_book_order() -> None:
    payload = {
        "ok": {
            "input_amount": 100,
            "output_amount": 195,
            "price_impact_bps": 4,
            "pool_swaps": [
                {"side": "buy", "limit_tick": 1100, "input_amount": 60, "fee_pips": 3000}
            ],
            "book_order": [{"side": "buy", "limit_tick": 1100, "input_amount": 40}],
        }
    }
    client, session = make_client([FakeResponse(200, payload)])

    quote = await client.quote_order(Side.BUY, 100, 1100)

    assert json.loads(session.requests[0]["data"]) == {
        "side": "buy",
        "amount": "100",
        "limit_tick": 1100,
    }
    assert quote.output_amount == 195
    assert quote.book_order is not None
    assert quote.book_order.input_amount == 40
    assert quote.pool_swaps[0].fee_pips == 3000


@pytest.mark.asyncio
async def test_quote_with_empty_book_order_list() -> None:
    client, _ = make_client(
        [FakeResponse(200, {"ok": {"output_amount": 1, "book_order": []}})]
    )

    quote = await client.quote_order(Side.SELL, 5, 900)

    assert quote.book_order is None


@pytest.mark.asyncio
async def test_liquidity_errors_become_result_errors() -> None:
    client, _ = make_client(
        [FakeResponse(200, {"err": {"code": "POSITION_NOT_FOUND", "message": "gone"}})]
    )

    result = await client.collect_fees(4)

    assert not result.ok
    assert result.error == "[POSITION_NOT_FOUND] gone"


@pytest.mark.asyncio
async def test_liquidity_success_maps_collected_amounts() -> None:
    client, session = make_client(
        [FakeResponse(200, {"ok": {"collected_amt0": "12", "collected_amt1": "34"}})]
    )

    result = await client.collect_fees(4)

    assert session.requests[0]["url"].endswith("/markets/mkt-1/liquidity/4/collect")
    assert result.ok
    assert (result.amount0, result.amount1) == (12, 34)


@pytest.mark.asyncio
async def test_liquidity_transient_errors_still_raise(no_sleep) -> None:
    client, _ = make_client([FakeResponse(500, "")], max_retries=0)

    with pytest.raises(SpotTransientError):
        await client.add_liquidity(3000, -600, 600, 10, 10)


def test_client_without_token_sends_no_authorization() -> None:
    client = AsyncSpotClient("http://localhost:8080", "m", verify_ssl=False)

    assert client.api_token is None
    assert client.build_url("markets/m/state") == "http://localhost:8080/markets/m/state"
    assert client.market_path("/orders") == "/markets/m/orders"
