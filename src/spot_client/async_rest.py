"""Async REST client for a spot market exchange gateway."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import ssl
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import aiohttp

from spot_client.errors import SpotApiError, SpotRateLimitError, SpotTransientError
from spot_client.models import (
    ApiError,
    BatchResult,
    BookOrderSpec,
    LiquidityResult,
    MarketState,
    OrderOutcome,
    PoolSwapSpec,
    QuoteResult,
    Side,
    TokenSide,
    TriggerBatchResult,
    TriggerOutcome,
    TriggerSpec,
    UpdateOrderResult,
    format_api_error,
)

LOGGER = logging.getLogger("spot_agent.client")


@dataclass
class AsyncRestRequest:
    method: str
    path: str
    params: Mapping[str, Any] | None = None
    body: Mapping[str, Any] | None = None


class AsyncSpotClient:
    """Exchange client for one market with retry and rate-limit handling."""

    def __init__(
        self,
        base_url: str,
        market_id: str,
        api_token: str | None = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        session: aiohttp.ClientSession | None = None,
        verify_ssl: bool = True,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.market_id = market_id
        self.api_token = api_token
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        if verify_ssl:
            self._ssl_context: ssl.SSLContext | bool = ssl.create_default_context()
        else:
            self._ssl_context = False
            LOGGER.warning(
                "SSL certificate verification is DISABLED. "
                "Only use this against a local gateway."
            )
        self._session = session
        self._owns_session = session is None

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def market_path(self, suffix: str) -> str:
        return f"/markets/{self.market_id}/{suffix.lstrip('/')}"

    async def send(self, request: AsyncRestRequest) -> Any:
        attempts = 0
        while True:
            try:
                return await self._send_once(request)
            except SpotRateLimitError as exc:
                attempts += 1
                if attempts > self.max_retries:
                    raise
                delay = exc.retry_after or self._compute_backoff(attempts)
                await asyncio.sleep(delay)
            except SpotTransientError:
                attempts += 1
                if attempts > self.max_retries:
                    raise
                await asyncio.sleep(self._compute_backoff(attempts))

    async def _send_once(self, request: AsyncRestRequest) -> Any:
        url = self.build_url(request.path)
        headers = {"Accept": "application/json"}
        data_bytes = None
        if request.body is not None:
            data_bytes = json.dumps(dict(request.body)).encode("utf8")
            headers["Content-Type"] = "application/json"
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        session = await self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with session.request(
                request.method.upper(),
                url,
                params=dict(request.params) if request.params else None,
                headers=headers,
                data=data_bytes,
                timeout=timeout,
            ) as response:
                payload = await response.text()
                if response.status == 429:
                    retry_after = self._parse_retry_after(
                        response.headers.get("Retry-After")
                    )
                    raise SpotRateLimitError(
                        "Rate limit exceeded", retry_after=retry_after
                    )
                if response.status in {500, 502, 503, 504}:
                    raise SpotTransientError(f"Transient HTTP error {response.status}")
                if response.status >= 400:
                    raise self._build_http_error(response.status, payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise SpotTransientError("Network error while contacting gateway") from exc

        if not payload:
            return {}
        return self._unwrap(json.loads(payload))

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
            self._owns_session = False

    async def __aenter__(self) -> "AsyncSpotClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            connector = aiohttp.TCPConnector(ssl=self._ssl_context)
            self._session = aiohttp.ClientSession(timeout=timeout, connector=connector)
        return self._session

    def _compute_backoff(self, attempt: int) -> float:
        base = self.backoff_factor * (2 ** (attempt - 1))
        return base + random.uniform(0, base)

    def _parse_retry_after(self, header_value: str | None) -> float | None:
        if header_value is None:
            return None
        try:
            return float(header_value)
        except ValueError:
            return None

    def _build_http_error(self, status_code: int, payload: str) -> SpotApiError:
        error = self._parse_error(payload)
        if error is not None:
            return SpotApiError(format_api_error(error), code=error.code)
        if payload:
            return SpotApiError(f"HTTP error {status_code}: {payload}")
        return SpotApiError(f"HTTP error {status_code}")

    def _parse_error(self, payload: str) -> ApiError | None:
        if not payload:
            return None
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            return None
        if isinstance(data, dict) and isinstance(data.get("err"), dict):
            return ApiError.model_validate(data["err"])
        return None

    def _unwrap(self, response: Any) -> Any:
        """Return the ``ok`` arm of a result union, raising on ``err``."""
        if not isinstance(response, dict):
            return response
        if "err" in response:
            err = response["err"]
            if isinstance(err, dict):
                error = ApiError.model_validate(err)
                raise SpotApiError(format_api_error(error), code=error.code)
            raise SpotApiError(str(err))
        return response.get("ok", response)

    async def _post(self, suffix: str, body: Mapping[str, Any] | None = None) -> Any:
        return await self.send(
            AsyncRestRequest(method="POST", path=self.market_path(suffix), body=body or {})
        )

    async def _post_liquidity(
        self, suffix: str, body: Mapping[str, Any] | None = None
    ) -> LiquidityResult:
        try:
            payload = await self._post(suffix, body)
        except SpotApiError as exc:
            if isinstance(exc, (SpotTransientError, SpotRateLimitError)):
                raise
            return LiquidityResult(error=str(exc))
        payload = payload or {}
        return LiquidityResult(
            position_id=payload.get("position_id"),
            amount0=int(payload.get("amount0", payload.get("collected_amt0", 0))),
            amount1=int(payload.get("amount1", payload.get("collected_amt1", 0))),
        )

    async def fetch_state(self) -> MarketState:
        payload = await self.send(
            AsyncRestRequest(method="GET", path=self.market_path("state"))
        )
        data = dict(payload or {})
        data.setdefault("market_id", self.market_id)
        return MarketState.model_validate(data)

    async def create_orders(
        self,
        cancel_ids: Sequence[int],
        new_orders: Sequence[BookOrderSpec],
        pool_swaps: Sequence[PoolSwapSpec],
    ) -> BatchResult:
        payload = await self._post(
            "orders",
            {
                "cancel_ids": [str(order_id) for order_id in cancel_ids],
                "orders": [order.model_dump(mode="json") for order in new_orders],
                "pool_swaps": [swap.model_dump(mode="json") for swap in pool_swaps],
            },
        )
        payload = payload or {}
        outcomes = [
            _order_outcome(index, item)
            for index, item in enumerate(payload.get("order_results", []))
        ]
        return BatchResult(
            order_results=outcomes,
            cancelled_ids=[int(item) for item in payload.get("cancelled_ids", [])],
            raw_payload=payload,
        )

    async def create_triggers(
        self, cancel_ids: Sequence[int], new_triggers: Sequence[TriggerSpec]
    ) -> TriggerBatchResult:
        payload = await self._post(
            "triggers",
            {
                "cancel_ids": [str(trigger_id) for trigger_id in cancel_ids],
                "triggers": [trigger.model_dump(mode="json") for trigger in new_triggers],
            },
        )
        payload = payload or {}
        outcomes = [
            _trigger_outcome(index, item)
            for index, item in enumerate(payload.get("results", []))
        ]
        return TriggerBatchResult(
            results=outcomes,
            cancelled_ids=[int(item) for item in payload.get("cancelled_ids", [])],
            raw_payload=payload,
        )

    async def cancel_order(self, order_id: int) -> None:
        await self._post(f"orders/{order_id}/cancel")

    async def cancel_trigger(self, trigger_id: int) -> None:
        await self._post(f"triggers/{trigger_id}/cancel")

    async def update_order(
        self, order_id: int, new_tick: int, new_amount: int
    ) -> UpdateOrderResult:
        payload = await self._post(
            f"orders/{order_id}/update",
            {"tick": new_tick, "amount": str(new_amount)},
        )
        payload = payload or {}
        return UpdateOrderResult(
            order_id=int(payload.get("order_id", order_id)),
            was_replaced=bool(payload.get("replaced", False)),
        )

    async def quote_order(
        self, side: Side, amount: int, limit_tick: int
    ) -> QuoteResult:
        payload = await self._post(
            "quote",
            {"side": side.value, "amount": str(amount), "limit_tick": limit_tick},
        )
        data = dict(payload or {})
        book_order = data.get("book_order")
        if isinstance(book_order, list):
            data["book_order"] = book_order[0] if book_order else None
        return QuoteResult.model_validate(data)

    async def deposit(self, token: TokenSide, amount: int) -> None:
        await self._post("deposit", {"token": token.value, "amount": str(amount)})

    async def withdraw(self, token: TokenSide, amount: int) -> None:
        await self._post("withdraw", {"token": token.value, "amount": str(amount)})

    async def ensure_allowance(self, token: TokenSide) -> None:
        await self._post("approve", {"token": token.value})

    async def add_liquidity(
        self,
        fee_pips: int,
        tick_lower: int,
        tick_upper: int,
        amount0: int,
        amount1: int,
    ) -> LiquidityResult:
        return await self._post_liquidity(
            "liquidity",
            {
                "fee_pips": fee_pips,
                "tick_lower": tick_lower,
                "tick_upper": tick_upper,
                "amount0": str(amount0),
                "amount1": str(amount1),
            },
        )

    async def increase_liquidity(
        self, position_id: int, amount0: int, amount1: int
    ) -> LiquidityResult:
        return await self._post_liquidity(
            f"liquidity/{position_id}/increase",
            {"amount0": str(amount0), "amount1": str(amount1)},
        )

    async def decrease_liquidity(
        self, position_id: int, liquidity_delta: int
    ) -> LiquidityResult:
        return await self._post_liquidity(
            f"liquidity/{position_id}/decrease",
            {"liquidity_delta": str(liquidity_delta)},
        )

    async def collect_fees(self, position_id: int) -> LiquidityResult:
        return await self._post_liquidity(f"liquidity/{position_id}/collect")


def _order_outcome(index: int, item: Mapping[str, Any]) -> OrderOutcome:
    if "err" in item:
        return OrderOutcome(index=index, error=_error_text(item["err"]))
    result = item.get("ok", item)
    order_id = result.get("order_id") if isinstance(result, Mapping) else None
    return OrderOutcome(
        index=index, order_id=int(order_id) if order_id is not None else None
    )


def _trigger_outcome(index: int, item: Mapping[str, Any]) -> TriggerOutcome:
    if "err" in item:
        return TriggerOutcome(index=index, error=_error_text(item["err"]))
    result = item.get("ok", item)
    trigger_id = result.get("trigger_id") if isinstance(result, Mapping) else None
    return TriggerOutcome(
        index=index, trigger_id=int(trigger_id) if trigger_id is not None else None
    )


def _error_text(err: Any) -> str:
    if isinstance(err, Mapping):
        return format_api_error(ApiError.model_validate(dict(err)))
    return str(err)
