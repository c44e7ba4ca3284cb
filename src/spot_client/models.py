"""Shared data models for the spot exchange client.

Pydantic-based models mirroring the exchange gateway payloads. Amounts are
integers in the token's smallest unit, prices are ticks.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY


class TokenSide(str, Enum):
    BASE = "base"
    QUOTE = "quote"


def _validate_amount(v: Any) -> int:
    try:
        amount = int(v)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid amount: {v}") from e
    if amount < 0:
        raise ValueError("Amount cannot be negative")
    return amount


class BookOrderSpec(BaseModel):
    """Resting or immediate order on the order book."""

    model_config = ConfigDict(frozen=True)

    side: Side
    limit_tick: int
    input_amount: int
    immediate_or_cancel: bool = False

    @field_validator("input_amount", mode="before")
    @classmethod
    def validate_input_amount(cls, v: Any) -> int:
        return _validate_amount(v)


class PoolSwapSpec(BaseModel):
    """AMM leg of a routed order, as suggested by a quote."""

    model_config = ConfigDict(frozen=True)

    side: Side
    limit_tick: int
    input_amount: int
    fee_pips: int

    @field_validator("input_amount", mode="before")
    @classmethod
    def validate_input_amount(cls, v: Any) -> int:
        return _validate_amount(v)


class TriggerSpec(BaseModel):
    """Stop/take-profit trigger that activates into a limit order."""

    model_config = ConfigDict(frozen=True)

    side: Side
    trigger_tick: int
    limit_tick: int
    input_amount: int
    reference_tick: int
    immediate_or_cancel: bool = False

    @field_validator("input_amount", mode="before")
    @classmethod
    def validate_input_amount(cls, v: Any) -> int:
        return _validate_amount(v)


class ApiError(BaseModel):
    """Error payload returned by the exchange."""

    model_config = ConfigDict(frozen=True)

    code: str = ""
    message: str = ""
    category: str | None = None
    metadata: Mapping[str, str] = Field(default_factory=dict)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> str | None:
        """Accept both ``"user_error"`` and the variant form ``{"user_error": null}``."""
        if isinstance(v, Mapping):
            return next(iter(v), None)
        return v


def format_api_error(error: ApiError) -> str:
    """Render an ApiError as ``[CODE] message (category)``."""
    parts: list[str] = []
    if error.code:
        parts.append(f"[{error.code}]")
    if error.message:
        parts.append(error.message)
    if error.category:
        parts.append(f"({error.category})")
    if error.metadata:
        details = ", ".join(f"{key}: {value}" for key, value in error.metadata.items())
        parts.append(f"Details: {details}")
    return " ".join(parts)


class OrderOutcome(BaseModel):
    """Per-index outcome of a created order within a batch."""

    model_config = ConfigDict(frozen=True)

    index: int
    order_id: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.order_id is not None


class BatchResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    order_results: Sequence[OrderOutcome] = Field(default_factory=tuple)
    cancelled_ids: Sequence[int] = Field(default_factory=tuple)
    raw_payload: Mapping[str, Any] = Field(default_factory=dict)

    def first_order_id(self) -> int | None:
        if not self.order_results:
            return None
        first = self.order_results[0]
        return first.order_id if first.ok else None

    def created_ids(self) -> list[int]:
        return [item.order_id for item in self.order_results if item.ok]


class TriggerOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    trigger_id: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.trigger_id is not None


class TriggerBatchResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    results: Sequence[TriggerOutcome] = Field(default_factory=tuple)
    cancelled_ids: Sequence[int] = Field(default_factory=tuple)
    raw_payload: Mapping[str, Any] = Field(default_factory=dict)

    def first_trigger_id(self) -> int | None:
        if not self.results:
            return None
        first = self.results[0]
        return first.trigger_id if first.ok else None


class UpdateOrderResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: int
    was_replaced: bool = False


class QuoteResult(BaseModel):
    """Read-only preview of an order, including the suggested routing split."""

    model_config = ConfigDict(frozen=True)

    input_amount: int = 0
    output_amount: int
    price_impact_bps: int = 0
    reference_tick: int | None = None
    pool_swaps: Sequence[PoolSwapSpec] = Field(default_factory=tuple)
    book_order: BookOrderSpec | None = None


class LiquidityResult(BaseModel):
    """Result/error union returned by the liquidity endpoints."""

    model_config = ConfigDict(frozen=True)

    position_id: int | None = None
    amount0: int = 0
    amount1: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class OrderView(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: int
    side: Side
    tick: int
    base_amount: int = 0
    quote_amount: int = 0


class TriggerView(BaseModel):
    model_config = ConfigDict(frozen=True)

    trigger_id: int
    side: Side
    trigger_tick: int
    limit_tick: int
    input_amount: int


class PositionView(BaseModel):
    model_config = ConfigDict(frozen=True)

    position_id: int
    tick_lower: int
    tick_upper: int
    liquidity: int


class TokenInfo(BaseModel):
    """Ledger metadata for one leg of the market."""

    model_config = ConfigDict(frozen=True)

    ledger_id: str = ""
    symbol: str = ""
    decimals: int = 8
    fee: int | None = None


class MarketState(BaseModel):
    """Account and market state for one market, as reported by the exchange."""

    model_config = ConfigDict(frozen=True)

    market_id: str
    symbol: str
    last_trade_tick: int | None = None
    available_base: int = 0
    available_quote: int = 0
    base_token: TokenInfo = Field(default_factory=TokenInfo)
    quote_token: TokenInfo = Field(default_factory=TokenInfo)
    fee_pips: int = 3000
    tick_spacing: int | None = None
    orders: Sequence[OrderView] = Field(default_factory=tuple)
    triggers: Sequence[TriggerView] = Field(default_factory=tuple)
    positions: Sequence[PositionView] = Field(default_factory=tuple)

    @field_validator("available_base", "available_quote", mode="before")
    @classmethod
    def validate_balances(cls, v: Any) -> int:
        if v is None:
            return 0
        return _validate_amount(v)
