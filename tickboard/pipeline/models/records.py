"""Normalized records produced by the event transformers."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import CandleType, EventKind


class TradeConditions(BaseModel):
    """Boolean flags decoded from a trade's condition codes."""

    is_regular: bool = True
    is_odd_lot: bool = False
    is_after_hours: bool = False
    is_intermarket: bool = False
    is_form_t: bool = False

    model_config = ConfigDict(frozen=True)


class NormalizedRecord(BaseModel):
    """Fields shared by every normalized record.

    ``price`` is always set: a record that cannot produce a price is rejected
    by its transformer. ``timestamp`` is the event time (UTC) when the vendor
    supplied one; ``raw_timestamp`` keeps the original milliseconds.
    """

    event_type: EventKind
    symbol: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    volume: float | None = None
    timestamp: datetime | None = None
    raw_timestamp: int | None = None

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @property
    def event_time_ms(self) -> int | None:
        if self.raw_timestamp is not None:
            return self.raw_timestamp
        if self.timestamp is not None:
            return int(self.timestamp.timestamp() * 1000)
        return None


class TradeRecord(NormalizedRecord):
    """Normalized trade."""

    event_type: EventKind = EventKind.TRADE
    volume: float = 0
    exchange: int | str | None = None
    exchange_name: str | None = None
    trade_id: int | str | None = None
    conditions: tuple[int, ...] = ()
    condition_flags: TradeConditions | None = None


class QuoteRecord(NormalizedRecord):
    """Normalized quote; ``price`` is the mid and ``volume`` is bid + ask size."""

    event_type: EventKind = EventKind.QUOTE
    bid_price: float
    ask_price: float
    bid_size: float = 0
    ask_size: float = 0
    spread: float = 0
    spread_percent: float = 0
    bid_value: float | None = None
    ask_value: float | None = None
    exchange: int | str | None = None


class BarRecord(NormalizedRecord):
    """Normalized aggregate bar; ``price`` is the close."""

    event_type: EventKind = EventKind.BAR
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float
    vwap: float | None = None
    transactions: int | None = None
    range: float | None = None
    range_percent: float | None = None
    body_size: float | None = None
    body_size_percent: float | None = None
    candle_type: CandleType | None = None
    typical_price: float | None = None
    avg_trade_size: float | None = None


AnyRecord = TradeRecord | QuoteRecord | BarRecord
