"""Raw vendor events as a tagged union.

Architecture:
    Each inbound market-data item is one of three shapes (trade, quote,
    aggregate bar). They are modelled as permissive pydantic models joined
    into ``RawEvent``, a discriminated union on ``event_type``. Required-field
    checks happen in the transformers: a trade without a symbol is a rejected
    record, not a malformed payload.

Design Decisions:
    - Tag read from ``event_type`` with ``type`` as fallback
    - ``aggregate`` is accepted as an alias of ``bar``
    - Unknown extra vendor fields are ignored
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..core.enums import EventKind


class _RawEventBase(BaseModel):
    symbol: str | None = None
    timestamp: int | None = None

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    @property
    def kind(self) -> EventKind:
        return EventKind(self.event_type)  # type: ignore[attr-defined]


class TradeEvent(_RawEventBase):
    """Single executed trade."""

    event_type: Literal["trade"] = "trade"
    price: float | None = None
    size: float | None = None
    exchange: int | str | None = None
    trade_id: int | str | None = None
    conditions: list[int] = Field(default_factory=list)


class QuoteEvent(_RawEventBase):
    """Top-of-book quote update."""

    event_type: Literal["quote"] = "quote"
    bid_price: float | None = None
    bid_size: float | None = None
    ask_price: float | None = None
    ask_size: float | None = None
    exchange: int | str | None = None


class BarEvent(_RawEventBase):
    """Aggregate (OHLCV) bar."""

    event_type: Literal["bar", "aggregate"] = "bar"
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None
    vwap: float | None = None
    transactions: int | None = None


RawEvent = Annotated[Union[TradeEvent, QuoteEvent, BarEvent], Field(discriminator="event_type")]

_RAW_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(RawEvent)


def event_tag(payload: Mapping[str, Any]) -> str | None:
    """Return the event tag of a raw payload (``event_type`` then ``type``)."""
    tag = payload.get("event_type") or payload.get("type")
    return str(tag).lower() if tag else None


def parse_raw_event(payload: Mapping[str, Any]) -> TradeEvent | QuoteEvent | BarEvent:
    """Validate a raw payload into its tagged event model.

    Raises:
        ValueError: If the tag is missing or unknown
        pydantic.ValidationError: If the payload fields are malformed
    """
    tag = event_tag(payload)
    if tag is None:
        raise ValueError("raw event has no event_type")
    kind = EventKind(tag)
    return _RAW_EVENT_ADAPTER.validate_python({**payload, "event_type": kind.value})
