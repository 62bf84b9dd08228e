"""Aggregate bar transformer.

Passes OHLCV through with the close as the canonical price and derives range,
body size, typical price and a candle classification.
"""

from __future__ import annotations

import logging

from ..core.enums import CandleType, EventKind
from ..models.events import BarEvent
from ..models.records import BarRecord
from .base import EventTransformer, ms_to_datetime

logger = logging.getLogger(__name__)

DOJI_BODY_PERCENT = 0.1
STRONG_BODY_PERCENT = 2.0


def classify_candle(open_: float, close: float, body_size_percent: float) -> CandleType:
    """Classify a bar by body size percent and direction.

    Examples:
        >>> classify_candle(100, 100.05, 0.05)
        <CandleType.DOJI: 'Doji'>
        >>> classify_candle(100, 97, 3.0)
        <CandleType.STRONG_BEARISH: 'Strong Bearish'>
    """
    is_green = close >= open_
    if body_size_percent < DOJI_BODY_PERCENT:
        return CandleType.DOJI
    if body_size_percent > STRONG_BODY_PERCENT:
        return CandleType.STRONG_BULLISH if is_green else CandleType.STRONG_BEARISH
    return CandleType.BULLISH if is_green else CandleType.BEARISH


class BarTransformer(EventTransformer[BarEvent, BarRecord]):
    """Transformer for bar and aggregate events."""

    def transform(self, event: BarEvent) -> BarRecord | None:
        if not event.symbol or event.close is None:
            logger.warning(f"Invalid bar data - missing symbol or close: {event!r}")
            return None

        open_, high, low, close = event.open, event.high, event.low, event.close
        stats: dict[str, object] = {}

        if high and low:
            bar_range = high - low
            stats["range"] = bar_range
            stats["range_percent"] = (bar_range / low) * 100 if low > 0 else 0
            if open_ and close:
                body = abs(close - open_)
                body_percent = (body / open_) * 100 if open_ > 0 else 0
                stats["body_size"] = body
                stats["body_size_percent"] = body_percent
                stats["candle_type"] = classify_candle(open_, close, body_percent)
            if close:
                stats["typical_price"] = (high + low + close) / 3

        if event.transactions and event.volume:
            stats["avg_trade_size"] = event.volume / event.transactions

        return BarRecord(
            event_type=EventKind(event.event_type),
            symbol=event.symbol,
            price=close,
            volume=event.volume,
            timestamp=ms_to_datetime(event.timestamp),
            raw_timestamp=event.timestamp,
            open=open_,
            high=high,
            low=low,
            close=close,
            vwap=event.vwap,
            transactions=event.transactions,
            **stats,
        )
