"""Trade event transformer.

Maps the vendor ``size`` field to ``volume``, converts the millisecond
timestamp, clamps and rounds the price, names the venue and decodes the
condition codes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..core.config import (
    FORM_T_CONDITIONS,
    INTERMARKET_CONDITIONS,
    ODD_LOT_CONDITIONS,
    get_exchange_name,
)
from ..models.events import TradeEvent
from ..models.records import TradeConditions, TradeRecord
from .base import EventTransformer, ms_to_datetime

logger = logging.getLogger(__name__)

_PRICE_QUANTUM = Decimal("0.0001")


def clean_price(price: float) -> float:
    """Clamp a price to >= 0 and round it to 4 decimal places (half-up).

    Examples:
        >>> clean_price(12.345678)
        12.3457
        >>> clean_price(-3)
        0.0
    """
    try:
        value = Decimal(str(price))
    except InvalidOperation:
        logger.warning(f"Invalid price value: {price!r}")
        return 0.0
    if not value.is_finite() or value < 0:
        logger.warning(f"Invalid price value: {price!r}")
        return 0.0
    return float(value.quantize(_PRICE_QUANTUM, rounding=ROUND_HALF_UP))


def parse_conditions(conditions: Iterable[int]) -> TradeConditions:
    """Decode condition codes into boolean flags."""
    codes = set(conditions)
    return TradeConditions(
        is_odd_lot=bool(codes & ODD_LOT_CONDITIONS),
        is_intermarket=bool(codes & INTERMARKET_CONDITIONS),
        is_form_t=bool(codes & FORM_T_CONDITIONS),
    )


class TradeTransformer(EventTransformer[TradeEvent, TradeRecord]):
    """Transformer for trade events."""

    def transform(self, event: TradeEvent) -> TradeRecord | None:
        # Validation gate: both fields are required
        if not event.symbol or event.price is None:
            logger.warning(f"Invalid trade data - missing required fields: {event!r}")
            return None

        volume = max(0, int(event.size or 0))
        exchange_name = get_exchange_name(event.exchange) if event.exchange is not None else None
        flags = parse_conditions(event.conditions) if event.conditions else None

        return TradeRecord(
            symbol=event.symbol,
            price=clean_price(event.price),
            volume=volume,
            timestamp=ms_to_datetime(event.timestamp),
            raw_timestamp=event.timestamp,
            exchange=event.exchange,
            exchange_name=exchange_name,
            trade_id=event.trade_id,
            conditions=tuple(event.conditions),
            condition_flags=flags,
        )
