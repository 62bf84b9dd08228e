"""Quote event transformer.

The canonical price of a quote is the bid/ask mid. Quotes carry no traded
volume, so ``volume`` is a placeholder: bid size + ask size.
"""

from __future__ import annotations

import logging

from ..models.events import QuoteEvent
from ..models.records import QuoteRecord
from .base import EventTransformer, ms_to_datetime

logger = logging.getLogger(__name__)


class QuoteTransformer(EventTransformer[QuoteEvent, QuoteRecord]):
    """Transformer for quote events."""

    def transform(self, event: QuoteEvent) -> QuoteRecord | None:
        if not event.symbol:
            logger.warning(f"Invalid quote data - missing symbol: {event!r}")
            return None
        if not event.bid_price or not event.ask_price:
            # No mid price without both sides
            logger.debug(f"Quote for {event.symbol} missing bid or ask, skipping")
            return None

        bid, ask = event.bid_price, event.ask_price
        bid_size = event.bid_size or 0
        ask_size = event.ask_size or 0
        spread = ask - bid

        return QuoteRecord(
            symbol=event.symbol,
            price=(ask + bid) / 2,
            volume=bid_size + ask_size,
            timestamp=ms_to_datetime(event.timestamp),
            raw_timestamp=event.timestamp,
            bid_price=bid,
            ask_price=ask,
            bid_size=bid_size,
            ask_size=ask_size,
            spread=spread,
            spread_percent=(spread / bid) * 100 if bid > 0 else 0,
            bid_value=bid_size * bid if bid_size else None,
            ask_value=ask_size * ask if ask_size else None,
            exchange=event.exchange,
        )
