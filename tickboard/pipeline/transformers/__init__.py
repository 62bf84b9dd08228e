"""Event transformers (trade, quote, bar)."""

from .bar import BarTransformer, classify_candle
from .base import EventTransformer, ms_to_datetime
from .quote import QuoteTransformer
from .trade import TradeTransformer, clean_price, parse_conditions

__all__ = [
    "BarTransformer",
    "EventTransformer",
    "QuoteTransformer",
    "TradeTransformer",
    "classify_candle",
    "clean_price",
    "ms_to_datetime",
    "parse_conditions",
]
