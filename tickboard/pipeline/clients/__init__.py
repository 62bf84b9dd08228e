"""High-level clients."""

from .market_server import MarketServerClient, parse_previous_close

__all__ = ["MarketServerClient", "parse_previous_close"]
