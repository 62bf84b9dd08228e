"""Core enumerations shared across the pipeline.

Architecture:
    String enums keep wire values and Python names in one place. Every value
    is exactly what appears on the wire or in the canonical output record, so
    enums can be dumped without a translation table.

Key Types:
    - EventKind: Raw vendor event tags (trade, quote, bar/aggregate)
    - StreamKind: Logical stream names used by subscribers
    - ConnectionState: Lifecycle states of one logical client connection
    - MessageType: Inbound wire message types
    - CandleType: Bar classification by body size
    - VolumeProfile: Short-window vs long-window volume classification
"""

from enum import Enum


class EventKind(str, Enum):
    """Raw event tags understood by the transformation pipeline."""

    TRADE = "trade"
    QUOTE = "quote"
    BAR = "bar"
    AGGREGATE = "aggregate"

    @property
    def is_bar(self) -> bool:
        """Aggregate bars share the bar transformer."""
        return self in (EventKind.BAR, EventKind.AGGREGATE)


class StreamKind(str, Enum):
    """Logical stream names requested by subscribers."""

    TRADES = "trades"
    QUOTES = "quotes"
    BARS = "bars"
    UPDATES = "updates"

    @classmethod
    def parse(cls, value: "str | StreamKind") -> "StreamKind | None":
        """Return the matching stream kind, or None for unknown names."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


class ConnectionState(str, Enum):
    """Lifecycle of one logical client connection.

    Idle -> Connecting -> Open -> Closed, with Closed -> Reconnecting ->
    Connecting forming the retry cycle and Reconnecting -> Abandoned once the
    retry ceiling is exceeded.
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    RECONNECTING = "reconnecting"
    ABANDONED = "abandoned"


class MessageType(str, Enum):
    """Inbound wire message types."""

    MARKET_DATA = "market_data"
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    ERROR = "error"
    PONG = "pong"


class CandleType(str, Enum):
    """Bar classification derived from body size percent."""

    DOJI = "Doji"
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    STRONG_BULLISH = "Strong Bullish"
    STRONG_BEARISH = "Strong Bearish"


class VolumeProfile(str, Enum):
    """Recent-vs-average volume classification."""

    INSUFFICIENT_DATA = "Insufficient Data"
    NO_VOLUME = "No Volume"
    ACCELERATING = "Accelerating"
    INCREASING = "Increasing"
    DECLINING = "Declining"
    NORMAL = "Normal"
    UNKNOWN = "Unknown"
