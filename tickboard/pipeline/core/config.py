"""Pipeline and connection configuration.

This module centralizes the static mapping tables (venue codes, trade
condition codes, stream channels) and the tunables used by the store,
calculators and connection manager, so each component can stay small and
receive its settings through its constructor.
"""

from __future__ import annotations

from dataclasses import dataclass

from .enums import StreamKind
from .exceptions import ConfigurationError

# Numeric venue code -> exchange name
EXCHANGE_NAMES: dict[int, str] = {
    1: "NYSE",
    2: "ARCA",
    3: "AMEX",
    4: "NASDAQ",
    5: "NSX",
    6: "FINRA",
    7: "ISE",
    8: "EDGA",
    9: "EDGX",
    10: "CHX",
    11: "CBOE",
    12: "BATS",
    13: "PHLX",
    14: "BX",
    15: "CTS",
    16: "LTSE",
    17: "IEX",
    18: "MEMX",
    19: "PSX",
    20: "PEARL",
    21: "MIAX",
}

# Trade condition code sets
ODD_LOT_CONDITIONS = frozenset({14})
INTERMARKET_CONDITIONS = frozenset({37})
FORM_T_CONDITIONS = frozenset({15, 16, 29})

# Logical stream -> upstream channel tags
STREAM_CHANNELS: dict[StreamKind, tuple[str, ...]] = {
    StreamKind.TRADES: ("T",),
    StreamKind.QUOTES: ("Q",),
    StreamKind.BARS: ("A", "AM"),
    StreamKind.UPDATES: ("T", "Q", "A"),
}
DEFAULT_CHANNELS: tuple[str, ...] = ("T",)

# Relative volume rank boundaries (5 ordinal tiers)
VOLUME_RANK_THRESHOLDS: tuple[float, ...] = (0.5, 1.0, 1.5, 2.0)

VOLUME_BAR_WIDTH_MS = 60_000
MAX_VOLUME_BARS = 60


def get_exchange_name(code: int | str) -> str:
    """Map a numeric venue code to a human-readable exchange name.

    Examples:
        >>> get_exchange_name(4)
        'NASDAQ'
        >>> get_exchange_name(99)
        'Exchange 99'
    """
    try:
        return EXCHANGE_NAMES[int(code)]
    except (KeyError, TypeError, ValueError):
        return f"Exchange {code}"


def channels_for_stream(stream: StreamKind | str) -> list[str]:
    """Map a logical stream name to upstream channel tags.

    Unknown stream names fall back to the trade channel.

    Examples:
        >>> channels_for_stream("bars")
        ['A', 'AM']
        >>> channels_for_stream("level2")
        ['T']
    """
    kind = StreamKind.parse(stream)
    if kind is None:
        return list(DEFAULT_CHANNELS)
    return list(STREAM_CHANNELS.get(kind, DEFAULT_CHANNELS))


@dataclass
class PipelineConfig:
    """Tunables for the store, calculators and transformation service."""

    history_size: int = 1000
    volume_window: int = 20
    volume_bar_width_ms: int = VOLUME_BAR_WIDTH_MS
    max_volume_bars: int = MAX_VOLUME_BARS
    volume_alert_multiplier: float = 2.0
    profile_window: int = 50
    pressure_window: int = 10
    momentum_min_history: int = 5

    def __post_init__(self) -> None:
        for name in (
            "history_size",
            "volume_window",
            "volume_bar_width_ms",
            "max_volume_bars",
            "profile_window",
            "pressure_window",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.volume_alert_multiplier <= 0:
            raise ConfigurationError("volume_alert_multiplier must be positive")


@dataclass
class ConnectionConfig:
    """Settings for the connection manager and its market server.

    Delays are in seconds. Reconnection uses capped linear backoff:
    ``min(reconnect_interval * attempt, max_reconnect_interval)``.
    """

    server_url: str = "http://localhost:8200"
    ws_url: str = "ws://localhost:8200"
    reconnect_interval: float = 5.0
    max_reconnect_interval: float = 30.0
    max_reconnect_attempts: int = 10
    connect_timeout: float = 5.0
    verify_server: bool = True
    purge_on_abandon: bool = False

    def __post_init__(self) -> None:
        if self.reconnect_interval <= 0:
            raise ConfigurationError("reconnect_interval must be positive")
        if self.max_reconnect_interval < self.reconnect_interval:
            raise ConfigurationError("max_reconnect_interval must be >= reconnect_interval")
        if self.max_reconnect_attempts < 0:
            raise ConfigurationError("max_reconnect_attempts must be >= 0")
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be positive")
        self.server_url = self.server_url.rstrip("/")
        self.ws_url = self.ws_url.rstrip("/")

    def client_url(self, client_id: str) -> str:
        """Websocket URL for one logical client."""
        return f"{self.ws_url}/ws/{client_id}"


def reconnect_delay(attempt: int, base_interval: float, max_interval: float) -> float:
    """Capped linear backoff delay for a 1-based attempt number.

    Examples:
        >>> reconnect_delay(2, 5.0, 30.0)
        10.0
        >>> reconnect_delay(8, 5.0, 30.0)
        30.0
    """
    return min(base_interval * max(attempt, 1), max_interval)
