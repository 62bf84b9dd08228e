"""Core components."""

from .config import (
    EXCHANGE_NAMES,
    STREAM_CHANNELS,
    ConnectionConfig,
    PipelineConfig,
    channels_for_stream,
    get_exchange_name,
    reconnect_delay,
)
from .enums import (
    CandleType,
    ConnectionState,
    EventKind,
    MessageType,
    StreamKind,
    VolumeProfile,
)
from .exceptions import (
    ConfigurationError,
    PipelineError,
    ReconnectionExhaustedError,
    ServerUnavailableError,
    SubscriptionError,
    TransformError,
    TransportError,
)

__all__ = [
    # Enums
    "CandleType",
    "ConnectionState",
    "EventKind",
    "MessageType",
    "StreamKind",
    "VolumeProfile",
    # Config
    "EXCHANGE_NAMES",
    "STREAM_CHANNELS",
    "ConnectionConfig",
    "PipelineConfig",
    "channels_for_stream",
    "get_exchange_name",
    "reconnect_delay",
    # Exceptions
    "ConfigurationError",
    "PipelineError",
    "ReconnectionExhaustedError",
    "ServerUnavailableError",
    "SubscriptionError",
    "TransformError",
    "TransportError",
]
