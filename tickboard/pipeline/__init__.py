"""Tickboard Pipeline - real-time market-data transformation and distribution."""

from .calculators import ChangeCalculator, VolumeCalculator
from .clients import MarketServerClient
from .core import (
    CandleType,
    ConfigurationError,
    ConnectionConfig,
    ConnectionState,
    EventKind,
    MessageType,
    PipelineConfig,
    PipelineError,
    ReconnectionExhaustedError,
    ServerUnavailableError,
    StreamKind,
    SubscriptionError,
    TransformError,
    TransportError,
    VolumeProfile,
)
from .io import TransportConfig, WebSocketClient
from .models import (
    BarEvent,
    BarRecord,
    CanonicalRecord,
    ChangeResult,
    ConnectionEvent,
    MarketDataEvent,
    MomentumResult,
    QuoteEvent,
    QuoteRecord,
    ReferenceData,
    Subscription,
    TradeEvent,
    TradeRecord,
    VolumeResult,
)
from .runtime import ConnectionManager, TransformationService, TransformResult
from .store import SymbolDataStore
from .transformers import BarTransformer, QuoteTransformer, TradeTransformer

__version__ = "0.1.0"

__all__ = [
    # Runtime
    "ConnectionManager",
    "TransformationService",
    "TransformResult",
    # Components
    "SymbolDataStore",
    "ChangeCalculator",
    "VolumeCalculator",
    "TradeTransformer",
    "QuoteTransformer",
    "BarTransformer",
    # Clients / IO
    "MarketServerClient",
    "TransportConfig",
    "WebSocketClient",
    # Config & enums
    "ConnectionConfig",
    "PipelineConfig",
    "CandleType",
    "ConnectionState",
    "EventKind",
    "MessageType",
    "StreamKind",
    "VolumeProfile",
    # Models
    "TradeEvent",
    "QuoteEvent",
    "BarEvent",
    "TradeRecord",
    "QuoteRecord",
    "BarRecord",
    "CanonicalRecord",
    "ReferenceData",
    "ChangeResult",
    "MomentumResult",
    "VolumeResult",
    "Subscription",
    "ConnectionEvent",
    "MarketDataEvent",
    # Exceptions
    "PipelineError",
    "ConfigurationError",
    "TransformError",
    "TransportError",
    "ReconnectionExhaustedError",
    "SubscriptionError",
    "ServerUnavailableError",
]
