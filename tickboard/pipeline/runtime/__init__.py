"""Runtime orchestration components."""

from .connection_manager import (
    CONNECTION_STATUS,
    MARKET_DATA,
    RECONNECTION_FAILED,
    SUBSCRIPTION_CREATED,
    SUBSCRIPTION_ERROR,
    ConnectionManager,
    Transport,
    client_id_for_window,
)
from .transformation import (
    TransformationService,
    TransformMetrics,
    TransformResult,
    TransformStatus,
)

__all__ = [
    "ConnectionManager",
    "Transport",
    "client_id_for_window",
    "TransformationService",
    "TransformMetrics",
    "TransformResult",
    "TransformStatus",
    # Manager events
    "CONNECTION_STATUS",
    "MARKET_DATA",
    "RECONNECTION_FAILED",
    "SUBSCRIPTION_CREATED",
    "SUBSCRIPTION_ERROR",
]
