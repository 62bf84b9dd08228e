"""WebSocket transport."""

from .client import TransportConfig, WebSocketClient

__all__ = ["TransportConfig", "WebSocketClient"]
