"""I/O layer: streaming transport."""

from .ws import TransportConfig, WebSocketClient

__all__ = ["TransportConfig", "WebSocketClient"]
