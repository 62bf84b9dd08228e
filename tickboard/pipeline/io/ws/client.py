"""WebSocket client for one logical market-data connection.

The client owns a single socket: connect, send JSON, receive JSON and report
closure. It never reconnects on its own; when the socket drops it calls
``on_close`` and the ConnectionManager decides whether and when to retry.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from ...core.enums import ConnectionState
from ...core.exceptions import TransportError

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Any], Awaitable[None] | None]
CloseCallback = Callable[[Exception | None], Awaitable[None] | None]


@dataclass
class TransportConfig:
    """Socket-level settings passed to ``websockets.connect``."""

    ping_interval: float = 30.0
    ping_timeout: float = 10.0
    close_timeout: float = 10.0
    connect_timeout: float = 5.0
    max_size: int | None = None  # bytes; None = websockets default
    max_queue: int | None = 1024


class WebSocketClient:
    """Single-socket JSON client with close notification."""

    def __init__(
        self,
        url: str,
        on_message: MessageCallback,
        on_close: CloseCallback | None = None,
        config: TransportConfig | None = None,
    ) -> None:
        self.url = url
        self.on_message = on_message
        self.on_close = on_close
        self.config = config or TransportConfig()

        self._ws: Any = None
        self._state = ConnectionState.IDLE
        self._receive_task: asyncio.Task | None = None
        self._closing = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.OPEN

    async def connect(self) -> None:
        """Open the socket and start the receive loop.

        Raises:
            TransportError: If the handshake fails or times out
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return

        self._state = ConnectionState.CONNECTING
        self._closing = False
        try:
            self._ws = await asyncio.wait_for(
                self._ws_connect(), timeout=self.config.connect_timeout
            )
        except asyncio.CancelledError:
            self._state = ConnectionState.IDLE
            raise
        except Exception as e:  # noqa: BLE001
            self._state = ConnectionState.IDLE
            logger.error(f"Failed to connect to {self.url}: {e}")
            raise TransportError(f"Failed to connect to {self.url}: {e}") from e

        self._state = ConnectionState.OPEN
        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.info(f"WebSocket connected: {self.url}")

    async def send(self, message: dict[str, Any]) -> None:
        if not self.is_connected or self._ws is None:
            raise RuntimeError("WebSocket not connected")
        await self._ws.send(json.dumps(message))

    async def disconnect(self) -> None:
        """Close the socket; ``on_close`` is not called for a requested close."""
        self._closing = True

        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
        if self._receive_task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._receive_task
        self._receive_task = None

        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception as e:  # noqa: BLE001
                logger.debug(f"Error closing websocket {self.url}: {e}")
            self._ws = None

        self._state = ConnectionState.CLOSED

    async def __aenter__(self) -> WebSocketClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def _ws_connect(self):
        conf = self.config
        kwargs: dict[str, Any] = {
            "ping_interval": conf.ping_interval,
            "ping_timeout": conf.ping_timeout,
            "close_timeout": conf.close_timeout,
        }
        if conf.max_size is not None:
            kwargs["max_size"] = conf.max_size
        if conf.max_queue is not None:
            kwargs["max_queue"] = conf.max_queue
        return websockets.connect(self.url, **kwargs)

    async def _receive_loop(self) -> None:
        error: Exception | None = None
        try:
            async for message in self._ws:
                try:
                    data = json.loads(message)
                except (json.JSONDecodeError, TypeError):
                    logger.warning(f"Failed to parse message from {self.url}: {message!r}")
                    continue
                result = self.on_message(data)
                if inspect.isawaitable(result):
                    await result
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            logger.warning(f"WebSocket closed: {self.url} ({e})")
            error = e
        except Exception as e:  # noqa: BLE001
            logger.error(f"WebSocket receive error on {self.url}: {e}", exc_info=True)
            error = e

        if self._closing:
            return
        self._state = ConnectionState.CLOSED
        if self.on_close is not None:
            result = self.on_close(error)
            if inspect.isawaitable(result):
                await result
