"""Connection manager: subscriptions, routing and reconnection.

Architecture:
    One logical client (``window-{window_id}``) owns one streaming transport.
    Subscriptions are symbol sets on a stream, carried by a client. Inbound
    ``market_data`` messages are transformed record by record through the
    shared TransformationService and routed to every subscription of the
    originating client whose symbol set contains the record's symbol.

    Per-client lifecycle:

        idle -> connecting -> open -> closed
        closed -> reconnecting -> connecting     (while subscriptions remain)
        reconnecting -> abandoned                (retry ceiling exceeded)

Design Decisions:
    - Capped linear backoff, ``min(base * attempt, cap)``; the subscription
      set is re-checked at the top of every retry cycle
    - On reconnect every subscription of the client is replayed
    - Failed records are dropped, never forwarded raw
    - Abandoned clients keep their subscriptions for
      ``orphaned_subscriptions()`` / ``purge_abandoned()`` unless
      ``purge_on_abandon`` is set
    - Listeners run inline, in event order; a failing listener is logged and
      never breaks the stream
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from ..clients.market_server import MarketServerClient
from ..core.config import ConnectionConfig, PipelineConfig, reconnect_delay
from ..core.enums import ConnectionState, MessageType, StreamKind
from ..core.exceptions import (
    ReconnectionExhaustedError,
    SubscriptionError,
    TransportError,
)
from ..io.ws.client import CloseCallback, MessageCallback, TransportConfig, WebSocketClient
from ..models.canonical import CanonicalRecord
from ..models.subscription import ConnectionEvent, MarketDataEvent, Subscription
from .transformation import TransformationService

logger = logging.getLogger(__name__)

MARKET_DATA = "market-data"
SUBSCRIPTION_CREATED = "subscription-created"
SUBSCRIPTION_ERROR = "subscription-error"
CONNECTION_STATUS = "connection-status"
RECONNECTION_FAILED = "reconnection-failed"

EVENTS = frozenset(
    {MARKET_DATA, SUBSCRIPTION_CREATED, SUBSCRIPTION_ERROR, CONNECTION_STATUS, RECONNECTION_FAILED}
)

DEFAULT_CLIENT_ID = "default"

Listener = Callable[[Any], Awaitable[None]] | Callable[[Any], None]


class Transport(Protocol):
    """What the manager needs from a streaming connection."""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def send(self, message: dict[str, Any]) -> None: ...

    async def disconnect(self) -> None: ...


TransportFactory = Callable[[str, MessageCallback, CloseCallback], Transport]


@dataclass
class _ClientConnection:
    client_id: str
    state: ConnectionState = ConnectionState.IDLE
    transport: Transport | None = None
    attempts: int = 0
    # Bumped on every connect so callbacks of a replaced transport are ignored
    generation: int = 0
    reconnect_task: asyncio.Task | None = None
    last_error: str | None = None


def client_id_for_window(window_id: str | int | None) -> str:
    """Logical client id for a window (``window-{id}``)."""
    if window_id is None:
        return DEFAULT_CLIENT_ID
    return f"window-{window_id}"


class ConnectionManager:
    """Owns client connections, subscriptions and record routing."""

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        service: TransformationService | None = None,
        pipeline_config: PipelineConfig | None = None,
        server: MarketServerClient | None = None,
        transport_factory: TransportFactory | None = None,
        transport_config: TransportConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or ConnectionConfig()
        self.service = service or TransformationService(pipeline_config)
        self._owns_server = server is None
        self.server = server or MarketServerClient(
            self.config.server_url, timeout=self.config.connect_timeout
        )
        self._transport_config = transport_config or TransportConfig(
            connect_timeout=self.config.connect_timeout
        )
        self._transport_factory = transport_factory or self._websocket_transport
        self._sleep = sleep

        self._connections: dict[str, _ClientConnection] = {}
        self._subscriptions: dict[str, Subscription] = {}
        self._listeners: dict[str, list[Listener]] = {}

        self._started = False
        self._shutting_down = False

        logger.info(
            f"ConnectionManager initialized (server={self.config.server_url}, ws={self.config.ws_url})"
        )

    # ----------------------
    # Lifecycle
    # ----------------------
    async def start(self) -> None:
        """Verify the market server (if configured) and accept subscriptions.

        Raises:
            ServerUnavailableError: If the health check fails
        """
        if self._started:
            logger.warning("ConnectionManager already started")
            return
        if self.config.verify_server:
            await self.server.health_check()
        self._started = True
        self._shutting_down = False
        logger.info("ConnectionManager started")

    async def shutdown(self) -> None:
        """Close every connection, cancel retries and clear session state."""
        self._shutting_down = True

        for conn in list(self._connections.values()):
            await self._cancel_reconnect(conn)
            if conn.transport is not None:
                transport, conn.transport = conn.transport, None
                try:
                    await transport.disconnect()
                except Exception as e:  # noqa: BLE001
                    logger.warning(f"Error closing connection {conn.client_id}: {e}")
            conn.state = ConnectionState.CLOSED

        self._connections.clear()
        self._subscriptions.clear()
        self.service.clear_all()
        if self._owns_server:
            await self.server.close()

        self._started = False
        self._shutting_down = False
        logger.info("ConnectionManager shut down")

    async def __aenter__(self) -> ConnectionManager:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    # ----------------------
    # Listeners
    # ----------------------
    def on(self, event: str, callback: Listener) -> None:
        """Register a sync or async listener for a manager event."""
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}")
        self._listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Listener) -> None:
        callbacks = self._listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    # ----------------------
    # Subscriptions
    # ----------------------
    async def subscribe(
        self,
        symbols: Iterable[str],
        stream: StreamKind | str = StreamKind.TRADES,
        *,
        window_id: str | int | None = None,
        subscription_id: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Subscription:
        """Subscribe a window to symbols on a stream.

        Opens the window's connection if needed, then sends the subscribe
        message for the new symbol set.

        Raises:
            SubscriptionError: If the symbol set is empty, the id is taken or
                the connection cannot be opened
        """
        symbol_set = frozenset(s for s in symbols if s)
        if not symbol_set:
            raise SubscriptionError("Subscription requires at least one symbol", subscription_id)

        subscription_id = subscription_id or uuid.uuid4().hex
        if subscription_id in self._subscriptions:
            raise SubscriptionError(f"Subscription already exists: {subscription_id}", subscription_id)

        stream_name = stream.value if isinstance(stream, StreamKind) else str(stream)
        subscription = Subscription(
            subscription_id=subscription_id,
            client_id=client_id_for_window(window_id),
            stream=stream_name,
            symbols=symbol_set,
            window_id=None if window_id is None else str(window_id),
            options=dict(options or {}),
        )
        logger.info(
            f"Handling subscription: {subscription_id} ({stream_name}: {sorted(symbol_set)})"
        )

        try:
            conn = await self._ensure_connection(subscription.client_id)
            await conn.transport.send(subscription.subscribe_message())
        except (TransportError, RuntimeError) as e:
            logger.error(f"Subscription failed for {subscription_id}: {e}")
            await self._emit(
                SUBSCRIPTION_ERROR, {"subscription_id": subscription_id, "error": str(e)}
            )
            raise SubscriptionError(f"Subscription failed: {e}", subscription_id) from e

        self._subscriptions[subscription_id] = subscription
        await self._emit(SUBSCRIPTION_CREATED, subscription)
        return subscription

    async def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription; closes the connection when it was the last one."""
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            logger.warning(f"Subscription not found: {subscription_id}")
            return False

        logger.info(f"Handling unsubscribe: {subscription_id}")
        conn = self._connections.get(subscription.client_id)
        if conn is not None and conn.transport is not None and conn.transport.is_connected:
            try:
                await conn.transport.send(subscription.unsubscribe_message())
            except (TransportError, RuntimeError) as e:
                logger.warning(f"Unsubscribe message failed for {subscription_id}: {e}")

        if conn is not None and not self.subscriptions_for(subscription.client_id):
            await self._close_connection(conn)
        return True

    def get_subscription(self, subscription_id: str) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    def subscriptions_for(self, client_id: str) -> list[Subscription]:
        return [sub for sub in self._subscriptions.values() if sub.client_id == client_id]

    def orphaned_subscriptions(self) -> list[Subscription]:
        """Subscriptions whose client connection was abandoned."""
        abandoned = {
            cid for cid, conn in self._connections.items() if conn.state == ConnectionState.ABANDONED
        }
        return [sub for sub in self._subscriptions.values() if sub.client_id in abandoned]

    def purge_abandoned(self, client_id: str) -> list[str]:
        """Drop the subscriptions of an abandoned client; returns their ids."""
        conn = self._connections.get(client_id)
        if conn is not None and conn.state != ConnectionState.ABANDONED:
            logger.warning(f"Client {client_id} is {conn.state.value}, not abandoned; nothing purged")
            return []

        purged = [sub.subscription_id for sub in self.subscriptions_for(client_id)]
        for subscription_id in purged:
            del self._subscriptions[subscription_id]
        self._connections.pop(client_id, None)
        if purged:
            logger.info(f"Purged {len(purged)} subscriptions of abandoned client {client_id}")
        return purged

    # ----------------------
    # Reference data
    # ----------------------
    def load_reference_data(self, mapping: Mapping[str, Mapping[str, Any]]) -> None:
        self.service.bulk_update_reference_data(mapping)

    def set_previous_close_prices(self, closes: Mapping[str, float]) -> None:
        self.service.bulk_set_previous_close(closes)

    async def sync_previous_close(self, symbols: Iterable[str] | None = None) -> dict[str, float]:
        """Fetch previous closes from the market server and seed the store."""
        closes = await self.server.fetch_previous_close(symbols)
        if closes:
            self.set_previous_close_prices(closes)
        return closes

    # ----------------------
    # Inbound messages
    # ----------------------
    async def handle_message(self, client_id: str, message: Any) -> None:
        """Dispatch one inbound wire message from a client connection."""
        if not isinstance(message, dict):
            logger.warning(f"Ignoring non-object message from {client_id}: {message!r}")
            return

        msg_type = message.get("type")
        try:
            kind = MessageType(msg_type)
        except ValueError:
            logger.warning(f"Unknown message type from {client_id}: {msg_type}")
            return

        if kind is MessageType.MARKET_DATA:
            await self._route_market_data(client_id, message.get("data"))
        elif kind is MessageType.CONNECTED:
            logger.info(f"Client {client_id} connected to server")
        elif kind is MessageType.SUBSCRIBED:
            logger.info(f"Subscription confirmed for {client_id}: {message.get('data')}")
        elif kind is MessageType.ERROR:
            logger.error(f"Server error for {client_id}: {message.get('message')}")
        elif kind is MessageType.PONG:
            logger.debug(f"Heartbeat response from {client_id}")

    async def _route_market_data(self, client_id: str, data: Any) -> None:
        if data is None:
            return
        items = data if isinstance(data, list) else [data]

        records: list[CanonicalRecord] = []
        for item in items:
            result = self.service.transform_result(item)
            if result.is_ok:
                records.append(result.record)
        if not records:
            return

        for subscription in self.subscriptions_for(client_id):
            matched = tuple(record for record in records if subscription.matches(record))
            if not matched:
                continue
            await self._emit(
                MARKET_DATA,
                MarketDataEvent(
                    subscription_id=subscription.subscription_id,
                    client_id=client_id,
                    stream=subscription.stream,
                    records=matched,
                    window_id=subscription.window_id,
                ),
            )

    # ----------------------
    # Status
    # ----------------------
    def get_connection_state(self, client_id: str) -> ConnectionState | None:
        conn = self._connections.get(client_id)
        return conn.state if conn else None

    def get_status(self) -> dict[str, Any]:
        return {
            "started": self._started,
            "server_url": self.config.server_url,
            "websocket_connections": sum(
                1 for c in self._connections.values() if c.state == ConnectionState.OPEN
            ),
            "active_subscriptions": len(self._subscriptions),
            "connections": [
                {
                    "client_id": cid,
                    "state": conn.state.value,
                    "attempts": conn.attempts,
                    "subscriptions": [s.subscription_id for s in self.subscriptions_for(cid)],
                    "last_error": conn.last_error,
                }
                for cid, conn in self._connections.items()
            ],
            "orphaned_subscriptions": [s.subscription_id for s in self.orphaned_subscriptions()],
            "transformation": self.service.get_metrics(),
        }

    def get_transformation_metrics(self) -> dict[str, Any]:
        return self.service.get_metrics()

    # ----------------------
    # Connection internals
    # ----------------------
    def _websocket_transport(
        self, url: str, on_message: MessageCallback, on_close: CloseCallback
    ) -> Transport:
        return WebSocketClient(url, on_message, on_close, config=self._transport_config)

    async def _ensure_connection(self, client_id: str) -> _ClientConnection:
        conn = self._connections.get(client_id)
        if conn is None:
            conn = _ClientConnection(client_id=client_id)
            self._connections[client_id] = conn
        if conn.transport is not None and conn.transport.is_connected:
            return conn

        await self._cancel_reconnect(conn)
        if conn.state == ConnectionState.ABANDONED:
            # A new subscription restarts the retry budget
            conn.attempts = 0
        try:
            await self._connect(conn)
        except TransportError:
            if self.subscriptions_for(client_id):
                # Existing subscriptions keep the client reconnecting
                self._schedule_reconnect(conn)
            else:
                self._connections.pop(client_id, None)
            raise
        # Replay subscriptions that outlived a closed or abandoned connection
        await self._resubscribe(conn)
        return conn

    async def _connect(self, conn: _ClientConnection) -> None:
        conn.generation += 1
        generation = conn.generation
        client_id = conn.client_id

        async def on_message(message: Any) -> None:
            if conn.generation == generation:
                await self.handle_message(client_id, message)

        async def on_close(error: Exception | None) -> None:
            if conn.generation == generation:
                await self._handle_close(conn, error)

        await self._transition(conn, ConnectionState.CONNECTING, attempt=conn.attempts)
        transport = self._transport_factory(self.config.client_url(client_id), on_message, on_close)
        logger.info(f"Creating WebSocket connection for {client_id}")
        try:
            await transport.connect()
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            conn.last_error = str(e)
            await self._transition(conn, ConnectionState.CLOSED, attempt=conn.attempts, error=str(e))
            raise TransportError(f"Connection failed for {client_id}: {e}", client_id) from e

        conn.transport = transport
        conn.attempts = 0
        conn.last_error = None
        await self._transition(conn, ConnectionState.OPEN)

    async def _resubscribe(self, conn: _ClientConnection) -> None:
        for subscription in self.subscriptions_for(conn.client_id):
            await conn.transport.send(subscription.subscribe_message())

    async def _handle_close(self, conn: _ClientConnection, error: Exception | None) -> None:
        conn.transport = None
        conn.last_error = str(error) if error else None
        await self._transition(conn, ConnectionState.CLOSED, error=conn.last_error)
        if self._shutting_down:
            return
        if not self.subscriptions_for(conn.client_id):
            logger.info(f"No active subscriptions for {conn.client_id}, skipping reconnection")
            self._connections.pop(conn.client_id, None)
            return
        self._schedule_reconnect(conn)

    def _schedule_reconnect(self, conn: _ClientConnection) -> None:
        if self._shutting_down:
            return
        if conn.reconnect_task is None or conn.reconnect_task.done():
            conn.reconnect_task = asyncio.create_task(self._reconnect_loop(conn))

    async def _reconnect_loop(self, conn: _ClientConnection) -> None:
        client_id = conn.client_id
        try:
            while True:
                if not self.subscriptions_for(client_id):
                    logger.info(f"No active subscriptions for {client_id}, stopping reconnection")
                    self._connections.pop(client_id, None)
                    return

                conn.attempts += 1
                if conn.attempts > self.config.max_reconnect_attempts:
                    await self._abandon(conn)
                    return

                delay = reconnect_delay(
                    conn.attempts,
                    self.config.reconnect_interval,
                    self.config.max_reconnect_interval,
                )
                await self._transition(
                    conn, ConnectionState.RECONNECTING, attempt=conn.attempts, metadata={"delay": delay}
                )
                logger.info(f"Reconnecting {client_id} in {delay}s (attempt {conn.attempts})")
                await self._sleep(delay)

                if not self.subscriptions_for(client_id):
                    continue
                try:
                    await self._connect(conn)
                except TransportError as e:
                    logger.error(f"Reconnection failed for {client_id}: {e}")
                    continue

                try:
                    await self._resubscribe(conn)
                except (TransportError, RuntimeError) as e:
                    # The close callback schedules the next attempt
                    logger.error(f"Resubscribe failed for {client_id}: {e}")
                    return
                logger.info(f"Reconnected and resubscribed for {client_id}")
                return
        finally:
            if conn.reconnect_task is asyncio.current_task():
                conn.reconnect_task = None

    async def _abandon(self, conn: _ClientConnection) -> None:
        attempts = self.config.max_reconnect_attempts
        error = ReconnectionExhaustedError(
            f"Max reconnection attempts reached for {conn.client_id}",
            client_id=conn.client_id,
            attempts=attempts,
        )
        logger.error(str(error))
        conn.last_error = str(error)
        await self._transition(conn, ConnectionState.ABANDONED, attempt=attempts, error=str(error))

        purged: list[str] = []
        if self.config.purge_on_abandon:
            purged = self.purge_abandoned(conn.client_id)

        await self._emit(
            RECONNECTION_FAILED,
            ConnectionEvent.now(
                ConnectionState.ABANDONED,
                conn.client_id,
                attempt=attempts,
                subscriptions_count=len(self.subscriptions_for(conn.client_id)),
                error=str(error),
                metadata={"purged_subscriptions": purged},
            ),
        )

    async def _close_connection(self, conn: _ClientConnection) -> None:
        await self._cancel_reconnect(conn)
        self._connections.pop(conn.client_id, None)
        # Invalidate callbacks of the transport being closed
        conn.generation += 1
        if conn.transport is not None:
            transport, conn.transport = conn.transport, None
            try:
                await transport.disconnect()
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Error closing connection {conn.client_id}: {e}")
        await self._transition(conn, ConnectionState.CLOSED)

    async def _cancel_reconnect(self, conn: _ClientConnection) -> None:
        task = conn.reconnect_task
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        conn.reconnect_task = None

    async def _transition(
        self,
        conn: _ClientConnection,
        state: ConnectionState,
        *,
        attempt: int = 0,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        previous = conn.state
        conn.state = state
        logger.debug(f"{conn.client_id}: {previous.value} -> {state.value}")
        await self._emit(
            CONNECTION_STATUS,
            ConnectionEvent.now(
                state,
                conn.client_id,
                attempt=attempt,
                subscriptions_count=len(self.subscriptions_for(conn.client_id)),
                error=error,
                metadata={"previous_state": previous.value, **(metadata or {})},
            ),
        )

    async def _emit(self, event: str, payload: Any) -> None:
        for callback in list(self._listeners.get(event, ())):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:  # noqa: BLE001
                logger.error(f"Error in {event} listener: {e}", exc_info=True)
