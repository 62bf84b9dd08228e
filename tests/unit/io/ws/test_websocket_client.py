"""Unit tests for WebSocketClient.

Tests focus on connection management, message parsing and close
notification. The client never reconnects by itself.
"""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.exceptions import ConnectionClosed

from tickboard.pipeline.core import ConnectionState, TransportError
from tickboard.pipeline.io import TransportConfig, WebSocketClient

URL = "ws://localhost:8200/ws/window-1"


class FakeSocket:
    """Async-iterable socket yielding queued frames, then ending or raising."""

    def __init__(self, frames=(), end: Exception | None = None, block: bool = False) -> None:
        self.frames = list(frames)
        self.end = end
        self.block = block
        self.sent: list[str] = []
        self.close = AsyncMock()

    async def send(self, data: str) -> None:
        self.sent.append(data)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.frames:
            return self.frames.pop(0)
        if self.end is not None:
            raise self.end
        if self.block:
            await asyncio.Event().wait()
        raise StopAsyncIteration


async def settle(client: WebSocketClient) -> None:
    """Let the receive loop run to completion."""
    if client._receive_task is not None:
        await asyncio.wait_for(asyncio.shield(client._receive_task), timeout=1.0)


class TestWebSocketClientInitialization:
    def test_init_defaults(self):
        client = WebSocketClient(url=URL, on_message=MagicMock())

        assert client.url == URL
        assert client.state == ConnectionState.IDLE
        assert not client.is_connected
        assert client.config.ping_interval == 30.0
        assert client.config.ping_timeout == 10.0
        assert client.config.connect_timeout == 5.0

    def test_custom_config(self):
        config = TransportConfig(ping_interval=20.0, connect_timeout=2.0, max_size=2**20)
        client = WebSocketClient(url=URL, on_message=MagicMock(), config=config)
        assert client.config is config


class TestWebSocketClientConnection:
    @pytest.mark.asyncio
    async def test_connect_success(self):
        client = WebSocketClient(url=URL, on_message=MagicMock())
        socket = FakeSocket(block=True)

        with patch("websockets.connect", new_callable=AsyncMock, return_value=socket) as connect:
            await client.connect()

            assert client.state == ConnectionState.OPEN
            assert client.is_connected
            assert client._ws is socket
            args, kwargs = connect.call_args
            assert args == (URL,)
            assert kwargs["ping_interval"] == 30.0
            assert kwargs["max_queue"] == 1024
            assert "max_size" not in kwargs

        await client.disconnect()

    @pytest.mark.asyncio
    async def test_connect_when_open_is_noop(self):
        client = WebSocketClient(url=URL, on_message=MagicMock())
        client._state = ConnectionState.OPEN

        with patch("websockets.connect", new_callable=AsyncMock) as connect:
            await client.connect()
            connect.assert_not_called()

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        client = WebSocketClient(url=URL, on_message=MagicMock())

        with patch("websockets.connect", side_effect=OSError("Connection refused")):
            with pytest.raises(ConnectionError, match="Failed to connect"):
                await client.connect()

        assert client.state == ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_connect_timeout(self):
        client = WebSocketClient(
            url=URL, on_message=MagicMock(), config=TransportConfig(connect_timeout=0.01)
        )

        async def hang(*args, **kwargs):
            await asyncio.sleep(1)

        with patch("websockets.connect", side_effect=hang):
            with pytest.raises(TransportError):
                await client.connect()

        assert client.state == ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_send_serializes_json(self):
        client = WebSocketClient(url=URL, on_message=MagicMock())
        socket = FakeSocket(block=True)

        with patch("websockets.connect", new_callable=AsyncMock, return_value=socket):
            await client.connect()
            await client.send({"action": "subscribe", "symbols": ["AAPL"]})

        assert json.loads(socket.sent[0]) == {"action": "subscribe", "symbols": ["AAPL"]}
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_send_when_not_connected(self):
        client = WebSocketClient(url=URL, on_message=MagicMock())
        with pytest.raises(RuntimeError, match="not connected"):
            await client.send({"action": "ping"})

    @pytest.mark.asyncio
    async def test_disconnect_does_not_report_close(self):
        on_close = AsyncMock()
        client = WebSocketClient(url=URL, on_message=MagicMock(), on_close=on_close)
        socket = FakeSocket(block=True)

        with patch("websockets.connect", new_callable=AsyncMock, return_value=socket):
            await client.connect()
        await client.disconnect()

        assert client.state == ConnectionState.CLOSED
        assert client._receive_task is None
        socket.close.assert_awaited_once()
        on_close.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect_when_not_connected(self):
        client = WebSocketClient(url=URL, on_message=MagicMock())
        await client.disconnect()
        assert client.state == ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_context_manager(self):
        socket = FakeSocket(block=True)
        with patch("websockets.connect", new_callable=AsyncMock, return_value=socket):
            async with WebSocketClient(url=URL, on_message=MagicMock()) as client:
                assert client.is_connected
        assert client.state == ConnectionState.CLOSED


class TestWebSocketClientReceive:
    @pytest.mark.asyncio
    async def test_messages_parsed_and_invalid_skipped(self):
        received = []

        async def on_message(data):
            received.append(data)

        client = WebSocketClient(url=URL, on_message=on_message)
        socket = FakeSocket(frames=['{"type": "pong"}', "not json", '{"type": "connected"}'])

        with patch("websockets.connect", new_callable=AsyncMock, return_value=socket):
            await client.connect()
        await settle(client)

        assert received == [{"type": "pong"}, {"type": "connected"}]

    @pytest.mark.asyncio
    async def test_sync_callback_supported(self):
        on_message = MagicMock()
        client = WebSocketClient(url=URL, on_message=on_message)
        socket = FakeSocket(frames=['{"type": "pong"}'])

        with patch("websockets.connect", new_callable=AsyncMock, return_value=socket):
            await client.connect()
        await settle(client)

        on_message.assert_called_once_with({"type": "pong"})

    @pytest.mark.asyncio
    async def test_stream_end_reports_close(self):
        on_close = AsyncMock()
        client = WebSocketClient(url=URL, on_message=MagicMock(), on_close=on_close)

        with patch("websockets.connect", new_callable=AsyncMock, return_value=FakeSocket()):
            await client.connect()
        await settle(client)

        assert client.state == ConnectionState.CLOSED
        on_close.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_connection_closed_reports_error(self):
        on_close = AsyncMock()
        client = WebSocketClient(url=URL, on_message=MagicMock(), on_close=on_close)
        socket = FakeSocket(frames=['{"type": "pong"}'], end=ConnectionClosed(None, None))

        with patch("websockets.connect", new_callable=AsyncMock, return_value=socket):
            await client.connect()
        await settle(client)

        assert not client.is_connected
        (error,), _ = on_close.call_args
        assert isinstance(error, ConnectionClosed)

    @pytest.mark.asyncio
    async def test_callback_error_closes_and_reports(self):
        on_close = MagicMock()

        def on_message(_data):
            raise ValueError("boom")

        client = WebSocketClient(url=URL, on_message=on_message, on_close=on_close)
        socket = FakeSocket(frames=['{"type": "pong"}'], block=True)

        with patch("websockets.connect", new_callable=AsyncMock, return_value=socket):
            await client.connect()
        await settle(client)

        (error,), _ = on_close.call_args
        assert isinstance(error, ValueError)
        assert client.state == ConnectionState.CLOSED
