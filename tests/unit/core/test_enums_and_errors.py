"""Unit tests for enums and the exception hierarchy."""

from tickboard.pipeline.core import (
    ConnectionState,
    EventKind,
    PipelineError,
    ReconnectionExhaustedError,
    ServerUnavailableError,
    StreamKind,
    SubscriptionError,
    TransformError,
    TransportError,
)


def test_event_kind_bar_aliases():
    assert EventKind("aggregate").is_bar
    assert EventKind.BAR.is_bar
    assert not EventKind.TRADE.is_bar


def test_stream_kind_parse():
    assert StreamKind.parse("TRADES") is StreamKind.TRADES
    assert StreamKind.parse(StreamKind.QUOTES) is StreamKind.QUOTES
    assert StreamKind.parse("level2") is None


def test_connection_state_values():
    assert ConnectionState.ABANDONED.value == "abandoned"
    assert ConnectionState("reconnecting") is ConnectionState.RECONNECTING


def test_transform_error_carries_context():
    payload = {"event_type": "trade", "price": "bad"}
    error = TransformError("bad price", event_type="trade", payload=payload)
    assert str(error) == "bad price"
    assert error.event_type == "trade"
    assert error.payload is payload
    assert isinstance(error, PipelineError)


def test_transport_errors_are_connection_errors():
    """Transport failures can be caught as the builtin ConnectionError."""
    error = ReconnectionExhaustedError("gave up", client_id="window-1", attempts=10)
    assert isinstance(error, TransportError)
    assert isinstance(error, ConnectionError)
    assert isinstance(error, PipelineError)
    assert error.client_id == "window-1"
    assert error.attempts == 10


def test_subscription_and_server_errors():
    sub_error = SubscriptionError("duplicate", subscription_id="sub-1")
    assert sub_error.subscription_id == "sub-1"

    server_error = ServerUnavailableError("down", status_code=503)
    assert server_error.status_code == 503
    assert isinstance(server_error, PipelineError)
