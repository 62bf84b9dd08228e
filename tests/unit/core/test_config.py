"""Unit tests for configuration tables and dataclasses."""

import pytest

from tickboard.pipeline.core import (
    ConfigurationError,
    ConnectionConfig,
    PipelineConfig,
    StreamKind,
    channels_for_stream,
    get_exchange_name,
    reconnect_delay,
)


@pytest.mark.parametrize(
    "stream,expected",
    [
        ("trades", ["T"]),
        ("quotes", ["Q"]),
        ("bars", ["A", "AM"]),
        ("updates", ["T", "Q", "A"]),
        (StreamKind.BARS, ["A", "AM"]),
        ("level2", ["T"]),
        ("", ["T"]),
    ],
)
def test_channels_for_stream(stream, expected):
    """Stream names map to channel tags, unknown names fall back to trades."""
    assert channels_for_stream(stream) == expected


def test_channels_for_stream_returns_fresh_list():
    """Callers may mutate the returned list without touching the table."""
    channels = channels_for_stream("trades")
    channels.append("Q")
    assert channels_for_stream("trades") == ["T"]


def test_exchange_name_lookup():
    assert get_exchange_name(4) == "NASDAQ"
    assert get_exchange_name("1") == "NYSE"
    assert get_exchange_name(99) == "Exchange 99"
    assert get_exchange_name("XX") == "Exchange XX"


def test_reconnect_delay_is_capped_linear():
    """Delay grows linearly with the attempt and is capped."""
    assert reconnect_delay(1, 5.0, 30.0) == 5.0
    assert reconnect_delay(2, 5.0, 30.0) == 10.0
    assert reconnect_delay(6, 5.0, 30.0) == 30.0
    # attempt 8 would be 40s uncapped
    assert reconnect_delay(8, 5.0, 30.0) == 30.0


def test_reconnect_delay_treats_attempt_zero_as_first():
    assert reconnect_delay(0, 5.0, 30.0) == 5.0


def test_pipeline_config_defaults():
    config = PipelineConfig()
    assert config.history_size == 1000
    assert config.volume_window == 20
    assert config.volume_bar_width_ms == 60_000
    assert config.max_volume_bars == 60
    assert config.volume_alert_multiplier == 2.0


@pytest.mark.parametrize("field", ["history_size", "volume_window", "max_volume_bars"])
def test_pipeline_config_rejects_non_positive(field):
    with pytest.raises(ConfigurationError, match=field):
        PipelineConfig(**{field: 0})


def test_connection_config_defaults_and_client_url():
    config = ConnectionConfig(ws_url="ws://localhost:8200/")
    assert config.reconnect_interval == 5.0
    assert config.max_reconnect_interval == 30.0
    assert config.max_reconnect_attempts == 10
    assert config.purge_on_abandon is False
    assert config.client_url("window-3") == "ws://localhost:8200/ws/window-3"


def test_connection_config_validation():
    with pytest.raises(ConfigurationError):
        ConnectionConfig(reconnect_interval=0)
    with pytest.raises(ConfigurationError):
        ConnectionConfig(reconnect_interval=10.0, max_reconnect_interval=5.0)
    with pytest.raises(ConfigurationError):
        ConnectionConfig(max_reconnect_attempts=-1)
