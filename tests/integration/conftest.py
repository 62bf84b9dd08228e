"""Shared fixtures for integration tests."""

import os

import pytest

from tickboard.pipeline.core import ConnectionConfig

# Skip all integration tests unless RUN_TICKBOARD_NETWORK_TESTS=1
pytestmark = pytest.mark.skipif(
    os.environ.get("RUN_TICKBOARD_NETWORK_TESTS") != "1",
    reason="Requires a running market server. Set RUN_TICKBOARD_NETWORK_TESTS=1 to run",
)


@pytest.fixture
def connection_config():
    """Connection settings from TICKBOARD_SERVER_URL / TICKBOARD_WS_URL."""
    return ConnectionConfig(
        server_url=os.environ.get("TICKBOARD_SERVER_URL", "http://localhost:8200"),
        ws_url=os.environ.get("TICKBOARD_WS_URL", "ws://localhost:8200"),
        max_reconnect_attempts=2,
    )
