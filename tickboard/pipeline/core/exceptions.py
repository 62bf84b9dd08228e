"""Custom exception hierarchy."""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    pass


class ConfigurationError(PipelineError):
    """Invalid configuration value."""

    pass


class TransformError(PipelineError):
    """A raw event could not be transformed into a canonical record.

    Carries the event tag and the offending payload so the failure can be
    logged and counted without re-raising.
    """

    def __init__(
        self,
        message: str,
        event_type: str | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.event_type = event_type
        self.payload = payload


class TransportError(PipelineError, ConnectionError):
    """Streaming transport failed to connect or lost its connection."""

    def __init__(self, message: str, client_id: str | None = None) -> None:
        super().__init__(message)
        self.client_id = client_id


class ReconnectionExhaustedError(TransportError):
    """Reconnection attempts exceeded the configured ceiling."""

    def __init__(
        self,
        message: str,
        client_id: str | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message, client_id=client_id)
        self.attempts = attempts


class SubscriptionError(PipelineError):
    """Subscription could not be created or removed."""

    def __init__(self, message: str, subscription_id: str | None = None) -> None:
        super().__init__(message)
        self.subscription_id = subscription_id


class ServerUnavailableError(PipelineError):
    """Market server health check or reference request failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
