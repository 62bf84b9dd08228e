"""Subscriptions and connection lifecycle events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..core.config import channels_for_stream
from ..core.enums import ConnectionState
from .canonical import CanonicalRecord


@dataclass(frozen=True)
class Subscription:
    """A symbol set on one stream, carried by one client connection."""

    subscription_id: str
    client_id: str
    stream: str
    symbols: frozenset[str]
    window_id: str | None = None
    # Not part of the hash
    options: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def channels(self) -> list[str]:
        return channels_for_stream(self.stream)

    def matches(self, record: CanonicalRecord) -> bool:
        return record.symbol in self.symbols

    def subscribe_message(self) -> dict[str, Any]:
        return {
            "action": "subscribe",
            "symbols": sorted(self.symbols),
            "channels": self.channels,
        }

    def unsubscribe_message(self) -> dict[str, Any]:
        return {"action": "unsubscribe", "symbols": sorted(self.symbols)}


@dataclass(frozen=True)
class ConnectionEvent:
    """Connection state transition for one logical client."""

    state: ConnectionState
    client_id: str
    timestamp: datetime
    attempt: int = 0
    subscriptions_count: int = 0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def now(
        cls,
        state: ConnectionState,
        client_id: str,
        **kwargs: Any,
    ) -> ConnectionEvent:
        return cls(state=state, client_id=client_id, timestamp=datetime.now(UTC), **kwargs)


@dataclass(frozen=True)
class MarketDataEvent:
    """Transformed records delivered to one subscription.

    Records are shared between subscriptions and must be treated as
    read-only.
    """

    subscription_id: str
    client_id: str
    stream: str
    records: tuple[CanonicalRecord, ...]
    window_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def symbols(self) -> list[str]:
        return [record.symbol for record in self.records]
