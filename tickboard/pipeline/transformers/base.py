"""Base class for event transformers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Generic, TypeVar

from ..models.events import BarEvent, QuoteEvent, TradeEvent
from ..models.records import NormalizedRecord

E = TypeVar("E", TradeEvent, QuoteEvent, BarEvent)
R = TypeVar("R", bound=NormalizedRecord)


def ms_to_datetime(timestamp_ms: int | None) -> datetime | None:
    """Convert integer epoch milliseconds to an aware UTC datetime."""
    if timestamp_ms is None:
        return None
    return datetime.fromtimestamp(int(timestamp_ms) / 1000, tz=UTC)


class EventTransformer(ABC, Generic[E, R]):
    """Normalizes one raw event of a given kind.

    Transformers are pure: the output depends only on the event and static
    mapping tables. ``transform`` returns None to reject a record that fails
    the validation gate; it raises only for payloads it cannot interpret.
    """

    @abstractmethod
    def transform(self, event: E) -> R | None:
        """Normalize one event, or return None to reject it."""
        pass

    def transform_batch(self, events: Iterable[E]) -> list[R]:
        """Normalize events in order, dropping rejected ones."""
        out: list[R] = []
        for event in events:
            record = self.transform(event)
            if record is not None:
                out.append(record)
        return out
