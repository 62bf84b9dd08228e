"""Per-symbol state held by the store and the change calculator."""

from __future__ import annotations

from dataclasses import dataclass

from .records import NormalizedRecord


@dataclass(frozen=True)
class HistoryEntry:
    """One past snapshot with its arrival-order timestamp (epoch ms)."""

    record: NormalizedRecord
    arrived_at: int

    @property
    def price(self) -> float:
        return self.record.price

    @property
    def volume(self) -> float:
        return self.record.volume or 0


@dataclass
class CurrentSnapshot:
    """Latest record for a symbol and when it was stored."""

    record: NormalizedRecord
    updated_at: int


@dataclass
class VolumeBar:
    """Minute-aligned volume bucket."""

    bucket_start: int
    bucket_end: int
    volume: float = 0
    trade_count: int = 0

    def add(self, volume: float) -> None:
        self.volume += volume
        self.trade_count += 1


@dataclass
class DailyHighLow:
    """Running high/low/open since the last trading-day reset."""

    high: float
    low: float
    open: float
    first_seen_at: int

    def update(self, price: float) -> None:
        self.high = max(self.high, price)
        self.low = min(self.low, price)

    @property
    def range(self) -> float:
        return self.high - self.low
