"""Per-symbol market-data state.

Architecture:
    One store instance is the single per-symbol truth shared by every
    connection and subscription. It is injected into the calculators and the
    transformation service; nothing reaches it through module globals.

    Per symbol it holds:
    - the current snapshot (overwritten on every update)
    - a bounded history of snapshots (append, evict oldest when full)
    - minute-aligned volume bars (bounded, evict oldest when full)
    - the previous session's close (survives ``clear_all``)

Design Decisions:
    - ``collections.deque(maxlen=...)`` gives O(1) append/evict and O(1)
      access to the newest entry
    - Arrival timestamps come from an injectable clock (epoch ms) and are
      forced non-decreasing so history order always matches arrival order
    - No validation here: transformers reject malformed records upstream
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..core.config import MAX_VOLUME_BARS, VOLUME_BAR_WIDTH_MS
from ..models.records import NormalizedRecord
from ..models.state import CurrentSnapshot, HistoryEntry, VolumeBar

logger = logging.getLogger(__name__)


class SymbolDataStore:
    """Bounded per-symbol history, snapshots, volume bars and previous closes."""

    def __init__(
        self,
        *,
        max_history_size: int = 1000,
        volume_bar_width_ms: int = VOLUME_BAR_WIDTH_MS,
        max_volume_bars: int = MAX_VOLUME_BARS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_history_size = max_history_size
        self.volume_bar_width_ms = volume_bar_width_ms
        self.max_volume_bars = max_volume_bars
        self._clock = clock

        self._current: dict[str, CurrentSnapshot] = {}
        self._history: dict[str, deque[HistoryEntry]] = {}
        self._volume_bars: dict[str, deque[VolumeBar]] = {}
        self._daily_volume: dict[str, float] = {}
        self._previous_close: dict[str, float] = {}

        self._total_updates = 0
        self._last_arrival = 0

        logger.info(f"SymbolDataStore initialized (max_history_size={max_history_size})")

    # ----------------------
    # Writes
    # ----------------------
    def update(self, symbol: str, record: NormalizedRecord) -> None:
        """Store a record as the symbol's snapshot and newest history entry."""
        arrived_at = self._arrival_ms()

        self._current[symbol] = CurrentSnapshot(record=record, updated_at=arrived_at)

        history = self._history.get(symbol)
        if history is None:
            history = deque(maxlen=self.max_history_size)
            self._history[symbol] = history
        history.append(HistoryEntry(record=record, arrived_at=arrived_at))

        if record.volume is not None:
            bucket_ts = record.event_time_ms
            self._merge_volume(symbol, record.volume, bucket_ts if bucket_ts is not None else arrived_at)

        self._total_updates += 1

    def set_previous_close(self, symbol: str, price: float) -> None:
        self._previous_close[symbol] = price
        logger.debug(f"Set previous close for {symbol}: {price}")

    def clear(self, symbol: str) -> None:
        """Drop session state for one symbol; its previous close is kept."""
        self._current.pop(symbol, None)
        self._history.pop(symbol, None)
        self._volume_bars.pop(symbol, None)
        self._daily_volume.pop(symbol, None)
        logger.debug(f"Cleared data for {symbol}")

    def clear_all(self) -> None:
        """Drop session state for every symbol; previous closes are kept."""
        self._current.clear()
        self._history.clear()
        self._volume_bars.clear()
        self._daily_volume.clear()
        self._total_updates = 0
        logger.info("Cleared all market data")

    # ----------------------
    # Reads
    # ----------------------
    def get_current(self, symbol: str) -> CurrentSnapshot | None:
        return self._current.get(symbol)

    def get_history(self, symbol: str, limit: int | None = None) -> list[HistoryEntry]:
        """History entries oldest-first, optionally only the newest ``limit``."""
        history = self._history.get(symbol)
        if not history:
            return []
        if limit is not None and limit < len(history):
            if limit <= 0:
                return []
            return list(history)[-limit:]
        return list(history)

    def history_size(self, symbol: str) -> int:
        return len(self._history.get(symbol, ()))

    def latest_entry(self, symbol: str) -> HistoryEntry | None:
        history = self._history.get(symbol)
        return history[-1] if history else None

    def get_all_symbols(self) -> list[str]:
        return list(self._current)

    def get_previous_close(self, symbol: str) -> float | None:
        return self._previous_close.get(symbol)

    def get_previous_price(self, symbol: str) -> float | None:
        """Second-most-recent history price, else the previous close, else None."""
        history = self._history.get(symbol)
        if not history or len(history) < 2:
            return self._previous_close.get(symbol)
        return history[-2].price

    def calculate_gap_percent(self, symbol: str, current_price: float) -> float:
        prev_close = self._previous_close.get(symbol)
        if not prev_close:
            return 0.0
        return (current_price - prev_close) * 100 / prev_close

    def get_volume_bars(self, symbol: str) -> list[VolumeBar]:
        return list(self._volume_bars.get(symbol, ()))

    def get_average_volume(self, symbol: str, periods: int = 20) -> float:
        """Mean bar volume over the most recent ``periods`` bars (0 if none)."""
        bars = self._volume_bars.get(symbol)
        if not bars or periods <= 0:
            return 0.0
        recent = list(bars)[-periods:]
        return sum(bar.volume for bar in recent) / len(recent)

    def get_volume_rate(self, symbol: str) -> float:
        """Volume of the most recent bar; bars are one minute wide."""
        bars = self._volume_bars.get(symbol)
        if not bars:
            return 0.0
        return bars[-1].volume

    def get_daily_volume(self, symbol: str) -> float:
        return self._daily_volume.get(symbol, 0.0)

    # ----------------------
    # Introspection
    # ----------------------
    def get_metrics(self) -> dict[str, Any]:
        updated = [snap.updated_at for snap in self._current.values()]
        return {
            "total_updates": self._total_updates,
            "symbol_count": len(self._current),
            "oldest_data": _ms_to_datetime(min(updated)) if updated else None,
            "newest_data": _ms_to_datetime(max(updated)) if updated else None,
            "historical_data_points": sum(len(h) for h in self._history.values()),
            "volume_bars": sum(len(b) for b in self._volume_bars.values()),
            "previous_close_count": len(self._previous_close),
        }

    def export_data(self, symbol: str | None = None) -> dict[str, Any]:
        """Dump raw state for debugging, for one symbol or all of them."""
        if symbol is not None:
            return {
                "current": self._current.get(symbol),
                "history": self.get_history(symbol),
                "previous_close": self._previous_close.get(symbol),
                "volume_bars": self.get_volume_bars(symbol),
                "daily_volume": self.get_daily_volume(symbol),
            }
        return {sym: self.export_data(sym) for sym in self.get_all_symbols()}

    # ----------------------
    # Internals
    # ----------------------
    def _arrival_ms(self) -> int:
        now = int(self._clock() * 1000)
        # Never go backwards, even if the wall clock does
        self._last_arrival = max(now, self._last_arrival)
        return self._last_arrival

    def _merge_volume(self, symbol: str, volume: float, timestamp_ms: int) -> None:
        width = self.volume_bar_width_ms
        bucket_start = (timestamp_ms // width) * width

        bars = self._volume_bars.get(symbol)
        if bars is None:
            bars = deque(maxlen=self.max_volume_bars)
            self._volume_bars[symbol] = bars

        bar = next((b for b in reversed(bars) if b.bucket_start == bucket_start), None)
        if bar is None:
            bar = VolumeBar(bucket_start=bucket_start, bucket_end=bucket_start + width)
            bars.append(bar)
        bar.add(volume)

        self._daily_volume[symbol] = self._daily_volume.get(symbol, 0.0) + volume


def _ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)
