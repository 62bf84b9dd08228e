"""Price change, gap, intraday range and momentum.

All division guards resolve to neutral defaults instead of raising: an
absent or zero reference price yields a zero change, and a flat day puts the
price at the middle of its range (0.5).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from ..models.results import ChangeResult, ExtremeMove, MomentumResult
from ..models.state import DailyHighLow
from ..store.symbol_store import SymbolDataStore

logger = logging.getLogger(__name__)


class ChangeCalculator:
    """Derives change/gap/range metrics from a SymbolDataStore."""

    def __init__(
        self,
        store: SymbolDataStore,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

        # symbol -> running high/low/open since the last trading-day reset
        self._daily: dict[str, DailyHighLow] = {}

        self._calculations = 0
        self._gap_calculations = 0
        self._largest_gap = ExtremeMove()
        self._largest_move = ExtremeMove()

    def calculate(self, symbol: str, current_price: float | None) -> ChangeResult:
        """Compute change, gap and day range for ``current_price``."""
        if not symbol or current_price is None:
            return ChangeResult()

        previous_price = self._store.get_previous_price(symbol)
        previous_close = self._store.get_previous_close(symbol)

        change = 0.0
        change_percent = 0.0
        if previous_price:
            change = current_price - previous_price
            change_percent = change * 100 / previous_price

        gap_percent = None
        pre_market_change = None
        if previous_close:
            gap_percent = (current_price - previous_close) * 100 / previous_close
            pre_market_change = current_price - previous_close
            self._record_gap(symbol, gap_percent)

        daily = self._update_daily(symbol, current_price)
        day_range = daily.range
        day_range_percent = (day_range / daily.low) * 100 if daily.low > 0 else 0.0
        if daily.high != daily.low:
            day_position = (current_price - daily.low) / day_range
            day_position = min(1.0, max(0.0, day_position))
        else:
            day_position = 0.5

        result = ChangeResult(
            change=change,
            change_percent=change_percent,
            previous_price=previous_price or current_price,
            gap_percent=gap_percent,
            pre_market_change=pre_market_change,
            pre_market_change_percent=gap_percent,
            day_high=daily.high,
            day_low=daily.low,
            day_open=daily.open,
            day_range=day_range,
            day_range_percent=day_range_percent,
            day_position=day_position,
        )
        self._record_move(symbol, change_percent)
        return result

    def calculate_momentum(self, symbol: str, window_minutes: float = 5) -> MomentumResult:
        """Momentum over a trailing window of arrival time.

        Scans history newest-first for the first entry strictly older than
        ``now - window``; when history is shorter than the window the oldest
        entry is used. Velocity is normalized by the elapsed time between the
        two sampled entries, not by the requested window.
        """
        history = self._store.get_history(symbol)
        if len(history) < 2:
            return MomentumResult(window_minutes=window_minutes)

        window_start = int(self._clock() * 1000) - int(window_minutes * 60_000)
        start_index = 0
        for i in range(len(history) - 1, -1, -1):
            if history[i].arrived_at < window_start:
                start_index = i
                break

        start = history[start_index]
        end = history[-1]
        price_change = end.price - start.price
        momentum = (price_change / start.price) * 100 if start.price else 0.0
        elapsed_ms = end.arrived_at - start.arrived_at
        velocity = (price_change / elapsed_ms) * 60_000 if elapsed_ms > 0 else 0.0

        return MomentumResult(
            momentum=momentum,
            velocity=velocity,
            data_points=len(history) - start_index,
            window_minutes=window_minutes,
        )

    def batch_calculate(self, updates: Iterable[tuple[str, float]]) -> dict[str, ChangeResult]:
        return {symbol: self.calculate(symbol, price) for symbol, price in updates}

    def get_daily(self, symbol: str) -> DailyHighLow | None:
        return self._daily.get(symbol)

    def reset_daily(self) -> None:
        """Start a new trading day: forget every high/low/open."""
        self._daily.clear()
        logger.info("Reset daily high/low tracking")

    def get_metrics(self) -> dict[str, Any]:
        return {
            "calculations_performed": self._calculations,
            "gap_calculations": self._gap_calculations,
            "largest_gap": self._largest_gap,
            "largest_move": self._largest_move,
            "symbols_tracked": len(self._daily),
        }

    # ----------------------
    # Internals
    # ----------------------
    def _update_daily(self, symbol: str, price: float) -> DailyHighLow:
        daily = self._daily.get(symbol)
        if daily is None:
            daily = DailyHighLow(
                high=price,
                low=price,
                open=price,
                first_seen_at=int(self._clock() * 1000),
            )
            self._daily[symbol] = daily
        else:
            daily.update(price)
        return daily

    def _record_gap(self, symbol: str, gap_percent: float) -> None:
        self._gap_calculations += 1
        if abs(gap_percent) > abs(self._largest_gap.percent):
            self._largest_gap = ExtremeMove(
                symbol=symbol, percent=gap_percent, timestamp=int(self._clock() * 1000)
            )

    def _record_move(self, symbol: str, change_percent: float) -> None:
        self._calculations += 1
        if abs(change_percent) > abs(self._largest_move.percent):
            self._largest_move = ExtremeMove(
                symbol=symbol, percent=change_percent, timestamp=int(self._clock() * 1000)
            )
