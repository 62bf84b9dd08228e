"""Volume metrics: relative volume, profile, buy pressure, session totals.

Relative volume is ``latest bar volume / mean of the last N bars``. It
compares a per-minute rate to a multi-bar average and is used as an
"unusual activity" signal, not as a literal volume ratio.

Buy pressure is an uptick/downtick approximation over recent history; true
buy/sell attribution would need trades matched against the bid/ask.
"""

from __future__ import annotations

import logging
import math
import time
from bisect import bisect_right
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..core.config import VOLUME_RANK_THRESHOLDS
from ..core.enums import VolumeProfile
from ..models.results import VolumeResult
from ..store.symbol_store import SymbolDataStore

logger = logging.getLogger(__name__)

NEUTRAL_BUY_PRESSURE = 50
MIN_PROFILE_POINTS = 10
RECENT_PROFILE_POINTS = 5


@dataclass
class _SessionVolume:
    total: float = 0
    trades: int = 0
    started_at: float = 0
    last_update: float = 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def volume_rank(relative_volume: float) -> int:
    """Bucket relative volume into ordinal tiers 1..5.

    Examples:
        >>> volume_rank(0.4)
        1
        >>> volume_rank(1.7)
        4
        >>> volume_rank(2.0)
        5
    """
    return bisect_right(VOLUME_RANK_THRESHOLDS, relative_volume) + 1


class VolumeCalculator:
    """Derives volume metrics from a SymbolDataStore."""

    def __init__(
        self,
        store: SymbolDataStore,
        *,
        window_size: int = 20,
        alert_multiplier: float = 2.0,
        profile_window: int = 50,
        pressure_window: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self.window_size = window_size
        self.alert_multiplier = alert_multiplier
        self.profile_window = profile_window
        self.pressure_window = pressure_window
        self._clock = clock

        self._sessions: dict[str, _SessionVolume] = {}
        # symbol -> most recent relative volume, for unusual-volume scans
        self._latest_relative: dict[str, float] = {}

        self._calculations = 0
        self._high_volume_alerts = 0
        self._averages_calculated = 0

    def calculate(self, symbol: str, current_volume: float | None) -> VolumeResult:
        """Compute volume metrics after ``current_volume`` was stored."""
        if not symbol or current_volume is None:
            return VolumeResult()

        average = self._store.get_average_volume(symbol, self.window_size)
        rate = self._store.get_volume_rate(symbol)
        session = self._update_session(symbol, current_volume)

        relative = rate / average if average > 0 else 0.0

        result = VolumeResult(
            relative_volume=round(relative, 2),
            average_volume=round(average),
            volume_rate=round(rate),
            session_volume=session.total,
            session_trades=session.trades,
            volume_profile=self.calculate_volume_profile(symbol),
            buy_pressure=self.estimate_buy_pressure(symbol, current_volume),
            is_high_volume=relative > self.alert_multiplier,
            volume_rank=volume_rank(relative),
        )

        self._latest_relative[symbol] = result.relative_volume
        self._calculations += 1
        if average > 0:
            self._averages_calculated += 1
        if result.is_high_volume:
            self._high_volume_alerts += 1
        return result

    def calculate_volume_profile(self, symbol: str) -> VolumeProfile:
        """Compare the last 5 volumes with the mean of the profile window."""
        history = self._store.get_history(symbol, self.profile_window)
        if len(history) < MIN_PROFILE_POINTS:
            return VolumeProfile.INSUFFICIENT_DATA

        volumes = [entry.volume for entry in history if entry.volume > 0]
        if not volumes:
            return VolumeProfile.NO_VOLUME

        average = sum(volumes) / len(volumes)
        recent = volumes[-RECENT_PROFILE_POINTS:]
        recent_average = sum(recent) / len(recent)

        if recent_average > average * 2:
            return VolumeProfile.ACCELERATING
        if recent_average > average * 1.5:
            return VolumeProfile.INCREASING
        if recent_average < average * 0.5:
            return VolumeProfile.DECLINING
        return VolumeProfile.NORMAL

    def estimate_buy_pressure(self, symbol: str, current_volume: float | None = None) -> int:
        """Percent of recent volume traded on upticks (50 when undecidable)."""
        history = self._store.get_history(symbol, self.pressure_window)
        if len(history) < 2:
            return NEUTRAL_BUY_PRESSURE

        up_volume = 0.0
        down_volume = 0.0
        for prev, entry in zip(history, history[1:]):
            step = entry.price - prev.price
            if step > 0:
                up_volume += entry.volume
            elif step < 0:
                down_volume += entry.volume

        total = up_volume + down_volume
        if total == 0:
            return NEUTRAL_BUY_PRESSURE
        return _round_half_up((up_volume / total) * 100)

    def reset_session(self) -> None:
        """Start a new session: forget session volume totals."""
        self._sessions.clear()
        self._latest_relative.clear()
        logger.info("Reset session volume tracking")

    def get_volume_leaders(self, limit: int = 10) -> list[dict[str, Any]]:
        """Symbols with the largest session volume."""
        leaders = [
            {
                "symbol": symbol,
                "session_volume": session.total,
                "relative_volume": self._latest_relative.get(symbol, 0.0),
                "trades": session.trades,
            }
            for symbol, session in self._sessions.items()
            if self._store.get_current(symbol) is not None
        ]
        leaders.sort(key=lambda row: row["session_volume"], reverse=True)
        return leaders[:limit]

    def get_unusual_volume(self, threshold: float = 2.0) -> list[dict[str, Any]]:
        """Symbols whose latest relative volume is at or above ``threshold``."""
        unusual = []
        for symbol, relative in self._latest_relative.items():
            snapshot = self._store.get_current(symbol)
            if snapshot is None or relative < threshold:
                continue
            unusual.append(
                {
                    "symbol": symbol,
                    "relative_volume": relative,
                    "volume": snapshot.record.volume,
                    "price": snapshot.record.price,
                }
            )
        unusual.sort(key=lambda row: row["relative_volume"], reverse=True)
        return unusual

    def get_metrics(self) -> dict[str, Any]:
        return {
            "calculations_performed": self._calculations,
            "high_volume_alerts": self._high_volume_alerts,
            "averages_calculated": self._averages_calculated,
            "sessions_tracked": len(self._sessions),
            "unusual_volume_count": len(self.get_unusual_volume(self.alert_multiplier)),
        }

    def _update_session(self, symbol: str, volume: float) -> _SessionVolume:
        now = self._clock()
        session = self._sessions.get(symbol)
        if session is None:
            session = _SessionVolume(started_at=now)
            self._sessions[symbol] = session
        session.total += volume
        session.trades += 1
        session.last_update = now
        return session
