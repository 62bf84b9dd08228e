"""Calculator results."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import VolumeProfile


@dataclass(frozen=True)
class ChangeResult:
    """Price change, gap and intraday range for one update."""

    change: float = 0.0
    change_percent: float = 0.0
    previous_price: float = 0.0
    gap_percent: float | None = None
    pre_market_change: float | None = None
    pre_market_change_percent: float | None = None
    day_high: float = 0.0
    day_low: float = 0.0
    day_open: float = 0.0
    day_range: float = 0.0
    day_range_percent: float = 0.0
    day_position: float = 0.5


@dataclass(frozen=True)
class MomentumResult:
    """Momentum percent and velocity (price change per minute)."""

    momentum: float = 0.0
    velocity: float = 0.0
    data_points: int = 0
    window_minutes: float = 0.0


@dataclass(frozen=True)
class VolumeResult:
    """Relative volume and related activity metrics."""

    relative_volume: float = 0.0
    average_volume: int = 0
    volume_rate: int = 0
    session_volume: float = 0.0
    session_trades: int = 0
    volume_profile: VolumeProfile = VolumeProfile.UNKNOWN
    buy_pressure: int = 50
    is_high_volume: bool = False
    volume_rank: int = 0


@dataclass(frozen=True)
class ExtremeMove:
    """Largest absolute percent move seen for a metric, across all symbols."""

    symbol: str | None = None
    percent: float = 0.0
    timestamp: int | None = None
