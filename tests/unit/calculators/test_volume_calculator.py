"""Unit tests for VolumeCalculator."""

from __future__ import annotations

import pytest

from tickboard.pipeline.calculators import VolumeCalculator, volume_rank
from tickboard.pipeline.core import VolumeProfile
from tickboard.pipeline.models import TradeRecord


@pytest.fixture
def calc(store, clock):
    return VolumeCalculator(store, clock=clock)


def add(store, symbol: str, price: float, volume: float) -> None:
    store.update(symbol, TradeRecord(symbol=symbol, price=price, volume=volume))


@pytest.mark.parametrize(
    "relative,rank",
    [(0.0, 1), (0.49, 1), (0.5, 2), (0.99, 2), (1.2, 3), (1.7, 4), (2.0, 5), (7.5, 5)],
)
def test_volume_rank(relative, rank):
    assert volume_rank(relative) == rank


class TestRelativeVolume:
    def test_rate_over_average(self, store, calc, clock):
        add(store, "AAPL", 10.0, 100)
        clock.advance(60)
        add(store, "AAPL", 10.0, 300)

        result = calc.calculate("AAPL", 300)
        # rate 300 / mean(100, 300)
        assert result.relative_volume == 1.5
        assert result.average_volume == 200
        assert result.volume_rate == 300
        assert result.volume_rank == 4
        assert not result.is_high_volume

    def test_high_volume_flag(self, store, calc, clock):
        for volume in (100, 100, 100):
            add(store, "AAPL", 10.0, volume)
            clock.advance(60)
        add(store, "AAPL", 10.0, 700)

        result = calc.calculate("AAPL", 700)
        assert result.relative_volume == 2.8
        assert result.is_high_volume
        assert result.volume_rank == 5

    def test_no_bars_is_zero(self, calc):
        result = calc.calculate("AAPL", 100)
        assert result.relative_volume == 0
        assert result.volume_rank == 1

    def test_missing_volume_returns_default(self, calc):
        assert calc.calculate("AAPL", None).volume_profile is VolumeProfile.UNKNOWN


class TestVolumeProfile:
    def test_insufficient_data(self, store, calc):
        for _ in range(9):
            add(store, "AAPL", 10.0, 100)
        assert calc.calculate_volume_profile("AAPL") is VolumeProfile.INSUFFICIENT_DATA

    def test_no_volume(self, store, calc):
        for _ in range(10):
            add(store, "AAPL", 10.0, 0)
        assert calc.calculate_volume_profile("AAPL") is VolumeProfile.NO_VOLUME

    @pytest.mark.parametrize(
        "volumes,expected",
        [
            ([100] * 10 + [1_000] * 5, VolumeProfile.ACCELERATING),
            ([100] * 10 + [300] * 5, VolumeProfile.INCREASING),
            ([1_000] * 10 + [100] * 5, VolumeProfile.DECLINING),
            ([100] * 15, VolumeProfile.NORMAL),
        ],
    )
    def test_profiles(self, store, calc, volumes, expected):
        for volume in volumes:
            add(store, "AAPL", 10.0, volume)
        assert calc.calculate_volume_profile("AAPL") is expected


class TestBuyPressure:
    def test_neutral_with_one_point(self, store, calc):
        add(store, "AAPL", 10.0, 100)
        assert calc.estimate_buy_pressure("AAPL") == 50

    def test_neutral_when_flat(self, store, calc):
        for _ in range(5):
            add(store, "AAPL", 10.0, 100)
        assert calc.estimate_buy_pressure("AAPL") == 50

    def test_uptick_volume_share(self, store, calc):
        add(store, "AAPL", 10.0, 100)
        add(store, "AAPL", 11.0, 200)  # up
        add(store, "AAPL", 10.5, 100)  # down
        add(store, "AAPL", 12.0, 300)  # up
        # 500 up / 600 total
        assert calc.estimate_buy_pressure("AAPL") == 83

    def test_only_last_ten_points_count(self, store, calc):
        add(store, "AAPL", 10.0, 10_000)
        add(store, "AAPL", 9.0, 10_000)  # downtick outside the window
        for i in range(9):
            add(store, "AAPL", 10.0 + i, 100)
        assert calc.estimate_buy_pressure("AAPL") == 100


def test_session_volume_and_reset(store, calc):
    add(store, "AAPL", 10.0, 100)
    calc.calculate("AAPL", 100)
    add(store, "AAPL", 10.0, 50)
    result = calc.calculate("AAPL", 50)

    assert result.session_volume == 150
    assert result.session_trades == 2

    calc.reset_session()
    add(store, "AAPL", 10.0, 10)
    assert calc.calculate("AAPL", 10).session_volume == 10


def test_leaders_and_unusual_volume(store, calc, clock):
    add(store, "AAPL", 10.0, 100)
    calc.calculate("AAPL", 100)
    add(store, "MSFT", 20.0, 50)
    calc.calculate("MSFT", 50)
    clock.advance(60)
    add(store, "MSFT", 20.0, 950)
    calc.calculate("MSFT", 950)

    leaders = calc.get_volume_leaders(limit=1)
    assert [row["symbol"] for row in leaders] == ["MSFT"]
    assert leaders[0]["session_volume"] == 1_000

    # MSFT: rate 950 / mean(50, 950) = 1.9
    unusual = calc.get_unusual_volume(threshold=1.5)
    assert [row["symbol"] for row in unusual] == ["MSFT"]

    metrics = calc.get_metrics()
    assert metrics["calculations_performed"] == 3
    assert metrics["sessions_tracked"] == 2
