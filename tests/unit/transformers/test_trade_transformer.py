"""Unit tests for TradeTransformer."""

from datetime import UTC, datetime

import pytest

from tickboard.pipeline.core import EventKind
from tickboard.pipeline.models import TradeEvent
from tickboard.pipeline.transformers import TradeTransformer, clean_price, parse_conditions


@pytest.fixture
def transformer():
    return TradeTransformer()


def test_transform_maps_size_to_volume(transformer):
    record = transformer.transform(
        TradeEvent(symbol="AAPL", price=189.123456, size=250, exchange=4, timestamp=1_700_000_000_000)
    )
    assert record is not None
    assert record.event_type is EventKind.TRADE
    assert record.price == 189.1235
    assert record.volume == 250
    assert record.exchange_name == "NASDAQ"
    assert record.timestamp == datetime.fromtimestamp(1_700_000_000, tz=UTC)
    assert record.raw_timestamp == 1_700_000_000_000


def test_transform_rejects_missing_fields(transformer):
    assert transformer.transform(TradeEvent(price=10)) is None
    assert transformer.transform(TradeEvent(symbol="AAPL")) is None


def test_zero_price_is_accepted(transformer):
    record = transformer.transform(TradeEvent(symbol="AAPL", price=0))
    assert record is not None
    assert record.price == 0


def test_volume_is_non_negative_integer(transformer):
    assert transformer.transform(TradeEvent(symbol="A", price=1, size=-5)).volume == 0
    assert transformer.transform(TradeEvent(symbol="A", price=1, size=12.9)).volume == 12
    assert transformer.transform(TradeEvent(symbol="A", price=1)).volume == 0


def test_conditions_are_decoded(transformer):
    record = transformer.transform(TradeEvent(symbol="A", price=1, conditions=[14, 37]))
    assert record.conditions == (14, 37)
    assert record.condition_flags.is_odd_lot
    assert record.condition_flags.is_intermarket
    assert not record.condition_flags.is_form_t


def test_transform_batch_drops_rejections(transformer):
    records = transformer.transform_batch(
        [TradeEvent(symbol="A", price=1), TradeEvent(price=2), TradeEvent(symbol="B", price=3)]
    )
    assert [r.symbol for r in records] == ["A", "B"]


def test_clean_price():
    assert clean_price(1.00005) == 1.0001
    assert clean_price(-1) == 0.0
    assert clean_price(float("nan")) == 0.0


def test_parse_conditions_form_t():
    assert parse_conditions([29]).is_form_t
    assert parse_conditions([]).is_regular
