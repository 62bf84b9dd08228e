"""Unit tests for the canonical output record and reference data."""

from tickboard.pipeline.models import CanonicalRecord, ReferenceData

WIRE_FIELDS = {
    "symbol",
    "price",
    "change",
    "changePercent",
    "volume",
    "relativeVolume",
    "volumeRate",
    "marketCap",
    "float",
    "shortFloat",
    "atr",
    "beta",
    "rsi",
    "momentum5m",
    "momentum15m",
    "alerts",
    "timestamp",
    "preMarketPrice",
    "preMarketVolume",
    "preMarketChange",
    "preMarketChangePercent",
    "gapPercent",
}


def test_canonical_record_is_never_partial():
    """A bare record still emits every wire field with a default."""
    wire = CanonicalRecord(symbol="AAPL").to_wire()

    assert WIRE_FIELDS <= set(wire)
    assert all(value is not None for value in wire.values())
    assert wire["rsi"] == 50
    assert wire["alerts"] == 0
    assert wire["buyPressure"] == 50
    assert wire["dayPosition"] == 0.5
    assert wire["sector"] == "Unknown"
    assert isinstance(wire["timestamp"], str)


def test_canonical_record_accepts_field_names_and_aliases():
    by_name = CanonicalRecord(symbol="AAPL", float_shares=1_000, gap_percent=2.5)
    by_alias = CanonicalRecord(symbol="AAPL", **{"float": 1_000, "gapPercent": 2.5})
    assert by_name.float_shares == by_alias.float_shares == 1_000
    assert by_name.to_wire()["gapPercent"] == 2.5


def test_reference_data_accepts_camel_case():
    ref = ReferenceData.model_validate({"marketCap": 3e12, "float": 15e9, "sector": "Technology"})
    assert ref.market_cap == 3e12
    assert ref.float_shares == 15e9
    assert ref.sector == "Technology"
    assert ref.industry == "Unknown"


def test_reference_data_merge_layers_new_values():
    ref = ReferenceData.model_validate({"marketCap": 100, "beta": 1.2})
    merged = ref.merged({"beta": 1.5, "sector": "Energy"})

    assert merged.market_cap == 100
    assert merged.beta == 1.5
    assert merged.sector == "Energy"
    assert merged.updated_at is not None
    # Original is untouched
    assert ref.beta == 1.2


def test_momentum_wire_keys_keep_lowercase_suffix():
    wire = CanonicalRecord(symbol="AAPL", momentum5m=1.5, momentum15m=-2.0).to_wire()
    assert wire["momentum5m"] == 1.5
    assert wire["momentum15m"] == -2.0
    assert "momentum5M" not in wire
    assert "momentum15M" not in wire
