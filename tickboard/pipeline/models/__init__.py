"""Data models for the market-data pipeline.

Architecture:
    Raw vendor events, normalized records and the canonical record are frozen
    pydantic v2 models and may be shared between subscribers. Mutable
    per-symbol state (volume buckets, daily high/low) and calculator results
    are plain dataclasses owned by the store and calculators.

Model Categories:
    - Raw events: TradeEvent, QuoteEvent, BarEvent (tagged union RawEvent)
    - Normalized: TradeRecord, QuoteRecord, BarRecord
    - State: HistoryEntry, CurrentSnapshot, VolumeBar, DailyHighLow
    - Results: ChangeResult, MomentumResult, VolumeResult, ExtremeMove
    - Output: CanonicalRecord, ReferenceData
    - Lifecycle: Subscription, ConnectionEvent, MarketDataEvent
"""

from .canonical import CanonicalRecord, ReferenceData
from .events import BarEvent, QuoteEvent, RawEvent, TradeEvent, event_tag, parse_raw_event
from .records import (
    AnyRecord,
    BarRecord,
    NormalizedRecord,
    QuoteRecord,
    TradeConditions,
    TradeRecord,
)
from .results import ChangeResult, ExtremeMove, MomentumResult, VolumeResult
from .state import CurrentSnapshot, DailyHighLow, HistoryEntry, VolumeBar
from .subscription import ConnectionEvent, MarketDataEvent, Subscription

__all__ = [
    "AnyRecord",
    "BarEvent",
    "BarRecord",
    "CanonicalRecord",
    "ChangeResult",
    "ConnectionEvent",
    "CurrentSnapshot",
    "DailyHighLow",
    "ExtremeMove",
    "HistoryEntry",
    "MarketDataEvent",
    "MomentumResult",
    "NormalizedRecord",
    "QuoteEvent",
    "QuoteRecord",
    "RawEvent",
    "ReferenceData",
    "Subscription",
    "TradeConditions",
    "TradeEvent",
    "TradeRecord",
    "VolumeBar",
    "VolumeResult",
    "event_tag",
    "parse_raw_event",
]
