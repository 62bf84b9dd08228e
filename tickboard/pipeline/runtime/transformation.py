"""Transformation service: raw events in, canonical records out.

Architecture:
    The service is the single entry/exit point of the pipeline:

        raw event -> tagged event model -> transformer -> store.update
                  -> change/volume calculators -> reference enrichment
                  -> CanonicalRecord

    Every record is processed to completion before the next one, in input
    order. Failures are contained per record: ``transform_result`` returns a
    ``TransformResult`` (ok / rejected / failed) and never raises, so one bad
    item cannot abort a batch.

Design Decisions:
    - Tagged union dispatch: the raw payload is validated into TradeEvent,
      QuoteEvent or BarEvent and matched exhaustively on its type
    - Rejections (missing symbol/price, unknown tag) are not errors: they are
      counted and logged at WARNING
    - Reference data (market cap, float, sector, ...) only fills fields the
      record has not already set
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, assert_never

from ..calculators.change import ChangeCalculator
from ..calculators.volume import VolumeCalculator
from ..core.config import PipelineConfig
from ..core.enums import EventKind
from ..core.exceptions import TransformError
from ..models.canonical import CanonicalRecord, ReferenceData
from ..models.events import BarEvent, QuoteEvent, TradeEvent, event_tag, parse_raw_event
from ..models.records import NormalizedRecord
from ..models.results import VolumeResult
from ..store.symbol_store import SymbolDataStore
from ..transformers.bar import BarTransformer
from ..transformers.quote import QuoteTransformer
from ..transformers.trade import TradeTransformer

logger = logging.getLogger(__name__)

# Canonical fields filled from reference data when the record has no value
_REFERENCE_FIELDS = (
    "market_cap",
    "float_shares",
    "short_float",
    "atr",
    "beta",
    "sector",
    "industry",
)


class TransformStatus(str, Enum):
    OK = "ok"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class TransformResult:
    """Outcome of transforming one raw item."""

    status: TransformStatus
    record: CanonicalRecord | None = None
    error: TransformError | None = None
    reason: str | None = None

    @classmethod
    def ok(cls, record: CanonicalRecord) -> TransformResult:
        return cls(status=TransformStatus.OK, record=record)

    @classmethod
    def rejected(cls, reason: str) -> TransformResult:
        return cls(status=TransformStatus.REJECTED, reason=reason)

    @classmethod
    def failed(cls, error: TransformError) -> TransformResult:
        return cls(status=TransformStatus.FAILED, error=error, reason=str(error))

    @property
    def is_ok(self) -> bool:
        return self.status is TransformStatus.OK


@dataclass
class TransformMetrics:
    """Counters for the transformation service."""

    transformed_count: int = 0
    rejected_count: int = 0
    error_count: int = 0
    last_transform_ms: float | None = None


class TransformationService:
    """Orchestrates transformers, store and calculators."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        store: SymbolDataStore | None = None,
        reference_data: Mapping[str, Mapping[str, Any]] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or PipelineConfig()
        self._clock = clock
        self.store = store or SymbolDataStore(
            max_history_size=self.config.history_size,
            volume_bar_width_ms=self.config.volume_bar_width_ms,
            max_volume_bars=self.config.max_volume_bars,
            clock=clock,
        )

        self._trade_transformer = TradeTransformer()
        self._quote_transformer = QuoteTransformer()
        self._bar_transformer = BarTransformer()

        self.change_calculator = ChangeCalculator(self.store, clock=clock)
        self.volume_calculator = VolumeCalculator(
            self.store,
            window_size=self.config.volume_window,
            alert_multiplier=self.config.volume_alert_multiplier,
            profile_window=self.config.profile_window,
            pressure_window=self.config.pressure_window,
            clock=clock,
        )

        self._reference: dict[str, ReferenceData] = {}
        # symbol -> canonical fields of the latest record, before enrichment
        self._latest_fields: dict[str, dict[str, Any]] = {}
        self._metrics = TransformMetrics()

        if reference_data:
            self.bulk_update_reference_data(reference_data)

        logger.info(f"TransformationService initialized: {self.config}")

    # ----------------------
    # Transformation
    # ----------------------
    def transform(
        self, data: Mapping[str, Any] | Iterable[Mapping[str, Any]] | None
    ) -> CanonicalRecord | list[CanonicalRecord] | None:
        """Transform one raw item or a batch.

        A single item yields a record or None; a batch yields the list of
        successfully transformed records, in input order.
        """
        if data is None:
            return None
        if isinstance(data, Mapping):
            return self.transform_result(data).record
        try:
            return [result.record for result in self.transform_results(data) if result.is_ok]
        except TypeError as e:
            logger.error(f"Transform error: {e}")
            self._metrics.error_count += 1
            return None

    def transform_results(self, data: Iterable[Mapping[str, Any]]) -> list[TransformResult]:
        return [self.transform_result(item) for item in data]

    def transform_result(self, item: Any) -> TransformResult:
        """Transform one raw item into a TransformResult; never raises."""
        if not item:
            self._metrics.rejected_count += 1
            return TransformResult.rejected("empty item")
        if not isinstance(item, Mapping):
            self._metrics.error_count += 1
            error = TransformError(f"unsupported payload type: {type(item).__name__}", payload=item)
            logger.error(f"Error transforming item: {error}")
            return TransformResult.failed(error)

        tag = event_tag(item)
        if tag not in {kind.value for kind in EventKind}:
            logger.warning(f"No transformer for event type: {tag}")
            self._metrics.rejected_count += 1
            return TransformResult.rejected(f"unknown event type: {tag}")

        started = time.perf_counter()
        try:
            event = parse_raw_event(item)
            record = self._normalize(event)
            if record is None:
                self._metrics.rejected_count += 1
                return TransformResult.rejected("failed validation")

            self.store.update(record.symbol, record)
            fields = self._calculate_fields(record)
            self._latest_fields[record.symbol] = fields
            canonical = CanonicalRecord(**self._enrich(dict(fields)))
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error transforming {tag} item: {e}", exc_info=True)
            self._metrics.error_count += 1
            return TransformResult.failed(TransformError(str(e), event_type=tag, payload=item))

        self._metrics.transformed_count += 1
        self._metrics.last_transform_ms = (time.perf_counter() - started) * 1000
        return TransformResult.ok(canonical)

    # ----------------------
    # Reference data & previous close
    # ----------------------
    def update_reference_data(self, symbol: str, data: Mapping[str, Any]) -> None:
        current = self._reference.get(symbol) or ReferenceData()
        self._reference[symbol] = current.merged(dict(data))

    def bulk_update_reference_data(self, mapping: Mapping[str, Mapping[str, Any]]) -> None:
        for symbol, data in mapping.items():
            self.update_reference_data(symbol, data)
        logger.info(f"Updated reference data for {len(mapping)} symbols")

    def get_reference_data(self, symbol: str) -> ReferenceData | None:
        return self._reference.get(symbol)

    def set_previous_close(self, symbol: str, previous_close: float) -> None:
        self.store.set_previous_close(symbol, previous_close)

    def bulk_set_previous_close(self, closes: Mapping[str, float]) -> None:
        for symbol, close in closes.items():
            self.store.set_previous_close(symbol, close)
        logger.info(f"Set previous close for {len(closes)} symbols")

    # ----------------------
    # State access
    # ----------------------
    def get_symbol_data(self, symbol: str) -> CanonicalRecord | None:
        """Latest canonical record for a symbol, with current reference data."""
        fields = self._latest_fields.get(symbol)
        if fields is None:
            return None
        return CanonicalRecord(**self._enrich(dict(fields)))

    def get_all_symbol_data(self) -> list[CanonicalRecord]:
        out = []
        for symbol in self.store.get_all_symbols():
            record = self.get_symbol_data(symbol)
            if record is not None:
                out.append(record)
        return out

    def clear_symbol(self, symbol: str) -> None:
        self.store.clear(symbol)
        self._latest_fields.pop(symbol, None)
        logger.debug(f"Cleared data for symbol: {symbol}")

    def clear_all(self) -> None:
        """Session reset; previous closes and reference data survive."""
        self.store.clear_all()
        self._latest_fields.clear()
        logger.info("Cleared all transformation data")

    def reset_daily(self) -> None:
        """New trading day: reset daily high/low and session volumes."""
        self.change_calculator.reset_daily()
        self.volume_calculator.reset_session()

    def get_metrics(self) -> dict[str, Any]:
        return {
            "transformed_count": self._metrics.transformed_count,
            "rejected_count": self._metrics.rejected_count,
            "error_count": self._metrics.error_count,
            "last_transform_ms": self._metrics.last_transform_ms,
            "store": self.store.get_metrics(),
            "calculators": {
                "change": self.change_calculator.get_metrics(),
                "volume": self.volume_calculator.get_metrics(),
            },
        }

    # ----------------------
    # Internals
    # ----------------------
    def _normalize(self, event: TradeEvent | QuoteEvent | BarEvent) -> NormalizedRecord | None:
        if isinstance(event, TradeEvent):
            return self._trade_transformer.transform(event)
        elif isinstance(event, QuoteEvent):
            return self._quote_transformer.transform(event)
        elif isinstance(event, BarEvent):
            return self._bar_transformer.transform(event)
        else:
            assert_never(event)

    def _calculate_fields(self, record: NormalizedRecord) -> dict[str, Any]:
        symbol = record.symbol
        change = self.change_calculator.calculate(symbol, record.price)
        if record.volume is not None:
            volume = self.volume_calculator.calculate(symbol, record.volume)
        else:
            volume = VolumeResult()

        momentum5m = momentum15m = 0.0
        if self.store.history_size(symbol) > self.config.momentum_min_history:
            momentum5m = self.change_calculator.calculate_momentum(symbol, 5).momentum
            momentum15m = self.change_calculator.calculate_momentum(symbol, 15).momentum

        if record.timestamp is not None:
            timestamp = record.timestamp.isoformat()
        else:
            timestamp = datetime.fromtimestamp(self._clock(), tz=UTC).isoformat()

        return {
            "symbol": symbol,
            "price": record.price,
            "change": change.change,
            "change_percent": change.change_percent,
            "volume": record.volume or 0,
            "relative_volume": volume.relative_volume,
            "volume_rate": volume.volume_rate,
            "average_volume": volume.average_volume,
            "session_volume": volume.session_volume,
            "session_trades": volume.session_trades,
            "buy_pressure": volume.buy_pressure,
            "volume_profile": volume.volume_profile.value,
            "volume_rank": volume.volume_rank,
            "is_high_volume": volume.is_high_volume,
            "momentum5m": momentum5m,
            "momentum15m": momentum15m,
            "day_high": change.day_high,
            "day_low": change.day_low,
            "day_open": change.day_open,
            "day_range": change.day_range,
            "day_range_percent": change.day_range_percent,
            "day_position": change.day_position,
            "timestamp": timestamp,
            "pre_market_price": record.price,
            "pre_market_change": change.pre_market_change or 0,
            "pre_market_change_percent": change.pre_market_change_percent or 0,
            "gap_percent": change.gap_percent or 0,
            "event_type": record.event_type.value,
        }

    def _enrich(self, fields: dict[str, Any]) -> dict[str, Any]:
        reference = self._reference.get(fields["symbol"])
        if reference is None:
            return fields
        for name in _REFERENCE_FIELDS:
            if not fields.get(name):
                fields[name] = getattr(reference, name)
        return fields
