"""Canonical output record and static reference data.

The canonical record is the fixed-shape output of the pipeline. Every field
has an explicit default so consumers never see a partial record; field names
are snake_case in Python and camelCase on the wire (``to_wire()``).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReferenceData(BaseModel):
    """Static per-symbol reference data (market cap, float, sector, ...).

    Accepts both camelCase (``marketCap``) and snake_case keys.
    """

    market_cap: float = 0
    float_shares: float = Field(0, alias="float")
    short_float: float = 0
    atr: float = 0
    beta: float = 0
    sector: str = "Unknown"
    industry: str = "Unknown"
    updated_at: datetime | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def merged(self, data: dict[str, Any]) -> ReferenceData:
        """Return a copy with ``data`` layered over the fields already set."""
        update = ReferenceData.model_validate(data).model_dump(exclude_unset=True)
        current = self.model_dump(exclude_unset=True)
        return ReferenceData.model_validate(
            {**current, **update, "updated_at": datetime.now(UTC)}
        )


class CanonicalRecord(BaseModel):
    """Fully enriched, fixed-shape output of the transformation pipeline."""

    symbol: str
    price: float = 0

    change: float = 0
    change_percent: float = 0

    volume: float = 0
    relative_volume: float = 0
    volume_rate: float = 0
    average_volume: float = 0
    session_volume: float = 0
    session_trades: int = 0
    buy_pressure: int = 50
    volume_profile: str = "Unknown"
    volume_rank: int = 0
    is_high_volume: bool = False

    market_cap: float = 0
    float_shares: float = Field(0, alias="float")
    short_float: float = 0
    sector: str = "Unknown"
    industry: str = "Unknown"

    atr: float = 0
    beta: float = 0
    rsi: float = 50

    momentum5m: float = Field(0, alias="momentum5m")
    momentum15m: float = Field(0, alias="momentum15m")

    day_high: float = 0
    day_low: float = 0
    day_open: float = 0
    day_range: float = 0
    day_range_percent: float = 0
    day_position: float = 0.5

    alerts: int = 0
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    pre_market_price: float = 0
    pre_market_volume: float = 0
    pre_market_change: float = 0
    pre_market_change_percent: float = 0
    gap_percent: float = 0

    event_type: str = "unknown"

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with wire (camelCase) keys."""
        return self.model_dump(by_alias=True, mode="json")
