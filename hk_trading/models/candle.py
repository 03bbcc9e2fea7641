"""
Candlestick data model
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_millis(value: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(round(to_utc(value).timestamp() * 1000))


@dataclass(frozen=True)
class Candle:
    """
    Immutable OHLCV sample for one time bucket.

    Price ordering (high >= low etc.) is not checked; only finiteness is.

    Attributes:
        open_time: Candle opening timestamp (normalized to UTC)
        open: Opening price
        high: Highest price in period
        low: Lowest price in period
        close: Closing price
        volume: Traded volume, if the source reports it
        trade_count: Number of trades, if the source reports it
    """

    open_time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None
    trade_count: Optional[float] = None

    def __post_init__(self) -> None:
        """Normalize open_time and validate numeric fields."""
        object.__setattr__(self, "open_time", to_utc(self.open_time))

        for name in ("open", "high", "low", "close"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(f"{name.capitalize()} ({value}) must be a finite number")

        for name, label in (("volume", "Volume"), ("trade_count", "Trade count")):
            value = getattr(self, name)
            if value is None:
                continue
            if not math.isfinite(value):
                raise ValueError(f"{label} ({value}) must be a finite number")
            if value < 0:
                raise ValueError(f"{label} ({value}) cannot be negative")


@dataclass(frozen=True)
class TimestampValue:
    """Single (timestamp, value) point taken from one candle column."""

    timestamp: datetime
    value: Optional[float]
