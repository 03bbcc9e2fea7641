"""Abstract base class for candle data sources.

Defines the query interface external collaborators implement to produce
CandleSeries. The concrete implementation shipped here is
CsvCandleDataSource (file-backed).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from hk_trading.models.candle import to_utc
from hk_trading.models.resolution import Resolution

if TYPE_CHECKING:
    from hk_trading.data.candles import CandleSeries


@dataclass(frozen=True)
class DataSourceMeta:
    """Coverage of one (symbol, resolution) pair offered by a data source."""

    symbol: str
    resolution: Resolution
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class DataSourceQuery:
    """
    Candle request.

    Attributes:
        symbol: Trading pair (e.g., 'BTCUSDT')
        resolution: Requested sampling period
        start_time: Earliest open_time to include
        end_time: Latest open_time to include (None = up to the newest)
    """

    symbol: str
    resolution: Resolution
    start_time: datetime
    end_time: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_time", to_utc(self.start_time))
        if self.end_time is not None:
            object.__setattr__(self, "end_time", to_utc(self.end_time))
            if self.end_time < self.start_time:
                raise ValueError(
                    f"end_time ({self.end_time}) must be >= start_time ({self.start_time})"
                )

    def covers(self, open_time: datetime) -> bool:
        """True if *open_time* falls inside [start_time, end_time]."""
        if open_time < self.start_time:
            return False
        return self.end_time is None or open_time <= self.end_time


class CandleDataSource(ABC):
    """Abstract interface for candle provision.

    Implementations feed rows through CandleSeries.append, so every series
    they return has passed the continuity check.
    """

    @abstractmethod
    def get_metadata(self) -> List[DataSourceMeta]:
        """Describe every (symbol, resolution) pair this source can serve."""
        ...

    @abstractmethod
    async def get_candles(self, query: DataSourceQuery) -> "CandleSeries":
        """Fetch the candles matching *query*.

        Args:
            query: Symbol, resolution and time window

        Returns:
            CandleSeries holding the matching candles

        Raises:
            DataSourceError: If the source cannot serve the query
            ContinuityError: If the source data is not contiguous
        """
        ...
