"""
Custom exceptions for the candle data layer
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from hk_trading.data.candles import TimeDirection


class HkTradingError(Exception):
    """Base exception for hk_trading errors"""


class ConfigurationError(HkTradingError):
    """Configuration related errors"""


class DataSourceError(HkTradingError):
    """Data source lookup or consistency errors"""


class CsvFormatError(DataSourceError):
    """CSV file could not be read or parsed"""


class CsvMissingColumnError(DataSourceError):
    """CSV header lacks a required column"""

    def __init__(self, column: str, path: Optional[str] = None):
        self.column = column
        self.path = path
        location = f" in {path}" if path else ""
        super().__init__(f"Missing required CSV column '{column}'{location}")


class ContinuityError(HkTradingError):
    """Candle append rejected by the series continuity check"""


class NotContiguousError(ContinuityError):
    """
    Appended candle does not line up with the series boundary.

    Attributes:
        direction: Established time direction of the series
        boundary: Boundary timestamp (head if descending, tail if ascending)
        expected: Next timestamp in storage order
        actual: Timestamp of the rejected candle
    """

    def __init__(
        self,
        direction: "TimeDirection",
        boundary: datetime,
        expected: datetime,
        actual: datetime,
    ):
        self.direction = direction
        self.boundary = boundary
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Candle at {actual.isoformat()} is not contiguous with "
            f"{direction.value} series (boundary={boundary.isoformat()}, "
            f"expected={expected.isoformat()})"
        )


class DirectionIndeterminateError(ContinuityError):
    """Series holds two or more candles but has no time direction yet"""

    def __init__(self, row_count: int):
        self.row_count = row_count
        super().__init__(
            f"Failed to detect the time order for candles ({row_count} rows held)"
        )
