"""Candle storage and data-source abstraction."""

from hk_trading.data.base import CandleDataSource, DataSourceMeta, DataSourceQuery
from hk_trading.data.candles import (
    CandleSeries,
    InferenceState,
    TimeDirection,
    WriteOnce,
)
from hk_trading.data.csv_source import CsvCandleDataSource

__all__ = [
    "CandleSeries",
    "TimeDirection",
    "InferenceState",
    "WriteOnce",
    "CandleDataSource",
    "DataSourceMeta",
    "DataSourceQuery",
    "CsvCandleDataSource",
]
