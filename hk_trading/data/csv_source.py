"""CSV-backed candle data source."""

import csv
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, Iterable, List, Tuple

from hk_trading.core.exceptions import (
    CsvFormatError,
    CsvMissingColumnError,
    DataSourceError,
)
from hk_trading.data.base import CandleDataSource, DataSourceMeta, DataSourceQuery
from hk_trading.data.candles import CandleSeries
from hk_trading.models.candle import Candle, to_utc
from hk_trading.models.resolution import Resolution
from hk_trading.utils.logger import HkTradingLogger, log_execution_time

if TYPE_CHECKING:
    from hk_trading.utils.config import DataSourceConfig

REQUIRED_COLUMNS = ("open_time", "open", "high", "low", "close")

_DT_FMT = "%Y-%m-%d %H:%M:%S"


class CsvCandleDataSource(CandleDataSource):
    """Serves candles from CSV files, one file per (symbol, resolution).

    Expected CSV columns (with header row):
        ``open_time,open,high,low,close[,volume][,trade_count]``

    ``open_time`` may be ``%Y-%m-%d %H:%M:%S``, ISO 8601 or a Unix timestamp
    in milliseconds. Naive datetimes are read as UTC. Rows are appended to the
    series in file order, so the file order decides the series direction.

    Files are read once, on first use, and cached.

    Args:
        files: ``{symbol: {resolution: "/path/to/file.csv"}}``.
    """

    def __init__(self, files: Dict[str, Dict[Resolution, str]]) -> None:
        self._files = files
        self._cache: Dict[Tuple[str, Resolution], List[Candle]] = {}
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, configs: Iterable["DataSourceConfig"]) -> "CsvCandleDataSource":
        files: Dict[str, Dict[Resolution, str]] = {}
        for config in configs:
            files.setdefault(config.symbol, {})[config.resolution] = config.path
        return cls(files)

    # ------------------------------------------------------------------
    # CandleDataSource ABC
    # ------------------------------------------------------------------

    def get_metadata(self) -> List[DataSourceMeta]:
        """Coverage of every configured file that holds at least one row."""
        metas: List[DataSourceMeta] = []
        for symbol, resolutions in self._files.items():
            for resolution in resolutions:
                candles = self._candles(symbol, resolution)
                if not candles:
                    continue
                open_times = [c.open_time for c in candles]
                metas.append(
                    DataSourceMeta(
                        symbol=symbol,
                        resolution=resolution,
                        start_time=min(open_times),
                        end_time=max(open_times),
                    )
                )
        return metas

    async def get_candles(self, query: DataSourceQuery) -> CandleSeries:
        """Build a CandleSeries from the rows inside the query window.

        Raises:
            DataSourceError: Unknown symbol/resolution, or the rows imply a
                different resolution than requested
            CsvMissingColumnError: File lacks a required column
            CsvFormatError: File cannot be read
            ContinuityError: Rows are not contiguous
        """
        candles = self._candles(query.symbol, query.resolution)
        selected = [c for c in candles if query.covers(c.open_time)]

        with log_execution_time(f"build series {query.symbol}/{query.resolution.value}"):
            series = CandleSeries.from_candles(selected)

        inferred = series.resolution()
        if inferred is not None and inferred is not query.resolution:
            raise DataSourceError(
                f"{query.symbol} data is {inferred.value} candles, "
                f"requested {query.resolution.value}"
            )

        HkTradingLogger.log_data_event(
            "CANDLES_LOADED",
            {
                "symbol": query.symbol,
                "resolution": query.resolution.value,
                "rows": len(series),
            },
        )
        return series

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _candles(self, symbol: str, resolution: Resolution) -> List[Candle]:
        key = (symbol, resolution)
        if key not in self._cache:
            path = self._files.get(symbol, {}).get(resolution)
            if path is None:
                raise DataSourceError(
                    f"No data for {symbol}/{resolution.value}"
                )
            self._cache[key] = self._load_csv(path)
            self.logger.info(
                "Loaded %d candles from %s (%s/%s)",
                len(self._cache[key]), path, symbol, resolution.value,
            )
        return self._cache[key]

    @staticmethod
    def _parse_dt(value: str) -> datetime:
        """Parse a datetime string or millisecond-epoch integer string."""
        value = value.strip()
        if value.isdigit():
            try:
                return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
            except (OverflowError, OSError) as exc:
                raise ValueError(f"Epoch timestamp out of range: {value}") from exc
        try:
            return to_utc(datetime.strptime(value, _DT_FMT))
        except ValueError:
            return to_utc(datetime.fromisoformat(value))

    @staticmethod
    def _parse_optional(row: Dict[str, str], column: str):
        raw = row.get(column)
        if raw is None or not raw.strip():
            return None
        return float(raw)

    def _load_csv(self, path: str) -> List[Candle]:
        """Parse a single CSV file into a list of :class:`Candle` objects."""
        candles: List[Candle] = []
        try:
            with open(path, newline="", encoding="utf-8") as fh:
                reader = csv.DictReader(fh)
                header = reader.fieldnames or []
                for column in REQUIRED_COLUMNS:
                    if column not in header:
                        raise CsvMissingColumnError(column, path)

                for row_num, row in enumerate(reader, start=2):
                    try:
                        candles.append(
                            Candle(
                                open_time=self._parse_dt(row["open_time"]),
                                open=float(row["open"]),
                                high=float(row["high"]),
                                low=float(row["low"]),
                                close=float(row["close"]),
                                volume=self._parse_optional(row, "volume"),
                                trade_count=self._parse_optional(row, "trade_count"),
                            )
                        )
                    except (AttributeError, TypeError, ValueError) as exc:
                        self.logger.warning(
                            "Skipping malformed row %d in %s: %s", row_num, path, exc
                        )
        except (OSError, csv.Error, UnicodeDecodeError) as exc:
            raise CsvFormatError(f"Failed to read {path}: {exc}") from exc
        return candles
