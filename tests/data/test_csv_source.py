"""Tests for CsvCandleDataSource."""

import csv
from datetime import datetime, timedelta, timezone

import pytest

from hk_trading.core.exceptions import (
    CsvFormatError,
    CsvMissingColumnError,
    DataSourceError,
    NotContiguousError,
)
from hk_trading.data.base import CandleDataSource, DataSourceQuery
from hk_trading.data.candles import TimeDirection
from hk_trading.data.csv_source import CsvCandleDataSource
from hk_trading.models.resolution import Resolution
from hk_trading.utils.config import DataSourceConfig

BASE_TIME = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)


def write_csv(path, header, rows):
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(header)
        for row in rows:
            writer.writerow(row)
    return str(path)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def minute_rows():
    """10 BTCUSDT 1m rows, newest first."""
    rows = []
    for i in reversed(range(10)):
        open_time = BASE_TIME + timedelta(minutes=i)
        price = 50000.0 + i * 100.0
        rows.append([
            open_time.strftime("%Y-%m-%d %H:%M:%S"),
            price, price + 50.0, price - 50.0, price + 20.0,
            10.5 + i,
            100 + i,
        ])
    return rows


@pytest.fixture
def csv_file(tmp_path, minute_rows):
    return write_csv(
        tmp_path / "btcusdt_1m.csv",
        ["open_time", "open", "high", "low", "close", "volume", "trade_count"],
        minute_rows,
    )


@pytest.fixture
def source(csv_file):
    return CsvCandleDataSource({"BTCUSDT": {Resolution.M1: csv_file}})


# ---------------------------------------------------------------------------
# TestGetCandles
# ---------------------------------------------------------------------------


class TestGetCandles:
    """Tests for get_candles window and series construction."""

    def test_is_candle_data_source(self, source):
        assert isinstance(source, CandleDataSource)

    @pytest.mark.asyncio
    async def test_returns_full_series(self, source):
        series = await source.get_candles(
            DataSourceQuery("BTCUSDT", Resolution.M1, start_time=BASE_TIME)
        )

        assert len(series) == 10
        assert series.time_direction() is TimeDirection.DESCENDING
        assert series.resolution() is Resolution.M1
        assert series.most_recent_timestamp() == BASE_TIME + timedelta(minutes=9)
        assert series.oldest_timestamp() == BASE_TIME
        assert series.trade_counts[0] == 109.0

    @pytest.mark.asyncio
    async def test_respects_time_window(self, source):
        query = DataSourceQuery(
            "BTCUSDT",
            Resolution.M1,
            start_time=BASE_TIME + timedelta(minutes=2),
            end_time=BASE_TIME + timedelta(minutes=5),
        )

        series = await source.get_candles(query)

        assert len(series) == 4
        assert series.most_recent_timestamp() == BASE_TIME + timedelta(minutes=5)
        assert series.oldest_timestamp() == BASE_TIME + timedelta(minutes=2)

    @pytest.mark.asyncio
    async def test_empty_window(self, source):
        series = await source.get_candles(
            DataSourceQuery("BTCUSDT", Resolution.M1, start_time=BASE_TIME + timedelta(days=1))
        )

        assert len(series) == 0

    @pytest.mark.asyncio
    async def test_unknown_symbol_raises(self, source):
        with pytest.raises(DataSourceError, match="No data for ETHUSDT/1m"):
            await source.get_candles(
                DataSourceQuery("ETHUSDT", Resolution.M1, start_time=BASE_TIME)
            )

    @pytest.mark.asyncio
    async def test_resolution_mismatch_raises(self, csv_file):
        source = CsvCandleDataSource({"BTCUSDT": {Resolution.M5: csv_file}})

        with pytest.raises(DataSourceError, match="1m candles, requested 5m"):
            await source.get_candles(
                DataSourceQuery("BTCUSDT", Resolution.M5, start_time=BASE_TIME)
            )

    @pytest.mark.asyncio
    async def test_gap_in_file_propagates_continuity_error(self, tmp_path, minute_rows):
        del minute_rows[4]
        path = write_csv(
            tmp_path / "gap.csv",
            ["open_time", "open", "high", "low", "close", "volume", "trade_count"],
            minute_rows,
        )
        source = CsvCandleDataSource({"BTCUSDT": {Resolution.M1: path}})

        with pytest.raises(NotContiguousError):
            await source.get_candles(
                DataSourceQuery("BTCUSDT", Resolution.M1, start_time=BASE_TIME)
            )


# ---------------------------------------------------------------------------
# TestCsvParsing
# ---------------------------------------------------------------------------


class TestCsvParsing:
    """Tests for CSV header and row handling."""

    @pytest.mark.asyncio
    async def test_optional_columns_absent(self, tmp_path):
        path = write_csv(
            tmp_path / "eurusd.csv",
            ["open_time", "open", "high", "low", "close"],
            [
                ["1735689600000", 1.03, 1.04, 1.02, 1.035],
                ["1735693200000", 1.035, 1.05, 1.03, 1.04],
            ],
        )
        source = CsvCandleDataSource({"EURUSD": {Resolution.H1: path}})

        series = await source.get_candles(
            DataSourceQuery("EURUSD", Resolution.H1, start_time=BASE_TIME)
        )

        assert len(series) == 2
        assert series.time_direction() is TimeDirection.ASCENDING
        assert series.resolution() is Resolution.H1
        assert series.volumes == (None, None)
        assert series.most_recent_timestamp() == BASE_TIME

    @pytest.mark.asyncio
    async def test_iso_timestamps(self, tmp_path):
        path = write_csv(
            tmp_path / "iso.csv",
            ["open_time", "open", "high", "low", "close"],
            [
                ["2025-01-01T01:00:00+01:00", 1.0, 1.0, 1.0, 1.0],
                ["2025-01-01T00:15:00+00:00", 1.0, 1.0, 1.0, 1.0],
            ],
        )
        source = CsvCandleDataSource({"BTCUSDT": {Resolution.M15: path}})

        series = await source.get_candles(
            DataSourceQuery("BTCUSDT", Resolution.M15, start_time=BASE_TIME)
        )

        assert series.open_times[0] == BASE_TIME
        assert series.time_direction() is TimeDirection.ASCENDING
        assert series.resolution() is Resolution.M15

    def test_missing_column_raises(self, tmp_path):
        path = write_csv(
            tmp_path / "bad_header.csv",
            ["open_time", "open", "high", "close"],
            [["2025-01-01 00:00:00", 1.0, 1.0, 1.0]],
        )
        source = CsvCandleDataSource({"BTCUSDT": {Resolution.M1: path}})

        with pytest.raises(CsvMissingColumnError) as exc_info:
            source.get_metadata()

        assert exc_info.value.column == "low"
        assert "low" in str(exc_info.value)

    def test_missing_file_raises(self, tmp_path):
        source = CsvCandleDataSource(
            {"BTCUSDT": {Resolution.M1: str(tmp_path / "absent.csv")}}
        )

        with pytest.raises(CsvFormatError, match="Failed to read"):
            source.get_metadata()

    @pytest.mark.asyncio
    async def test_malformed_row_skipped(self, tmp_path):
        path = write_csv(
            tmp_path / "malformed.csv",
            ["open_time", "open", "high", "low", "close", "volume"],
            [
                ["2025-01-01 00:00:00", 1.0, 1.0, 1.0, 1.0, 5.0],
                ["2025-01-01 00:05:00", "abc", 1.0, 1.0, 1.0, 5.0],
                ["2025-01-01 00:05:00", 1.0, 1.0, 1.0, 1.0, -1.0],
                ["2025-01-01 00:05:00", 1.0, 1.0, 1.0, 1.0, 5.0],
            ],
        )
        source = CsvCandleDataSource({"BTCUSDT": {Resolution.M5: path}})

        series = await source.get_candles(
            DataSourceQuery("BTCUSDT", Resolution.M5, start_time=BASE_TIME)
        )

        assert len(series) == 2
        assert series.resolution() is Resolution.M5

    @pytest.mark.asyncio
    async def test_out_of_range_epoch_row_skipped(self, tmp_path):
        path = write_csv(
            tmp_path / "epoch.csv",
            ["open_time", "open", "high", "low", "close"],
            [
                ["0", 1.0, 1.0, 1.0, 1.0],
                ["99999999999999999999", 1.0, 1.0, 1.0, 1.0],
                ["60000", 1.0, 1.0, 1.0, 1.0],
            ],
        )
        source = CsvCandleDataSource({"BTCUSDT": {Resolution.M1: path}})

        series = await source.get_candles(
            DataSourceQuery(
                "BTCUSDT",
                Resolution.M1,
                start_time=datetime(1970, 1, 1, tzinfo=timezone.utc),
            )
        )

        assert len(series) == 2
        assert series.resolution() is Resolution.M1


# ---------------------------------------------------------------------------
# TestMetadata
# ---------------------------------------------------------------------------


class TestMetadata:
    """Tests for get_metadata and from_config."""

    def test_metadata_covers_file(self, source):
        metas = source.get_metadata()

        assert len(metas) == 1
        meta = metas[0]
        assert meta.symbol == "BTCUSDT"
        assert meta.resolution is Resolution.M1
        assert meta.start_time == BASE_TIME
        assert meta.end_time == BASE_TIME + timedelta(minutes=9)

    def test_empty_file_has_no_metadata(self, tmp_path):
        path = write_csv(tmp_path / "empty.csv", ["open_time", "open", "high", "low", "close"], [])
        source = CsvCandleDataSource({"BTCUSDT": {Resolution.M1: path}})

        assert source.get_metadata() == []

    @pytest.mark.asyncio
    async def test_from_config(self, csv_file):
        source = CsvCandleDataSource.from_config(
            [DataSourceConfig(symbol="BTCUSDT", resolution="1m", path=csv_file)]
        )

        series = await source.get_candles(
            DataSourceQuery("BTCUSDT", Resolution.M1, start_time=BASE_TIME)
        )
        assert len(series) == 10


class TestDataSourceQuery:
    def test_end_before_start_raises(self):
        with pytest.raises(ValueError, match="end_time"):
            DataSourceQuery(
                "BTCUSDT",
                Resolution.M1,
                start_time=BASE_TIME,
                end_time=BASE_TIME - timedelta(minutes=1),
            )

    def test_naive_times_are_utc(self):
        query = DataSourceQuery("BTCUSDT", Resolution.M1, start_time=datetime(2025, 1, 1))

        assert query.start_time == BASE_TIME
        assert query.covers(BASE_TIME)
        assert not query.covers(BASE_TIME - timedelta(seconds=1))
