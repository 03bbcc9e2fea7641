"""
CandleSeries - append-only columnar OHLCV accumulator

Candles are stored as seven index-aligned columns instead of a list of
records. Time direction and resolution are inferred once from the first two
rows and never revisited afterwards.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

import numpy as np
import pandas as pd

from hk_trading.core.exceptions import (
    DirectionIndeterminateError,
    NotContiguousError,
)
from hk_trading.models.candle import Candle, TimestampValue, to_millis
from hk_trading.models.resolution import Resolution
from hk_trading.utils.logger import HkTradingLogger

T = TypeVar("T")

PRICE_COLUMNS = ("opens", "highs", "lows", "closes")
OPTIONAL_COLUMNS = ("volumes", "trade_counts")
COLUMNS = ("open_times",) + PRICE_COLUMNS + OPTIONAL_COLUMNS

logger = logging.getLogger(__name__)


class TimeDirection(Enum):
    """Storage order of a candle series."""

    ASCENDING = "ascending"  # index 0 is the oldest candle
    DESCENDING = "descending"  # index 0 is the most recent candle


class InferenceState(Enum):
    UNKNOWN = "unknown"
    DETERMINED = "determined"
    UNRESOLVED = "unresolved"


class WriteOnce(Generic[T]):
    """
    Tri-state cell for a lazily inferred fact.

    Starts UNKNOWN and moves exactly once, either to DETERMINED (holding a
    value) or to UNRESOLVED. A second transition raises RuntimeError.
    """

    __slots__ = ("_state", "_value")

    def __init__(self) -> None:
        self._state = InferenceState.UNKNOWN
        self._value: Optional[T] = None

    @property
    def state(self) -> InferenceState:
        return self._state

    @property
    def value(self) -> Optional[T]:
        """Determined value, or None while UNKNOWN or UNRESOLVED."""
        return self._value

    @property
    def is_unknown(self) -> bool:
        return self._state is InferenceState.UNKNOWN

    def determine(self, value: T) -> None:
        self._check_unset()
        self._state = InferenceState.DETERMINED
        self._value = value

    def mark_unresolved(self) -> None:
        self._check_unset()
        self._state = InferenceState.UNRESOLVED

    def _check_unset(self) -> None:
        if self._state is not InferenceState.UNKNOWN:
            raise RuntimeError(f"Inferred value already set ({self._state.value})")

    def __repr__(self) -> str:
        if self._state is InferenceState.DETERMINED:
            return f"WriteOnce({self._value!r})"
        return f"WriteOnce({self._state.value})"


class CandleSeries:
    """
    Append-only OHLCV series with continuity validation.

    Storage:
    - Seven parallel columns (open_times, opens, highs, lows, closes,
      volumes, trade_counts) that always share one length
    - Columns are exposed read-only; whole-row append is the only mutation

    Inference (first two rows only, write-once):
    - Direction: DESCENDING if row 0 is strictly later than row 1,
      otherwise ASCENDING
    - Resolution: catalog lookup of |t0 - t1| in seconds; no match leaves
      the resolution permanently unresolved

    Continuity (once the direction is known), for a non-empty series the
    new timestamp must either restate the boundary (row 0 when descending,
    last row when ascending) or be exactly one step past the last stored
    row in storage order. The step is the gap between the first two rows.

    Not thread-safe: one writer per series.

    Example:
        >>> series = CandleSeries()
        >>> series.append(candle_at_0)
        >>> series.append(candle_at_60)
        >>> series.time_direction()
        <TimeDirection.ASCENDING: 'ascending'>
        >>> series.resolution()
        <Resolution.M1: '1m'>
    """

    def __init__(self) -> None:
        self._open_times: List[datetime] = []
        self._opens: List[float] = []
        self._highs: List[float] = []
        self._lows: List[float] = []
        self._closes: List[float] = []
        self._volumes: List[Optional[float]] = []
        self._trade_counts: List[Optional[float]] = []

        self._direction: WriteOnce[TimeDirection] = WriteOnce()
        self._resolution: WriteOnce[Resolution] = WriteOnce()

    @classmethod
    def from_candles(cls, candles: Iterable[Candle]) -> "CandleSeries":
        """
        Build a series by appending *candles* in order.

        Raises:
            ContinuityError: On the first candle that fails the continuity check
        """
        series = cls()
        for candle in candles:
            series.append(candle)
        return series

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------

    def append(self, candle: Candle) -> None:
        """
        Validate continuity, append one row and run inference.

        The series is left untouched when validation fails.

        Args:
            candle: Candle to append

        Raises:
            NotContiguousError: Timestamp does not line up with the boundary
            DirectionIndeterminateError: Two or more rows held but no direction
        """
        try:
            self._check_continuity(candle.open_time)
        except (NotContiguousError, DirectionIndeterminateError) as exc:
            logger.warning("Rejected candle: %s", exc)
            HkTradingLogger.log_data_event(
                "CANDLE_REJECTED",
                {
                    "open_time": candle.open_time.isoformat(),
                    "reason": type(exc).__name__,
                    "rows": len(self),
                },
            )
            raise

        self._open_times.append(candle.open_time)
        self._opens.append(candle.open)
        self._highs.append(candle.high)
        self._lows.append(candle.low)
        self._closes.append(candle.close)
        self._volumes.append(candle.volume)
        self._trade_counts.append(candle.trade_count)

        self._detect_resolution()
        self._detect_time_direction()

    def _check_continuity(self, open_time: datetime) -> None:
        direction = self._direction.value
        row_count = len(self._open_times)

        if direction is None:
            if row_count >= 2:
                raise DirectionIndeterminateError(row_count)
            return

        if row_count == 0:
            return

        step = self._step()
        if direction is TimeDirection.DESCENDING:
            boundary = self._open_times[0]
            expected = self._open_times[-1] - step
        else:
            boundary = self._open_times[-1]
            expected = self._open_times[-1] + step

        actual_ms = to_millis(open_time)
        if actual_ms != to_millis(boundary) and actual_ms != to_millis(expected):
            raise NotContiguousError(direction, boundary, expected, open_time)

    def _step(self) -> timedelta:
        return abs(self._open_times[0] - self._open_times[1])

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def _detect_time_direction(self) -> None:
        if not self._direction.is_unknown or len(self._open_times) != 2:
            return

        # Strictly later first row means newest-first storage
        if self._open_times[0] > self._open_times[1]:
            self._direction.determine(TimeDirection.DESCENDING)
        else:
            self._direction.determine(TimeDirection.ASCENDING)
        logger.debug("Detected time direction: %s", self._direction.value.value)

    def _detect_resolution(self) -> None:
        if not self._resolution.is_unknown or len(self._open_times) < 2:
            return

        gap_seconds = int(self._step().total_seconds())
        resolution = Resolution.from_seconds(gap_seconds)
        if resolution is None:
            self._resolution.mark_unresolved()
            logger.debug("Unrecognized resolution gap: %ds", gap_seconds)
        else:
            self._resolution.determine(resolution)
            logger.debug("Detected resolution: %s", resolution.value)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def time_direction(self) -> Optional[TimeDirection]:
        return self._direction.value

    def resolution(self) -> Optional[Resolution]:
        """Inferred resolution, or None while unknown or unrecognized."""
        return self._resolution.value

    @property
    def direction_state(self) -> InferenceState:
        return self._direction.state

    @property
    def resolution_state(self) -> InferenceState:
        return self._resolution.state

    def most_recent_timestamp(self) -> Optional[datetime]:
        """Timestamp at index 0, or None if empty."""
        if not self._open_times:
            return None
        return self._open_times[0]

    def oldest_timestamp(self) -> Optional[datetime]:
        """Timestamp at the last index, or None if empty."""
        if not self._open_times:
            return None
        return self._open_times[-1]

    @property
    def open_times(self) -> Tuple[datetime, ...]:
        return tuple(self._open_times)

    @property
    def opens(self) -> Tuple[float, ...]:
        return tuple(self._opens)

    @property
    def highs(self) -> Tuple[float, ...]:
        return tuple(self._highs)

    @property
    def lows(self) -> Tuple[float, ...]:
        return tuple(self._lows)

    @property
    def closes(self) -> Tuple[float, ...]:
        return tuple(self._closes)

    @property
    def volumes(self) -> Tuple[Optional[float], ...]:
        return tuple(self._volumes)

    @property
    def trade_counts(self) -> Tuple[Optional[float], ...]:
        return tuple(self._trade_counts)

    def row(self, index: int) -> Candle:
        """Rebuild the Candle stored at *index* (negative indices allowed)."""
        return Candle(
            open_time=self._open_times[index],
            open=self._opens[index],
            high=self._highs[index],
            low=self._lows[index],
            close=self._closes[index],
            volume=self._volumes[index],
            trade_count=self._trade_counts[index],
        )

    def __len__(self) -> int:
        return len(self._open_times)

    def __iter__(self) -> Iterator[Candle]:
        for index in range(len(self)):
            yield self.row(index)

    def __repr__(self) -> str:
        return (
            f"CandleSeries(len={len(self)}, "
            f"direction={self._direction!r}, "
            f"resolution={self._resolution!r})"
        )

    # ------------------------------------------------------------------
    # Conversions for downstream numeric code
    # ------------------------------------------------------------------

    def to_numpy(self, column: str) -> np.ndarray:
        """
        Copy one column into a numpy array.

        Args:
            column: One of COLUMNS

        Returns:
            datetime64[ms] array for 'open_times', float64 otherwise
            (missing volume/trade count become NaN)

        Raises:
            ValueError: If *column* is not a known column
        """
        if column == "open_times":
            return np.array(
                [to_millis(ts) for ts in self._open_times], dtype="datetime64[ms]"
            )
        values = self._column(column)
        return np.array(
            [np.nan if value is None else value for value in values], dtype=np.float64
        )

    def to_dataframe(self) -> pd.DataFrame:
        """
        OHLCV DataFrame indexed by UTC open_time, in storage order.

        Columns: open, high, low, close, volume, trade_count
        """
        index = pd.DatetimeIndex(
            pd.to_datetime(self.to_numpy("open_times")).tz_localize("UTC"),
            name="open_time",
        )
        return pd.DataFrame(
            {
                "open": self.to_numpy("opens"),
                "high": self.to_numpy("highs"),
                "low": self.to_numpy("lows"),
                "close": self.to_numpy("closes"),
                "volume": self.to_numpy("volumes"),
                "trade_count": self.to_numpy("trade_counts"),
            },
            index=index,
        )

    def timestamp_values(self, column: str) -> List[TimestampValue]:
        """Pair each open_time with the value of *column* at the same index."""
        values = self._column(column)
        return [
            TimestampValue(timestamp=ts, value=value)
            for ts, value in zip(self._open_times, values)
        ]

    def _column(self, column: str) -> List[Optional[float]]:
        if column not in PRICE_COLUMNS + OPTIONAL_COLUMNS:
            raise ValueError(
                f"Unknown column: {column!r}. "
                f"Must be one of {list(PRICE_COLUMNS + OPTIONAL_COLUMNS)}"
            )
        return getattr(self, f"_{column}")
