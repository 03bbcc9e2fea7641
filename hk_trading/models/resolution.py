"""
Candle resolution (sampling period) catalog
"""

from datetime import timedelta
from enum import Enum
from typing import Dict, Optional


class Resolution(Enum):
    """Supported candle sampling periods, valued by interval string."""

    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"

    def to_seconds(self) -> int:
        """Exact period length in seconds."""
        return _RESOLUTION_SECONDS[self]

    def to_milliseconds(self) -> int:
        return self.to_seconds() * 1000

    def to_timedelta(self) -> timedelta:
        return timedelta(seconds=self.to_seconds())

    @classmethod
    def from_seconds(cls, seconds: int) -> Optional["Resolution"]:
        """
        Look up the resolution whose period is exactly *seconds*.

        Args:
            seconds: Period length in seconds

        Returns:
            Matching Resolution, or None when no catalog entry matches
        """
        return _SECONDS_RESOLUTION.get(seconds)

    @classmethod
    def from_interval(cls, text: str) -> "Resolution":
        """
        Parse an interval string such as '5m' or '1h'.

        Raises:
            ValueError: If the interval is not in the catalog
        """
        try:
            return cls(text.strip().lower())
        except ValueError:
            valid = [r.value for r in cls]
            raise ValueError(
                f"Invalid interval: {text!r}. Must be one of {valid}"
            ) from None


_RESOLUTION_SECONDS: Dict[Resolution, int] = {
    Resolution.M1: 60,
    Resolution.M5: 300,
    Resolution.M15: 900,
    Resolution.M30: 1800,
    Resolution.H1: 3600,
    Resolution.H4: 14400,
    Resolution.D1: 86400,
    Resolution.W1: 604800,
}

_SECONDS_RESOLUTION: Dict[int, Resolution] = {
    seconds: resolution for resolution, seconds in _RESOLUTION_SECONDS.items()
}
