"""
Data models package
"""

from .candle import Candle, TimestampValue
from .resolution import Resolution

__all__ = [
    "Candle",
    "TimestampValue",
    "Resolution",
]
