"""
hk-trading: append-only OHLCV candle series with continuity validation
Main package initialization
"""

__version__ = "0.1.0"

from hk_trading.data.candles import CandleSeries, TimeDirection
from hk_trading.models import Candle, Resolution
from hk_trading.utils.config import ConfigManager
from hk_trading.utils.logger import HkTradingLogger

__all__ = [
    "Candle",
    "CandleSeries",
    "ConfigManager",
    "HkTradingLogger",
    "Resolution",
    "TimeDirection",
]
