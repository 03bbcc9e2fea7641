"""
Logging configuration with multi-handler setup and structured data-event logging
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Generator, Union

if TYPE_CHECKING:
    from hk_trading.utils.config import LoggingConfig

DATA_EVENT_LOGGER = "data_events"


class DataEventFilter(logging.Filter):
    """
    Filter to isolate data events from general logging

    Only records from the 'data_events' logger reach the data-event handler,
    so the JSON event file never mixes with system messages.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == DATA_EVENT_LOGGER


class HkTradingLogger:
    """
    Centralized logging setup for the candle data layer

    Features:
    - Console handler (INFO+)
    - Size-rotating file handler (DEBUG+)
    - Time-rotating JSON data-event file (rejected candles, source loads)
    """

    def __init__(self, config: Union[dict, "LoggingConfig"]):
        """
        Initialize logging infrastructure

        Args:
            config: LoggingConfig or dict with keys:
                - log_level: str (DEBUG, INFO, WARNING, ERROR)
                - log_dir: str (directory path for log files)

        Raises:
            OSError: If log directory creation fails
        """
        if isinstance(config, dict):
            self.log_level = config.get("log_level", "INFO")
            log_dir = config.get("log_dir", "logs")
        else:
            self.log_level = config.log_level
            log_dir = config.log_dir

        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_logging()

    def _setup_logging(self) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.log_level.upper()))

        # Clear existing handlers to avoid duplicates
        root_logger.handlers.clear()

        line_format = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(line_format)
        root_logger.addHandler(console_handler)

        # 10MB max, 5 backups
        file_handler = RotatingFileHandler(
            self.log_dir / "hk_trading.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(line_format)
        root_logger.addHandler(file_handler)

        # Daily rotation, 30-day retention
        event_handler = TimedRotatingFileHandler(
            self.log_dir / "data_events.log",
            when="midnight",
            backupCount=30,
        )
        event_handler.setLevel(logging.INFO)
        event_handler.addFilter(DataEventFilter())
        root_logger.addHandler(event_handler)

    @staticmethod
    def log_data_event(action: str, data: dict) -> None:
        """
        Log a data event as one JSON line

        Args:
            action: Event type (CANDLE_REJECTED, CANDLES_LOADED, ...)
            data: Event payload, must be JSON serializable

        Example:
            HkTradingLogger.log_data_event('CANDLES_LOADED', {
                'symbol': 'BTCUSDT',
                'resolution': '1m',
                'rows': 500,
            })
        """
        logger = logging.getLogger(DATA_EVENT_LOGGER)
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            **data,
        }
        logger.info(json.dumps(log_entry, default=str))


@contextmanager
def log_execution_time(operation: str) -> Generator[None, None, None]:
    """
    Context manager for measuring and logging execution time

    Usage:
        with log_execution_time('csv_load'):
            series = load()

    Logs at DEBUG level: "{operation} completed in {elapsed:.3f}s"
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logging.getLogger(__name__).debug(f"{operation} completed in {elapsed:.3f}s")
