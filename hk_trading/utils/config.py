"""
Configuration management with INI/YAML files and environment overrides
"""

import logging
import os
from configparser import ConfigParser
from configparser import Error as ConfigParserError
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml

from hk_trading.core.exceptions import ConfigurationError
from hk_trading.models.resolution import Resolution


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LoggingConfig:
    """
    Logging setup consumed by HkTradingLogger

    Attributes:
        log_level: Root logger level, stored upper-cased
        log_dir: Directory for hk_trading.log and data_events.log
    """

    log_level: str = "INFO"
    log_dir: str = "logs"

    def __post_init__(self):
        level = self.log_level.strip().upper()
        if level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}. Must be one of {list(LOG_LEVELS)}"
            )
        self.log_level = level

        if not self.log_dir or not self.log_dir.strip():
            raise ConfigurationError("Log directory must not be empty")


@dataclass
class DataSourceConfig:
    """
    One CSV candle file

    Attributes:
        symbol: Trading pair (e.g., 'BTCUSDT')
        resolution: Sampling period of the file's candles
        path: CSV file path (relative paths resolve against the config dir)
    """

    symbol: str
    resolution: Resolution
    path: str

    def __post_init__(self):
        if not self.symbol:
            raise ConfigurationError("Data source symbol is required")
        if not self.path:
            raise ConfigurationError(f"Data source path is required for {self.symbol}")

        if isinstance(self.resolution, str):
            try:
                self.resolution = Resolution.from_interval(self.resolution)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        elif not isinstance(self.resolution, Resolution):
            raise ConfigurationError(
                f"Invalid resolution for {self.symbol}: {self.resolution!r}. "
                f"Must be an interval string such as '1m' or '1h'"
            )

    @classmethod
    def from_dict(cls, data: dict) -> "DataSourceConfig":
        missing = [key for key in ("symbol", "resolution", "path") if key not in data]
        if missing:
            raise ConfigurationError(f"Data source entry missing keys: {missing}")
        return cls(
            symbol=str(data["symbol"]).upper(),
            resolution=data["resolution"],
            path=str(data["path"]),
        )


class ConfigManager:
    """
    Loads logging settings from hk_trading.ini and data sources from
    data_sources.yaml, with environment overrides.

    Priority: ENV > file > defaults
    """

    LOGGING_FILE = "hk_trading.ini"
    DATA_SOURCES_FILE = "data_sources.yaml"

    def __init__(self, config_dir: str = "configs"):
        self.config_dir = Path(config_dir)
        self._logging_config: Optional[LoggingConfig] = None
        self._data_sources: List[DataSourceConfig] = []

        self._load_configs()

    def _load_configs(self):
        self._logging_config = self._load_logging_config()
        self._data_sources = self._load_data_sources()

    # --- Public Properties ---

    @property
    def logging_config(self) -> LoggingConfig:
        return self._logging_config

    @property
    def data_sources(self) -> List[DataSourceConfig]:
        """Configured CSV sources, paths resolved against config_dir."""
        return list(self._data_sources)

    # --- Private Loaders ---

    def _load_logging_config(self) -> LoggingConfig:
        """Load logging configuration from INI file, then apply ENV overrides"""
        log_level = "INFO"
        log_dir = "logs"

        config_file = self.config_dir / self.LOGGING_FILE
        if config_file.exists():
            config = ConfigParser()
            try:
                config.read(config_file)
            except ConfigParserError as e:
                raise ConfigurationError(f"Failed to parse {config_file}: {e}") from e

            if "logging" in config:
                logging_section = config["logging"]
                log_level = logging_section.get("log_level", log_level)
                log_dir = logging_section.get("log_dir", log_dir)

        log_level = os.getenv("HK_LOG_LEVEL", log_level)
        log_dir = os.getenv("HK_LOG_DIR", log_dir)

        return LoggingConfig(log_level=log_level, log_dir=log_dir)

    def _load_data_sources(self) -> List[DataSourceConfig]:
        """Load data source entries from YAML file (empty list when absent)"""
        yaml_file = self.config_dir / self.DATA_SOURCES_FILE

        if not yaml_file.exists():
            return []

        try:
            with open(yaml_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML config {yaml_file}: {e}") from e

        if not data or "data_sources" not in data:
            logging.getLogger(__name__).warning(
                f"YAML config {yaml_file} missing 'data_sources' section"
            )
            return []

        entries = data["data_sources"]
        if not isinstance(entries, list):
            raise ConfigurationError(
                f"'data_sources' in {yaml_file} must be a list, got {type(entries).__name__}"
            )

        sources = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ConfigurationError(f"Invalid data source entry: {entry!r}")
            source = DataSourceConfig.from_dict(entry)
            path = Path(source.path)
            if not path.is_absolute():
                source.path = str(self.config_dir / path)
            sources.append(source)
        return sources
