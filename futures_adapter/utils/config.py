"""
Configuration management with INI files and environment overrides
"""

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from futures_adapter.core.exceptions import ConfigurationError

SUPPORTED_SETTLE_CURRENCIES = ("usdt",)


@dataclass
class APIConfig:
    """Gate.io API v4 configuration"""
    api_key: str
    api_secret: str
    settle: str = "usdt"
    timeout_ms: int = 10000

    def __post_init__(self):
        # Security: Never log API keys
        if not self.api_key or not self.api_secret:
            raise ConfigurationError("API key and secret are required")

        self.settle = self.settle.lower()
        if self.settle not in SUPPORTED_SETTLE_CURRENCIES:
            raise ConfigurationError(
                f"Unsupported settle currency: {self.settle}. "
                f"Must be one of {SUPPORTED_SETTLE_CURRENCIES}"
            )

        if self.timeout_ms <= 0:
            raise ConfigurationError(f"timeout_ms must be > 0, got {self.timeout_ms}")


@dataclass
class TradingConfig:
    """Order placement defaults"""
    default_leverage: int = 5
    cross_margin: bool = False
    min_notional: float = 10.0

    def __post_init__(self):
        if self.default_leverage < 1 or self.default_leverage > 125:
            raise ConfigurationError(
                f"Leverage must be between 1-125, got {self.default_leverage}"
            )

        if self.min_notional <= 0:
            raise ConfigurationError(f"min_notional must be > 0, got {self.min_notional}")


@dataclass
class LoggingConfig:
    """Logging system configuration"""
    log_level: str = "INFO"
    log_dir: str = "logs"

    def __post_init__(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}. "
                f"Must be one of {valid_levels}"
            )


class ConfigManager:
    """
    Manages adapter configuration from INI files with environment overrides

    Files (under config_dir):
        api_keys.ini: [gate] api_key, api_secret, settle, timeout_ms
        trading_config.ini: [trading] and optional [logging]
    """

    def __init__(self, config_dir: str = "configs"):
        self.config_dir = Path(config_dir)
        self._api_config: Optional[APIConfig] = None
        self._trading_config: Optional[TradingConfig] = None
        self._logging_config: Optional[LoggingConfig] = None

        self._load_configs()

    def _load_configs(self):
        """Load all configuration files"""
        self._api_config = self._load_api_config()
        self._trading_config = self._load_trading_config()
        self._logging_config = self._load_logging_config()

    def _read_ini(self, filename: str) -> Optional[ConfigParser]:
        config_file = self.config_dir / filename
        if not config_file.exists():
            return None
        config = ConfigParser()
        config.read(config_file)
        return config

    def _load_api_config(self) -> APIConfig:
        """
        Load API configuration with environment variable overrides

        Priority: ENV (GATE_API_KEY / GATE_API_SECRET) > api_keys.ini [gate]
        """
        api_key_env = os.getenv("GATE_API_KEY")
        api_secret_env = os.getenv("GATE_API_SECRET")

        config = self._read_ini("api_keys.ini")
        section = config["gate"] if config is not None and "gate" in config else None

        settle = section.get("settle", "usdt") if section is not None else "usdt"
        timeout_ms = section.getint("timeout_ms", 10000) if section is not None else 10000

        if api_key_env and api_secret_env:
            return APIConfig(
                api_key=api_key_env,
                api_secret=api_secret_env,
                settle=settle,
                timeout_ms=timeout_ms
            )

        if config is None:
            raise ConfigurationError(
                f"API configuration not found. Either:\n"
                f"1. Set GATE_API_KEY, GATE_API_SECRET environment variables, or\n"
                f"2. Create {self.config_dir / 'api_keys.ini'} from api_keys.ini.example"
            )

        if section is None:
            raise ConfigurationError("Invalid api_keys.ini: [gate] section not found")

        api_key = section.get("api_key")
        api_secret = section.get("api_secret")

        # Validate credentials are not placeholder values
        if not api_key or api_key.startswith("your_"):
            raise ConfigurationError(
                "Invalid API key in [gate]. Please set your actual credentials."
            )

        if not api_secret or api_secret.startswith("your_"):
            raise ConfigurationError(
                "Invalid API secret in [gate]. Please set your actual credentials."
            )

        return APIConfig(
            api_key=api_key,
            api_secret=api_secret,
            settle=settle,
            timeout_ms=timeout_ms
        )

    def _load_trading_config(self) -> TradingConfig:
        """Load trading defaults; missing file or section means defaults"""
        config = self._read_ini("trading_config.ini")
        if config is None or "trading" not in config:
            return TradingConfig()

        trading = config["trading"]

        return TradingConfig(
            default_leverage=trading.getint("default_leverage", 5),
            cross_margin=trading.getboolean("cross_margin", False),
            min_notional=trading.getfloat("min_notional", 10.0)
        )

    def _load_logging_config(self) -> LoggingConfig:
        """Load logging configuration from INI file"""
        config = self._read_ini("trading_config.ini")
        if config is None or "logging" not in config:
            return LoggingConfig()  # Use defaults

        logging_section = config["logging"]

        return LoggingConfig(
            log_level=logging_section.get("log_level", "INFO"),
            log_dir=logging_section.get("log_dir", "logs")
        )

    @property
    def api_config(self) -> APIConfig:
        """Get API configuration"""
        return self._api_config

    @property
    def trading_config(self) -> TradingConfig:
        """Get trading configuration"""
        return self._trading_config

    @property
    def logging_config(self) -> LoggingConfig:
        """Get logging configuration"""
        return self._logging_config
