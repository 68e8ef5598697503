"""
Logging configuration with multi-handler setup and structured trade logging
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Generator

TRADES_LOGGER = 'trades'


class TradeLogFilter(logging.Filter):
    """
    Filter to isolate trade events from general logging

    Only records from the 'trades' logger reach the trade handler.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == TRADES_LOGGER


class TradingLogger:
    """
    Centralized logging for the futures adapter

    Features:
    - Console, rotating file and trade-only handlers on the root logger
    - Structured JSON lines for order events via log_trade
    - Execution timing via log_execution_time
    """

    def __init__(self, config: dict):
        """
        Initialize logging infrastructure

        Args:
            config: Configuration dictionary with keys:
                - log_level: str (DEBUG, INFO, WARNING, ERROR)
                - log_dir: str (directory for log files, relative to project root)

        Raises:
            OSError: If log directory creation fails
        """
        self.log_level = config.get('log_level', 'INFO')

        project_root = Path(__file__).resolve().parent.parent.parent
        self.log_dir = Path(config.get('log_dir', 'logs'))
        if not self.log_dir.is_absolute():
            self.log_dir = project_root / self.log_dir

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_logging()

    def _setup_logging(self) -> None:
        """
        Configure root logger with all handlers

        Sets up:
        1. Console handler (INFO+, simple format)
        2. Rotating file handler (DEBUG+, 10MB x 5)
        3. Trade-specific handler (INFO, JSON lines, daily rotation)
        """
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.log_level.upper()))

        # Clear existing handlers to avoid duplicates
        root_logger.handlers.clear()

        log_format = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(log_format)
        root_logger.addHandler(console_handler)

        file_handler = RotatingFileHandler(
            self.log_dir / 'futures_adapter.log',
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(log_format)
        root_logger.addHandler(file_handler)

        trade_handler = TimedRotatingFileHandler(
            self.log_dir / 'trades.log',
            when='midnight',
            backupCount=30
        )
        trade_handler.setLevel(logging.INFO)
        trade_handler.addFilter(TradeLogFilter())
        root_logger.addHandler(trade_handler)

    @staticmethod
    def log_trade(action: str, data: dict) -> None:
        """
        Log trade events in structured JSON format

        Args:
            action: Trade action type (OPEN_LONG, CLOSE_SHORT, STOP_LOSS_SET, ...)
            data: Trade-specific data dictionary

        Example:
            TradingLogger.log_trade('OPEN_LONG', {
                'symbol': 'BTC_USDT',
                'size': 20,
                'order_id': '123456'
            })
        """
        logger = logging.getLogger(TRADES_LOGGER)
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'action': action,
            **data
        }
        logger.info(json.dumps(log_entry, default=str))


@contextmanager
def log_execution_time(operation: str) -> Generator[None, None, None]:
    """
    Context manager for measuring and logging execution time

    Usage:
        with log_execution_time('open_long BTC_USDT'):
            trader.open_long('BTCUSDT', 0.002, 5)

    Logs at DEBUG level: "{operation} completed in {elapsed:.3f}s"
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logging.getLogger(__name__).debug(f"{operation} completed in {elapsed:.3f}s")
