"""
Gate.io USDT-settled futures trading adapter
Main package initialization
"""

__version__ = "0.1.0"

from futures_adapter.execution.gate_trader import GateFuturesTrader
from futures_adapter.utils.config import ConfigManager

__all__ = ["GateFuturesTrader", "ConfigManager"]
