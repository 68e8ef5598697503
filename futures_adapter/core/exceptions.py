"""
Custom exceptions for the futures trading adapter
"""

from typing import Optional


class TradingSystemError(Exception):
    """Base exception for trading system errors"""


class ConfigurationError(TradingSystemError):
    """Configuration related errors"""


class OrderExecutionError(TradingSystemError):
    """Order execution errors"""


class ValidationError(OrderExecutionError):
    """Order parameters rejected locally before reaching the exchange"""


class SymbolNotFound(ValidationError):
    """Symbol is absent from the exchange contract table"""

    def __init__(self, symbol: str, exchange_symbol: Optional[str] = None):
        self.symbol = symbol
        self.exchange_symbol = exchange_symbol or symbol
        super().__init__(
            f"Contract not found: {symbol} (exchange symbol: {self.exchange_symbol})"
        )


class BelowMinimumSize(ValidationError):
    """Contract size is below the exchange minimum order size"""

    def __init__(
        self,
        message: str,
        min_contract_size: float,
        min_coin_quantity: float,
        min_notional: Optional[float] = None,
    ):
        self.min_contract_size = min_contract_size
        self.min_coin_quantity = min_coin_quantity
        self.min_notional = min_notional
        super().__init__(message)


class AboveMaximumSize(ValidationError):
    """Contract size exceeds the exchange maximum order size"""

    def __init__(self, message: str, max_contract_size: float, max_coin_quantity: float):
        self.max_contract_size = max_contract_size
        self.max_coin_quantity = max_coin_quantity
        super().__init__(message)


class ZeroAfterRounding(ValidationError):
    """Contract size rounds to zero at the symbol's precision"""

    def __init__(
        self,
        message: str,
        precision: int,
        min_coin_quantity: float,
        min_notional: Optional[float] = None,
    ):
        self.precision = precision
        self.min_coin_quantity = min_coin_quantity
        self.min_notional = min_notional
        super().__init__(message)


class BelowMinimumNotional(ValidationError):
    """Order notional value is below the exchange minimum"""

    def __init__(self, message: str, notional: float, min_notional: float):
        self.notional = notional
        self.min_notional = min_notional
        super().__init__(message)


class NoOpenPosition(ValidationError):
    """Full close requested but no position exists for the side"""

    def __init__(self, symbol: str, side: str):
        self.symbol = symbol
        self.side = side
        super().__init__(f"No open {side} position for {symbol}")


class InvalidLeverage(ValidationError):
    """Leverage must be greater than zero and within the contract limits"""

    def __init__(self, leverage: int, message: Optional[str] = None):
        self.leverage = leverage
        super().__init__(message or f"Leverage must be > 0, got {leverage}")


class UpstreamUnavailable(OrderExecutionError):
    """Transport or authentication failure talking to the exchange"""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class OrderRejectedError(OrderExecutionError):
    """Gate.io rejected the request"""

    def __init__(self, operation: str, message: str, label: Optional[str] = None):
        self.operation = operation
        self.label = label
        super().__init__(f"{operation} rejected: {message}")


class OrderNotFoundError(OrderRejectedError):
    """Order or resource to act on does not exist"""
