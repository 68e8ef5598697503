"""
Data models package
"""

from .account import Balance
from .order import CancelSummary, ConditionalOrder, OrderResult, PositionSide, TimeInForce
from .position import LONG, SHORT, Position
from .symbol_spec import SymbolSpec

__all__ = [
    "Balance",
    "CancelSummary",
    "ConditionalOrder",
    "OrderResult",
    "PositionSide",
    "TimeInForce",
    "Position",
    "LONG",
    "SHORT",
    "SymbolSpec",
]
