"""
Account balance model
"""

from dataclasses import dataclass


@dataclass
class Balance:
    """
    Futures account snapshot in the settlement currency.

    Attributes:
        total: Total wallet balance
        available: Balance available for new margin
        unrealized_pnl: Unrealized profit/loss across all positions
        currency: Settlement currency
    """

    total: float
    available: float
    unrealized_pnl: float = 0.0
    currency: str = "USDT"
