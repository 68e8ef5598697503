"""
Position model
"""

from dataclasses import dataclass
from typing import Optional

LONG = "long"
SHORT = "short"


@dataclass
class Position:
    """
    Open futures position expressed in coin units.

    Attributes:
        symbol: Canonical trading pair (e.g. 'BTCUSDT')
        side: 'long' or 'short'
        quantity: Coin quantity, always positive
        entry_price: Average entry price
        mark_price: Current mark price
        unrealized_pnl: Current profit/loss
        leverage: Leverage multiplier (0 means cross margin on Gate.io)
        liquidation_price: Liquidation price (if available)
        raw_contracts: Signed contract count as reported by the exchange
    """

    symbol: str
    side: str
    quantity: float
    entry_price: float = 0.0
    mark_price: float = 0.0
    unrealized_pnl: float = 0.0
    leverage: float = 0.0
    liquidation_price: Optional[float] = None
    raw_contracts: float = 0.0

    def __post_init__(self) -> None:
        if self.side not in (LONG, SHORT):
            raise ValueError(f"Side must be '{LONG}' or '{SHORT}', got {self.side}")
        if self.quantity <= 0:
            raise ValueError(f"Quantity must be > 0, got {self.quantity}")

    @property
    def notional_value(self) -> float:
        """Position value at mark price."""
        return self.quantity * self.mark_price
