"""
Order models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class PositionSide(Enum):
    """Position direction used by protective order placement"""
    LONG = "LONG"
    SHORT = "SHORT"


class TimeInForce(Enum):
    GTC = "gtc"
    IOC = "ioc"


@dataclass
class OrderResult:
    """
    Normalized result of an order submission.

    Attributes:
        order_id: Exchange order id
        symbol: Exchange-spelled symbol
        status: Exchange order status (e.g. 'finished', 'open')
        size: Signed contract count that was submitted
        reduce_only: Whether the order could only shrink the position
    """

    order_id: str
    symbol: str
    status: str
    size: int = 0
    reduce_only: bool = False


@dataclass
class ConditionalOrder:
    """
    Price-triggered order as listed by the exchange.

    Attributes:
        order_id: Exchange id of the trigger order
        contract: Exchange-spelled symbol
        initial_size: Signed contract size of the order placed on trigger
        initial_price: Price of the order placed on trigger
        trigger_price: Raw trigger price string (may be unparseable)
        price_type: 0 last price, 1 mark price, 2 index price
        status: 'open', 'finished', ...
    """

    order_id: str
    contract: str
    initial_size: float
    trigger_price: Optional[str]
    initial_price: Optional[str] = None
    price_type: int = 0
    status: str = "open"


@dataclass
class CancelSummary:
    """Outcome of a best-effort cancellation sweep."""
    symbol: str
    standing_cancelled: int = 0
    triggers_cancelled: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total_cancelled(self) -> int:
        return self.standing_cancelled + self.triggers_cancelled
