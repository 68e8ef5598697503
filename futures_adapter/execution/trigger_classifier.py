"""
Classification of Gate.io price-triggered orders as stop-loss or take-profit.

Gate.io price orders carry no SL/TP label, so the kind is inferred from the
trigger price relative to the current price and the protected position side.
"""

from enum import Enum
from typing import Iterable, List, Optional

from futures_adapter.models.order import ConditionalOrder, PositionSide
from futures_adapter.models.wire import parse_decimal


class TriggerKind(Enum):
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    # Trigger price unreadable but the order would reduce the position
    PROTECTIVE = "protective"
    UNCLASSIFIED = "unclassified"


def classify(
    order: ConditionalOrder,
    position_side: Optional[PositionSide],
    current_price: Optional[float],
) -> TriggerKind:
    """
    Classify a trigger order protecting a position.

    Long position: trigger below current price is a stop-loss, above is a
    take-profit. Short position is the mirror image. A trigger exactly at
    the current price is left unclassified.

    When the trigger price cannot be parsed, an order whose size sign is
    opposite the position sign is reported as PROTECTIVE, which selective
    stop-loss/take-profit cancellation never matches.

    Example:
        >>> order = ConditionalOrder('1', 'BTC_USDT', -20, trigger_price='49000')
        >>> classify(order, PositionSide.LONG, 50000.0)
        <TriggerKind.STOP_LOSS: 'stop_loss'>
    """
    if position_side not in (PositionSide.LONG, PositionSide.SHORT):
        return TriggerKind.UNCLASSIFIED
    if current_price is None or current_price <= 0:
        return TriggerKind.UNCLASSIFIED

    trigger = parse_decimal(order.trigger_price)
    if trigger is None:
        position_sign = 1 if position_side == PositionSide.LONG else -1
        if order.initial_size * position_sign < 0:
            return TriggerKind.PROTECTIVE
        return TriggerKind.UNCLASSIFIED

    if trigger == current_price:
        return TriggerKind.UNCLASSIFIED

    below = trigger < current_price
    if position_side == PositionSide.LONG:
        return TriggerKind.STOP_LOSS if below else TriggerKind.TAKE_PROFIT
    return TriggerKind.TAKE_PROFIT if below else TriggerKind.STOP_LOSS


def select_for_cancellation(
    orders: Iterable[ConditionalOrder],
    position_side: Optional[PositionSide],
    current_price: Optional[float],
    kinds: Iterable[TriggerKind],
) -> List[ConditionalOrder]:
    """Return the orders whose classification is one of ``kinds``."""
    wanted = set(kinds)
    return [o for o in orders if classify(o, position_side, current_price) in wanted]
