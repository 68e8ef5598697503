"""Gate.io futures wire records.

Gate.io sends every monetary and size field as a decimal string. These
schemas parse the fields the adapter relies on and never raise on a
malformed number: an unparseable value becomes ``None`` (or the documented
default) and the caller decides on the fallback.
"""

import logging
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from futures_adapter.models.account import Balance
from futures_adapter.models.order import ConditionalOrder
from futures_adapter.models.symbol_spec import SymbolSpec

logger = logging.getLogger(__name__)


def parse_decimal(value: Any) -> Optional[float]:
    """Parse a wire decimal, returning None when missing or malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class GateContract(_WireModel):
    """Entry of GET /futures/{settle}/contracts."""
    name: str
    quanto_multiplier: Optional[str] = None
    order_size_min: Optional[float] = None
    order_size_max: Optional[float] = None
    order_price_round: Optional[str] = None
    leverage_min: Optional[float] = None
    leverage_max: Optional[float] = None

    @field_validator(
        "order_size_min", "order_size_max", "leverage_min", "leverage_max", mode="before"
    )
    @classmethod
    def _lenient_number(cls, value: Any) -> Optional[float]:
        return parse_decimal(value)

    def to_symbol_spec(self) -> SymbolSpec:
        multiplier = parse_decimal(self.quanto_multiplier)
        defaulted = multiplier is None or multiplier <= 0
        if defaulted:
            logger.warning(
                f"{self.name}: quanto_multiplier {self.quanto_multiplier!r} unusable, assuming 1.0"
            )
            multiplier = 1.0

        return SymbolSpec(
            name=self.name,
            multiplier=multiplier,
            min_contract_size=self.order_size_min or 0.0,
            rounding_increment=self.order_price_round or None,
            max_contract_size=self.order_size_max,
            leverage_min=self.leverage_min,
            leverage_max=self.leverage_max,
            multiplier_defaulted=defaulted,
        )


class GatePosition(_WireModel):
    """Entry of GET /futures/{settle}/positions."""
    contract: str
    size: float = 0.0
    entry_price: Optional[float] = None
    mark_price: Optional[float] = None
    unrealised_pnl: Optional[float] = None
    leverage: Optional[float] = None
    liq_price: Optional[float] = None

    @field_validator("size", mode="before")
    @classmethod
    def _lenient_size(cls, value: Any) -> float:
        parsed = parse_decimal(value)
        return parsed if parsed is not None else 0.0

    @field_validator(
        "entry_price", "mark_price", "unrealised_pnl", "leverage", "liq_price",
        mode="before",
    )
    @classmethod
    def _lenient_number(cls, value: Any) -> Optional[float]:
        return parse_decimal(value)


class GateAccount(_WireModel):
    """Response of GET /futures/{settle}/accounts."""
    total: Optional[float] = None
    available: Optional[float] = None
    unrealised_pnl: Optional[float] = None
    currency: str = "USDT"

    @field_validator("total", "available", "unrealised_pnl", mode="before")
    @classmethod
    def _lenient_number(cls, value: Any) -> Optional[float]:
        return parse_decimal(value)

    def to_balance(self) -> Balance:
        return Balance(
            total=self.total or 0.0,
            available=self.available or 0.0,
            unrealized_pnl=self.unrealised_pnl or 0.0,
            currency=self.currency,
        )


class GateTicker(_WireModel):
    """Entry of GET /futures/{settle}/tickers."""
    contract: str
    last: Optional[float] = None
    mark_price: Optional[float] = None

    @field_validator("last", "mark_price", mode="before")
    @classmethod
    def _lenient_number(cls, value: Any) -> Optional[float]:
        return parse_decimal(value)


class GateInitialOrder(_WireModel):
    contract: str = ""
    size: float = 0.0
    price: Optional[str] = None

    @field_validator("size", mode="before")
    @classmethod
    def _lenient_size(cls, value: Any) -> float:
        parsed = parse_decimal(value)
        return parsed if parsed is not None else 0.0


class GateTrigger(_WireModel):
    price: Optional[str] = None
    price_type: Optional[int] = 0
    rule: Optional[int] = None

    @field_validator("price_type", "rule", mode="before")
    @classmethod
    def _lenient_int(cls, value: Any) -> Optional[int]:
        parsed = parse_decimal(value)
        return int(parsed) if parsed is not None else None

    @field_validator("price_type", mode="after")
    @classmethod
    def _default_price_type(cls, value: Optional[int]) -> int:
        return 0 if value is None else value


class GatePriceOrder(_WireModel):
    """Entry of GET /futures/{settle}/price_orders."""
    id: str
    status: str = "open"
    initial: GateInitialOrder = Field(default_factory=GateInitialOrder)
    trigger: GateTrigger = Field(default_factory=GateTrigger)

    def to_conditional_order(self) -> ConditionalOrder:
        return ConditionalOrder(
            order_id=self.id,
            contract=self.initial.contract,
            initial_size=self.initial.size,
            trigger_price=self.trigger.price,
            initial_price=self.initial.price,
            price_type=self.trigger.price_type,
            status=self.status,
        )
