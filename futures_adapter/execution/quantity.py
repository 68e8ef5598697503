"""
Coin quantity to Gate.io contract size conversion and validation.

Callers trade in coin units (0.01 BTC); Gate.io trades in contracts whose
size is the contract's ``quanto_multiplier`` (1 BTC_USDT contract = 0.0001
BTC). Every order-placing path formats its size through
``QuantityConverter.format_quantity`` so that the minimum order size and
rounding precision are enforced before anything is sent.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional, Tuple

from futures_adapter.core.exceptions import (
    AboveMaximumSize,
    BelowMinimumNotional,
    BelowMinimumSize,
    OrderExecutionError,
    SymbolNotFound,
    ZeroAfterRounding,
)
from futures_adapter.models.symbol_spec import DEFAULT_PRECISION, SymbolSpec

DEFAULT_MIN_NOTIONAL = 10.0
DEFAULT_MIN_OPEN_AMOUNT = 12.0
MIN_OPEN_SAFETY_MARGIN = 1.1


def _to_decimal(value: float) -> Decimal:
    # str() keeps the shortest repr, so 0.0001 stays 0.0001 instead of its binary expansion
    return Decimal(str(value))


def coin_to_contracts(coin_quantity: float, multiplier: float) -> Decimal:
    """Contracts needed to hold ``coin_quantity`` coins."""
    return _to_decimal(coin_quantity) / _to_decimal(multiplier)


def contracts_to_coin(contracts: float, multiplier: float) -> float:
    """Coin quantity represented by ``contracts`` contracts."""
    return float(_to_decimal(contracts) * _to_decimal(multiplier))


@dataclass(frozen=True)
class QuantityFormat:
    """
    Validated contract size ready for the wire.

    Attributes:
        formatted: Fixed-precision contract size string
        contracts: Rounded contract size
        precision: Decimal places used
        diagnostics: Fallbacks applied while formatting
    """

    formatted: str
    contracts: Decimal
    precision: int
    diagnostics: Tuple[str, ...] = ()

    @property
    def contract_count(self) -> int:
        """Whole contracts (Gate.io order sizes are integers)."""
        return int(self.contracts)


class QuantityConverter:
    """
    Converts and validates order quantities against contract specs.

    Attributes:
        _cache: MetadataCache providing SymbolSpec lookups
        _price_fn: Callable returning the current market price for a symbol
        min_notional: Exchange minimum order value in settlement currency
    """

    def __init__(
        self,
        cache,
        price_fn: Callable[[str], float],
        min_notional: float = DEFAULT_MIN_NOTIONAL,
    ):
        self._cache = cache
        self._price_fn = price_fn
        self.min_notional = min_notional
        self.logger = logging.getLogger(__name__)

    def resolve_multiplier(self, symbol: str) -> float:
        """Contract multiplier for symbol, 1.0 when the exchange value is unusable."""
        spec = self._cache.get_symbol_spec(symbol)
        if spec.multiplier_defaulted:
            self.logger.warning(f"{symbol}: quanto_multiplier unusable, assuming 1.0")
        return spec.multiplier

    def coin_to_contracts(self, symbol: str, coin_quantity: float) -> Decimal:
        return coin_to_contracts(coin_quantity, self.resolve_multiplier(symbol))

    def _try_price(self, symbol: str) -> Optional[float]:
        """Market price for guidance messages; None if it cannot be fetched."""
        try:
            price = self._price_fn(symbol)
        except OrderExecutionError as e:
            self.logger.debug(f"{symbol}: price unavailable for guidance message: {e}")
            return None
        return price if price and price > 0 else None

    def format_quantity(self, symbol: str, coin_quantity: float) -> QuantityFormat:
        """
        Convert a coin quantity into a validated contract size string.

        Args:
            symbol: Trading pair in either spelling
            coin_quantity: Quantity in coin units

        Returns:
            QuantityFormat with the fixed-precision contract size

        Raises:
            BelowMinimumSize: Contract size under the contract's order_size_min
            ZeroAfterRounding: Contract size rounds to zero at its precision

        Example:
            >>> # BTC_USDT: multiplier 0.0001, order_size_min 1, round '0.1'
            >>> converter.format_quantity('BTCUSDT', 0.002).formatted
            '20.0'
        """
        try:
            spec = self._cache.get_symbol_spec(symbol)
        except (SymbolNotFound, OrderExecutionError) as e:
            self.logger.warning(
                f"{symbol}: contract spec unavailable ({e}), "
                f"using default precision {DEFAULT_PRECISION} without conversion"
            )
            raw = _to_decimal(coin_quantity)
            return QuantityFormat(
                formatted=f"{coin_quantity:.{DEFAULT_PRECISION}f}",
                contracts=raw.quantize(Decimal(1).scaleb(-DEFAULT_PRECISION), ROUND_HALF_UP),
                precision=DEFAULT_PRECISION,
                diagnostics=("spec_unavailable",),
            )

        diagnostics = []
        if spec.multiplier_defaulted:
            self.logger.warning(f"{symbol}: quanto_multiplier unusable, assuming 1.0")
            diagnostics.append("multiplier_defaulted")
        if spec.precision_defaulted:
            diagnostics.append("precision_defaulted")

        contracts = coin_to_contracts(coin_quantity, spec.multiplier)
        precision = spec.precision

        if spec.min_contract_size > 0 and contracts < _to_decimal(spec.min_contract_size):
            raise self._below_minimum(symbol, spec, coin_quantity, contracts)

        rounded = contracts.quantize(Decimal(1).scaleb(-precision), ROUND_HALF_UP)
        if rounded <= 0:
            raise self._zero_after_rounding(symbol, spec, coin_quantity, contracts, precision)

        if spec.max_contract_size and rounded > _to_decimal(spec.max_contract_size):
            max_coin = contracts_to_coin(spec.max_contract_size, spec.multiplier)
            raise AboveMaximumSize(
                f"Quantity {coin_quantity:.8f} ({rounded} contracts) exceeds the maximum "
                f"{spec.max_contract_size:g} contracts ({max_coin:.8f} coin) for {symbol}. "
                f"Split the order or reduce the size",
                max_contract_size=spec.max_contract_size,
                max_coin_quantity=max_coin,
            )

        formatted = f"{rounded:.{precision}f}"
        self.logger.debug(
            f"Formatted quantity for {symbol}: {coin_quantity} coin -> {formatted} contracts "
            f"(multiplier={spec.multiplier}, precision={precision})"
        )
        return QuantityFormat(
            formatted=formatted,
            contracts=rounded,
            precision=precision,
            diagnostics=tuple(diagnostics),
        )

    def contract_count(self, symbol: str, qty: QuantityFormat) -> int:
        """
        Whole contracts for the order payload.

        Gate.io order sizes are integers, so a formatted size below one
        contract cannot be sent.

        Raises:
            ZeroAfterRounding: Formatted size truncates to 0 whole contracts
        """
        count = qty.contract_count
        if count > 0:
            return count

        try:
            multiplier = self._cache.get_symbol_spec(symbol).multiplier
        except (SymbolNotFound, OrderExecutionError):
            multiplier = 1.0
        min_coin = contracts_to_coin(1, multiplier)
        price = self._try_price(symbol)
        min_notional = min_coin * price if price else None

        if min_notional is not None:
            guidance = (
                f"The smallest order is 1 contract = {min_coin:.8f} coin, "
                f"about {min_notional:.2f} USDT"
            )
        else:
            guidance = f"The smallest order is 1 contract = {min_coin:.8f} coin"

        raise ZeroAfterRounding(
            f"{qty.formatted} contracts truncates to 0 whole contracts for {symbol}. "
            f"{guidance}. Increase the order size",
            precision=0,
            min_coin_quantity=min_coin,
            min_notional=min_notional,
        )

    def _below_minimum(
        self, symbol: str, spec: SymbolSpec, coin_quantity: float, contracts: Decimal
    ) -> BelowMinimumSize:
        min_coin = contracts_to_coin(spec.min_contract_size, spec.multiplier)
        price = self._try_price(symbol)
        min_notional = min_coin * price if price else None

        if min_notional is not None:
            guidance = (
                f"Minimum order value: {min_notional:.2f} USDT "
                f"(min contracts {spec.min_contract_size:g} = {min_coin:.8f} coin x price {price:.2f})"
            )
        else:
            guidance = f"Minimum contracts: {spec.min_contract_size:g} ({min_coin:.8f} coin)"

        return BelowMinimumSize(
            f"Quantity {coin_quantity:.8f} ({contracts:.8f} contracts) is below the minimum "
            f"{spec.min_contract_size:g} contracts for {symbol}. {guidance}. "
            f"Increase the order size",
            min_contract_size=spec.min_contract_size,
            min_coin_quantity=min_coin,
            min_notional=min_notional,
        )

    def _zero_after_rounding(
        self,
        symbol: str,
        spec: SymbolSpec,
        coin_quantity: float,
        contracts: Decimal,
        precision: int,
    ) -> ZeroAfterRounding:
        min_contracts = float(Decimal(1).scaleb(-precision))
        min_coin = contracts_to_coin(min_contracts, spec.multiplier)
        price = self._try_price(symbol)
        min_notional = min_coin * price if price else None

        if min_notional is not None:
            guidance = (
                f"At {precision} decimals the smallest size is {min_contracts:.8f} contracts "
                f"= {min_coin:.8f} coin, about {min_notional:.2f} USDT"
            )
        else:
            guidance = f"At {precision} decimals the contract size truncates to 0"

        return ZeroAfterRounding(
            f"Quantity {coin_quantity:.8f} ({contracts:.8f} contracts) rounds to 0 "
            f"for {symbol}. {guidance}. Increase the order size",
            precision=precision,
            min_coin_quantity=min_coin,
            min_notional=min_notional,
        )

    def check_min_notional(self, symbol: str, coin_quantity: float) -> float:
        """
        Verify coin_quantity x market price meets the exchange minimum.

        Returns:
            The order notional value

        Raises:
            BelowMinimumNotional: Notional under ``min_notional``
            UpstreamUnavailable: Market price could not be fetched
        """
        price = self._price_fn(symbol)
        notional = coin_quantity * price

        if notional < self.min_notional:
            raise BelowMinimumNotional(
                f"Order value {notional:.2f} USDT is below the minimum {self.min_notional:.2f} USDT "
                f"(quantity: {coin_quantity:.8f}, price: {price:.4f})",
                notional=notional,
                min_notional=self.min_notional,
            )
        return notional

    def get_min_open_amount(self, symbol: str) -> float:
        """
        Smallest order value (USDT) that can open a position on symbol.

        Takes the larger of the contract minimum (or the precision floor when
        no minimum is published) and the exchange minimum notional, then adds
        a 10% margin for price movement between sizing and execution.
        """
        price = self._price_fn(symbol)

        try:
            spec = self._cache.get_symbol_spec(symbol)
        except (SymbolNotFound, OrderExecutionError) as e:
            self.logger.warning(
                f"{symbol}: contract spec unavailable ({e}), "
                f"using default minimum open amount {DEFAULT_MIN_OPEN_AMOUNT} USDT"
            )
            return DEFAULT_MIN_OPEN_AMOUNT

        if spec.min_contract_size > 0:
            min_contracts = spec.min_contract_size
        else:
            min_contracts = float(Decimal(1).scaleb(-spec.precision))

        min_notional = contracts_to_coin(min_contracts, spec.multiplier) * price
        min_notional = max(min_notional, self.min_notional)
        return min_notional * MIN_OPEN_SAFETY_MARGIN
