"""
Order orchestration on Gate.io USDT-settled perpetual futures.

GateFuturesTrader opens, closes and protects positions in coin quantities
while Gate.io trades in integer contracts. Every order-placing path goes
through QuantityConverter so size and precision guards run before any
request leaves the process.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as WireValidationError

from futures_adapter.core.audit_logger import AuditEventType, AuditLogger
from futures_adapter.core.exceptions import (
    InvalidLeverage,
    NoOpenPosition,
    OrderExecutionError,
    OrderNotFoundError,
    OrderRejectedError,
    SymbolNotFound,
    UpstreamUnavailable,
    ValidationError,
)
from futures_adapter.execution.quantity import (
    DEFAULT_MIN_NOTIONAL,
    QuantityConverter,
)
from futures_adapter.execution.symbols import to_canonical_symbol, to_exchange_symbol
from futures_adapter.execution.trigger_classifier import TriggerKind, select_for_cancellation
from futures_adapter.models.account import Balance
from futures_adapter.models.order import (
    CancelSummary,
    ConditionalOrder,
    OrderResult,
    PositionSide,
    TimeInForce,
)
from futures_adapter.models.position import LONG, SHORT, Position
from futures_adapter.models.wire import GatePriceOrder, GateTicker
from futures_adapter.utils.logger import TradingLogger, log_execution_time

OPEN_ORDER_TEXT = "t-futures-adapter"
CLOSE_ORDER_TEXT = "t-futures-adapter-close"

# Gate.io trigger rules
RULE_GTE = 1
RULE_LTE = 2

# Substrings of a rejection meaning the account is already configured as requested
ALREADY_SET_MARKERS = ("already", "same")


class GateFuturesTrader:
    """
    Gate.io futures order orchestrator.

    Sign convention on the wire: positive size buys, negative size sells.
    Opening a long sends +, opening a short sends -, closing is the
    opposite of opening and always reduce-only.

    Attributes:
        client: GateServiceClient for upstream calls
        cache: MetadataCache for balance, positions and contract specs
        converter: QuantityConverter used as the single size gate
        audit_logger: AuditLogger receiving every exchange mutation
        default_leverage: Leverage used when an open call passes none
        cross_margin: Open positions in cross margin instead of isolated
    """

    def __init__(
        self,
        client,
        cache,
        converter: Optional[QuantityConverter] = None,
        audit_logger: Optional[AuditLogger] = None,
        min_notional: float = DEFAULT_MIN_NOTIONAL,
        default_leverage: int = 5,
        cross_margin: bool = False,
    ) -> None:
        self.client = client
        self.cache = cache
        self.default_leverage = default_leverage
        self.cross_margin = cross_margin
        self.converter = converter or QuantityConverter(
            cache, self.get_market_price, min_notional=min_notional
        )
        self.audit_logger = audit_logger or AuditLogger(log_dir="logs/audit")
        self.logger = logging.getLogger(__name__)

    # Account and market data

    def get_balance(self) -> Balance:
        return self.cache.get_balance()

    def get_positions(self) -> List[Position]:
        return self.cache.get_positions()

    def get_market_price(self, symbol: str) -> float:
        """
        Last traded price for symbol.

        Raises:
            OrderRejectedError: Ticker missing or without a usable price
            UpstreamUnavailable: Ticker request failed
        """
        contract = to_exchange_symbol(symbol)
        tickers = self.client.list_tickers(contract)

        for raw in tickers:
            try:
                ticker = GateTicker.model_validate(raw)
            except WireValidationError as e:
                self.logger.warning(f"Skipping malformed ticker record: {e}")
                continue
            if ticker.contract != contract:
                continue
            if ticker.last is not None and ticker.last > 0:
                return ticker.last

        raise OrderRejectedError(
            "get_market_price", f"no usable ticker price for {contract}", label="NO_TICKER"
        )

    def get_min_open_amount(self, symbol: str) -> float:
        return self.converter.get_min_open_amount(symbol)

    # Position configuration

    def set_leverage(self, symbol: str, leverage: int) -> None:
        """
        Set isolated leverage for a contract.

        A rejection saying the leverage is already at the target is treated
        as success.

        Raises:
            InvalidLeverage: leverage <= 0 or outside the contract limits
                (checked before the leverage update)
            OrderRejectedError: Gate.io refused the change
            UpstreamUnavailable: Request could not be delivered
        """
        self._check_leverage(symbol, leverage)

        contract = to_exchange_symbol(symbol)
        try:
            self.client.update_leverage(contract, leverage)
        except OrderRejectedError as e:
            if _is_already_set(e):
                self.logger.info(f"{contract} leverage already {leverage}x")
                return
            self.audit_logger.log_event(
                event_type=AuditEventType.API_ERROR,
                operation="set_leverage",
                symbol=contract,
                error={'label': e.label, 'message': str(e)}
            )
            self.logger.error(f"Failed to set leverage for {contract}: {e}")
            raise

        self.audit_logger.log_event(
            event_type=AuditEventType.LEVERAGE_SET,
            operation="set_leverage",
            symbol=contract,
            response={'leverage': leverage, 'status': 'success'}
        )
        self.logger.info(f"Leverage set to {leverage}x for {contract}")

    def set_margin_mode(self, symbol: str, cross: bool, leverage: int) -> bool:
        """
        Switch a contract between cross and isolated margin.

        Gate.io encodes cross margin as leverage 0 with a cross leverage
        limit; isolated margin is a plain leverage update.

        Returns:
            True if the mode was changed or already in place, False if
            Gate.io refused for another reason (the current mode is kept)

        Note:
            Rejections because a position is open are absorbed: the mode
            cannot change while a position exists and trading continues in
            the current mode.
        """
        self._check_leverage(symbol, leverage)

        contract = to_exchange_symbol(symbol)
        mode = "cross" if cross else "isolated"
        try:
            if cross:
                self.client.update_leverage(contract, 0, cross_leverage_limit=leverage)
            else:
                self.client.update_leverage(contract, leverage)
        except OrderRejectedError as e:
            if _is_already_set(e):
                self.logger.info(f"{contract} margin mode already {mode}")
                return True
            if "position" in str(e).lower():
                self.logger.warning(
                    f"{contract} has an open position, margin mode unchanged: {e}"
                )
                return True
            self.logger.warning(f"Failed to set {mode} margin for {contract}: {e}")
            return False

        self.audit_logger.log_event(
            event_type=AuditEventType.MARGIN_MODE_SET,
            operation="set_margin_mode",
            symbol=contract,
            response={'mode': mode, 'leverage': leverage}
        )
        self.logger.info(f"{contract} margin mode set to {mode} ({leverage}x)")
        return True

    # Opening

    def open_long(
        self, symbol: str, quantity: float, leverage: Optional[int] = None
    ) -> OrderResult:
        return self.open_position(symbol, quantity, leverage, LONG)

    def open_short(
        self, symbol: str, quantity: float, leverage: Optional[int] = None
    ) -> OrderResult:
        return self.open_position(symbol, quantity, leverage, SHORT)

    def open_position(
        self, symbol: str, quantity: float, leverage: Optional[int], side: str
    ) -> OrderResult:
        """
        Open (or add to) a position with an IOC market order.

        Flow:
        1. Best-effort cancel of existing orders on the contract
        2. Set leverage (cross leverage limit when cross_margin is enabled)
        3. Format the coin quantity into contracts (size and precision guards)
        4. Check the minimum notional value
        5. Submit the market order

        Args:
            symbol: Trading pair in either spelling (e.g. 'BTCUSDT')
            quantity: Coin quantity (e.g. 0.01 BTC)
            leverage: Leverage multiplier (> 0), default_leverage when None
            side: 'long' or 'short'

        Returns:
            OrderResult of the submitted order

        Raises:
            InvalidLeverage: leverage <= 0 or outside the contract limits
            BelowMinimumSize, ZeroAfterRounding: Quantity cannot be expressed
            AboveMaximumSize: Contract size over the exchange maximum
            BelowMinimumNotional: Order value under the exchange minimum
            OrderRejectedError: Gate.io rejected the order or the cross margin change
            UpstreamUnavailable: Request could not be delivered

        Example:
            >>> trader.open_long('BTCUSDT', 0.002, leverage=5)
            OrderResult(order_id='123', symbol='BTC_USDT', status='finished', size=20, ...)
        """
        _check_side(side)
        operation = f"open_{side}"
        if leverage is None:
            leverage = self.default_leverage
        self._check_leverage(symbol, leverage)

        contract = to_exchange_symbol(symbol)
        self.logger.info(f"Opening {side} on {contract}: {quantity} coin @ {leverage}x")

        summary = self.cancel_all_orders(symbol)
        if summary.errors:
            self.logger.warning(
                f"Pre-open order cleanup on {contract} incomplete: {summary.errors}"
            )

        if self.cross_margin:
            if not self.set_margin_mode(symbol, cross=True, leverage=leverage):
                self.audit_logger.log_event(
                    event_type=AuditEventType.API_ERROR,
                    operation=operation,
                    symbol=contract,
                    error={'label': "MARGIN_MODE_REJECTED", 'leverage': leverage}
                )
                raise OrderRejectedError(
                    "set_margin_mode",
                    f"cross margin at {leverage}x refused for {contract}, order not placed",
                    label="MARGIN_MODE_REJECTED",
                )
        else:
            self.set_leverage(symbol, leverage)

        try:
            qty = self.converter.format_quantity(symbol, quantity)
            self.converter.check_min_notional(symbol, quantity)
            size = self.converter.contract_count(symbol, qty)
        except ValidationError as e:
            self.audit_logger.log_validation_rejected(operation, contract, e)
            self.logger.warning(f"{operation} {contract} refused: {e}")
            raise

        sign = 1 if side == LONG else -1
        payload = self._market_order_payload(
            contract, sign * size,
            reduce_only=False, text=OPEN_ORDER_TEXT,
        )

        try:
            return self._submit_order(operation, contract, payload)
        finally:
            self._invalidate_after_order()

    # Closing

    def close_long(self, symbol: str, quantity: float = 0) -> OrderResult:
        return self.close_position(symbol, quantity, LONG)

    def close_short(self, symbol: str, quantity: float = 0) -> OrderResult:
        return self.close_position(symbol, quantity, SHORT)

    def close_position(self, symbol: str, quantity: float, side: str) -> OrderResult:
        """
        Reduce or close a position with a reduce-only IOC market order.

        A quantity of 0 closes the whole position, read from the positions
        cache. The order never uses Gate.io's ``close`` flag, which dual
        position mode rejects.

        Raises:
            NoOpenPosition: quantity is 0 and no position exists for side
            BelowMinimumSize, ZeroAfterRounding: Quantity cannot be expressed
            OrderRejectedError: Gate.io rejected the order

        Example:
            >>> # 0.002 BTC long open, multiplier 0.0001
            >>> trader.close_long('BTCUSDT')
            OrderResult(order_id='124', symbol='BTC_USDT', status='finished', size=-20, reduce_only=True)
        """
        _check_side(side)
        operation = f"close_{side}"
        contract = to_exchange_symbol(symbol)

        if quantity == 0:
            position = self.cache.get_position(symbol, side)
            if position is None:
                error = NoOpenPosition(to_canonical_symbol(symbol), side)
                self.audit_logger.log_validation_rejected(operation, contract, error)
                raise error
            quantity = position.quantity
            self.logger.info(f"Closing full {side} position on {contract}: {quantity} coin")
        else:
            self.logger.info(f"Closing {quantity} coin of {side} position on {contract}")

        try:
            qty = self.converter.format_quantity(symbol, quantity)
            size = self.converter.contract_count(symbol, qty)
        except ValidationError as e:
            self.audit_logger.log_validation_rejected(operation, contract, e)
            self.logger.warning(f"{operation} {contract} refused: {e}")
            raise

        sign = -1 if side == LONG else 1
        payload = self._market_order_payload(
            contract, sign * size,
            reduce_only=True, text=CLOSE_ORDER_TEXT,
        )

        try:
            result = self._submit_order(operation, contract, payload)
        finally:
            self._invalidate_after_order()

        summary = self.cancel_all_orders(symbol)
        if summary.errors:
            self.logger.warning(
                f"Post-close order cleanup on {contract} incomplete: {summary.errors}"
            )
        return result

    # Protective orders

    def set_stop_loss(
        self,
        symbol: str,
        position_side: PositionSide,
        quantity: float,
        stop_price: float,
    ) -> OrderResult:
        """Place a price-triggered stop-loss protecting position_side."""
        return self._place_trigger_order(
            "set_stop_loss", symbol, position_side, quantity, stop_price, TriggerKind.STOP_LOSS
        )

    def set_take_profit(
        self,
        symbol: str,
        position_side: PositionSide,
        quantity: float,
        take_profit_price: float,
    ) -> OrderResult:
        """Place a price-triggered take-profit protecting position_side."""
        return self._place_trigger_order(
            "set_take_profit", symbol, position_side, quantity, take_profit_price,
            TriggerKind.TAKE_PROFIT,
        )

    def _place_trigger_order(
        self,
        operation: str,
        symbol: str,
        position_side: PositionSide,
        quantity: float,
        price: float,
        kind: TriggerKind,
    ) -> OrderResult:
        """
        Submit a conditional order that closes part of a position.

        The order placed on trigger is a GTC limit at the trigger price.
        Long protection sells (negative size); short protection buys.
        The trigger rule fires a long stop-loss when price <= trigger and a
        long take-profit when price >= trigger, mirrored for shorts.
        """
        if not isinstance(position_side, PositionSide):
            position_side = PositionSide(str(position_side).upper())

        contract = to_exchange_symbol(symbol)
        try:
            qty = self.converter.format_quantity(symbol, quantity)
            size = self.converter.contract_count(symbol, qty)
        except ValidationError as e:
            self.audit_logger.log_validation_rejected(operation, contract, e)
            self.logger.warning(f"{operation} {contract} refused: {e}")
            raise

        is_long = position_side == PositionSide.LONG
        sign = -1 if is_long else 1
        fires_below = (kind == TriggerKind.STOP_LOSS) == is_long
        price_str = f"{price:.8f}"

        payload = {
            "initial": {
                "contract": contract,
                "size": sign * size,
                "price": price_str,
                "tif": TimeInForce.GTC.value,
                "reduce_only": True,
            },
            "trigger": {
                "strategy_type": 0,
                "price_type": 0,
                "price": price_str,
                "rule": RULE_LTE if fires_below else RULE_GTE,
            },
        }

        try:
            response = self.client.create_price_order(payload)
        except OrderExecutionError as e:
            self.audit_logger.log_order_rejected(operation, contract, payload, e)
            self.logger.error(f"{operation} on {contract} failed: {e}")
            raise

        response = response or {}
        result = OrderResult(
            order_id=str(response.get("id", "")),
            symbol=contract,
            status=str(response.get("status", "open")),
            size=payload["initial"]["size"],
            reduce_only=True,
        )
        self.audit_logger.log_order_placed(
            operation, contract, payload,
            {'order_id': result.order_id, 'status': result.status},
            conditional=True,
        )
        self.logger.info(
            f"{kind.value} set on {contract}: {result.size} contracts @ {price:.4f} "
            f"(id={result.order_id})"
        )
        TradingLogger.log_trade(f"{kind.name}_SET", {
            'symbol': contract,
            'order_id': result.order_id,
            'size': result.size,
            'trigger_price': price_str,
        })
        return result

    # Cancellation

    def cancel_all_orders(self, symbol: str) -> CancelSummary:
        """
        Cancel every standing and price-triggered order on a contract.

        Best effort: not-found failures are ignored, other failures are
        logged and collected in the summary. Never raises.

        Returns:
            CancelSummary with cancelled counts and error messages
        """
        contract = to_exchange_symbol(symbol)
        summary = CancelSummary(symbol=contract)

        try:
            cancelled = self.client.cancel_orders(contract)
            summary.standing_cancelled = len(cancelled) if isinstance(cancelled, list) else 0
        except OrderNotFoundError:
            self.logger.debug(f"No standing orders on {contract}")
        except OrderExecutionError as e:
            self.logger.warning(f"Failed to cancel standing orders on {contract}: {e}")
            summary.errors.append(f"cancel_orders: {e}")

        try:
            triggers = self._list_trigger_orders(contract)
        except OrderExecutionError as e:
            self.logger.warning(f"Failed to list trigger orders on {contract}: {e}")
            summary.errors.append(f"list_price_orders: {e}")
            triggers = []

        summary.triggers_cancelled = self._cancel_triggers(contract, triggers, summary)

        self._log_cancel_summary("cancel_all_orders", summary)
        return summary

    def cancel_stop_loss_orders(self, symbol: str) -> CancelSummary:
        """Cancel only the trigger orders classified as stop-loss."""
        return self._cancel_classified("cancel_stop_loss_orders", symbol, (TriggerKind.STOP_LOSS,))

    def cancel_take_profit_orders(self, symbol: str) -> CancelSummary:
        """Cancel only the trigger orders classified as take-profit."""
        return self._cancel_classified(
            "cancel_take_profit_orders", symbol, (TriggerKind.TAKE_PROFIT,)
        )

    def cancel_stop_orders(self, symbol: str) -> CancelSummary:
        """Cancel stop-loss, take-profit and protective trigger orders."""
        return self._cancel_classified(
            "cancel_stop_orders",
            symbol,
            (TriggerKind.STOP_LOSS, TriggerKind.TAKE_PROFIT, TriggerKind.PROTECTIVE),
        )

    def _cancel_classified(self, operation: str, symbol: str, kinds) -> CancelSummary:
        """
        Cancel trigger orders of the given kinds.

        Orders are skipped, never guessed, when the position side or the
        current price is unknown.
        """
        contract = to_exchange_symbol(symbol)
        summary = CancelSummary(symbol=contract)

        try:
            triggers = self._list_trigger_orders(contract)
        except OrderExecutionError as e:
            self.logger.warning(f"Failed to list trigger orders on {contract}: {e}")
            summary.errors.append(f"list_price_orders: {e}")
            return summary

        if not triggers:
            self.logger.info(f"No trigger orders on {contract}")
            return summary

        position_side = self._position_side(symbol)
        try:
            current_price: Optional[float] = self.get_market_price(symbol)
        except OrderExecutionError as e:
            self.logger.warning(f"Price for {contract} unavailable: {e}")
            current_price = None

        if position_side is None or current_price is None:
            self.logger.warning(
                f"Cannot classify trigger orders on {contract} "
                f"(position side: {position_side}, price: {current_price}), skipping"
            )
            summary.skipped = len(triggers)
            return summary

        selected = select_for_cancellation(triggers, position_side, current_price, kinds)
        summary.skipped = len(triggers) - len(selected)
        summary.triggers_cancelled = self._cancel_triggers(contract, selected, summary)

        self._log_cancel_summary(operation, summary)
        return summary

    def _position_side(self, symbol: str) -> Optional[PositionSide]:
        canonical = to_canonical_symbol(symbol)
        try:
            positions = self.cache.get_positions()
        except OrderExecutionError as e:
            self.logger.warning(f"Positions unavailable for {canonical}: {e}")
            return None
        for position in positions:
            if position.symbol == canonical:
                return PositionSide.LONG if position.side == LONG else PositionSide.SHORT
        return None

    def _list_trigger_orders(self, contract: str) -> List[ConditionalOrder]:
        orders: List[ConditionalOrder] = []
        for raw in self.client.list_price_orders(contract, status="open"):
            try:
                orders.append(GatePriceOrder.model_validate(raw).to_conditional_order())
            except WireValidationError as e:
                self.logger.warning(f"Skipping malformed price order record: {e}")
        return orders

    def _cancel_triggers(
        self, contract: str, orders: List[ConditionalOrder], summary: CancelSummary
    ) -> int:
        cancelled = 0
        for order in orders:
            try:
                self.client.cancel_price_order(order.order_id)
                cancelled += 1
            except OrderNotFoundError:
                self.logger.debug(f"Trigger order {order.order_id} already gone")
            except OrderExecutionError as e:
                self.logger.warning(f"Failed to cancel trigger order {order.order_id}: {e}")
                summary.errors.append(f"cancel_price_order {order.order_id}: {e}")
        return cancelled

    def _log_cancel_summary(self, operation: str, summary: CancelSummary) -> None:
        if summary.total_cancelled:
            self.logger.info(
                f"{operation} {summary.symbol}: {summary.standing_cancelled} standing, "
                f"{summary.triggers_cancelled} trigger orders cancelled"
            )
            self.audit_logger.log_cancellation(
                operation,
                summary.symbol,
                summary.standing_cancelled,
                summary.triggers_cancelled,
                errors=summary.errors,
            )
        else:
            self.logger.debug(f"{operation} {summary.symbol}: nothing cancelled")

    # Helpers

    def _check_leverage(self, symbol: str, leverage: int) -> None:
        """Reject leverage <= 0 or outside the contract's published limits."""
        if leverage <= 0:
            raise InvalidLeverage(leverage)

        try:
            spec = self.cache.get_symbol_spec(symbol)
        except (SymbolNotFound, OrderExecutionError) as e:
            self.logger.debug(f"{symbol}: leverage limits unavailable ({e})")
            return

        if (spec.leverage_min and leverage < spec.leverage_min) or (
            spec.leverage_max and leverage > spec.leverage_max
        ):
            raise InvalidLeverage(
                leverage,
                f"Leverage {leverage}x outside the limits of {spec.name} "
                f"(min {spec.leverage_min}, max {spec.leverage_max})",
            )

    @staticmethod
    def _market_order_payload(
        contract: str, size: int, reduce_only: bool, text: str
    ) -> Dict[str, Any]:
        return {
            "contract": contract,
            "size": size,
            "price": "0",
            "tif": TimeInForce.IOC.value,
            "reduce_only": reduce_only,
            "text": text,
        }

    def _submit_order(
        self, operation: str, contract: str, payload: Dict[str, Any]
    ) -> OrderResult:
        try:
            with log_execution_time(f"{operation} {contract}"):
                response = self.client.create_order(payload)
        except (OrderRejectedError, UpstreamUnavailable) as e:
            self.audit_logger.log_order_rejected(operation, contract, payload, e)
            self.logger.error(f"{operation} order on {contract} failed: {e}")
            raise

        response = response or {}
        result = OrderResult(
            order_id=str(response.get("id", "")),
            symbol=contract,
            status=str(response.get("status", "")),
            size=payload["size"],
            reduce_only=payload["reduce_only"],
        )
        self.audit_logger.log_order_placed(
            operation, contract, payload,
            {'order_id': result.order_id, 'status': result.status},
        )
        self.logger.info(
            f"{operation} order executed on {contract}: ID={result.order_id}, "
            f"size={result.size}, status={result.status}"
        )
        TradingLogger.log_trade(operation.upper(), {
            'symbol': contract,
            'order_id': result.order_id,
            'size': result.size,
            'reduce_only': result.reduce_only,
        })
        return result

    def _invalidate_after_order(self) -> None:
        self.cache.invalidate_positions()
        self.cache.invalidate_balance()


def _check_side(side: str) -> None:
    if side not in (LONG, SHORT):
        raise ValidationError(f"Side must be '{LONG}' or '{SHORT}', got {side}")


def _is_already_set(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in ALREADY_SET_MARKERS)
