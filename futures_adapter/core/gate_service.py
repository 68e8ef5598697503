"""
Centralized Gate.io futures REST client built on ccxt's implicit API.

The adapter talks to the raw Gate.io v4 futures endpoints instead of ccxt's
unified order model: contract sizes, reduce-only flags and price-triggered
orders must reach the exchange exactly as constructed by the orchestrator.
"""

import logging
from typing import Any, Dict, List, Optional

import ccxt

from futures_adapter.core.exceptions import (
    OrderNotFoundError,
    OrderRejectedError,
    UpstreamUnavailable,
)
from futures_adapter.core.retry import retry_with_backoff

# Transport and credential failures; everything else is an exchange-side rejection
UNAVAILABLE_EXCEPTIONS = (
    ccxt.NetworkError,
    ccxt.AuthenticationError,
    ccxt.PermissionDenied,
)


class GateServiceClient:
    """
    Thin service over ``ccxt.gate`` exposing the futures endpoints the
    adapter needs.

    Features:
    - Single ccxt exchange instance shared across components
    - ccxt rate limiting and HTTP timeout handled by the transport
    - Idempotent reads retried on network errors, writes never retried
    - ccxt errors translated into the adapter's exception taxonomy
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        settle: str = "usdt",
        timeout_ms: int = 10000,
        exchange: Optional[Any] = None,
    ) -> None:
        """
        Initialize Gate.io service.

        Args:
            api_key: Gate.io API v4 key
            api_secret: Gate.io API v4 secret
            settle: Settlement currency of the futures account (default: usdt)
            timeout_ms: HTTP timeout handed to ccxt
            exchange: Pre-built ccxt exchange (used by tests)
        """
        self.settle = settle.lower()
        self.exchange = exchange or ccxt.gate({
            "apiKey": api_key,
            "secret": api_secret,
            "enableRateLimit": True,
            "timeout": timeout_ms,
        })
        self.logger = logging.getLogger(__name__)

    def _call(
        self,
        operation: str,
        method: str,
        params: Dict[str, Any],
        read: bool = False,
    ) -> Any:
        """Invoke a ccxt implicit endpoint and translate its errors."""
        invoke = self._read if read else self._write
        try:
            return invoke(method, params)
        except UNAVAILABLE_EXCEPTIONS as e:
            self.logger.error(f"Gate.io {operation} unavailable: {type(e).__name__}: {e}")
            raise UpstreamUnavailable(operation, str(e)) from e
        except ccxt.OrderNotFound as e:
            raise OrderNotFoundError(operation, str(e), label="ORDER_NOT_FOUND") from e
        except ccxt.BaseError as e:
            self.logger.error(f"Gate.io rejected {operation}: {type(e).__name__}: {e}")
            raise OrderRejectedError(operation, str(e), label=type(e).__name__) from e

    @retry_with_backoff(max_retries=2, initial_delay=0.5)
    def _read(self, method: str, params: Dict[str, Any]) -> Any:
        return getattr(self.exchange, method)(params)

    def _write(self, method: str, params: Dict[str, Any]) -> Any:
        return getattr(self.exchange, method)(params)

    # Account and market data

    def list_accounts(self) -> Dict[str, Any]:
        """GET /futures/{settle}/accounts"""
        return self._call(
            "list_accounts", "private_futures_get_settle_accounts", {"settle": self.settle},
            read=True,
        )

    def list_positions(self) -> List[Dict[str, Any]]:
        """GET /futures/{settle}/positions"""
        return self._call(
            "list_positions", "private_futures_get_settle_positions", {"settle": self.settle},
            read=True,
        ) or []

    def list_contracts(self) -> List[Dict[str, Any]]:
        """GET /futures/{settle}/contracts (the whole table, one call)"""
        return self._call(
            "list_contracts", "public_futures_get_settle_contracts", {"settle": self.settle},
            read=True,
        ) or []

    def list_tickers(self, contract: Optional[str] = None) -> List[Dict[str, Any]]:
        """GET /futures/{settle}/tickers"""
        params: Dict[str, Any] = {"settle": self.settle}
        if contract:
            params["contract"] = contract
        return self._call(
            "list_tickers", "public_futures_get_settle_tickers", params, read=True
        ) or []

    # Position configuration

    def update_leverage(
        self,
        contract: str,
        leverage: int,
        cross_leverage_limit: Optional[int] = None,
    ) -> Any:
        """
        POST /futures/{settle}/positions/{contract}/leverage

        Gate.io switches a position to cross margin when leverage is 0; the
        effective cross leverage is then ``cross_leverage_limit``.
        """
        params: Dict[str, Any] = {
            "settle": self.settle,
            "contract": contract,
            "leverage": str(leverage),
        }
        if cross_leverage_limit is not None:
            params["cross_leverage_limit"] = str(cross_leverage_limit)
        return self._call(
            "update_leverage", "private_futures_post_settle_positions_contract_leverage", params
        )

    # Orders

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /futures/{settle}/orders"""
        return self._call(
            "create_order",
            "private_futures_post_settle_orders",
            {"settle": self.settle, **payload},
        )

    def cancel_orders(self, contract: str) -> List[Dict[str, Any]]:
        """DELETE /futures/{settle}/orders (all standing orders of a contract)"""
        return self._call(
            "cancel_orders",
            "private_futures_delete_settle_orders",
            {"settle": self.settle, "contract": contract},
        ) or []

    def list_price_orders(self, contract: str, status: str = "open") -> List[Dict[str, Any]]:
        """GET /futures/{settle}/price_orders"""
        return self._call(
            "list_price_orders",
            "private_futures_get_settle_price_orders",
            {"settle": self.settle, "status": status, "contract": contract},
            read=True,
        ) or []

    def create_price_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /futures/{settle}/price_orders"""
        return self._call(
            "create_price_order",
            "private_futures_post_settle_price_orders",
            {"settle": self.settle, **payload},
        )

    def cancel_price_order(self, order_id: str) -> Dict[str, Any]:
        """DELETE /futures/{settle}/price_orders/{order_id}"""
        return self._call(
            "cancel_price_order",
            "private_futures_delete_settle_price_orders_order_id",
            {"settle": self.settle, "order_id": str(order_id)},
        )
