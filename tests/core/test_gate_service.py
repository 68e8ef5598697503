"""
Unit tests for GateServiceClient (ccxt implicit endpoints and error mapping)
"""

from unittest.mock import MagicMock, patch

import ccxt
import pytest

from futures_adapter.core.exceptions import (
    OrderNotFoundError,
    OrderRejectedError,
    UpstreamUnavailable,
)
from futures_adapter.core.gate_service import GateServiceClient


@pytest.fixture
def exchange():
    return MagicMock()


@pytest.fixture
def service(exchange):
    return GateServiceClient("key", "secret", exchange=exchange)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("futures_adapter.core.retry.time.sleep") as mock_sleep:
        yield mock_sleep


class TestInitialization:

    def test_builds_ccxt_gate_exchange(self):
        with patch("futures_adapter.core.gate_service.ccxt.gate") as mock_gate:
            GateServiceClient("key", "secret", settle="USDT", timeout_ms=5000)

        config = mock_gate.call_args.args[0]
        assert config["apiKey"] == "key"
        assert config["secret"] == "secret"
        assert config["enableRateLimit"] is True
        assert config["timeout"] == 5000

    def test_settle_lowercased(self, exchange):
        assert GateServiceClient("k", "s", settle="USDT", exchange=exchange).settle == "usdt"


class TestEndpoints:
    """Each method hits the right implicit endpoint with settle"""

    def test_list_contracts(self, service, exchange):
        exchange.public_futures_get_settle_contracts.return_value = [{"name": "BTC_USDT"}]

        assert service.list_contracts() == [{"name": "BTC_USDT"}]
        exchange.public_futures_get_settle_contracts.assert_called_once_with({"settle": "usdt"})

    def test_list_tickers_with_contract(self, service, exchange):
        exchange.public_futures_get_settle_tickers.return_value = []

        service.list_tickers("BTC_USDT")

        exchange.public_futures_get_settle_tickers.assert_called_once_with(
            {"settle": "usdt", "contract": "BTC_USDT"}
        )

    def test_update_leverage_cross(self, service, exchange):
        service.update_leverage("BTC_USDT", 0, cross_leverage_limit=10)

        exchange.private_futures_post_settle_positions_contract_leverage.assert_called_once_with({
            "settle": "usdt",
            "contract": "BTC_USDT",
            "leverage": "0",
            "cross_leverage_limit": "10",
        })

    def test_create_order_merges_settle(self, service, exchange):
        exchange.private_futures_post_settle_orders.return_value = {"id": 1}
        payload = {"contract": "BTC_USDT", "size": 20, "price": "0", "tif": "ioc"}

        assert service.create_order(payload) == {"id": 1}
        exchange.private_futures_post_settle_orders.assert_called_once_with(
            {"settle": "usdt", **payload}
        )

    def test_list_price_orders(self, service, exchange):
        exchange.private_futures_get_settle_price_orders.return_value = None

        assert service.list_price_orders("BTC_USDT") == []
        exchange.private_futures_get_settle_price_orders.assert_called_once_with(
            {"settle": "usdt", "status": "open", "contract": "BTC_USDT"}
        )

    def test_cancel_price_order_stringifies_id(self, service, exchange):
        service.cancel_price_order(123)

        exchange.private_futures_delete_settle_price_orders_order_id.assert_called_once_with(
            {"settle": "usdt", "order_id": "123"}
        )


class TestErrorMapping:
    """ccxt errors -> adapter exceptions"""

    def test_read_retried_on_network_error(self, service, exchange, no_sleep):
        exchange.private_futures_get_settle_positions.side_effect = [
            ccxt.RequestTimeout("timeout"),
            [{"contract": "BTC_USDT", "size": 1}],
        ]

        assert service.list_positions() == [{"contract": "BTC_USDT", "size": 1}]
        assert exchange.private_futures_get_settle_positions.call_count == 2
        no_sleep.assert_called_once_with(0.5)

    def test_read_gives_up_after_retries(self, service, exchange):
        exchange.private_futures_get_settle_accounts.side_effect = ccxt.NetworkError("down")

        with pytest.raises(UpstreamUnavailable) as exc_info:
            service.list_accounts()

        assert exc_info.value.operation == "list_accounts"
        assert exchange.private_futures_get_settle_accounts.call_count == 3

    def test_write_never_retried(self, service, exchange):
        exchange.private_futures_post_settle_orders.side_effect = ccxt.NetworkError("reset")

        with pytest.raises(UpstreamUnavailable):
            service.create_order({"contract": "BTC_USDT", "size": 1})

        assert exchange.private_futures_post_settle_orders.call_count == 1

    def test_authentication_error_unavailable(self, service, exchange):
        exchange.private_futures_get_settle_accounts.side_effect = ccxt.AuthenticationError("bad key")

        with pytest.raises(UpstreamUnavailable):
            service.list_accounts()

        assert exchange.private_futures_get_settle_accounts.call_count == 1

    def test_exchange_rejection(self, service, exchange):
        exchange.private_futures_post_settle_orders.side_effect = ccxt.InvalidOrder("size too small")

        with pytest.raises(OrderRejectedError) as exc_info:
            service.create_order({"contract": "BTC_USDT", "size": 0})

        assert exc_info.value.label == "InvalidOrder"
        assert "size too small" in str(exc_info.value)

    def test_order_not_found(self, service, exchange):
        exchange.private_futures_delete_settle_price_orders_order_id.side_effect = (
            ccxt.OrderNotFound("gone")
        )

        with pytest.raises(OrderNotFoundError):
            service.cancel_price_order("1")
