"""
Unit tests for coin quantity <-> contract conversion and order size guards
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from futures_adapter.core.exceptions import (
    AboveMaximumSize,
    BelowMinimumNotional,
    BelowMinimumSize,
    SymbolNotFound,
    UpstreamUnavailable,
    ZeroAfterRounding,
)
from futures_adapter.execution.quantity import (
    QuantityConverter,
    coin_to_contracts,
    contracts_to_coin,
)
from futures_adapter.models.symbol_spec import SymbolSpec

BTC_SPEC = SymbolSpec(
    name="BTC_USDT", multiplier=0.0001, min_contract_size=1, rounding_increment="0.1"
)


def make_converter(spec=None, price=50000.0, error=None):
    cache = MagicMock()
    if error is not None:
        cache.get_symbol_spec.side_effect = error
    else:
        cache.get_symbol_spec.return_value = spec
    price_fn = MagicMock(return_value=price)
    return QuantityConverter(cache, price_fn), price_fn


class TestConversionFunctions:
    """coin_to_contracts / contracts_to_coin"""

    def test_coin_to_contracts_exact_decimal(self):
        assert coin_to_contracts(0.002, 0.0001) == Decimal("20")

    def test_contracts_to_coin(self):
        assert contracts_to_coin(20, 0.0001) == 0.002

    @pytest.mark.parametrize("coin,multiplier", [
        (0.002, 0.0001),
        (1.5, 0.01),
        (123.456, 1.0),
        (0.3, 0.1),
    ])
    def test_inverse(self, coin, multiplier):
        contracts = coin_to_contracts(coin, multiplier)
        assert contracts_to_coin(float(contracts), multiplier) == pytest.approx(coin, rel=1e-12)



class TestSymbolConversion:
    """QuantityConverter.resolve_multiplier / coin_to_contracts"""

    def test_uses_contract_multiplier(self, caplog):
        converter, _ = make_converter(BTC_SPEC)

        with caplog.at_level("WARNING"):
            assert converter.resolve_multiplier("BTCUSDT") == 0.0001
            assert converter.coin_to_contracts("BTCUSDT", 0.002) == Decimal("20")

        assert caplog.text == ""

    def test_defaulted_multiplier_warns_and_uses_one(self, caplog):
        spec = SymbolSpec(name="XYZ_USDT", multiplier=1.0, multiplier_defaulted=True)
        converter, _ = make_converter(spec)

        with caplog.at_level("WARNING"):
            contracts = converter.coin_to_contracts("XYZUSDT", 3.5)

        assert contracts == Decimal("3.5")
        assert "XYZUSDT: quanto_multiplier unusable, assuming 1.0" in caplog.text

    def test_unknown_symbol_raises(self):
        converter, _ = make_converter(error=SymbolNotFound("FOOUSDT", "FOO_USDT"))

        with pytest.raises(SymbolNotFound):
            converter.coin_to_contracts("FOOUSDT", 1.0)

class TestFormatQuantity:
    """QuantityConverter.format_quantity"""

    def test_btc_quantity_formats_to_contracts(self):
        converter, _ = make_converter(BTC_SPEC)

        qty = converter.format_quantity("BTCUSDT", 0.002)

        assert qty.formatted == "20.0"
        assert qty.contracts == Decimal("20.0")
        assert qty.contract_count == 20
        assert qty.precision == 1
        assert qty.diagnostics == ()

    def test_below_minimum_size(self):
        """min 1 contract, multiplier 0.0001: 0.00005 coin is half a contract"""
        converter, _ = make_converter(BTC_SPEC, price=50000.0)

        with pytest.raises(BelowMinimumSize) as exc_info:
            converter.format_quantity("BTCUSDT", 0.00005)

        error = exc_info.value
        assert error.min_contract_size == 1
        assert error.min_coin_quantity == pytest.approx(0.0001)
        assert error.min_notional == pytest.approx(5.0)
        assert "5.00 USDT" in str(error)

    def test_exactly_minimum_size_passes(self):
        converter, _ = make_converter(BTC_SPEC)

        qty = converter.format_quantity("BTCUSDT", 0.0001)

        assert qty.formatted == "1.0"

    def test_below_minimum_without_price(self):
        """Guidance omits the notional when the price cannot be fetched"""
        converter, price_fn = make_converter(BTC_SPEC)
        price_fn.side_effect = UpstreamUnavailable("list_tickers", "timeout")

        with pytest.raises(BelowMinimumSize) as exc_info:
            converter.format_quantity("BTCUSDT", 0.00005)

        assert exc_info.value.min_notional is None
        assert "USDT" not in str(exc_info.value).split("Minimum contracts")[1]

    def test_zero_after_rounding(self):
        """increment '0.01', 0.004 contracts rounds to 0.00"""
        spec = SymbolSpec(name="XYZ_USDT", multiplier=1.0, rounding_increment="0.01")
        converter, _ = make_converter(spec, price=2.0)

        with pytest.raises(ZeroAfterRounding) as exc_info:
            converter.format_quantity("XYZUSDT", 0.004)

        error = exc_info.value
        assert error.precision == 2
        assert error.min_coin_quantity == pytest.approx(0.01)
        assert error.min_notional == pytest.approx(0.02)

    def test_rounds_half_up(self):
        spec = SymbolSpec(name="XYZ_USDT", multiplier=1.0, rounding_increment="0.01")
        converter, _ = make_converter(spec)

        assert converter.format_quantity("XYZUSDT", 0.005).formatted == "0.01"
        assert converter.format_quantity("XYZUSDT", 1.234).formatted == "1.23"

    def test_integer_increment_means_zero_decimals(self):
        spec = SymbolSpec(name="XYZ_USDT", multiplier=0.001, rounding_increment="1")
        converter, _ = make_converter(spec)

        assert converter.format_quantity("XYZUSDT", 0.05).formatted == "50"

    def test_missing_increment_defaults_to_three_decimals(self):
        spec = SymbolSpec(name="XYZ_USDT", multiplier=1.0)
        converter, _ = make_converter(spec)

        qty = converter.format_quantity("XYZUSDT", 1.23456)

        assert qty.formatted == "1.235"
        assert "precision_defaulted" in qty.diagnostics

    def test_defaulted_multiplier_reported(self, caplog):
        spec = SymbolSpec(name="XYZ_USDT", multiplier=1.0, rounding_increment="1",
                          multiplier_defaulted=True)
        converter, _ = make_converter(spec)

        with caplog.at_level("WARNING"):
            qty = converter.format_quantity("XYZUSDT", 3)

        assert qty.formatted == "3"
        assert "multiplier_defaulted" in qty.diagnostics
        assert "quanto_multiplier unusable" in caplog.text

    def test_spec_unavailable_falls_back_to_raw_quantity(self, caplog):
        converter, _ = make_converter(error=SymbolNotFound("FOOUSDT", "FOO_USDT"))

        with caplog.at_level("WARNING"):
            qty = converter.format_quantity("FOOUSDT", 0.5)

        assert qty.formatted == "0.500"
        assert qty.precision == 3
        assert qty.diagnostics == ("spec_unavailable",)
        assert "contract spec unavailable" in caplog.text

    def test_spec_upstream_failure_falls_back(self):
        converter, _ = make_converter(error=UpstreamUnavailable("list_contracts", "down"))

        assert converter.format_quantity("BTCUSDT", 2).formatted == "2.000"

    def test_above_maximum_size(self):
        spec = SymbolSpec(name="BTC_USDT", multiplier=0.0001, min_contract_size=1,
                          rounding_increment="0.1", max_contract_size=100)
        converter, _ = make_converter(spec)

        assert converter.format_quantity("BTCUSDT", 0.01).formatted == "100.0"
        with pytest.raises(AboveMaximumSize) as exc_info:
            converter.format_quantity("BTCUSDT", 0.0101)

        assert exc_info.value.max_coin_quantity == pytest.approx(0.01)


class TestContractCount:
    """QuantityConverter.contract_count"""

    def test_whole_contracts(self):
        converter, _ = make_converter(BTC_SPEC)
        qty = converter.format_quantity("BTCUSDT", 0.00209)

        assert qty.formatted == "20.9"
        assert converter.contract_count("BTCUSDT", qty) == 20

    def test_fraction_of_one_contract_carries_guidance(self):
        spec = SymbolSpec(name="BTC_USDT", multiplier=0.0001, rounding_increment="0.1")
        converter, _ = make_converter(spec, price=50000.0)
        qty = converter.format_quantity("BTCUSDT", 0.00005)

        with pytest.raises(ZeroAfterRounding) as exc_info:
            converter.contract_count("BTCUSDT", qty)

        error = exc_info.value
        assert error.min_coin_quantity == pytest.approx(0.0001)
        assert error.min_notional == pytest.approx(5.0)
        assert "about 5.00 USDT" in str(error)

    def test_spec_unavailable_uses_raw_contracts(self):
        converter, _ = make_converter(error=SymbolNotFound("FOOUSDT", "FOO_USDT"), price=2.0)
        qty = converter.format_quantity("FOOUSDT", 0.5)

        with pytest.raises(ZeroAfterRounding) as exc_info:
            converter.contract_count("FOOUSDT", qty)

        assert exc_info.value.min_coin_quantity == 1.0
        assert exc_info.value.min_notional == 2.0


class TestMinNotional:
    """check_min_notional / get_min_open_amount"""

    def test_check_min_notional_passes(self):
        converter, _ = make_converter(BTC_SPEC, price=50000.0)

        assert converter.check_min_notional("BTCUSDT", 0.001) == pytest.approx(50.0)

    def test_check_min_notional_fails(self):
        converter, _ = make_converter(BTC_SPEC, price=50000.0)

        with pytest.raises(BelowMinimumNotional) as exc_info:
            converter.check_min_notional("BTCUSDT", 0.0001)

        assert exc_info.value.notional == pytest.approx(5.0)
        assert exc_info.value.min_notional == 10.0

    def test_configurable_min_notional(self):
        cache = MagicMock()
        converter = QuantityConverter(cache, lambda symbol: 50000.0, min_notional=100.0)

        with pytest.raises(BelowMinimumNotional):
            converter.check_min_notional("BTCUSDT", 0.001)

    def test_min_open_amount_floored_at_min_notional(self):
        """1 BTC contract at 50000 is 5 USDT, below the 10 USDT floor"""
        converter, _ = make_converter(BTC_SPEC, price=50000.0)

        assert converter.get_min_open_amount("BTCUSDT") == pytest.approx(11.0)

    def test_min_open_amount_uses_contract_minimum(self):
        spec = SymbolSpec(name="ETH_USDT", multiplier=0.01, min_contract_size=10,
                          rounding_increment="1")
        converter, _ = make_converter(spec, price=3000.0)

        # 10 contracts * 0.01 ETH * 3000 = 300 USDT
        assert converter.get_min_open_amount("ETHUSDT") == pytest.approx(330.0)

    def test_min_open_amount_uses_precision_without_minimum(self):
        spec = SymbolSpec(name="XYZ_USDT", multiplier=1.0, rounding_increment="0.1")
        converter, _ = make_converter(spec, price=500.0)

        # 0.1 contracts * 1.0 * 500 = 50 USDT
        assert converter.get_min_open_amount("XYZUSDT") == pytest.approx(55.0)

    def test_min_open_amount_without_spec(self):
        converter, _ = make_converter(error=SymbolNotFound("FOOUSDT"))

        assert converter.get_min_open_amount("FOOUSDT") == 12.0
