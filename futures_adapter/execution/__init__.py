"""
Order execution: symbol normalization, quantity conversion and orchestration
"""

from .gate_trader import GateFuturesTrader
from .quantity import QuantityConverter, QuantityFormat, coin_to_contracts, contracts_to_coin
from .symbols import to_canonical_symbol, to_exchange_symbol
from .trigger_classifier import TriggerKind, classify

__all__ = [
    "GateFuturesTrader",
    "QuantityConverter",
    "QuantityFormat",
    "coin_to_contracts",
    "contracts_to_coin",
    "to_canonical_symbol",
    "to_exchange_symbol",
    "TriggerKind",
    "classify",
]
