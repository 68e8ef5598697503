"""
Symbol spelling conversion between canonical (BTCUSDT) and Gate.io (BTC_USDT).
"""

SEPARATOR = "_"

# Longest first so USDT wins over USD
QUOTE_SUFFIXES = sorted(("USDT", "USDC", "BUSD", "TUSD", "DAI", "USD"), key=len, reverse=True)

FALLBACK_QUOTE_LENGTH = 4


def to_exchange_symbol(symbol: str) -> str:
    """
    Convert a canonical symbol to Gate.io spelling.

    Example:
        >>> to_exchange_symbol('BTCUSDT')
        'BTC_USDT'
        >>> to_exchange_symbol('ETH_USDT')
        'ETH_USDT'
        >>> to_exchange_symbol('PEPEXYZW')   # unknown quote: split 4 from the end
        'PEPE_XYZW'
    """
    if SEPARATOR in symbol:
        return symbol

    for suffix in QUOTE_SUFFIXES:
        if symbol.endswith(suffix) and len(symbol) > len(suffix):
            return f"{symbol[:-len(suffix)]}{SEPARATOR}{suffix}"

    if len(symbol) > FALLBACK_QUOTE_LENGTH:
        cut = len(symbol) - FALLBACK_QUOTE_LENGTH
        return f"{symbol[:cut]}{SEPARATOR}{symbol[cut:]}"

    return symbol


def to_canonical_symbol(symbol: str) -> str:
    """Strip the Gate.io separator (no-op for canonical symbols)."""
    return symbol.replace(SEPARATOR, "")
