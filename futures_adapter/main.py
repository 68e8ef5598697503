"""
Entry point wiring configuration, Gate.io client, caches and the trader.

Running the module prints an account snapshot (balance, open positions and
minimum opening amount for the requested symbols), which is the quickest
way to verify credentials and contract metadata before trading.
"""

import argparse
import logging
import sys
from typing import List, Optional

from futures_adapter.core.audit_logger import AuditLogger
from futures_adapter.core.exceptions import TradingSystemError
from futures_adapter.core.gate_service import GateServiceClient
from futures_adapter.core.metadata_cache import MetadataCache
from futures_adapter.execution.gate_trader import GateFuturesTrader
from futures_adapter.utils.config import ConfigManager
from futures_adapter.utils.logger import TradingLogger


def build_trader(
    config_manager: ConfigManager,
    client: Optional[GateServiceClient] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> GateFuturesTrader:
    """
    Build a GateFuturesTrader from configuration.

    Dependency order: client -> metadata cache -> trader (the trader builds
    its QuantityConverter on top of the cache).
    """
    api = config_manager.api_config
    trading = config_manager.trading_config

    client = client or GateServiceClient(
        api_key=api.api_key,
        api_secret=api.api_secret,
        settle=api.settle,
        timeout_ms=api.timeout_ms,
    )
    cache = MetadataCache(client)

    return GateFuturesTrader(
        client,
        cache,
        audit_logger=audit_logger,
        min_notional=trading.min_notional,
        default_leverage=trading.default_leverage,
        cross_margin=trading.cross_margin,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Print an account snapshot.

    Returns:
        Process exit code
    """
    parser = argparse.ArgumentParser(description="Gate.io futures account snapshot")
    parser.add_argument("symbols", nargs="*", help="Symbols to report (e.g. BTCUSDT)")
    parser.add_argument("--config-dir", default="configs", help="Configuration directory")
    args = parser.parse_args(argv)

    try:
        config_manager = ConfigManager(config_dir=args.config_dir)
    except TradingSystemError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    log_config = config_manager.logging_config
    TradingLogger({'log_level': log_config.log_level, 'log_dir': log_config.log_dir})
    logger = logging.getLogger(__name__)

    trader = build_trader(config_manager)

    try:
        balance = trader.get_balance()
        print(
            f"Balance: total={balance.total:.2f} available={balance.available:.2f} "
            f"unrealized_pnl={balance.unrealized_pnl:.2f} {balance.currency}"
        )

        for position in trader.get_positions():
            print(
                f"{position.symbol} {position.side}: {position.quantity} "
                f"@ {position.entry_price} (pnl {position.unrealized_pnl:.2f})"
            )

        for symbol in args.symbols:
            print(f"{symbol} min open amount: {trader.get_min_open_amount(symbol):.2f} USDT")

    except TradingSystemError as e:
        logger.error(f"Snapshot failed: {e}", exc_info=True)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
