"""Metadata cache for account balance, open positions and contract specs.

This module provides MetadataCache, which keeps three independent TTL
snapshots fetched from Gate.io so that order flows do not hit the REST API
on every decision.

Key features:
- One TTLCache per resource, each with its own lock and TTL
  (15s balance/positions, 5min contract table)
- The lock is only held to read or swap a snapshot, never across a network
  call, so a fresh read never waits on a refresh in progress
- Concurrent misses may each refresh; refreshes are idempotent reads and the
  last writer wins
- Contract multipliers convert raw position contracts into coin quantities
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import ValidationError as WireValidationError

from futures_adapter.core.exceptions import OrderExecutionError, SymbolNotFound
from futures_adapter.execution.quantity import contracts_to_coin
from futures_adapter.execution.symbols import to_canonical_symbol, to_exchange_symbol
from futures_adapter.models.account import Balance
from futures_adapter.models.position import LONG, SHORT, Position
from futures_adapter.models.symbol_spec import SymbolSpec
from futures_adapter.models.wire import GateAccount, GateContract, GatePosition

T = TypeVar("T")

BALANCE_TTL = 15.0
POSITIONS_TTL = 15.0
SYMBOL_SPEC_TTL = 300.0


@dataclass
class CacheEntry(Generic[T]):
    """Cached value with its capture timestamp."""
    value: T
    timestamp: float

    def is_valid(self, now: float, ttl: float) -> bool:
        return now - self.timestamp < ttl


class TTLCache(Generic[T]):
    """Single-value cache guarded by its own lock.

    Attributes:
        ttl: Time-to-live in seconds, fixed at construction
        refresh_count: Number of loader invocations (diagnostics)
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._entry: Optional[CacheEntry[T]] = None
        self._lock = threading.Lock()
        self.refresh_count = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def peek(self) -> Optional[CacheEntry[T]]:
        """Return the fresh entry, or None when missing or expired."""
        with self._lock:
            entry = self._entry
        if entry is not None and entry.is_valid(self._clock(), self._ttl):
            return entry
        return None

    def get(self, loader: Callable[[], T]) -> T:
        """
        Return the cached value, calling ``loader`` when stale or missing.

        The loader runs outside the lock. A loader failure leaves the
        previous entry untouched and propagates.
        """
        entry = self.peek()
        if entry is not None:
            return entry.value
        return self.refresh(loader)

    def refresh(self, loader: Callable[[], T]) -> T:
        """
        Call ``loader`` regardless of freshness and swap in its result.

        The current entry stays readable while the loader runs.
        """
        value = loader()
        with self._lock:
            self.refresh_count += 1
            self._entry = CacheEntry(value=value, timestamp=self._clock())
        return value

    def age_of(self, entry: CacheEntry[T]) -> float:
        return self._clock() - entry.timestamp

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None


class MetadataCache:
    """Time-boxed cache of Gate.io account and contract metadata.

    Attributes:
        _client: GateServiceClient used for refreshes
        _balance: Balance snapshot cache
        _positions: Open positions snapshot cache
        _symbol_specs: Whole contract table cache keyed by exchange symbol
    """

    def __init__(self, client, clock: Callable[[], float] = time.monotonic):
        self._client = client
        self._balance: TTLCache[Balance] = TTLCache(BALANCE_TTL, clock)
        self._positions: TTLCache[List[Position]] = TTLCache(POSITIONS_TTL, clock)
        self._symbol_specs: TTLCache[Dict[str, SymbolSpec]] = TTLCache(SYMBOL_SPEC_TTL, clock)
        self.logger = logging.getLogger(__name__)

    # Balance

    def get_balance(self) -> Balance:
        """Return the account balance, refreshing after 15s."""
        entry = self._balance.peek()
        if entry is not None:
            self.logger.debug(f"Using cached balance ({self._balance.age_of(entry):.1f}s old)")
            return entry.value
        return self._balance.get(self._load_balance)

    def _load_balance(self) -> Balance:
        self.logger.info("Balance cache expired, querying Gate.io account")
        raw = self._client.list_accounts()
        balance = GateAccount.model_validate(raw or {}).to_balance()
        self.logger.info(
            f"Gate.io balance: total={balance.total:.2f}, "
            f"available={balance.available:.2f}, unrealized_pnl={balance.unrealized_pnl:.2f}"
        )
        return balance

    def invalidate_balance(self) -> None:
        self._balance.invalidate()

    # Positions

    def get_positions(self) -> List[Position]:
        """Return open positions in coin units, refreshing after 15s."""
        entry = self._positions.peek()
        if entry is not None:
            self.logger.debug(f"Using cached positions ({self._positions.age_of(entry):.1f}s old)")
            return list(entry.value)
        return list(self._positions.get(self._load_positions))

    def get_position(self, symbol: str, side: str) -> Optional[Position]:
        """Return the open position for symbol/side, or None."""
        canonical = to_canonical_symbol(symbol)
        for position in self.get_positions():
            if position.symbol == canonical and position.side == side:
                return position
        return None

    def _load_positions(self) -> List[Position]:
        self.logger.info("Positions cache expired, querying Gate.io positions")
        positions: List[Position] = []

        for raw in self._client.list_positions():
            try:
                wire = GatePosition.model_validate(raw)
            except WireValidationError as e:
                self.logger.warning(f"Skipping malformed position record: {e}")
                continue

            if wire.size == 0:
                continue

            symbol = to_canonical_symbol(wire.contract)
            contracts = abs(wire.size)
            coin_quantity = contracts
            try:
                spec = self.get_symbol_spec(wire.contract)
                coin_quantity = contracts_to_coin(contracts, spec.multiplier)
            except (SymbolNotFound, OrderExecutionError) as e:
                self.logger.warning(
                    f"{symbol}: contract multiplier unavailable ({e}), "
                    f"reporting {contracts} contracts as coin quantity"
                )

            positions.append(Position(
                symbol=symbol,
                side=LONG if wire.size > 0 else SHORT,
                quantity=coin_quantity,
                entry_price=wire.entry_price or 0.0,
                mark_price=wire.mark_price or 0.0,
                unrealized_pnl=wire.unrealised_pnl or 0.0,
                leverage=wire.leverage or 0.0,
                liquidation_price=wire.liq_price,
                raw_contracts=wire.size,
            ))

        return positions

    def invalidate_positions(self) -> None:
        """Called after order execution so the next read sees the fill."""
        self._positions.invalidate()
        self.logger.debug("Positions cache invalidated")

    # Contract specifications

    def get_symbol_spec(self, symbol: str) -> SymbolSpec:
        """
        Return the contract spec for a symbol in either spelling.

        A miss or expired table triggers one bulk fetch that replaces the
        whole table.

        Raises:
            SymbolNotFound: Symbol absent from the exchange table after refresh
            UpstreamUnavailable: Contract table could not be fetched
        """
        exchange_symbol = to_exchange_symbol(symbol)

        entry = self._symbol_specs.peek()
        if entry is not None and exchange_symbol in entry.value:
            return entry.value[exchange_symbol]

        # A symbol missing from a fresh table is still retried once
        table = self._symbol_specs.refresh(self._load_symbol_specs)
        if exchange_symbol in table:
            return table[exchange_symbol]

        raise SymbolNotFound(symbol, exchange_symbol)

    def _load_symbol_specs(self) -> Dict[str, SymbolSpec]:
        self.logger.info("Contract table expired, querying Gate.io contracts")
        table: Dict[str, SymbolSpec] = {}
        for raw in self._client.list_contracts():
            try:
                contract = GateContract.model_validate(raw)
            except WireValidationError as e:
                self.logger.warning(f"Skipping malformed contract record: {e}")
                continue
            table[contract.name] = contract.to_symbol_spec()
        self.logger.info(f"Contract table cached: {len(table)} contracts")
        return table
