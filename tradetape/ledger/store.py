"""
Bounded trade ledger and its merge algorithm.

The ledger is an immutable tuple of TradeRecord ordered newest first. Every
change goes through merge_trades, which keeps three properties: no more than
``capacity`` records, observed_at non-increasing front to back, and no two
records with the same identity composite.
"""

from collections.abc import Callable, Iterable
from typing import Optional

import structlog

from ..data.models import TradeRecord

logger = structlog.get_logger(__name__)

MAX_TRADES = 50

Ledger = tuple[TradeRecord, ...]
LedgerListener = Callable[[Ledger], None]


def merge_trades(
    existing: Iterable[TradeRecord],
    incoming: Iterable[TradeRecord],
    capacity: int = MAX_TRADES
) -> Ledger:
    """
    Merge a batch of incoming trades into an existing ledger.

    Incoming records are placed ahead of existing ones, duplicates are
    removed keeping the first occurrence, the result is stably sorted by
    observed_at descending and cut to ``capacity``. Records sharing a
    timestamp keep their concatenated order, so incoming wins ties.

    Args:
        existing: Current ledger
        incoming: New batch, any order, may contain duplicates
        capacity: Maximum number of records to keep

    Returns:
        New ledger tuple; the arguments are not modified
    """
    seen = set()
    unique = []

    for record in (*incoming, *existing):
        identity = record.identity
        if identity in seen:
            continue
        seen.add(identity)
        unique.append(record)

    # sorted() is stable
    unique = sorted(unique, key=lambda record: record.observed_at, reverse=True)
    return tuple(unique[:capacity])


def empty_ledger() -> Ledger:
    """Empty ledger, the state after an instrument change."""
    return ()


class LedgerStore:
    """
    Observable holder of the current ledger.

    Only the owning session writes to the store. Readers get the immutable
    tuple and may register listeners that are called whenever it changes.
    """

    def __init__(self, capacity: int = MAX_TRADES, instrument: Optional[str] = None):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.logger = logger
        self.capacity = capacity
        self.instrument = instrument
        self._trades: Ledger = empty_ledger()
        self._listeners: list[LedgerListener] = []

    @property
    def trades(self) -> Ledger:
        """Current ledger, newest first."""
        return self._trades

    @property
    def trade_count(self) -> int:
        return len(self._trades)

    def add_trades(self, incoming: Iterable[TradeRecord]) -> Ledger:
        """Merge a batch into the ledger and notify listeners if it changed."""
        merged = merge_trades(self._trades, incoming, self.capacity)
        self._replace(merged)
        return merged

    def reset(self, instrument: Optional[str] = None) -> None:
        """Empty the ledger when switching to another instrument."""
        previous = len(self._trades)
        self.instrument = instrument
        self._replace(empty_ledger())
        self.logger.info("Ledger reset", instrument=instrument, cleared=previous)

    def clear(self) -> None:
        """Empty the ledger while keeping the instrument."""
        self._replace(empty_ledger())

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _replace(self, trades: Ledger) -> None:
        if trades == self._trades:
            return
        self._trades = trades
        for listener in list(self._listeners):
            try:
                listener(trades)
            except Exception:
                self.logger.exception("Ledger listener failed", listener=repr(listener))
