"""
Ledger store module.

Holds the bounded, newest-first, deduplicated trade tape for the active
instrument and the pure merge that maintains it.
"""
from .store import MAX_TRADES, LedgerStore, merge_trades

__all__ = ["MAX_TRADES", "LedgerStore", "merge_trades"]
