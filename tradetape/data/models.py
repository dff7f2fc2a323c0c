"""
Canonical data models for parsed trade feed payloads.

This module defines immutable data structures that represent clean, validated
trade data after parsing from raw feed messages.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class TradeSide(str, Enum):
    """Aggressor side of an execution."""
    BUY = "buy"
    SELL = "sell"


TradeIdentity = tuple[int, Decimal, Decimal, TradeSide]


@dataclass(frozen=True)
class TradeRecord:
    """Single trade execution as shown on the tape."""
    price: Decimal
    quantity: Decimal
    side: TradeSide
    observed_at: int            # Epoch ms, receipt time when the feed has none

    @property
    def identity(self) -> TradeIdentity:
        """Composite used to detect duplicate deliveries of the same event."""
        return (self.observed_at, self.price, self.quantity, self.side)


class MessageKind(str, Enum):
    """Classification of an inbound feed payload."""
    SNAPSHOT = "snapshot"
    TRADE = "trade"
    IGNORED = "ignored"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ClassifiedMessage:
    """Result of classifying one raw payload."""
    kind: MessageKind
    trades: tuple[TradeRecord, ...] = ()
    instrument: Optional[str] = None
    feed: Optional[str] = None
    event: Optional[str] = None
    error: Optional[str] = None
    skipped_records: int = 0


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of dispatching one raw payload into the ledger."""
    kind: MessageKind
    accepted: bool
    merged_count: int = 0
    reason: Optional[str] = None
    skipped_records: int = 0
