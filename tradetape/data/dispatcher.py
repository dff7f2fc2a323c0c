"""
Message dispatcher routing classified feed payloads into the ledger.

The dispatcher is handed the session's ledger store and subscription
controller explicitly. Snapshots are merged unconditionally; incremental
trades are merged only when their product_id matches the controller's
current instrument, which keeps a late trade for a just-unsubscribed
instrument out of the new ledger.
"""

import time
from typing import Any, Optional

import structlog

from ..errors import DataQualityError, ForeignInstrumentError, MalformedDataError
from ..ledger.store import LedgerStore
from ..subscription.controller import SubscriptionController
from ..utils.time import Clock, now_ms
from .models import ClassifiedMessage, DispatchResult, MessageKind
from .parsers import classify_payload

logger = structlog.get_logger(__name__)


class DispatchMetrics:
    """Simple counters for dispatched messages."""

    def __init__(self):
        self.messages_received = 0
        self.snapshots_merged = 0
        self.trades_merged = 0
        self.messages_ignored = 0
        self.malformed_messages = 0
        self.foreign_dropped = 0
        self.records_merged = 0
        self.records_skipped = 0
        self.total_dispatch_time = 0.0
        self.last_malformed_time: Optional[float] = None

    def record_start(self) -> float:
        self.messages_received += 1
        return time.perf_counter()

    def record_finish(self, start_time: float, result: DispatchResult) -> None:
        self.total_dispatch_time += time.perf_counter() - start_time
        self.records_skipped += result.skipped_records

        if result.kind == MessageKind.MALFORMED:
            self.malformed_messages += 1
            self.last_malformed_time = time.time()
        elif result.kind == MessageKind.IGNORED:
            self.messages_ignored += 1
        elif not result.accepted:
            self.foreign_dropped += 1
        elif result.kind == MessageKind.SNAPSHOT:
            self.snapshots_merged += 1
            self.records_merged += result.merged_count
        else:
            self.trades_merged += 1
            self.records_merged += result.merged_count

    def get_stats(self) -> dict[str, Any]:
        """Get current metrics."""
        avg_dispatch_time = self.total_dispatch_time / max(self.messages_received, 1)

        return {
            "messages_received": self.messages_received,
            "snapshots_merged": self.snapshots_merged,
            "trades_merged": self.trades_merged,
            "messages_ignored": self.messages_ignored,
            "malformed_messages": self.malformed_messages,
            "foreign_dropped": self.foreign_dropped,
            "records_merged": self.records_merged,
            "records_skipped": self.records_skipped,
            "avg_dispatch_time_ms": avg_dispatch_time * 1000,
            "last_malformed_time": self.last_malformed_time,
        }


class MessageDispatcher:
    """Classifies raw feed text and merges accepted trades into the ledger."""

    def __init__(
        self,
        ledger: LedgerStore,
        controller: SubscriptionController,
        *,
        snapshot_feed: str = "trade_snapshot",
        trade_feed: str = "trade",
        clock: Clock = now_ms
    ):
        self.logger = logger
        self.ledger = ledger
        self.controller = controller
        self.snapshot_feed = snapshot_feed
        self.trade_feed = trade_feed
        self.clock = clock
        self.metrics = DispatchMetrics()

    def dispatch(self, raw_data: Any) -> DispatchResult:
        """
        Handle one raw payload. Never raises for bad input.

        Args:
            raw_data: Raw text message from the transport

        Returns:
            DispatchResult describing what happened
        """
        start_time = self.metrics.record_start()

        message = classify_payload(
            raw_data,
            snapshot_feed=self.snapshot_feed,
            trade_feed=self.trade_feed,
            clock=self.clock,
        )

        try:
            result = self._route(message)
        except ForeignInstrumentError as e:
            self.logger.debug(
                "Dropped trade for foreign instrument",
                instrument=e.instrument,
                current_instrument=e.expected_instrument,
            )
            result = DispatchResult(kind=message.kind, accepted=False, reason=str(e))
        except MalformedDataError as e:
            self.logger.warning(
                "Dropped malformed payload",
                error=str(e),
                feed=message.feed,
                raw_data=_truncate(raw_data),
            )
            result = DispatchResult(kind=MessageKind.MALFORMED, accepted=False, reason=str(e),
                                    skipped_records=message.skipped_records)
        except DataQualityError as e:
            self.logger.warning("Dropped payload", error=str(e), feed=message.feed)
            result = DispatchResult(kind=message.kind, accepted=False, reason=str(e))

        self.metrics.record_finish(start_time, result)
        return result

    def _route(self, message: ClassifiedMessage) -> DispatchResult:
        if message.kind == MessageKind.MALFORMED:
            raise MalformedDataError(message.error or "Malformed payload",
                                     expected_format="feed message")

        if message.kind == MessageKind.SNAPSHOT:
            self.ledger.add_trades(message.trades)
            self.logger.info(
                "Merged trade snapshot",
                instrument=message.instrument or self.controller.current_instrument,
                trades=len(message.trades),
                skipped=message.skipped_records,
                ledger_size=self.ledger.trade_count,
            )
            return DispatchResult(
                kind=MessageKind.SNAPSHOT,
                accepted=True,
                merged_count=len(message.trades),
                skipped_records=message.skipped_records,
            )

        if message.kind == MessageKind.TRADE:
            if not self.controller.accepts(message.instrument):
                raise ForeignInstrumentError(
                    f"Trade for {message.instrument!r} while subscribed to "
                    f"{self.controller.current_instrument!r}",
                    instrument=message.instrument,
                    expected_instrument=self.controller.current_instrument,
                )
            self.ledger.add_trades(message.trades)
            return DispatchResult(kind=MessageKind.TRADE, accepted=True, merged_count=1)

        self.logger.debug("Ignored feed message", feed=message.feed, feed_event=message.event)
        return DispatchResult(kind=MessageKind.IGNORED, accepted=False, reason="not a trade message")


def _truncate(raw_data: Any, limit: int = 200) -> str:
    text = raw_data if isinstance(raw_data, str) else repr(raw_data)
    return text[:limit]
