"""
Trade feed session coordinator.

A TradeFeedSession owns one ledger store and one subscription controller and
wires them to a transport. It implements the transport listener callbacks
and the two external signals: instrument change and kill.

Transport → MessageDispatcher → (current instrument filter) → LedgerStore → listeners
"""

import threading
from collections.abc import Callable
from typing import Any, Optional

import structlog

from .config.defaults import DefaultConfig, get_default_config
from .data.dispatcher import MessageDispatcher
from .data.models import DispatchResult
from .errors import SubscriptionStateError, TransportError
from .ledger.store import Ledger, LedgerStore
from .subscription.controller import SubscriptionController
from .subscription.models import SubscriptionIntent, SubscriptionState
from .transport.base import FeedTransport, TransportListener
from .utils.time import Clock, now_ms

logger = structlog.get_logger(__name__)


class TradeFeedSession(TransportListener):
    """
    Recent-trades session for a single instrument at a time.

    All state changes happen inside transport callbacks or signal calls and
    run to completion under the session lock, so the ledger and the
    subscription state only ever have one writer at a time.
    """

    def __init__(
        self,
        instrument: Optional[str] = None,
        config: Optional[DefaultConfig] = None,
        transport: Optional[FeedTransport] = None,
        clock: Clock = now_ms
    ) -> None:
        self.logger = logger
        self.config = config or get_default_config()
        instrument = instrument or self.config.feed.initial_instrument

        self._lock = threading.RLock()
        self._transport: Optional[FeedTransport] = None

        self.ledger = LedgerStore(capacity=self.config.ledger.max_trades, instrument=instrument)
        self.controller = SubscriptionController(
            initial_instrument=instrument,
            feed=self.config.feed.trade_feed,
        )
        self.dispatcher = MessageDispatcher(
            self.ledger,
            self.controller,
            snapshot_feed=self.config.feed.snapshot_feed,
            trade_feed=self.config.feed.trade_feed,
            clock=clock,
        )

        if transport is not None:
            self.bind_transport(transport)

        self.logger.info("Trade feed session created", instrument=instrument,
                         max_trades=self.config.ledger.max_trades)

    # Read-only views for the display collaborator

    @property
    def trades(self) -> Ledger:
        return self.ledger.trades

    @property
    def trade_count(self) -> int:
        return self.ledger.trade_count

    @property
    def instrument(self) -> str:
        return self.controller.current_instrument

    @property
    def subscription_state(self) -> SubscriptionState:
        return self.controller.state

    @property
    def is_offline(self) -> bool:
        return self.controller.is_offline

    @property
    def is_killed(self) -> bool:
        return self.controller.is_killed

    def subscribe(self, listener: Callable[[Ledger], None]) -> Callable[[], None]:
        """Register a ledger change listener; returns its unsubscribe callable."""
        return self.ledger.subscribe(listener)

    def get_stats(self) -> dict[str, Any]:
        stats = self.dispatcher.metrics.get_stats()
        stats.update(
            instrument=self.controller.current_instrument,
            phase=self.controller.phase.value,
            ledger_size=self.ledger.trade_count,
            offline=self.controller.is_offline,
        )
        return stats

    # Transport wiring

    def bind_transport(self, transport: FeedTransport) -> None:
        """Attach the transport whose send primitive carries subscription intents."""
        self._transport = transport
        self.controller.bind_sender(self._send_intent)

    def _send_intent(self, intent: SubscriptionIntent) -> None:
        if self._transport is None:
            raise TransportError("No transport bound", operation="send")
        self._transport.send(intent.to_json())

    # TransportListener callbacks

    def on_open(self) -> None:
        with self._lock:
            self.controller.on_connection_open()

    def on_message(self, raw_data: str) -> Optional[DispatchResult]:
        with self._lock:
            if self.controller.is_killed:
                return None
            return self.dispatcher.dispatch(raw_data)

    def on_close(self, will_retry: bool) -> None:
        with self._lock:
            self.controller.on_connection_close(will_retry=will_retry)
            if self.controller.is_offline:
                self.logger.warning("Trade feed offline", instrument=self.controller.current_instrument,
                                    killed=self.controller.is_killed)

    def should_reconnect(self) -> bool:
        return not self.controller.is_killed

    # External signals

    def change_instrument(self, instrument: str) -> bool:
        """
        Switch the tape to another instrument.

        The ledger is emptied before the new subscribe intent goes out, so no
        trade for the previous instrument survives the switch.

        Returns:
            True if the switch happened, False for a no-op or rejected request
        """
        with self._lock:
            if instrument == self.controller.current_instrument:
                return False

            if self.controller.is_killed:
                self.logger.warning("Instrument change ignored after kill signal",
                                    instrument=instrument)
                return False

            if not isinstance(instrument, str) or not instrument:
                self.logger.error("Instrument change rejected", instrument=instrument)
                return False

            previous = self.controller.current_instrument
            self.ledger.reset(instrument)

            try:
                self.controller.request_subscribe(instrument)
            except SubscriptionStateError as e:
                self.logger.error("Instrument change rejected", instrument=instrument,
                                  error=str(e))
                return False

            self.logger.info("Instrument changed", previous=previous, instrument=instrument)
            return True

    def raise_kill_signal(self) -> None:
        """
        Stop all stream activity for good.

        Idempotent: a second call does nothing.
        """
        with self._lock:
            if not self.controller.kill():
                return
            transport = self._transport

        self.logger.info("Kill signal raised; closing feed",
                         instrument=self.controller.current_instrument)
        connected = transport is not None and transport.is_connected
        if transport is not None:
            transport.close()
        if not connected:
            # No close callback will arrive for a connection that never opened
            with self._lock:
                self.controller.on_connection_close(will_retry=False)
