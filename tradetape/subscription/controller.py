"""
Subscription controller for the trade feed.

The upstream protocol never acknowledges subscribe or unsubscribe, so the
controller tracks the active instrument optimistically: an instrument counts
as active as soon as its subscribe intent has been handed to the transport.
An unsubscribe is only ever sent for the instrument that is active on the
current connection.
"""

from collections.abc import Callable
from typing import Optional

import structlog

from ..errors import SubscriptionStateError, TransportError
from ..logging.config import get_subscription_logger, log_subscription_transition
from .models import IntentEvent, SubscriptionIntent, SubscriptionPhase, SubscriptionState

logger = structlog.get_logger(__name__)
subscription_logger = get_subscription_logger(__name__)

IntentSender = Callable[[SubscriptionIntent], None]


class SubscriptionController:
    """Tracks which instrument is subscribed and emits intents to change it."""

    def __init__(self, initial_instrument: str, send: Optional[IntentSender] = None,
                 feed: str = "trade"):
        if not initial_instrument:
            raise SubscriptionStateError("initial instrument is required",
                                         attempted_transition="create")
        self.logger = logger
        self.subscription_logger = subscription_logger
        self.feed = feed
        self._send = send
        self._state = SubscriptionState(current_instrument=initial_instrument)

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def current_instrument(self) -> str:
        return self._state.current_instrument

    @property
    def phase(self) -> SubscriptionPhase:
        return self._state.phase

    @property
    def is_offline(self) -> bool:
        return self._state.offline

    @property
    def is_killed(self) -> bool:
        return self._state.killed

    def bind_sender(self, send: IntentSender) -> None:
        """Attach the transport send primitive."""
        self._send = send

    def accepts(self, instrument: Optional[str]) -> bool:
        """True when a message tagged with ``instrument`` belongs to the current subscription."""
        return instrument is not None and instrument == self._state.current_instrument

    def request_subscribe(self, instrument: str) -> None:
        """
        Redirect the subscription to ``instrument``.

        On an open connection the previously active instrument is
        unsubscribed before the new one is subscribed. On a closed connection
        the instrument is remembered and subscribed on the next open.

        Raises:
            SubscriptionStateError: If instrument is empty or the session was killed
        """
        if not instrument or not isinstance(instrument, str):
            raise SubscriptionStateError(
                f"Invalid instrument: {instrument!r}",
                current_state=self._state.phase.value,
                attempted_transition="request_subscribe",
            )

        if self._state.killed:
            raise SubscriptionStateError(
                "Feed has been killed; no further subscriptions",
                current_state=self._state.phase.value,
                attempted_transition="request_subscribe",
            )

        if not self._state.connection_open:
            self._state = self._state.evolve(current_instrument=instrument,
                                             pending_instrument=instrument)
            self.logger.info("Subscription deferred until connection opens", instrument=instrument)
            return

        if instrument == self._state.active_instrument:
            self.logger.debug("Instrument already subscribed", instrument=instrument)
            self._state = self._state.evolve(current_instrument=instrument)
            return

        previous = self._state.active_instrument
        if previous is not None:
            if not self._emit(IntentEvent.UNSUBSCRIBE, previous):
                # previous stays subscribed server-side; the next open subscribes only instrument
                self._state = self._state.evolve(current_instrument=instrument,
                                                 pending_instrument=instrument)
                self.logger.warning("Subscription switch deferred until reconnect",
                                    active_instrument=previous, instrument=instrument)
                return
            self._state = self._state.evolve(active_instrument=None)

        self._state = self._state.evolve(current_instrument=instrument)
        self._subscribe(instrument, trigger="instrument_change")

    def on_connection_open(self) -> None:
        """
        Subscribe on a fresh connection.

        A new connection carries no server-side subscription, so only a
        subscribe is sent, for the pending instrument if any, otherwise the
        current one.
        """
        if self._state.killed:
            self.logger.info("Ignoring connection open after kill signal")
            return

        instrument = self._state.pending_instrument or self._state.current_instrument
        self._state = self._state.evolve(
            connection_open=True,
            active_instrument=None,
            current_instrument=instrument,
            offline=False,
        )
        self._subscribe(instrument, trigger="connection_open")

    def on_connection_close(self, will_retry: bool = True) -> None:
        """
        Mark the connection as closed.

        current_instrument survives so the next open resubscribes it. A
        terminal close (kill signal or exhausted retries) leaves the
        controller offline with no pending work.
        """
        terminal = self._state.killed or not will_retry
        from_phase = self._state.phase

        if terminal:
            self._state = self._state.evolve(
                connection_open=False,
                phase=SubscriptionPhase.UNSUBSCRIBED,
                active_instrument=None,
                pending_instrument=None,
                offline=True,
            )
        else:
            self._state = self._state.evolve(
                connection_open=False,
                phase=SubscriptionPhase.UNSUBSCRIBED,
                active_instrument=None,
                pending_instrument=self._state.current_instrument,
            )

        log_subscription_transition(
            self.subscription_logger,
            from_phase=from_phase.value,
            to_phase=SubscriptionPhase.UNSUBSCRIBED.value,
            trigger="connection_close_terminal" if terminal else "connection_close",
            instrument=self._state.current_instrument,
            context={"will_retry": will_retry, "killed": self._state.killed},
        )

    def kill(self) -> bool:
        """
        Latch the kill signal.

        Returns:
            True the first time, False when already killed
        """
        if self._state.killed:
            return False
        self._state = self._state.evolve(killed=True, pending_instrument=None)
        self.logger.info("Kill signal latched", instrument=self._state.current_instrument)
        return True

    def _subscribe(self, instrument: str, trigger: str) -> None:
        from_phase = self._state.phase
        self._state = self._state.evolve(phase=SubscriptionPhase.SUBSCRIBING)

        if not self._emit(IntentEvent.SUBSCRIBE, instrument):
            # Nothing reached the server; retry on the next open
            self._state = self._state.evolve(phase=SubscriptionPhase.UNSUBSCRIBED,
                                             pending_instrument=instrument)
            log_subscription_transition(
                self.subscription_logger,
                from_phase=from_phase.value,
                to_phase=SubscriptionPhase.UNSUBSCRIBED.value,
                trigger=f"{trigger}_send_failed",
                instrument=instrument,
            )
            return

        self._state = self._state.evolve(
            phase=SubscriptionPhase.SUBSCRIBED,
            active_instrument=instrument,
            pending_instrument=None,
        )
        log_subscription_transition(
            self.subscription_logger,
            from_phase=from_phase.value,
            to_phase=SubscriptionPhase.SUBSCRIBED.value,
            trigger=trigger,
            instrument=instrument,
        )

    def _emit(self, event: IntentEvent, instrument: str) -> bool:
        intent = SubscriptionIntent(event=event, instrument=instrument, feed=self.feed)

        if self._send is None:
            self.logger.warning("No transport bound; intent dropped", intent_event=event.value,
                                instrument=instrument)
            return False

        try:
            self._send(intent)
        except TransportError as e:
            self.logger.warning("Failed to send subscription intent", intent_event=event.value,
                                instrument=instrument, error=str(e))
            return False

        self.logger.info("Sent subscription intent", intent_event=event.value, instrument=instrument)
        return True
