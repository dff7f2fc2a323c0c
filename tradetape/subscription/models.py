"""
Subscription state machine data models.

Immutable structures for the controller phase, its state snapshot and the
intents it sends over the transport.
"""

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional


class SubscriptionPhase(str, Enum):
    """Controller phases."""
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    SUBSCRIBED = "subscribed"


class IntentEvent(str, Enum):
    """Outbound subscription events."""
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


@dataclass(frozen=True)
class SubscriptionIntent:
    """A subscribe or unsubscribe request for the trade feed."""
    event: IntentEvent
    instrument: str
    feed: str = "trade"

    def to_payload(self) -> dict[str, Any]:
        """Wire representation expected by the feed."""
        return {
            "event": self.event.value,
            "feed": self.feed,
            "product_ids": [self.instrument],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload())


@dataclass(frozen=True)
class SubscriptionState:
    """Snapshot of the controller state."""

    current_instrument: str
    connection_open: bool = False
    phase: SubscriptionPhase = SubscriptionPhase.UNSUBSCRIBED

    # Instrument the server holds a subscription for on this connection
    active_instrument: Optional[str] = None
    # Instrument to subscribe as soon as the connection opens
    pending_instrument: Optional[str] = None

    killed: bool = False
    offline: bool = False

    def evolve(self, **changes: Any) -> "SubscriptionState":
        """Create new state with the given fields changed."""
        return replace(self, **changes)
