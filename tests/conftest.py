"""Pytest configuration and shared fixtures."""

import json
from decimal import Decimal
from typing import Any, Optional

import pytest

from tradetape.data.models import TradeRecord, TradeSide
from tradetape.errors import TransportError
from tradetape.transport.base import FeedTransport, TransportListener


class FakeTransport(FeedTransport):
    """In-memory transport that records every frame sent."""

    def __init__(self, listener: Optional[TransportListener] = None, connected: bool = False):
        self.listener = listener
        self.connected = connected
        self.sent: list[dict[str, Any]] = []
        self.close_calls = 0
        self.fail_sends = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    def start(self) -> None:
        self.open()

    def open(self) -> None:
        self.connected = True
        if self.listener is not None:
            self.listener.on_open()

    def drop(self, will_retry: bool = True) -> None:
        self.connected = False
        if self.listener is not None:
            self.listener.on_close(will_retry=will_retry)

    def deliver(self, payload: Any) -> Any:
        raw = payload if isinstance(payload, str) else json.dumps(payload)
        return self.listener.on_message(raw)

    def send(self, text: str) -> None:
        if self.fail_sends or not self.connected:
            raise TransportError("fake transport refused send", operation="send")
        self.sent.append(json.loads(text))

    def close(self) -> None:
        self.close_calls += 1
        if self.connected:
            self.drop(will_retry=False)

    def intents(self) -> list[tuple[str, str]]:
        return [(msg["event"], msg["product_ids"][0]) for msg in self.sent]


class FixedClock:
    """Clock returning a settable millisecond value."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1) -> int:
        self.now += ms
        return self.now


def make_trade(observed_at: int, price="100", quantity="1", side: str = "buy") -> TradeRecord:
    return TradeRecord(
        price=Decimal(str(price)),
        quantity=Decimal(str(quantity)),
        side=TradeSide(side),
        observed_at=observed_at,
    )


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def sample_snapshot() -> dict[str, Any]:
    """Trade snapshot as delivered by the feed, oldest first."""
    return {
        "feed": "trade_snapshot",
        "product_id": "PI_XBTUSD",
        "trades": [
            {"price": 100, "qty": 1, "side": "buy"},
            {"price": 101, "qty": 2, "side": "sell"},
            {"price": 99, "qty": 0.5, "side": "buy"},
        ],
    }


@pytest.fixture
def sample_trade() -> dict[str, Any]:
    """Incremental trade message."""
    return {
        "feed": "trade",
        "product_id": "PI_XBTUSD",
        "uid": "05af78ac-a774-478c-a50c-8b9c234e071e",
        "side": "sell",
        "type": "fill",
        "seq": 653355,
        "time": 1612266317519,
        "qty": 15000,
        "price": 34969.5,
    }
