"""Default configuration parameters for the trade tape."""

from dataclasses import dataclass


@dataclass(frozen=True)
class LedgerParams:
    """Ledger capacity parameters."""
    max_trades: int = 50                              # Visible trades kept per instrument


@dataclass(frozen=True)
class TransportParams:
    """Websocket transport parameters."""
    url: str = "wss://www.cryptofacilities.com/ws/v1"
    reconnect_attempts: int = 5                       # Reconnects before going offline
    reconnect_interval_ms: int = 3000                 # Fixed delay between reconnects
    ping_interval_s: int = 30                         # 0 disables websocket pings


@dataclass(frozen=True)
class FeedParams:
    """Feed naming and startup instrument."""
    trade_feed: str = "trade"
    snapshot_feed: str = "trade_snapshot"
    initial_instrument: str = "PI_XBTUSD"


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    ledger: LedgerParams
    transport: TransportParams
    feed: FeedParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        ledger=LedgerParams(),
        transport=TransportParams(),
        feed=FeedParams(),
    )
