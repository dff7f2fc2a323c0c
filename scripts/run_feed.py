#!/usr/bin/env python3
"""
Run the recent trades tape against the live feed or a recorded file.

Examples:
    python scripts/run_feed.py --instrument PI_ETHUSD
    python scripts/run_feed.py --replay recorded.jsonl --instrument PI_XBTUSD
"""

import argparse
import signal
import sys
import time
from pathlib import Path

from tradetape.config.loader import ConfigLoader
from tradetape.display.console import ConsoleTapePrinter
from tradetape.engine import TradeFeedSession
from tradetape.errors import UnrecoverableError
from tradetape.logging.config import configure_logging
from tradetape.transport.websocket_client import WebSocketFeedTransport
from tradetape.utils.time import now_ms, ticking_clock


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recent trades tape")
    parser.add_argument("--instrument", help="Instrument to subscribe (default from config)")
    parser.add_argument("--config-dir", type=Path, help="Directory containing tradetape.yaml")
    parser.add_argument("--url", help="Override the websocket URL")
    parser.add_argument("--max-trades", type=int, help="Override ledger capacity")
    parser.add_argument("--replay", type=Path, help="Replay one JSON message per line instead of connecting")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--json-logs", action="store_true")
    parser.add_argument("--no-color", action="store_true")
    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    overrides: dict = {}
    if args.url:
        overrides.setdefault("transport", {})["url"] = args.url
    if args.max_trades is not None:
        overrides.setdefault("ledger", {})["max_trades"] = args.max_trades
    if args.instrument:
        overrides.setdefault("feed", {})["initial_instrument"] = args.instrument
    return overrides


def replay(session: TradeFeedSession, path: Path) -> None:
    with open(path) as f:
        for line in f:
            line = line.strip()
            if line:
                session.on_message(line)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level, format_json=args.json_logs)

    loader = ConfigLoader.create(args.config_dir)
    try:
        config = loader.build(args.instrument, build_overrides(args))
    except UnrecoverableError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    clock = ticking_clock(now_ms()) if args.replay else now_ms
    session = TradeFeedSession(config=config, clock=clock)
    printer = ConsoleTapePrinter(instrument=session.instrument, colors=not args.no_color,
                                 clear_screen=not args.replay)
    session.subscribe(printer)

    if args.replay:
        replay(session, args.replay)
        print(session.get_stats(), file=sys.stderr)
        return 0

    transport = WebSocketFeedTransport(
        config.transport.url,
        session,
        reconnect_attempts=config.transport.reconnect_attempts,
        reconnect_interval_ms=config.transport.reconnect_interval_ms,
        ping_interval_s=config.transport.ping_interval_s,
    )
    session.bind_transport(transport)

    signal.signal(signal.SIGINT, lambda *_: session.raise_kill_signal())
    transport.start()

    while not session.is_offline:
        time.sleep(0.2)

    transport.join(timeout=5)
    print(session.get_stats(), file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
