"""Console rendering of the recent trades tape."""

import sys
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional, TextIO

from ..data.models import TradeRecord, TradeSide
from ..ledger.store import Ledger
from ..utils.time import format_trade_time

# ANSI color codes
GREEN = "\033[92m"
RED = "\033[91m"
GREY = "\033[90m"
RESET = "\033[0m"

MIN_FRACTION_DIGITS = 2
MAX_FRACTION_DIGITS = 8


def format_number(value: Decimal) -> str:
    """Group thousands and show between 2 and 8 fraction digits."""
    quantized = value.quantize(Decimal(1).scaleb(-MAX_FRACTION_DIGITS), rounding=ROUND_HALF_EVEN)
    text = f"{quantized:,.{MAX_FRACTION_DIGITS}f}"
    whole, _, fraction = text.partition(".")
    fraction = fraction.rstrip("0").ljust(MIN_FRACTION_DIGITS, "0")
    return f"{whole}.{fraction}"


def format_trade_row(trade: TradeRecord, colors: bool = True) -> str:
    side = trade.side.value.upper()
    if colors:
        color = GREEN if trade.side == TradeSide.BUY else RED
        side = f"{color}{side:>6}{RESET}"
    else:
        side = f"{side:>6}"
    return (
        f"{format_trade_time(trade.observed_at)}  "
        f"{format_number(trade.price):>16} {format_number(trade.quantity):>16} {side}"
    )


def render_tape(trades: Ledger, instrument: Optional[str] = None, colors: bool = True) -> str:
    """Render the full tape as text."""
    title = "Recent Trades"
    if instrument:
        title = f"{title}  {instrument}"

    lines = [title, f"{'Time':<12}  {'Price':>16} {'Size':>16} {'Side':>6}"]
    if not trades:
        empty = "No trades yet"
        lines.append(f"{GREY}{empty}{RESET}" if colors else empty)
    else:
        lines.extend(format_trade_row(trade, colors) for trade in trades)
    return "\n".join(lines)


class ConsoleTapePrinter:
    """Ledger listener that reprints the tape on every change."""

    def __init__(self, instrument: Optional[str] = None, stream: Optional[TextIO] = None,
                 colors: bool = True, clear_screen: bool = False):
        self.instrument = instrument
        self.stream = stream or sys.stdout
        self.colors = colors
        self.clear_screen = clear_screen

    def __call__(self, trades: Ledger) -> None:
        output = render_tape(trades, self.instrument, self.colors)
        if self.clear_screen:
            output = "\033[2J\033[H" + output
        print(output, file=self.stream, flush=True)
