"""
Tradetape - Recent Trades Tape

Maintains a bounded, deduplicated, time-ordered view of recent trade
executions for a single instrument fed by a websocket push stream. Handles
instrument switches, reconnects and a terminal kill signal.
"""

__version__ = "0.1.0"
__author__ = "Tradetape Team"
