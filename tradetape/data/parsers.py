"""
Feed parsers for converting raw trade payloads to normalized records.

This module handles parsing of trade snapshot and incremental trade messages
into TradeRecord objects with exact decimal prices, and classifies every
payload so the dispatcher can decide what to do with it.

Expected feed formats:

    {"feed": "trade_snapshot", "product_id": "PI_XBTUSD",
     "trades": [{"price": 100.0, "qty": 1, "side": "buy"}, ...]}

    {"feed": "trade", "product_id": "PI_XBTUSD",
     "price": 101.5, "qty": 2, "side": "sell"}

Snapshots list trades oldest first; the parser returns them newest first.
"""

import json
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from ..errors import MalformedDataError, MissingDataError
from ..utils.time import Clock, ensure_observed_at, now_ms
from .models import ClassifiedMessage, MessageKind, TradeRecord, TradeSide

logger = structlog.get_logger(__name__)


class ParseError(MalformedDataError):
    """Raised when parsing fails due to invalid data format."""
    pass


class InvalidPriceError(ParseError):
    """Raised when price data is invalid."""
    pass


class InvalidQuantityError(ParseError):
    """Raised when quantity data is invalid."""
    pass


class InvalidSideError(ParseError):
    """Raised when the trade side is neither buy nor sell."""
    pass


class InvalidTimestampError(ParseError):
    """Raised when timestamp data is invalid."""
    pass


def parse_json_payload(raw_data: Any) -> dict[str, Any]:
    """
    Parse raw JSON text into a dictionary.

    Floats are decoded as Decimal so prices and quantities compare exactly.

    Args:
        raw_data: Raw text (or bytes) from the feed

    Returns:
        Parsed dictionary

    Raises:
        ParseError: If the text is not JSON or not a JSON object
    """
    if isinstance(raw_data, (bytes, bytearray)):
        try:
            raw_data = raw_data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Payload is not valid UTF-8: {e}", expected_format="json") from e

    if not isinstance(raw_data, str):
        raise ParseError(f"Payload must be text, got {type(raw_data).__name__}", expected_format="json")

    try:
        payload = json.loads(raw_data, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}", raw_data=raw_data[:200], expected_format="json") from e
    except (ValueError, RecursionError) as e:
        # Oversized integer literals and pathological nesting
        raise ParseError(f"Unparseable JSON: {e}", raw_data=raw_data[:200], expected_format="json") from e

    if not isinstance(payload, dict):
        raise ParseError("Payload must be a JSON object", raw_data=raw_data[:200], expected_format="json")

    return payload


def _parse_decimal(value: Any, name: str, error_cls: type[ParseError]) -> Decimal:
    if value is None:
        raise MissingDataError(f"Trade is missing '{name}'", data_type=name)
    if isinstance(value, bool):
        raise error_cls(f"Invalid {name}: {value!r}")
    try:
        result = Decimal(value) if isinstance(value, (int, str, Decimal)) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise error_cls(f"Invalid {name}: {value!r}") from e
    if not result.is_finite() or result <= 0:
        raise error_cls(f"Invalid {name}: {value!r} must be a positive finite number")
    return result


def _parse_side(value: Any) -> TradeSide:
    if value is None:
        raise MissingDataError("Trade is missing 'side'", data_type="side")
    try:
        return TradeSide(str(value).lower())
    except ValueError as e:
        raise InvalidSideError(f"Invalid side: {value!r}") from e


def _parse_timestamp(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidTimestampError(f"Invalid timestamp: {value!r}")
    if isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise InvalidTimestampError(f"Timestamp must be whole milliseconds: {value}")
        value = int(value)
    if not isinstance(value, int) or value < 0:
        raise InvalidTimestampError(f"Invalid timestamp: {value!r}")
    return value


def parse_trade(data: Any, clock: Clock = now_ms, stamp_receipt: bool = False) -> TradeRecord:
    """
    Parse a single trade object.

    Quantity is read from ``qty`` (feed name) or ``quantity``. The optional
    ``timestamp`` field is kept as observed_at; without it the record is
    stamped with the receipt clock. With ``stamp_receipt`` the receipt clock
    is always used and any carried timestamp is ignored.

    Raises:
        MissingDataError: If price, quantity or side is absent
        ParseError: If any field has an invalid value
    """
    if not isinstance(data, dict):
        raise ParseError(f"Trade must be an object, got {type(data).__name__}")

    quantity = data.get("qty", data.get("quantity"))
    timestamp = None if stamp_receipt else _parse_timestamp(data.get("timestamp"))

    return TradeRecord(
        price=_parse_decimal(data.get("price"), "price", InvalidPriceError),
        quantity=_parse_decimal(quantity, "qty", InvalidQuantityError),
        side=_parse_side(data.get("side")),
        observed_at=clock() if stamp_receipt else ensure_observed_at(timestamp, clock),
    )


def parse_snapshot_trades(
    trades: Iterable[Any],
    clock: Clock = now_ms
) -> tuple[tuple[TradeRecord, ...], int]:
    """
    Parse snapshot trades and return them newest first.

    Invalid entries are skipped rather than failing the whole snapshot.

    Returns:
        (records in reversed delivery order, number of skipped entries)
    """
    records = []
    skipped = 0

    for i, item in enumerate(trades):
        try:
            records.append(parse_trade(item, clock))
        except (ParseError, MissingDataError) as e:
            skipped += 1
            logger.warning("Skipping invalid snapshot trade", index=i, error=str(e))

    records.reverse()
    return tuple(records), skipped


def classify_payload(
    raw_data: Any,
    *,
    snapshot_feed: str = "trade_snapshot",
    trade_feed: str = "trade",
    clock: Clock = now_ms
) -> ClassifiedMessage:
    """
    Parse and classify one raw feed payload.

    Rules, in order:
    1. ``snapshot_feed`` with a non-empty trades list -> SNAPSHOT
    2. ``trade_feed`` -> TRADE, carrying the message's product_id
    3. Anything else (acks, heartbeats, info, errors) -> IGNORED

    Payloads that cannot be parsed are returned as MALFORMED, never raised.
    """
    try:
        payload = parse_json_payload(raw_data)
    except ParseError as e:
        return ClassifiedMessage(kind=MessageKind.MALFORMED, error=str(e))

    feed = payload.get("feed")
    event = payload.get("event")
    instrument = payload.get("product_id")

    if feed == snapshot_feed:
        trades = payload.get("trades")
        if not isinstance(trades, list) or not trades:
            return ClassifiedMessage(kind=MessageKind.IGNORED, feed=feed, event=event,
                                     instrument=instrument)

        records, skipped = parse_snapshot_trades(trades, clock)
        if not records:
            return ClassifiedMessage(
                kind=MessageKind.MALFORMED,
                feed=feed,
                instrument=instrument,
                error="Snapshot contained no valid trades",
                skipped_records=skipped,
            )

        return ClassifiedMessage(
            kind=MessageKind.SNAPSHOT,
            trades=records,
            instrument=instrument,
            feed=feed,
            skipped_records=skipped,
        )

    if feed == trade_feed and event is None:
        try:
            record = parse_trade(payload, clock, stamp_receipt=True)
        except (ParseError, MissingDataError) as e:
            return ClassifiedMessage(kind=MessageKind.MALFORMED, feed=feed,
                                     instrument=instrument, error=str(e))

        return ClassifiedMessage(
            kind=MessageKind.TRADE,
            trades=(record,),
            instrument=instrument,
            feed=feed,
        )

    return ClassifiedMessage(kind=MessageKind.IGNORED, feed=feed, event=event, instrument=instrument)
