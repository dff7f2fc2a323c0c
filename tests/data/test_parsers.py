"""Tests for feed payload parsing and classification."""

import json
from decimal import Decimal

import pytest

from tradetape.data.models import MessageKind, TradeSide
from tradetape.data.parsers import (
    InvalidPriceError,
    InvalidQuantityError,
    InvalidSideError,
    InvalidTimestampError,
    ParseError,
    classify_payload,
    parse_json_payload,
    parse_snapshot_trades,
    parse_trade,
)
from tradetape.errors import MalformedDataError, MissingDataError

NOW = 1_700_000_000_000


def fixed_clock():
    return NOW


class TestParseJsonPayload:
    """Test raw JSON parsing."""

    def test_floats_decoded_as_decimal(self):
        payload = parse_json_payload('{"price": 34969.5}')

        assert payload["price"] == Decimal("34969.5")

    def test_bytes_accepted(self):
        assert parse_json_payload(b'{"feed": "trade"}') == {"feed": "trade"}

    @pytest.mark.parametrize("raw", ["not json", "{", "", "[1, 2]", "42"])
    def test_invalid_json(self, raw):
        with pytest.raises(ParseError):
            parse_json_payload(raw)

    @pytest.mark.parametrize("raw", [
        "[" * 200000 + "]" * 200000,
        '{"price": 1' + "0" * 5000 + "}",
    ], ids=["deep-nesting", "huge-integer"])
    def test_decoder_limits_raise_parse_error(self, raw):
        with pytest.raises(ParseError):
            parse_json_payload(raw)

    def test_non_text(self):
        with pytest.raises(ParseError):
            parse_json_payload(None)

    def test_parse_error_is_malformed_data(self):
        with pytest.raises(MalformedDataError):
            parse_json_payload("nope")


class TestParseTrade:
    """Test single trade parsing."""

    def test_basic_trade(self):
        record = parse_trade({"price": Decimal("101.5"), "qty": 2, "side": "sell"}, fixed_clock)

        assert record.price == Decimal("101.5")
        assert record.quantity == Decimal("2")
        assert record.side == TradeSide.SELL
        assert record.observed_at == NOW

    def test_keeps_existing_timestamp(self):
        record = parse_trade({"price": 1, "qty": 1, "side": "buy", "timestamp": 42}, fixed_clock)

        assert record.observed_at == 42

    def test_stamp_receipt_ignores_timestamp(self):
        record = parse_trade({"price": 1, "qty": 1, "side": "buy", "timestamp": 42}, fixed_clock,
                             stamp_receipt=True)

        assert record.observed_at == NOW

    def test_stamp_receipt_skips_timestamp_validation(self):
        record = parse_trade({"price": 1, "qty": 1, "side": "buy", "timestamp": "soon"}, fixed_clock,
                             stamp_receipt=True)

        assert record.observed_at == NOW

    def test_quantity_alias(self):
        record = parse_trade({"price": 1, "quantity": "0.25", "side": "BUY"}, fixed_clock)

        assert record.quantity == Decimal("0.25")
        assert record.side == TradeSide.BUY

    def test_feed_time_field_is_not_observed_at(self, sample_trade):
        payload = parse_json_payload(json.dumps(sample_trade))

        record = parse_trade(payload, fixed_clock)

        assert record.observed_at == NOW

    @pytest.mark.parametrize("field", ["price", "qty", "side"])
    def test_missing_fields(self, field):
        data = {"price": 1, "qty": 1, "side": "buy"}
        del data[field]

        with pytest.raises(MissingDataError) as exc_info:
            parse_trade(data, fixed_clock)

        assert exc_info.value.data_type == field

    @pytest.mark.parametrize("price", [0, -1, "abc", True, "NaN", "Infinity"])
    def test_invalid_price(self, price):
        with pytest.raises(InvalidPriceError):
            parse_trade({"price": price, "qty": 1, "side": "buy"}, fixed_clock)

    def test_invalid_quantity(self):
        with pytest.raises(InvalidQuantityError):
            parse_trade({"price": 1, "qty": "-3", "side": "buy"}, fixed_clock)

    def test_invalid_side(self):
        with pytest.raises(InvalidSideError):
            parse_trade({"price": 1, "qty": 1, "side": "hold"}, fixed_clock)

    @pytest.mark.parametrize("timestamp", [-5, "soon", Decimal("1.5"), False])
    def test_invalid_timestamp(self, timestamp):
        with pytest.raises(InvalidTimestampError):
            parse_trade({"price": 1, "qty": 1, "side": "buy", "timestamp": timestamp}, fixed_clock)

    def test_not_an_object(self):
        with pytest.raises(ParseError):
            parse_trade(["1", "1", "buy"], fixed_clock)


class TestParseSnapshotTrades:
    """Test snapshot parsing."""

    def test_reverses_delivery_order(self):
        trades = [
            {"price": 100, "qty": 1, "side": "buy"},
            {"price": 101, "qty": 2, "side": "sell"},
            {"price": 99, "qty": Decimal("0.5"), "side": "buy"},
        ]

        records, skipped = parse_snapshot_trades(trades, fixed_clock)

        assert [r.price for r in records] == [Decimal("99"), Decimal("101"), Decimal("100")]
        assert skipped == 0

    def test_skips_invalid_entries(self):
        trades = [
            {"price": 100, "qty": 1, "side": "buy"},
            {"price": "bad", "qty": 1, "side": "buy"},
            {"qty": 1, "side": "buy"},
        ]

        records, skipped = parse_snapshot_trades(trades, fixed_clock)

        assert len(records) == 1
        assert skipped == 2


class TestClassifyPayload:
    """Test message classification rules."""

    def test_snapshot(self, sample_snapshot):
        message = classify_payload(json.dumps(sample_snapshot), clock=fixed_clock)

        assert message.kind == MessageKind.SNAPSHOT
        assert len(message.trades) == 3
        assert message.instrument == "PI_XBTUSD"

    def test_empty_snapshot_ignored(self):
        raw = json.dumps({"feed": "trade_snapshot", "product_id": "PI_XBTUSD", "trades": []})

        assert classify_payload(raw).kind == MessageKind.IGNORED

    def test_snapshot_without_valid_trades_is_malformed(self):
        raw = json.dumps({"feed": "trade_snapshot", "trades": [{"price": "x"}]})

        message = classify_payload(raw)

        assert message.kind == MessageKind.MALFORMED
        assert message.skipped_records == 1

    def test_trade(self, sample_trade):
        message = classify_payload(json.dumps(sample_trade), clock=fixed_clock)

        assert message.kind == MessageKind.TRADE
        assert message.instrument == "PI_XBTUSD"
        assert message.trades[0].price == Decimal("34969.5")
        assert message.trades[0].side == TradeSide.SELL

    def test_invalid_trade_is_malformed(self):
        raw = json.dumps({"feed": "trade", "product_id": "PI_XBTUSD", "side": "buy"})

        assert classify_payload(raw).kind == MessageKind.MALFORMED

    @pytest.mark.parametrize("payload", [
        {"event": "subscribed", "feed": "trade", "product_ids": ["PI_XBTUSD"]},
        {"event": "unsubscribed", "feed": "trade", "product_ids": ["PI_XBTUSD"]},
        {"event": "info", "version": 1},
        {"feed": "heartbeat", "time": 1612266317519},
        {"event": "error", "message": "Invalid product id"},
        {"feed": "book_ui_1", "product_id": "PI_XBTUSD"},
    ])
    def test_other_messages_ignored(self, payload):
        assert classify_payload(json.dumps(payload)).kind == MessageKind.IGNORED

    def test_malformed_json(self):
        message = classify_payload("{broken")

        assert message.kind == MessageKind.MALFORMED
        assert "Invalid JSON" in message.error

    def test_custom_feed_names(self):
        raw = json.dumps({"feed": "fills", "product_id": "X", "price": 1, "qty": 1, "side": "buy"})

        assert classify_payload(raw, trade_feed="fills").kind == MessageKind.TRADE
