"""Tests for time helpers."""

import time

from tradetape.utils.time import ensure_observed_at, format_trade_time, now_ms, ticking_clock


class TestTimeHelpers:
    """Test receipt clock helpers."""

    def test_now_ms_close_to_wall_clock(self):
        assert abs(now_ms() - int(time.time() * 1000)) < 1000

    def test_ensure_observed_at_prefers_feed_value(self):
        assert ensure_observed_at(123, lambda: 999) == 123

    def test_ensure_observed_at_falls_back_to_clock(self):
        assert ensure_observed_at(None, lambda: 999) == 999

    def test_ensure_observed_at_keeps_zero(self):
        assert ensure_observed_at(0, lambda: 999) == 0

    def test_format_trade_time(self):
        # 2021-02-02T11:45:17.519Z
        assert format_trade_time(1612266317519) == "11:45:17.519"
        assert format_trade_time(1612266317519, with_millis=False) == "11:45:17"

    def test_ticking_clock(self):
        clock = ticking_clock(100, step=5)

        assert [clock(), clock(), clock()] == [100, 105, 110]
