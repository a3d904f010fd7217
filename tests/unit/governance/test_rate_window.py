import pytest

from quote_assist.governance.rate_window import (
    RateWindow,
    current_window,
    retry_after_ms,
    window_expired,
)


@pytest.mark.unit
class TestWindowExpired:
    def test_not_expired_inside_window(self):
        assert not window_expired(RateWindow(1000.0, 3), 60_999.0, 60_000)

    def test_expires_exactly_at_duration(self):
        assert window_expired(RateWindow(1000.0, 3), 61_000.0, 60_000)


@pytest.mark.unit
class TestCurrentWindow:
    def test_opens_first_window_lazily(self):
        assert current_window(None, 5.0, 1000) == RateWindow(5.0, 0)

    def test_keeps_live_window(self):
        window = RateWindow(0.0, 2)
        assert current_window(window, 999.0, 1000) is window

    def test_resets_expired_window(self):
        assert current_window(RateWindow(0.0, 2), 1000.0, 1000) == RateWindow(1000.0, 0)


def test_retry_after_never_negative():
    window = RateWindow(0.0, 1)
    assert retry_after_ms(window, 250.0, 1000) == 750.0
    assert retry_after_ms(window, 5000.0, 1000) == 0.0
