"""Fixed-window request counting.

The window is a value: the governor swaps in a new `RateWindow` on every
admitted call, and the reset rule is a pure function of elapsed time.
"""

import dataclasses


@dataclasses.dataclass(frozen=True, slots=True)
class RateWindow:
    """Requests admitted since `window_start_ms` (monotonic milliseconds)."""

    window_start_ms: float
    count: int = 0


def window_expired(window: RateWindow, now_ms: float, window_duration_ms: float) -> bool:
    """True once `window_duration_ms` has elapsed since the window opened."""
    return now_ms - window.window_start_ms >= window_duration_ms


def current_window(
    window: RateWindow | None, now_ms: float, window_duration_ms: float
) -> RateWindow:
    """The window in force at `now_ms`, opening a fresh one when needed."""
    if window is None or window_expired(window, now_ms, window_duration_ms):
        return RateWindow(window_start_ms=now_ms)
    return window


def retry_after_ms(window: RateWindow, now_ms: float, window_duration_ms: float) -> float:
    """Milliseconds until `window` expires (never negative)."""
    return max(0.0, window.window_start_ms + window_duration_ms - now_ms)
