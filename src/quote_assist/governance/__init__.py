"""Request governance: fixed-window rate limiting and response caching."""

from .cache import CacheEntry, ResponseCache, build_cache_key
from .governor import RequestGovernor
from .rate_window import RateWindow, current_window, retry_after_ms, window_expired

__all__ = [  # noqa: RUF022
    "RequestGovernor",
    "ResponseCache",
    "CacheEntry",
    "build_cache_key",
    "RateWindow",
    "current_window",
    "retry_after_ms",
    "window_expired",
]
