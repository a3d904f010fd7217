"""Rate limiting and caching around the external generation call.

`RequestGovernor` owns the only shared mutable state of the library: one
`RateWindow` and one `ResponseCache`. The check-then-increment on the window
and the check-then-insert on the cache each happen under a single lock;
`generate` itself always runs with the lock released.
"""

import asyncio
from collections.abc import Awaitable, Callable
import logging
import threading
import time
from typing import Any

from quote_assist.core.types import Failure, Result, Success
from quote_assist.exceptions import (
    GenerationError,
    GenerationErrorKind,
    RateLimitedError,
)
from quote_assist.telemetry import TelemetryContext, TelemetryContextProtocol

from .cache import ResponseCache
from .rate_window import RateWindow, current_window, retry_after_ms

log = logging.getLogger(__name__)

_MISSING = object()

type GenerateResult = Result[Any, GenerationError] | Any
type Generate = Callable[[], GenerateResult]
type AsyncGenerate = Callable[[], Awaitable[GenerateResult]]
type Accept = Callable[[Any], bool]


def _as_result(returned: Any) -> Result[Any, GenerationError]:
    # A generate function may return a bare payload instead of a Result.
    if isinstance(returned, Success | Failure):
        return returned
    return Success(returned)


def _timeout_failure(e: TimeoutError) -> Failure[GenerationError]:
    return Failure(
        GenerationError(str(e) or "generation timed out", GenerationErrorKind.TIMEOUT)
    )


class RequestGovernor:
    """Fixed-window rate limiter plus response cache for one endpoint.

    Args:
        cache: Cache to use. Defaults to an unbounded `ResponseCache`.
        clock: Monotonic clock in seconds.
        telemetry: Optional telemetry context.
    """

    def __init__(
        self,
        cache: ResponseCache | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:  # noqa: D107
        self.cache = cache if cache is not None else ResponseCache()
        self._clock = clock
        self._window: RateWindow | None = None
        self._lock = threading.Lock()
        self._rate_limited = 0
        self.tele = telemetry or TelemetryContext()

    @property
    def window(self) -> RateWindow | None:
        """The current rate window, or None before the first admitted call."""
        return self._window

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _admit(
        self, key: str, window_duration_ms: float, max_per_window: int
    ) -> Result[Any, RateLimitedError] | None:
        """Serve from cache, reject, or reserve a slot (returns None)."""
        if window_duration_ms <= 0:
            raise ValueError(f"window_duration_ms must be > 0, got {window_duration_ms}")
        if max_per_window < 0:
            raise ValueError(f"max_per_window must be >= 0, got {max_per_window}")

        with self._lock:
            cached = self.cache.get(key, _MISSING)
            if cached is not _MISSING:
                log.debug("Cache hit for key %s.", key[:12])
                self.tele.count("governor.cache_hit")
                return Success(cached)
            self.tele.count("governor.cache_miss")

            now = self._now_ms()
            window = current_window(self._window, now, window_duration_ms)
            if window.count >= max_per_window:
                self._window = window
                self._rate_limited += 1
                wait_ms = retry_after_ms(window, now, window_duration_ms)
                log.warning(
                    "Rate limit of %d per %.0f ms reached; retry in %.0f ms.",
                    max_per_window,
                    window_duration_ms,
                    wait_ms,
                )
                self.tele.count("governor.rate_limited")
                return Failure(RateLimitedError(max_per_window, wait_ms))

            self._window = RateWindow(window.window_start_ms, window.count + 1)
            return None

    def _settle(
        self,
        key: str,
        result: Result[Any, GenerationError],
        accept: Accept | None,
    ) -> Result[Any, GenerationError]:
        if isinstance(result, Failure):
            log.warning("Generation failed: %r", result.error)
            return result
        if accept is not None and not accept(result.value):
            log.debug("Payload for key %s rejected; not cached.", key[:12])
            self.tele.count("governor.rejected")
            return result
        with self._lock:
            if not self.cache.put(key, result.value):
                log.debug("Key %s was cached concurrently; keeping first.", key[:12])
            # Every caller of this key gets a copy of the first stored payload.
            return Success(self.cache.snapshot(key))

    def call_with_governance(
        self,
        key: str,
        window_duration_ms: float,
        max_per_window: int,
        generate: Generate,
        *,
        accept: Accept | None = None,
    ) -> Result[Any, RateLimitedError | GenerationError]:
        """Return the cached payload for `key`, or call `generate` within quota.

        A failed call is not cached but still counts against the window. A
        payload for which `accept` returns False is returned but not cached.

        Returns:
            `Success(payload)` (a deep copy), `Failure(RateLimitedError)` when the
            window is full, or `Failure(GenerationError)` from `generate`.
        """
        admitted = self._admit(key, window_duration_ms, max_per_window)
        if admitted is not None:
            return admitted

        try:
            result = _as_result(generate())
        except GenerationError as e:
            result = Failure(e)
        except TimeoutError as e:
            result = _timeout_failure(e)
        return self._settle(key, result, accept)

    async def acall_with_governance(
        self,
        key: str,
        window_duration_ms: float,
        max_per_window: int,
        generate: AsyncGenerate,
        *,
        timeout: float | None = None,
        accept: Accept | None = None,
    ) -> Result[Any, RateLimitedError | GenerationError]:
        """Async variant of `call_with_governance`.

        Args:
            timeout: Optional seconds to wait for `generate`; a timeout is a
                `GenerationError` of kind ``TIMEOUT`` and is not cached.
            accept: Predicate a payload must pass to be cached.
        """
        admitted = self._admit(key, window_duration_ms, max_per_window)
        if admitted is not None:
            return admitted

        try:
            result = _as_result(await asyncio.wait_for(generate(), timeout))
        except GenerationError as e:
            result = Failure(e)
        except TimeoutError as e:
            result = _timeout_failure(e)
        return self._settle(key, result, accept)

    def stats(self) -> dict[str, Any]:
        """Snapshot of cache counters and the current window."""
        with self._lock:
            window = self._window
            return {
                "cache": self.cache.stats(),
                "window_count": window.count if window else 0,
                "window_start_ms": window.window_start_ms if window else None,
                "rate_limited": self._rate_limited,
            }
