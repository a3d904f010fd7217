"""Telemetry scopes and reporters.

Parsing tiers, cache lookups and rate-limit rejections are worth counting in
development, but the hot path should pay nothing for it in production.
`TelemetryContext()` therefore returns a shared no-op object unless
``QUOTE_ASSIST_TELEMETRY=1`` (or ``DEBUG=1``) is set and at least one reporter
is supplied.
"""

from collections import Counter, deque
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import time
from types import TracebackType
from typing import Any, Protocol, Self, runtime_checkable

log = logging.getLogger(__name__)

TELEMETRY_ENV_VAR = "QUOTE_ASSIST_TELEMETRY"

_scope_stack_var: ContextVar[tuple[str, ...]] = ContextVar(
    "quote_assist_scope_stack",
    default=(),
)


def telemetry_enabled() -> bool:
    """Whether the environment opts into telemetry."""
    return os.getenv(TELEMETRY_ENV_VAR) == "1" or os.getenv("DEBUG") == "1"


@runtime_checkable
class TelemetryReporter(Protocol):
    """Duck-typed protocol for telemetry reporters."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """Stateless stand-in used whenever telemetry is off."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        return None

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        pass


class _EnabledTelemetryContext:
    """Context that forwards scope timings and metrics to its reporters."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    def __call__(
        self, name: str, **metadata: Any
    ) -> AbstractContextManager["_EnabledTelemetryContext"]:
        return self._scope(name, **metadata)

    @contextmanager
    def _scope(self, name: str, **metadata: Any) -> Iterator["_EnabledTelemetryContext"]:
        if not name:
            raise ValueError("Scope name must be a non-empty string")

        stack = _scope_stack_var.get()
        path = ".".join((*stack, name))
        token = _scope_stack_var.set((*stack, name))
        start = time.perf_counter()
        try:
            yield self
        finally:
            duration = time.perf_counter() - start
            _scope_stack_var.reset(token)
            self._emit("record_timing", path, duration, depth=len(stack), **metadata)

    def _emit(self, method: str, scope: str, value: Any, **metadata: Any) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(scope, value, **metadata)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )

    def _path(self, name: str) -> str:
        return ".".join((*_scope_stack_var.get(), name))

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        """Record a counter increment under the current scope."""
        self._emit(
            "record_metric", self._path(name), increment, metric_type="counter", **metadata
        )

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        """Record a point-in-time value under the current scope."""
        self._emit(
            "record_metric", self._path(name), value, metric_type="gauge", **metadata
        )


_NO_OP_SINGLETON = _NoOpTelemetryContext()

type TelemetryContextProtocol = _EnabledTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return an enabled context, or the shared no-op one when telemetry is off."""
    if reporters and telemetry_enabled():
        return _EnabledTelemetryContext(*reporters)
    return _NO_OP_SINGLETON


class InMemoryReporter:
    """Reporter that keeps recent timings and running counter totals.

    Meant for development sessions and tests; `summary()` renders what was
    collected.
    """

    def __init__(self, max_timings_per_scope: int = 500):
        self.max_timings = max_timings_per_scope
        self.timings: dict[str, deque[float]] = {}
        self.counters: Counter[str] = Counter()
        self.gauges: dict[str, float] = {}

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:  # noqa: ARG002
        self.timings.setdefault(scope, deque(maxlen=self.max_timings)).append(duration)

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        if metadata.get("metric_type") == "gauge":
            self.gauges[scope] = value
        else:
            self.counters[scope] += value

    def summary(self) -> str:
        lines = ["=== quote_assist telemetry ==="]
        for scope, durations in sorted(self.timings.items()):
            avg = sum(durations) / len(durations)
            lines.append(f"{scope:<40} | calls: {len(durations):<5} | avg: {avg:.4f}s")
        for scope, total in sorted(self.counters.items()):
            lines.append(f"{scope:<40} | count: {total}")
        for scope, value in sorted(self.gauges.items()):
            lines.append(f"{scope:<40} | value: {value}")
        return "\n".join(lines)
