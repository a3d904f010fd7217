from unittest.mock import Mock

import pytest

from quote_assist.core.types import Success
from quote_assist.governance import RequestGovernor
from quote_assist.telemetry import (
    InMemoryReporter,
    TelemetryContext,
    TelemetryReporter,
    telemetry_enabled,
)


@pytest.fixture
def telemetry_on(monkeypatch):
    monkeypatch.setenv("QUOTE_ASSIST_TELEMETRY", "1")


@pytest.mark.unit
class TestDisabledTelemetry:
    """Without the env flag every context is the shared no-op."""

    def test_disabled_by_default(self):
        assert not telemetry_enabled()

    def test_no_op_is_shared_and_silent(self):
        reporter = Mock()
        tele = TelemetryContext(reporter)
        assert tele is TelemetryContext()
        with tele("outer") as ctx:
            ctx.count("hits")
            ctx.gauge("size", 3)
        reporter.record_timing.assert_not_called()
        reporter.record_metric.assert_not_called()

    def test_enabled_without_reporters_is_no_op(self, telemetry_on):
        assert TelemetryContext() is TelemetryContext()

    def test_debug_flag_enables(self, monkeypatch):
        monkeypatch.setenv("DEBUG", "1")
        assert telemetry_enabled()


@pytest.mark.unit
class TestEnabledTelemetry:
    def test_nested_scopes_and_counters(self, telemetry_on):
        reporter = InMemoryReporter()
        tele = TelemetryContext(reporter)

        with tele("outer"):
            with tele("inner"):
                tele.count("hits", 2)
            tele.gauge("size", 7)

        assert set(reporter.timings) == {"outer", "outer.inner"}
        assert reporter.counters["outer.inner.hits"] == 2
        assert reporter.gauges["outer.size"] == 7

    def test_reporter_failure_is_logged_not_raised(self, telemetry_on, caplog):
        broken = Mock()
        broken.record_timing.side_effect = RuntimeError("disk full")
        healthy = InMemoryReporter()
        tele = TelemetryContext(broken, healthy)

        with tele("scope"):
            pass

        assert "scope" in healthy.timings
        assert "disk full" in caplog.text

    def test_empty_scope_name_rejected(self, telemetry_on):
        tele = TelemetryContext(InMemoryReporter())
        with pytest.raises(ValueError), tele(""):
            pass

    def test_governor_counts_cache_hits(self, telemetry_on):
        reporter = InMemoryReporter()
        governor = RequestGovernor(telemetry=TelemetryContext(reporter))
        generate = Mock(return_value=Success("ok"))

        governor.call_with_governance("k", 60_000, 5, generate)
        governor.call_with_governance("k", 60_000, 5, generate)

        assert any(name.endswith("cache_hit") for name in reporter.counters)

    def test_summary_lists_everything(self, telemetry_on):
        reporter = InMemoryReporter()
        tele = TelemetryContext(reporter)
        with tele("parse"):
            tele.count("tier.direct")
        summary = reporter.summary()
        assert "parse " in summary
        assert "parse.tier.direct" in summary


def test_in_memory_reporter_satisfies_protocol():
    assert isinstance(InMemoryReporter(), TelemetryReporter)
