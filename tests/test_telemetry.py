"""Tests for tool-call telemetry."""

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from azdo.config import TelemetryConfig
from azdo.dispatcher import Dispatcher
from azdo.registry import ToolRegistry, ToolTable
from azdo.telemetry import (
    TelemetryManager,
    get_telemetry_manager,
    initialize_telemetry,
    shutdown_telemetry,
)


@pytest.fixture
def enabled_manager():
    manager = TelemetryManager(TelemetryConfig(enabled=True, service_name="azdo-mcp-test"))
    yield manager
    manager.shutdown()


class TestTelemetryManager:
    def test_disabled_by_default(self):
        manager = TelemetryManager(TelemetryConfig())
        assert not manager.initialized
        with manager.trace_tool_call("list_projects") as span:
            assert span is None

    def test_enabled_without_endpoint(self, enabled_manager):
        assert enabled_manager.initialized
        assert enabled_manager.tracer is not None
        assert enabled_manager.meter is not None

    def test_span_for_tool_call(self, enabled_manager):
        with enabled_manager.trace_tool_call("get_build", project="Demo") as span:
            assert span is not None

    def test_errors_propagate_through_span(self, enabled_manager):
        with pytest.raises(RuntimeError, match="boom"):
            with enabled_manager.trace_tool_call("get_build"):
                raise RuntimeError("boom")

    def test_metrics_can_be_disabled(self):
        manager = TelemetryManager(TelemetryConfig(enabled=True, metrics_enabled=False))
        try:
            assert manager.initialized
            assert manager.meter is None
        finally:
            manager.shutdown()


class TestGlobalManager:
    def test_initialize_and_shutdown(self):
        manager = initialize_telemetry(TelemetryConfig())
        assert get_telemetry_manager() is manager
        shutdown_telemetry()
        assert get_telemetry_manager() is None


def _data_points(reader, metric_name):
    points = []
    for resource_metrics in reader.get_metrics_data().resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == metric_name:
                    points.extend(metric.data.data_points)
    return points


class TestDispatcherTelemetry:
    @pytest.fixture
    def span_exporter(self):
        return InMemorySpanExporter()

    @pytest.fixture
    def metric_reader(self):
        return InMemoryMetricReader()

    @pytest.fixture
    def dispatcher(self, span_exporter, metric_reader):
        tracer_provider = TracerProvider()
        tracer_provider.add_span_processor(SimpleSpanProcessor(span_exporter))
        manager = TelemetryManager(
            TelemetryConfig(enabled=True),
            tracer_provider=tracer_provider,
            meter_provider=MeterProvider(metric_readers=[metric_reader]),
        )

        table = ToolTable("demo")

        @table.operation()
        def ping(client, args):
            """Reply pong"""
            return "pong"

        @table.operation()
        def fail(client, args):
            """Always fails"""
            raise RuntimeError("down")

        yield Dispatcher(ToolRegistry.build([table]), object(), telemetry=manager)
        manager.shutdown()

    @pytest.mark.asyncio
    async def test_span_per_call(self, dispatcher, span_exporter):
        assert (await dispatcher.call("ping", {})).payload == "pong"

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "tool_ping"
        assert span.attributes["azdo.tool"] == "ping"
        assert span.status.status_code is not StatusCode.ERROR

    @pytest.mark.asyncio
    async def test_failed_call_marks_span_as_error(self, dispatcher, span_exporter):
        envelope = await dispatcher.call("fail", {})
        assert envelope.error_message == "Error executing fail: down"

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "tool_fail"
        assert span.status.status_code is StatusCode.ERROR
        assert any(event.name == "exception" for event in span.events)

    @pytest.mark.asyncio
    async def test_calls_are_counted_and_timed(self, dispatcher, metric_reader):
        await dispatcher.call("ping", {})
        await dispatcher.call("ping", {})
        await dispatcher.call("fail", {})

        counts = {
            (p.attributes["tool"], p.attributes["status"]): p.value
            for p in _data_points(metric_reader, "azdo_tool_calls_total")
        }
        assert counts == {("ping", "success"): 2, ("fail", "error"): 1}

        durations = {
            p.attributes["tool"]: p.count
            for p in _data_points(metric_reader, "azdo_tool_call_duration_seconds")
        }
        assert durations == {"ping": 2, "fail": 1}

    @pytest.mark.asyncio
    async def test_validation_failures_are_not_traced(self, dispatcher, span_exporter):
        envelope = await dispatcher.call("ping", [])
        assert not envelope.ok
        assert span_exporter.get_finished_spans() == ()
