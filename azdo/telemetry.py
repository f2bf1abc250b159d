"""Tool-call telemetry for azdo-mcp."""

import logging
import os
import time
from contextlib import contextmanager
from typing import Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from .config import TelemetryConfig

logger = logging.getLogger(__name__)


class TelemetryManager:
    """
    Traces and counts tool calls with OpenTelemetry.

    Spans and metrics are only exported when the matching
    ``OTEL_EXPORTER_OTLP_*_ENDPOINT`` variable is set; without an endpoint the
    providers still run, which keeps tests and local use cheap.
    """

    def __init__(
        self,
        config: TelemetryConfig,
        tracer_provider: Optional[TracerProvider] = None,
        meter_provider: Optional[MeterProvider] = None,
    ):
        """
        Args:
            config: Telemetry settings.
            tracer_provider: Provider to trace with instead of installing a
                global one.
            meter_provider: Provider to record metrics with instead of
                installing a global one.
        """
        self.config = config
        self._tracer_provider = tracer_provider
        self._meter_provider = meter_provider
        self.tracer: Optional[trace.Tracer] = None
        self.meter: Optional[metrics.Meter] = None
        self._initialized = False

        self._tool_call_counter = None
        self._tool_call_duration = None

        if config.enabled:
            self._setup_telemetry()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _setup_telemetry(self):
        """Set up OpenTelemetry providers and exporters."""
        try:
            resource = Resource(
                attributes={
                    "service.name": self.config.service_name,
                    "service.version": self.config.service_version,
                    "process.pid": os.getpid(),
                }
            )

            if self._tracer_provider is None:
                self._tracer_provider = TracerProvider(
                    resource=resource, sampler=TraceIdRatioBased(self.config.trace_sampling_rate)
                )
                otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")
                if otlp_endpoint:
                    self._tracer_provider.add_span_processor(
                        BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
                    )
                trace.set_tracer_provider(self._tracer_provider)
            self.tracer = self._tracer_provider.get_tracer(__name__)

            if self.config.metrics_enabled:
                self._setup_metrics(resource)

            self._initialized = True
            logger.info("Telemetry initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize telemetry: {e}")
            # Don't fail the application if telemetry setup fails
            self.config.enabled = False

    def _setup_metrics(self, resource: Resource):
        if self._meter_provider is None:
            readers = []
            otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT")
            if otlp_endpoint:
                readers.append(
                    PeriodicExportingMetricReader(
                        exporter=OTLPMetricExporter(endpoint=otlp_endpoint),
                        export_interval_millis=30000,
                    )
                )
            self._meter_provider = MeterProvider(resource=resource, metric_readers=readers)
            metrics.set_meter_provider(self._meter_provider)
        self.meter = self._meter_provider.get_meter(__name__)

        self._tool_call_counter = self.meter.create_counter(
            name="azdo_tool_calls_total",
            description="Total number of tool calls",
            unit="1",
        )
        self._tool_call_duration = self.meter.create_histogram(
            name="azdo_tool_call_duration_seconds",
            description="Duration of tool calls in seconds",
            unit="s",
        )

    @contextmanager
    def trace_tool_call(self, tool_name: str, **attributes):
        """
        Context manager for tracing one tool call.

        Args:
            tool_name: Name of the tool being executed
            **attributes: Additional span attributes
        """
        if not self._initialized or not self.tracer:
            yield None
            return

        with self.tracer.start_as_current_span(f"tool_{tool_name}") as span:
            span.set_attribute("azdo.tool", tool_name)
            for key, value in attributes.items():
                span.set_attribute(key, value)

            start_time = time.time()
            status = "success"
            try:
                yield span
            except Exception as e:
                status = "error"
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                raise
            finally:
                if self._tool_call_counter:
                    self._tool_call_counter.add(1, {"tool": tool_name, "status": status})
                if self._tool_call_duration:
                    self._tool_call_duration.record(time.time() - start_time, {"tool": tool_name})

    def shutdown(self):
        """Shutdown telemetry providers."""
        if not self._initialized:
            return

        try:
            if self._tracer_provider is not None:
                self._tracer_provider.shutdown()
            if self._meter_provider is not None:
                self._meter_provider.shutdown()

            logger.info("Telemetry shutdown complete")

        except Exception as e:
            logger.error(f"Error during telemetry shutdown: {e}")


# Global telemetry manager instance
_telemetry_manager: Optional[TelemetryManager] = None


def initialize_telemetry(config: TelemetryConfig) -> TelemetryManager:
    """Initialize the global telemetry manager."""
    global _telemetry_manager
    _telemetry_manager = TelemetryManager(config)
    return _telemetry_manager


def get_telemetry_manager() -> Optional[TelemetryManager]:
    return _telemetry_manager


def shutdown_telemetry():
    """Shutdown the global telemetry manager."""
    global _telemetry_manager
    if _telemetry_manager:
        _telemetry_manager.shutdown()
        _telemetry_manager = None
