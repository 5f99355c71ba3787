"""
Helpers for tests that inspect what ``MetricsHandler`` exported.

``setup_test_tracing`` routes spans into memory, ``exchange_spans``
returns the ``http.exchange`` spans recorded so far, and ``reset_metrics``
drops the HTTP collectors so each test starts from zero.
"""

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from prometheus_client import REGISTRY

from httpinfo.middleware import SPAN_NAME


def setup_test_tracing(service_name: str = "httpinfo-test") -> InMemorySpanExporter:
    """Install a global tracer provider that keeps finished spans in memory.

    The OpenTelemetry API only allows the global provider to be set once,
    so the guard is reset to let every test install a fresh one.
    """
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    exporter = InMemorySpanExporter()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    trace._TRACER_PROVIDER = None
    trace._TRACER_PROVIDER_SET_ONCE._done = False
    trace.set_tracer_provider(provider)
    return exporter


def exchange_spans(exporter: InMemorySpanExporter) -> list[ReadableSpan]:
    return [s for s in exporter.get_finished_spans() if s.name == SPAN_NAME]


def reset_metrics() -> None:
    """Unregister every metric collector, keeping the process/gc/platform ones."""
    collectors = {id(c): c for c in REGISTRY._names_to_collectors.values() if hasattr(c, "_name")}
    for collector in collectors.values():
        REGISTRY.unregister(collector)
