"""
Reusable sink-style handler that exports per-request HTTP metrics.

Wraps each request in an ``InstrumentedResponseExchange`` and, once the
wrapped handler has returned, feeds the captured values to Prometheus,
the current OpenTelemetry span, and the access log.

Usage::

    from httpinfo.asgi import HandlerApp
    from httpinfo.middleware import MetricsHandler

    app = HandlerApp(MetricsHandler(my_handler, ignored_paths={"/health"}))
"""

from concurrent.futures import Executor
from urllib.parse import urlsplit

from opentelemetry import trace
from prometheus_client import Counter, Histogram

from httpinfo import config
from httpinfo.exchange import InstrumentedResponseExchange
from httpinfo.logging import get_logger
from httpinfo.metrics import SIZE_BUCKETS, create_counter, create_histogram
from httpinfo.types import Handler, IncomingRequest, ResponseSink

logger = get_logger()

SPAN_NAME = "http.exchange"


def default_requests_counter() -> Counter:
    return create_counter(
        "http_requests_total",
        "Total HTTP requests by method, path and status",
        ["method", "path", "status"],
    )


def default_duration_histogram() -> Histogram:
    return create_histogram(
        "http_request_duration_seconds",
        "Time spent inside the wrapped handler",
        buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
        labelnames=["method", "path"],
    )


def default_response_size_histogram() -> Histogram:
    return create_histogram(
        "http_response_size_bytes",
        "Response body bytes accepted by the server",
        buckets=SIZE_BUCKETS,
        labelnames=["method", "path"],
    )


def default_request_size_histogram() -> Histogram:
    return create_histogram(
        "http_request_size_bytes",
        "Estimated inbound request size",
        buckets=SIZE_BUCKETS,
        labelnames=["method", "path"],
    )


class MetricsHandler:
    """Handler that instruments ``handler`` and records what it observed.

    Args:
        handler: The sink-style handler to wrap.
        requests: Counter labelled ``["method", "path", "status"]``.
        duration: Histogram labelled ``["method", "path"]`` (seconds).
        response_size: Histogram labelled ``["method", "path"]`` (bytes).
        request_size: Histogram labelled ``["method", "path"]`` (bytes).
        ignored_paths: Paths served normally but never counted
            (e.g. ``{"/metrics", "/health"}``).  Defaults to
            ``$HTTPINFO_IGNORED_PATHS``.
        executor: Passed through to every exchange.
    """

    def __init__(
        self,
        handler: Handler,
        *,
        requests: Counter | None = None,
        duration: Histogram | None = None,
        response_size: Histogram | None = None,
        request_size: Histogram | None = None,
        ignored_paths: set[str] | None = None,
        executor: Executor | None = None,
    ):
        self.handler = handler
        self.requests = requests or default_requests_counter()
        self.duration = duration or default_duration_histogram()
        self.response_size = response_size or default_response_size_histogram()
        self.request_size = request_size or default_request_size_histogram()
        self.ignored_paths = config.IGNORED_PATHS if ignored_paths is None else ignored_paths
        self.executor = executor
        self._tracer = trace.get_tracer(__name__)

    def __call__(self, sink: ResponseSink, request: IncomingRequest) -> None:
        exchange = InstrumentedResponseExchange(self.handler, executor=self.executor)
        path = urlsplit(request.url).path or "/"

        with self._tracer.start_as_current_span(SPAN_NAME) as span:
            span.set_attribute("http.request.method", request.method)
            span.set_attribute("url.path", path)
            exchange.invoke(sink, request)
            status = exchange.status or 0
            span.set_attribute("http.response.status_code", status)
            span.set_attribute("http.response.body.size", exchange.size)
            span.set_attribute("http.request.size", exchange.request_size)
            # inside the span so the record picks up its trace id
            self._log(request, exchange, status)

        if path not in self.ignored_paths:
            self.requests.labels(method=request.method, path=path, status=str(status)).inc()
            self.duration.labels(method=request.method, path=path).observe(
                exchange.elapsed.total_seconds()
            )
            self.response_size.labels(method=request.method, path=path).observe(exchange.size)
            self.request_size.labels(method=request.method, path=path).observe(exchange.request_size)

    def _log(self, request: IncomingRequest, exchange: InstrumentedResponseExchange, status: int) -> None:
        elapsed_ms = round(exchange.elapsed.total_seconds() * 1000, 3)
        logger.info(
            "%s %s %s %d %d (%.3fms)",
            request.method,
            request.url,
            request.proto,
            status,
            exchange.size,
            elapsed_ms,
            extra={
                "method": request.method,
                "url": request.url,
                "proto": request.proto,
                "status_code": status,
                "response_size": exchange.size,
                "request_size": exchange.request_size,
                "elapsed_ms": elapsed_ms,
            },
        )
