"""
httpinfo: per-request HTTP response instrumentation.

Submodules
----------
exchange      ``InstrumentedResponseExchange``: status, body size, request
              size and duration for one request.
request_size  Best-effort inbound request size estimate.
types         ``ResponseSink`` protocol and ``IncomingRequest``.
asgi          Serve sink-style handlers from an ASGI server.
middleware    Handler that exports exchange values to Prometheus, tracing
              and the access log.
metrics       Prometheus metric factories.
logging       Structured JSON logging with OTel trace-context injection.
config        Environment-driven settings.
testing       In-memory tracing exporter & metric-reset helpers for tests.

Quick start
-----------
::

    from httpinfo import HandlerApp, MetricsHandler, setup_logging

    setup_logging()
    app = HandlerApp(MetricsHandler(my_handler))
"""

# ── core ─────────────────────────────────────────────────────────
from .exchange import ExchangeState, InstrumentedResponseExchange
from .request_size import estimate_request_size
from .types import Handler, IncomingRequest, ResponseSink

# ── server bridge ────────────────────────────────────────────────
from .asgi import ASGIResponseSink, HandlerApp, create_app, request_from_scope

# ── callers ──────────────────────────────────────────────────────
from .middleware import MetricsHandler

# ── ambient ──────────────────────────────────────────────────────
from .logging import setup_logging, get_logger, JsonTraceFormatter
from .metrics import create_counter, create_histogram, metrics_response


__all__ = [
    # core
    "ExchangeState",
    "InstrumentedResponseExchange",
    "estimate_request_size",
    "Handler",
    "IncomingRequest",
    "ResponseSink",
    # server bridge
    "ASGIResponseSink",
    "HandlerApp",
    "create_app",
    "request_from_scope",
    # callers
    "MetricsHandler",
    # logging
    "setup_logging",
    "get_logger",
    "JsonTraceFormatter",
    # metrics
    "create_counter",
    "create_histogram",
    "metrics_response",
]
