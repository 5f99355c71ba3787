"""
JSON access logging for instrumented exchanges.

``setup_logging()`` installs one JSON handler on the root logger and turns
on OpenTelemetry log correlation, so every access line written by
``MetricsHandler`` carries the exchange values and the id of the
``http.exchange`` span it belongs to::

    {"timestamp": 1760871000.1, "level": "INFO", "logger": "httpinfo.access",
     "message": "GET /ping HTTP/1.1 200 4 (10.412ms)", "method": "GET",
     "url": "/ping", "status_code": 200, "response_size": 4,
     "request_size": 35, "elapsed_ms": 10.412, "trace_id": "...", "span_id": "..."}
"""

import logging

from opentelemetry.instrumentation.logging import LoggingInstrumentor
from pythonjsonlogger.json import JsonFormatter

from httpinfo import config


ACCESS_LOGGER = "httpinfo.access"

# Extra fields MetricsHandler attaches to each access record
ACCESS_FIELDS = ("method", "url", "proto", "status_code", "response_size", "request_size", "elapsed_ms")

_setup_done = False


class JsonTraceFormatter(JsonFormatter):
    """JSON formatter for access records.

    Always emits ``timestamp``, ``level``, ``logger`` and ``message``.
    Access fields are passed through when present, and the
    ``otelTraceID``/``otelSpanID`` attributes injected by OpenTelemetry
    become ``trace_id``/``span_id``.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = record.created
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()
        for field in ACCESS_FIELDS:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)
        trace_id = getattr(record, "otelTraceID", "0")
        if trace_id != "0":
            log_record["trace_id"] = trace_id
            log_record["span_id"] = getattr(record, "otelSpanID", "0")
        for injected in ("otelTraceID", "otelSpanID", "otelTraceSampled", "otelServiceName"):
            log_record.pop(injected, None)


def setup_logging(level: int | str | None = None) -> None:
    """Send JSON records to stderr and correlate them with the current span.

    Only the first call has any effect.  ``level`` defaults to
    ``$HTTPINFO_LOG_LEVEL``.
    """
    global _setup_done
    if _setup_done:
        return
    _setup_done = True

    LoggingInstrumentor().instrument(set_logging_format=False)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonTraceFormatter())

    root = logging.getLogger()
    root.setLevel(config.LOG_LEVEL if level is None else level)
    root.addHandler(handler)


def get_logger(name: str = ACCESS_LOGGER) -> logging.Logger:
    return logging.getLogger(name)
