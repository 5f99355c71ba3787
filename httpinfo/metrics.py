"""
Prometheus metric factories with idempotent registration.

``create_counter`` and ``create_histogram`` return the already
registered collector when called twice with the same name, so several
``MetricsHandler`` instances can share the standard HTTP metrics.
``metrics_response`` renders the registry for a ``/metrics`` endpoint.
"""

from prometheus_client import Counter, Histogram, REGISTRY, generate_latest, CONTENT_TYPE_LATEST


# Byte-size buckets from 64 B to 16 MiB
SIZE_BUCKETS = [64, 256, 1024, 4096, 16384, 65536, 262144, 1048576, 4194304, 16777216]


def _get_or_create(metric_cls, name, documentation, **kwargs):
    """Create a metric or return the existing one if already registered."""
    try:
        return metric_cls(name, documentation, **kwargs)
    except ValueError:
        # Already registered, look it up in the default registry.
        # Counters register under both ``x`` and ``x_total``.
        existing = REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing
        for collector in REGISTRY._names_to_collectors.values():
            if hasattr(collector, '_name') and (
                collector._name == name or
                getattr(collector, '_original_name', None) == name
            ):
                return collector
        raise


def create_counter(name: str, documentation: str, labelnames: list[str] = None) -> Counter:
    """Create (or retrieve) a Prometheus Counter."""
    return _get_or_create(Counter, name, documentation, labelnames=labelnames or [])


def create_histogram(name: str, documentation: str, buckets: list[float] = None, labelnames: list[str] = None) -> Histogram:
    """Create (or retrieve) a Prometheus Histogram."""
    kwargs = {}
    if buckets:
        kwargs["buckets"] = buckets
    if labelnames:
        kwargs["labelnames"] = labelnames
    return _get_or_create(Histogram, name, documentation, **kwargs)


def metrics_response():
    """
    Return Prometheus exposition-format bytes and the matching content-type.

    Returns:
        tuple[bytes, str]: ``(body, content_type)`` ready for an HTTP response.
    """
    return generate_latest(), CONTENT_TYPE_LATEST
