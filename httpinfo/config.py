"""
Environment-driven settings.

Values are read once at import time:

``HTTPINFO_LOG_LEVEL``             Root log level (default ``INFO``).
``HTTPINFO_ESTIMATOR_WORKERS``     Threads in the shared request-size pool.
``HTTPINFO_REQUEST_SIZE_TIMEOUT``  Seconds to wait for the request-size
                                   estimate; unset waits forever.
``HTTPINFO_IGNORED_PATHS``         Comma-separated paths the metrics
                                   handler serves but does not count.
"""

import os


def parse_timeout(value: str | None) -> float | None:
    """Parse a timeout in seconds; empty or missing means no timeout."""
    if value is None or not value.strip():
        return None
    timeout = float(value)
    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {value!r}")
    return timeout


def parse_paths(value: str | None) -> set[str]:
    """Split a comma-separated path list, dropping blanks."""
    if not value:
        return set()
    return {p.strip() for p in value.split(",") if p.strip()}


LOG_LEVEL = os.environ.get("HTTPINFO_LOG_LEVEL", "INFO").upper()

ESTIMATOR_WORKERS = int(os.environ.get("HTTPINFO_ESTIMATOR_WORKERS", "4"))

REQUEST_SIZE_TIMEOUT = parse_timeout(os.environ.get("HTTPINFO_REQUEST_SIZE_TIMEOUT"))

IGNORED_PATHS = parse_paths(os.environ.get("HTTPINFO_IGNORED_PATHS"))
