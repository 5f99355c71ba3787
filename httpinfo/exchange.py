"""
Per-request response instrumentation.

``InstrumentedResponseExchange`` wraps a handler and poses as its
response sink for one request, recording the status code, body size,
request size and handling time.  It records only; callers decide what
to log or export.

Usage::

    from httpinfo.exchange import InstrumentedResponseExchange

    def access_log(handler):
        def wrapped(sink, request):
            exchange = InstrumentedResponseExchange(handler)
            exchange.invoke(sink, request)
            print(request.method, request.url, exchange.status,
                  exchange.size, exchange.elapsed)
        return wrapped
"""

import enum
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import timedelta
from typing import Any

from httpinfo import config
from httpinfo.request_size import estimate_request_size
from httpinfo.types import Handler, IncomingRequest, ResponseSink

_default_executor: ThreadPoolExecutor | None = None
_default_executor_lock = threading.Lock()


def default_executor() -> ThreadPoolExecutor:
    """Return the process-wide pool that runs request-size estimates."""
    global _default_executor
    with _default_executor_lock:
        if _default_executor is None:
            _default_executor = ThreadPoolExecutor(
                max_workers=config.ESTIMATOR_WORKERS,
                thread_name_prefix="httpinfo-request-size",
            )
        return _default_executor


class ExchangeState(enum.Enum):
    CREATED = "created"
    BOUND = "bound"
    EXECUTING = "executing"
    FINALIZING = "finalizing"
    FINAL = "final"
    FAILED = "failed"


class InstrumentedResponseExchange:
    """Response sink that observes the handler writing through it.

    One instance serves exactly one request.  Accessors hold their zero
    values until ``invoke`` returns and are stable afterwards.

    Args:
        handler: Callable ``handler(sink, request)`` to instrument.
        executor: Where the request-size estimate runs.  Defaults to a
            shared thread pool.
        request_size_timeout: Seconds ``invoke`` waits for the estimate
            after the handler returns.  Defaults to
            ``$HTTPINFO_REQUEST_SIZE_TIMEOUT``; unset waits indefinitely.
    """

    def __init__(
        self,
        handler: Handler,
        *,
        executor: Executor | None = None,
        request_size_timeout: float | None = None,
    ):
        self._handler = handler
        self._executor = executor
        if request_size_timeout is None:
            request_size_timeout = config.REQUEST_SIZE_TIMEOUT
        self._request_size_timeout = request_size_timeout
        self._sink: ResponseSink | None = None
        self._state = ExchangeState.CREATED
        self._status: int | None = None
        self._size = 0
        self._request_size = 0
        self._elapsed = timedelta(0)

    # ── response sink ────────────────────────────────────────────

    def _bound_sink(self) -> ResponseSink:
        if self._state is not ExchangeState.EXECUTING:
            raise RuntimeError(f"response sink is not bound (exchange is {self._state.value})")
        return self._sink

    def headers(self) -> Any:
        """Return the real sink's header collection."""
        return self._bound_sink().headers()

    def write(self, data: bytes) -> int:
        sink = self._bound_sink()
        if self._status is None:
            # Writing before committing a status implies 200
            self._status = 200
        try:
            written = sink.write(data)
        except OSError as exc:
            self._size += getattr(exc, "characters_written", 0)
            raise
        self._size += written
        return written

    def commit_status(self, code: int) -> None:
        """Forward ``code`` to the real sink and record it."""
        self._bound_sink().commit_status(code)
        self._status = code

    # ── entry point ──────────────────────────────────────────────

    def invoke(self, sink: ResponseSink, request: IncomingRequest) -> None:
        """
        Serve ``request`` through the wrapped handler, writing to ``sink``.

        Blocks until the handler returns and the request-size estimate
        is available.  Exceptions raised by the handler or the sink are
        not caught.
        """
        if self._state is not ExchangeState.CREATED:
            raise RuntimeError("an exchange can only be invoked once")

        executor = self._executor or default_executor()
        pending_size = executor.submit(estimate_request_size, request)

        self._sink = sink
        self._state = ExchangeState.BOUND

        started = time.perf_counter()
        self._state = ExchangeState.EXECUTING
        try:
            self._handler(self, request)
        except BaseException:
            # elapsed and request_size stay unfinalized
            self._state = ExchangeState.FAILED
            raise
        self._elapsed = timedelta(seconds=time.perf_counter() - started)

        self._state = ExchangeState.FINALIZING
        self._request_size = pending_size.result(timeout=self._request_size_timeout)
        self._state = ExchangeState.FINAL

    # ── accessors ────────────────────────────────────────────────

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def status(self) -> int | None:
        """Committed status code, ``None`` if the handler never responded."""
        return self._status

    @property
    def size(self) -> int:
        """Response body bytes accepted by the sink."""
        return self._size

    @property
    def request_size(self) -> int:
        return self._request_size

    @property
    def elapsed(self) -> timedelta:
        return self._elapsed
