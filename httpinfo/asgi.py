"""
Serve sink-style handlers from an ASGI server.

``HandlerApp`` runs a synchronous ``handler(sink, request)`` in
Starlette's threadpool and relays everything it writes back to the event
loop, the same way Starlette runs plain ``def`` endpoints.

Usage::

    from httpinfo.asgi import create_app

    def hello(sink, request):
        sink.headers()["content-type"] = "text/plain"
        sink.write(b"hello")

    app = create_app(hello)   # uvicorn module:app
"""

import logging
from typing import Callable

import anyio.from_thread
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import Message, Receive, Scope, Send

from httpinfo.logging import setup_logging
from httpinfo.middleware import MetricsHandler
from httpinfo.types import Handler, IncomingRequest

logger = logging.getLogger("httpinfo.asgi")


class ASGIResponseSink:
    """``ResponseSink`` that turns handler calls into ASGI messages.

    Args:
        send: Blocking callable delivering one ASGI message.
    """

    def __init__(self, send: Callable[[Message], None]):
        self._send = send
        self._headers = MutableHeaders()
        self._status: int | None = None
        self._finished = False

    @property
    def committed(self) -> bool:
        return self._status is not None

    def headers(self) -> MutableHeaders:
        return self._headers

    def commit_status(self, code: int) -> None:
        if self._status is not None:
            logger.warning(
                "Superfluous commit_status(%d) ignored; response already committed with %d",
                code,
                self._status,
            )
            return
        self._status = code
        self._send({
            "type": "http.response.start",
            "status": code,
            "headers": list(self._headers.raw),
        })

    def write(self, data: bytes) -> int:
        if self._finished:
            raise RuntimeError("response body already finished")
        if self._status is None:
            self.commit_status(200)
        if not data:
            return 0
        body = bytes(data)
        self._send({"type": "http.response.body", "body": body, "more_body": True})
        return len(body)

    def finish(self) -> None:
        """Commit 200 if nothing was committed, then close the body."""
        if self._status is None:
            self.commit_status(200)
        if self._finished:
            return
        self._finished = True
        self._send({"type": "http.response.body", "body": b"", "more_body": False})


def _content_length(request: Request) -> int:
    declared = request.headers.get("content-length")
    if declared is not None:
        try:
            return int(declared)
        except ValueError:
            return -1
    if "chunked" in request.headers.get("transfer-encoding", "").lower():
        return -1
    return 0


def request_from_scope(request: Request, body: bytes = b"") -> IncomingRequest:
    """Build an ``IncomingRequest`` from a Starlette request.

    The URL is the request URI exactly as sent (still percent-encoded).
    ``Host`` moves out of the header map into ``host``.
    """
    raw_path = request.scope.get("raw_path")
    url = raw_path.decode("latin-1") if raw_path else request.url.path
    query = request.scope.get("query_string", b"")
    if query:
        url = f"{url}?{query.decode('latin-1')}"

    headers: dict[str, list[str]] = {}
    host = ""
    for raw_name, raw_value in request.headers.raw:
        name = raw_name.decode("latin-1")
        value = raw_value.decode("latin-1")
        if name.lower() == "host":
            host = host or value
            continue
        headers.setdefault(name, []).append(value)

    return IncomingRequest(
        url=url,
        method=request.method,
        proto=f"HTTP/{request.scope.get('http_version', '1.1')}",
        headers=headers,
        host=host,
        content_length=_content_length(request),
        body=body,
    )


class HandlerApp:
    """ASGI application serving one sink-style handler.

    Args:
        handler: Callable ``handler(sink, request)``.
    """

    def __init__(self, handler: Handler):
        self.handler = handler

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            raise RuntimeError(f"HandlerApp only serves http scopes, got {scope['type']!r}")

        request = Request(scope, receive)
        body = await request.body()
        incoming = request_from_scope(request, body)

        def send_from_thread(message: Message) -> None:
            anyio.from_thread.run(send, message)

        sink = ASGIResponseSink(send_from_thread)
        await run_in_threadpool(self._serve, sink, incoming)

    def _serve(self, sink: ASGIResponseSink, request: IncomingRequest) -> None:
        self.handler(sink, request)
        sink.finish()


def create_app(handler: Handler, *, ignored_paths: set[str] | None = None) -> HandlerApp:
    """Serve ``handler`` with JSON access logging and HTTP metrics.

    ``ignored_paths`` defaults to ``$HTTPINFO_IGNORED_PATHS``.
    """
    setup_logging()
    return HandlerApp(MetricsHandler(handler, ignored_paths=ignored_paths))
