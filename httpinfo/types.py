"""
Capabilities shared by the exchange, the server bridge, and handlers.

A handler is any callable ``handler(sink, request)``.  It writes its
response through a ``ResponseSink`` and reads an ``IncomingRequest``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ResponseSink(Protocol):
    """Destination a handler writes its response to."""

    def headers(self) -> Any:
        """Return the mutable response header collection."""
        ...

    def commit_status(self, code: int) -> None:
        """Commit the response status line."""
        ...

    def write(self, data: bytes) -> int:
        """Write body bytes and return how many were accepted."""
        ...


@dataclass(frozen=True)
class IncomingRequest:
    """Read-only view of an inbound HTTP request.

    Args:
        url: Request URI as received (path plus query string).
        method: Method token, e.g. ``"GET"``.
        proto: Protocol token, e.g. ``"HTTP/1.1"``.
        headers: Header name to ordered list of values.  ``Host`` is
            carried separately in ``host``.
        host: Host token.
        content_length: Declared body length, ``-1`` when unknown.
        body: Raw request body.
    """

    url: str
    method: str = "GET"
    proto: str = "HTTP/1.1"
    headers: Mapping[str, Sequence[str]] = field(default_factory=dict)
    host: str = ""
    content_length: int = -1
    body: bytes = b""


Handler = Callable[[ResponseSink, IncomingRequest], None]
