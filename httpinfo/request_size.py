"""Best-effort estimate of how many bytes an inbound request occupied."""

from httpinfo.types import IncomingRequest


def _length(token: str) -> int:
    # The server bridge decodes raw bytes as latin-1, so that round-trip
    # gives the wire length; anything else is counted as UTF-8.
    try:
        return len(token.encode("latin-1"))
    except UnicodeEncodeError:
        return len(token.encode("utf-8"))


def estimate_request_size(request: IncomingRequest) -> int:
    """
    Approximate the wire size of ``request`` without reading its body.

    Sums the URL, method, protocol, every header name and value, and the
    host, then adds the declared content length when it is known.  Form
    data is assumed to be reflected in either the URL or the declared
    length.
    """
    size = _length(request.url) + _length(request.method) + _length(request.proto)
    for name, values in request.headers.items():
        size += _length(name)
        for value in values:
            size += _length(value)
    size += _length(request.host)
    if request.content_length > 0:
        size += request.content_length
    return size
