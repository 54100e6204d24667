"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The protocol half of the server: bytes in, Request out; Response in,
bytes out. Nothing in this package knows about sockets or threads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP Request-Response Cycle                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   CLIENT                                         SERVER              │
    │      │                                              │                │
    │      │   GET /index.html HTTP/1.1                  │                │
    │      │   Host: example.com                         │                │
    │      │  ─────────────────────────────────────────►  │                │
    │      │                                              │                │
    │      │               HTTP/1.1 200 OK               │                │
    │      │               Content-Length: 1043          │                │
    │      │               Content-Type: text/html       │                │
    │      │  ◄─────────────────────────────────────────  │                │
    │      │                                              │                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MODULE COMPONENTS
=============================================================================

    request.py        RequestParser, Request, the RequestError family
    response.py       Response, ResponseWriter, HTTP-date formatting,
                      bad_request() / not_found()
    status_codes.py   HTTPStatus (200 / 400 / 404) and reason phrases
    mime_types.py     File extension → Content-Type

=============================================================================
"""

from .request import (
    ParseErrorKind,
    RequestError,
    HTTPParseError,
    RequestReadError,
    StreamClosedError,
    ReadTimeoutError,
    Request,
    RequestParser,
    canonical_header_key,
    parse_request,
)
from .response import (
    Response,
    ResponseWriter,
    ResponseWriteError,
    format_http_date,
    http_date_now,
    bad_request,
    not_found,
)
from .status_codes import HTTPStatus, STATUS_PHRASES
from .mime_types import MIME_TYPES, DEFAULT_MIME_TYPE, get_mime_type

__all__ = [
    # Request
    "ParseErrorKind",
    "RequestError",
    "HTTPParseError",
    "RequestReadError",
    "StreamClosedError",
    "ReadTimeoutError",
    "Request",
    "RequestParser",
    "canonical_header_key",
    "parse_request",
    # Response
    "Response",
    "ResponseWriter",
    "ResponseWriteError",
    "format_http_date",
    "http_date_now",
    "bad_request",
    "not_found",
    # Status codes
    "HTTPStatus",
    "STATUS_PHRASES",
    # MIME types
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "get_mime_type",
]
