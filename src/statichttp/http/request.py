"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request head from a byte stream and turns it into a
validated Request, or raises an error that says exactly what went wrong.

=============================================================================
WHAT THIS SERVER ACCEPTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     REQUEST HEAD STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    GET /docs/index.html HTTP/1.1\r\n                           │ │
    │  │    ─┬─ ───────┬──────── ───┬────                               │ │
    │  │     │         │            │                                    │ │
    │  │   "GET"     starts       exactly                               │ │
    │  │   only      with "/"     "HTTP/1.1"                            │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    Host: example.com\r\n          ← mandatory, hoisted out     │ │
    │  │    Connection: close\r\n          ← optional, hoisted out      │ │
    │  │    Accept: text/html\r\n          ← kept in Request.headers    │ │
    │  │    \r\n                           ← blank line ends the head   │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  No body: GET requests here never carry one.                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LINE-AT-A-TIME PARSING
=============================================================================

The parser pulls lines from the stream with readline() rather than
waiting for the whole head up front. That matters for two reasons:

1. A persistent connection carries several requests back to back. Reading
   line by line stops exactly at the blank line, so the next request's
   bytes stay in the stream for the next parse() call.

2. The connection handler needs to know WHY a read failed. A client that
   connected and sent nothing is idle; a client that sent half a request
   and stalled is broken. The parser records whether any byte of the
   request had arrived (bytes_consumed) and attaches that to every error.

=============================================================================
ERROR HIERARCHY
=============================================================================

    RequestError                    bytes_consumed: bool
    ├── HTTPParseError              kind: ParseErrorKind (always a 400)
    └── RequestReadError
        ├── StreamClosedError       peer closed before the blank line
        └── ReadTimeoutError        read deadline expired

=============================================================================
HEADER NAME CANONICALIZATION
=============================================================================

Header names are case-insensitive. Instead of lowercasing on every lookup,
names are normalized ONCE when stored:

    "content-type"   ──►  "Content-Type"
    "X-FORWARDED-FOR" ──► "X-Forwarded-For"
    "host"           ──►  "Host"

Lookups then use plain dict equality. Canonicalizing an already canonical
name is a no-op.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Dict


class ParseErrorKind(Enum):
    """What part of the request head was rejected."""
    MALFORMED_START_LINE = "malformed start line"
    UNSUPPORTED_METHOD = "unsupported method"
    INVALID_TARGET = "invalid target"
    UNSUPPORTED_VERSION = "unsupported version"
    MALFORMED_HEADER = "malformed header"
    MISSING_HOST = "missing host"
    LINE_TOO_LONG = "line too long"
    BARE_LINE_FEED = "line not terminated by CRLF"


class RequestError(Exception):
    """
    Base class for everything that can stop a request from being read.

    Attributes:
        bytes_consumed: True if any byte of the request had arrived when
                        the parse() call failed. The connection handler
                        uses this to tell an idle client from one that
                        abandoned a request half way.
    """

    def __init__(self, message: str, bytes_consumed: bool = False):
        super().__init__(message)
        self.bytes_consumed = bytes_consumed


class HTTPParseError(RequestError):
    """
    The bytes arrived but do not form a request this server accepts.

    Every parse error is answered with 400 Bad Request. The kind says which
    rule was broken (handy in logs and tests).
    """

    def __init__(self, kind: ParseErrorKind, message: str, bytes_consumed: bool = True):
        super().__init__(message, bytes_consumed)
        self.kind = kind


class RequestReadError(RequestError):
    """The stream stopped delivering data before the head was complete."""


class StreamClosedError(RequestReadError):
    """End of stream reached before the blank line that ends the head."""


class ReadTimeoutError(RequestReadError):
    """The read deadline expired before the head was complete."""


@dataclass
class Request:
    """
    A parsed GET request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:   Always "GET" (anything else is rejected by the parser)

        path:     The literal request target, e.g. "/docs/". It is NOT
                  expanded to "/docs/index.html" here; that happens when
                  the target is resolved against the document root.

        version:  Always "HTTP/1.1"

        headers:  Canonical header name → value, WITHOUT "Host" and
                  "Connection" (those live in the fields below)

        host:     Value of the mandatory Host header

        close:    True if the client sent "Connection: close"

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    host: str = ""
    close: bool = False

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value by name, in any case.

        Example:
            request.get_header("accept-language")
            # Same as request.headers["Accept-Language"]
        """
        return self.headers.get(canonical_header_key(name), default)


def canonical_header_key(name: str) -> str:
    """
    Normalize a header name to its canonical form.

    Each hyphen-separated segment gets an upper-case first letter and a
    lower-case remainder:

        >>> canonical_header_key("content-LENGTH")
        'Content-Length'
        >>> canonical_header_key(canonical_header_key("x-a-b"))
        'X-A-B'
    """
    return "-".join(
        segment[:1].upper() + segment[1:].lower()
        for segment in name.split("-")
    )


class RequestParser:
    """
    Parses one request head at a time from a readable binary stream.

    ==========================================================================
    PARSER FLOW
    ==========================================================================

        stream.readline()
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  REQUEST PARSER                                                   │
        ├───────────────────────────────────────────────────────────────────┤
        │                                                                    │
        │  1. Request line ──► split on single spaces, exactly 3 fields     │
        │     │  GET only, target starts with "/", HTTP/1.1 only            │
        │     ▼                                                             │
        │  2. Header lines until the blank line                             │
        │     │  "Name: value", split on the FIRST colon                    │
        │     │  Name: letters, digits, hyphen; canonicalized               │
        │     │  Value: leading whitespace dropped, trailing kept           │
        │     ▼                                                             │
        │  3. Hoist Host (mandatory) and Connection (optional)              │
        │     ▼                                                             │
        │  4. Build Request                                                 │
        │                                                                    │
        └───────────────────────────────────────────────────────────────────┘

    The stream can be anything with readline(limit): a Connection in the
    server, io.BytesIO in tests. If the stream raises TimeoutError (which
    socket.timeout is an alias of), the parser reports ReadTimeoutError.

    ==========================================================================
    """

    METHOD = "GET"
    VERSION = "HTTP/1.1"

    # Letters, digits and hyphen only. This also rules out surrounding
    # spaces, so "Host : x" and " Host: x" are both rejected.
    HEADER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")

    # Optional whitespace before a header value (RFC 7230 OWS)
    OWS = " \t"

    def __init__(self, max_line_length: int = 8192):
        """
        Initialize the request parser.

        Args:
            max_line_length: Longest accepted line in bytes, terminator
                             included. Guards memory against a client that
                             streams an endless line.
        """
        self.max_line_length = max_line_length

    def parse(self, stream: BinaryIO) -> Request:
        """
        Read and validate the next request head from the stream.

        Args:
            stream: Binary stream positioned at the start of a request.

        Returns:
            The parsed Request.

        Raises:
            HTTPParseError: The head is malformed or unsupported.
            StreamClosedError: The stream ended before the blank line.
            ReadTimeoutError: The stream's read deadline expired.
        """
        lines_read = 0

        def next_line() -> str:
            nonlocal lines_read
            line = self._read_line(stream, bytes_consumed=lines_read > 0)
            lines_read += 1
            return line

        # =====================================================================
        # STEP 1: Request line
        # =====================================================================
        method, path, version = self._parse_request_line(next_line())

        # =====================================================================
        # STEP 2: Header lines, up to the blank line
        # =====================================================================
        headers: Dict[str, str] = {}
        while True:
            line = next_line()
            if line == "":
                break
            name, value = self._parse_header_line(line)
            headers[name] = value  # last one wins

        # =====================================================================
        # STEP 3: Hoist Host and Connection out of the generic map
        # =====================================================================
        if "Host" not in headers:
            raise HTTPParseError(ParseErrorKind.MISSING_HOST, "Missing Host header")
        host = headers.pop("Host")

        close = headers.pop("Connection", None) == "close"

        return Request(
            method=method,
            path=path,
            version=version,
            headers=headers,
            host=host,
            close=close,
        )

    def _read_line(self, stream: BinaryIO, bytes_consumed: bool) -> str:
        """
        Read one CRLF-terminated line and return it without the CRLF.

        A line ending in a bare "\\n" is rejected with BARE_LINE_FEED.

        bytes_consumed says whether earlier lines of this request were
        read. A partial line counts too: bytes left unterminated at end of
        stream, or still pending in the stream when the deadline expires.
        """
        try:
            raw = stream.readline(self.max_line_length)
        except TimeoutError:
            partial = _has_pending(stream)
            raise ReadTimeoutError("Read deadline expired", bytes_consumed or partial) from None

        if not raw.endswith(b"\n"):
            if len(raw) >= self.max_line_length:
                raise HTTPParseError(
                    ParseErrorKind.LINE_TOO_LONG,
                    f"Line exceeds {self.max_line_length} bytes",
                )
            raise StreamClosedError("Stream closed mid-request", bytes_consumed or bool(raw))

        if not raw.endswith(b"\r\n"):
            raise HTTPParseError(
                ParseErrorKind.BARE_LINE_FEED,
                f"Line not terminated by CRLF: {raw!r}",
            )

        # ISO-8859-1 maps every byte to one character, so decoding never
        # fails. Non-ASCII still gets rejected by the validation rules.
        return raw[:-2].decode("iso-8859-1")

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Validate "METHOD SP TARGET SP VERSION".

        Checks run in a fixed order, so a request that breaks several rules
        always reports the first one:

            shape ──► method ──► target ──► version
        """
        fields = line.split(" ")
        if len(fields) != 3 or any(
            not part or any(ch.isspace() for ch in part) for part in fields
        ):
            raise HTTPParseError(
                ParseErrorKind.MALFORMED_START_LINE,
                f"Invalid request line: {line!r}",
            )

        method, target, version = fields

        if method != self.METHOD:
            raise HTTPParseError(
                ParseErrorKind.UNSUPPORTED_METHOD,
                f"Unsupported method: {method!r}",
            )

        if not target.startswith("/"):
            raise HTTPParseError(
                ParseErrorKind.INVALID_TARGET,
                f"Target must start with '/': {target!r}",
            )

        if version != self.VERSION:
            raise HTTPParseError(
                ParseErrorKind.UNSUPPORTED_VERSION,
                f"Unsupported HTTP version: {version!r}",
            )

        return method, target, version

    def _parse_header_line(self, line: str) -> tuple[str, str]:
        """
        Split "Name: value" into a canonical name and its value.

        Examples:
            "accept: text/html"    → ("Accept", "text/html")
            "X-Ids:1:2:3"          → ("X-Ids", "1:2:3")   first colon only
            "Key:   spaced  "      → ("Key", "spaced  ")   trailing kept
        """
        name, sep, value = line.partition(":")
        if not sep:
            raise HTTPParseError(
                ParseErrorKind.MALFORMED_HEADER,
                f"Header line without colon: {line!r}",
            )

        if not name.strip():
            raise HTTPParseError(ParseErrorKind.MALFORMED_HEADER, "Empty header name")

        if not self.HEADER_NAME_PATTERN.match(name):
            raise HTTPParseError(
                ParseErrorKind.MALFORMED_HEADER,
                f"Invalid header name: {name!r}",
            )

        return canonical_header_key(name), value.lstrip(self.OWS)


def _has_pending(stream: BinaryIO) -> bool:
    """True if the stream buffered bytes that readline() has not returned."""
    has_pending = getattr(stream, "has_pending", None)
    return bool(has_pending and has_pending())


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(stream: BinaryIO, max_line_length: int = 8192) -> Request:
    """
    Parse one request from a stream with a throwaway parser.

    Use RequestParser directly when parsing many requests with the same
    settings.
    """
    return RequestParser(max_line_length=max_line_length).parse(stream)
