"""
=============================================================================
HTTP RESPONSE MODEL AND WRITER
=============================================================================

A Response is a plain value: status, protocol, headers, and optionally the
path of a file to send as the body. The ResponseWriter turns that value
into bytes on a stream.

=============================================================================
WIRE FORMAT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                       ← status line          │
    │    Content-Length: 1043\r\n                  ┐                      │
    │    Content-Type: text/html\r\n               │ headers, sorted      │
    │    Date: Thu, 15 Jan 2026 12:30:45 GMT\r\n   │ by name              │
    │    Last-Modified: Wed, 14 Jan 2026 ...\r\n   ┘                      │
    │    \r\n                                      ← end of head          │
    │    <!DOCTYPE html>...                        ← file bytes           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Headers are sorted at write time, never when the Response is built. The
same Response always produces the same bytes, which keeps responses easy
to compare in tests.

=============================================================================
LAZY BODIES
=============================================================================

A 200 response holds the file PATH, not the file content. The bytes are
streamed from disk in chunks while writing, so serving a large file never
loads it into memory at once.

The file is opened BEFORE anything is written. If it vanished between
classification and writing, the failure happens while the stream is still
clean and the connection handler can still answer with a 400.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, BinaryIO, Dict, Optional

from .status_codes import HTTPStatus

if TYPE_CHECKING:
    from .request import Request


class ResponseWriteError(Exception):
    """
    Writing a response failed.

    Attributes:
        started: True if some bytes may already have reached the stream.
                 When False the stream is untouched and another response
                 can still be written on it.
    """

    def __init__(self, message: str, started: bool):
        super().__init__(message)
        self.started = started


@dataclass
class Response:
    """
    An HTTP response ready to be written.

    =========================================================================
    INVARIANTS
    =========================================================================

    - status is one of 200, 400, 404
    - headers always contains "Date"
    - every non-200 response has "Connection: close"
    - headers is owned by this response; it never aliases a request's
      header dict

    =========================================================================
    """

    status: HTTPStatus
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    file_path: Optional[str] = None                 # None means no body
    request: Optional["Request"] = field(default=None, repr=False)

    @property
    def status_line(self) -> str:
        """
        The status line without its CRLF.

        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def closes_connection(self) -> bool:
        """True if the client is told this connection ends after the response."""
        return self.headers.get("Connection") == "close"

    def head_bytes(self) -> bytes:
        """
        Serialize the status line and sorted headers, blank line included.

        =====================================================================
        SERIALIZATION
        =====================================================================

            HTTP/1.1 400 Bad Request\\r\\n
            Connection: close\\r\\n          ← "C" < "D"
            Date: Thu, 15 Jan 2026 ...\\r\\n
            \\r\\n

        =====================================================================
        """
        lines = [self.status_line]
        for name in sorted(self.headers):
            lines.append(f"{name}: {self.headers[name]}")
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("latin-1")


class ResponseWriter:
    """
    Writes Response values to a binary stream.

    Order on the wire:

        1. status line
        2. headers, sorted by name, then a blank line
        3. body file contents (if any)

    A failure at any step aborts the rest and raises ResponseWriteError.
    The writer does not try to repair a half-written response; the caller
    closes the connection.
    """

    def __init__(self, chunk_size: int = 64 * 1024):
        """
        Args:
            chunk_size: How many body bytes to copy per read/write.
        """
        self.chunk_size = chunk_size

    def write(self, response: Response, stream: BinaryIO) -> int:
        """
        Write the full response and flush the stream.

        Args:
            response: The response to send.
            stream: Writable binary stream (socket file, BytesIO, ...).

        Returns:
            Number of body bytes written.

        Raises:
            ResponseWriteError: The body file could not be opened, or the
                                stream failed while writing.
        """
        # ─────────────────────────────────────────────────────────────────
        # OPEN THE BODY FIRST
        # ─────────────────────────────────────────────────────────────────
        body = None
        if response.file_path:
            try:
                body = open(response.file_path, "rb")
            except OSError as e:
                raise ResponseWriteError(
                    f"Cannot open body file {response.file_path}: {e}",
                    started=False,
                ) from e

        # ─────────────────────────────────────────────────────────────────
        # HEAD, THEN BODY
        # ─────────────────────────────────────────────────────────────────
        try:
            stream.write(response.head_bytes())
            body_size = 0
            if body is not None:
                body_size = self._copy_body(body, stream)
            stream.flush()
            return body_size
        except OSError as e:
            raise ResponseWriteError(f"Write failed: {e}", started=True) from e
        finally:
            if body is not None:
                body.close()

    def _copy_body(self, body: BinaryIO, stream: BinaryIO) -> int:
        """Copy the file to the stream in chunks and count the bytes."""
        total = 0
        while True:
            chunk = body.read(self.chunk_size)
            if not chunk:
                return total
            stream.write(chunk)
            total += len(chunk)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 1123, always GMT).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 15 Jan 2026 12:30:45 GMT

    Day and month names are spelled out here rather than taken from
    strftime, whose output depends on the process locale.

    Args:
        dt: Datetime to format. Aware datetimes are converted to UTC;
            naive ones are taken to already be UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def http_date_now() -> str:
    """Current time as an HTTP-date, for the Date header."""
    return format_http_date(datetime.now(timezone.utc))


# =============================================================================
# ERROR RESPONSES
# =============================================================================
#
# Both error responses force the connection closed and are not tied to a
# request. Each call builds a brand-new header dict.
#
# =============================================================================

def bad_request() -> Response:
    """
    400 Bad Request, used for every parse failure and mid-request timeout.
    """
    return Response(
        status=HTTPStatus.BAD_REQUEST,
        headers={"Date": http_date_now(), "Connection": "close"},
    )


def not_found() -> Response:
    """
    404 Not Found, used for missing files, directories and paths outside
    the document root. Always closes, whatever the request asked for.
    """
    return Response(
        status=HTTPStatus.NOT_FOUND,
        headers={"Date": http_date_now(), "Connection": "close"},
    )
