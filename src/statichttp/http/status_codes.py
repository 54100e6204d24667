"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The static file server speaks exactly three status codes:

    ┌──────┬───────────────┬──────────────────────────────────────────────┐
    │ Code │ Reason        │ When                                         │
    ├──────┼───────────────┼──────────────────────────────────────────────┤
    │ 200  │ OK            │ Target resolved to a regular file in root    │
    │ 400  │ Bad Request   │ Request head could not be parsed, or the     │
    │      │               │ client stalled in the middle of a request    │
    │ 404  │ Not Found     │ Missing file, directory, or path that        │
    │      │               │ escapes the document root                    │
    └──────┴───────────────┴──────────────────────────────────────────────┘

Anything else (3xx redirects, 5xx errors, ...) is out of scope. Keeping the
enum this small means a response can never carry a code the writer does
not know a reason phrase for.

=============================================================================
"""

from enum import IntEnum
from types import MappingProxyType


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                # File found and served
    BAD_REQUEST = 400       # Malformed or unsupported request
    NOT_FOUND = 404         # Nothing servable at that path

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── phrase
                      └───────── code
        """
        return STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """True for 2xx codes."""
        return 200 <= self < 300


# =============================================================================
# REASON PHRASES
# =============================================================================
#
# A read-only view: assigning into it raises TypeError, so the table is
# fixed for the life of the process.
#
# =============================================================================

STATUS_PHRASES = MappingProxyType({
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
})
