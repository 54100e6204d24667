"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Decides which response a parsed request gets, by looking at the
filesystem under the document root.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      CLASSIFICATION RULES                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Target                        Result                              │
    │   ──────                        ──────                              │
    │   /                             200  <root>/index.html              │
    │   /subdir/                      200  <root>/subdir/index.html       │
    │   /style.css                    200  <root>/style.css               │
    │   /subdir                       404  (directory, no redirect)       │
    │   /missing.txt                  404                                 │
    │   /../../etc/passwd             404  (outside the root)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The handler never reads file contents. A 200 response carries the path;
ResponseWriter streams the bytes later.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../../etc/passwd HTTP/1.1

    root      = /var/www
    joined    = /var/www/../../../etc/passwd
    resolved  = /etc/passwd                    ← outside root: 404

    PYTHON PROTECTION:

        full_path = (root_dir / target).resolve()
        full_path.relative_to(root_dir)  # Raises if outside root!

resolve() also follows symlinks, so a link inside the root pointing
elsewhere is rejected the same way. The answer is 404 rather than 403:
the client learns nothing about what exists outside the root.

=============================================================================
"""

import stat
import logging
from pathlib import Path
from datetime import datetime, timezone

from ..http.request import Request
from ..http.response import Response, format_http_date, http_date_now, not_found
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Classifies requests against a document root.

    =========================================================================
    FLOW
    =========================================================================

        Request: GET /docs/

        1. Default document: "/docs/" → "/docs/index.html"
        2. Resolve root / "docs/index.html"
        3. Security check: is the resolved path inside the root?
        4. stat(): missing or not a regular file → 404
        5. Regular file → 200 with its metadata

    Every step that decides the outcome returns right away.

    =========================================================================
    THREAD SAFETY
    =========================================================================

    All state is set in __init__ and never changes, so one handler is
    shared by every connection thread.

    =========================================================================
    """

    def __init__(self, root_dir: str, index_file: str = "index.html"):
        """
        Initialize static file handler.

        Args:
            root_dir: Root directory to serve files from.
                      All files MUST be inside this directory.

            index_file: Default file for targets ending in "/".

        Raises:
            ValueError: root_dir does not exist or is not a directory.
        """
        # Resolve to absolute path (important for security check later)
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file

        if not self.root_dir.is_dir():
            raise ValueError(f"Document root is not a directory: {root_dir}")

    def classify(self, request: Request) -> Response:
        """
        Map a request to a 200 or 404 response.

        Args:
            request: A successfully parsed request.

        Returns:
            The response to send. Never raises for filesystem problems;
            they all become 404.
        """
        target = request.path

        # ─────────────────────────────────────────────────────────────────
        # DEFAULT DOCUMENT
        # ─────────────────────────────────────────────────────────────────
        if target.endswith("/"):
            target += self.index_file

        # ─────────────────────────────────────────────────────────────────
        # RESOLVE FULL FILESYSTEM PATH
        # ─────────────────────────────────────────────────────────────────
        # Leading slashes would make the join discard root_dir entirely
        relative = target.lstrip("/")
        try:
            full_path = (self.root_dir / relative).resolve()
        except (OSError, ValueError) as e:
            # e.g. embedded NUL byte, or a symlink loop
            logger.debug(f"Cannot resolve {target!r}: {e}")
            return not_found()

        # ─────────────────────────────────────────────────────────────────
        # SECURITY: PATH TRAVERSAL CHECK
        # ─────────────────────────────────────────────────────────────────
        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {request.path}")
            return not_found()

        # ─────────────────────────────────────────────────────────────────
        # EXISTS AND IS A FILE?
        # ─────────────────────────────────────────────────────────────────
        try:
            file_stat = full_path.stat()
        except (OSError, ValueError):
            return not_found()

        # Only regular files are served; a FIFO would block open()
        if not stat.S_ISREG(file_stat.st_mode):
            return not_found()

        return self._ok(full_path, file_stat, request)

    def _ok(self, path: Path, file_stat, request: Request) -> Response:
        """
        Build the 200 response for a file.

        Headers are derived from one stat() call, so Content-Length and
        Last-Modified describe the same version of the file.
        """
        mtime = datetime.fromtimestamp(file_stat.st_mtime, tz=timezone.utc)

        headers = {
            "Date": http_date_now(),
            "Last-Modified": format_http_date(mtime),
            "Content-Type": get_mime_type(path.suffix),
            "Content-Length": str(file_stat.st_size),
        }
        if request.close:
            headers["Connection"] = "close"

        return Response(
            status=HTTPStatus.OK,
            version=request.version,
            headers=headers,
            file_path=str(path),
            request=request,
        )
