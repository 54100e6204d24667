"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Drives one client connection from accept to close:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ONE REQUEST CYCLE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   arm deadline ──► parse ──► classify ──► write ──► keep-alive?     │
    │        ▲                                                 │          │
    │        └──────────────────── yes ────────────────────────┘          │
    │                                                          │ no       │
    │                                                          ▼          │
    │                                                        close        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TRANSITION RULES
=============================================================================

    ┌──────────────────────────────────────┬──────────────────────────────┐
    │ Outcome of parse / write             │ Action                       │
    ├──────────────────────────────────────┼──────────────────────────────┤
    │ Stream closed, nothing read          │ close silently               │
    │ Deadline expired, nothing read       │ close silently (idle client) │
    │ Deadline expired mid-request         │ 400, close                   │
    │ Stream closed mid-request            │ 400, close                   │
    │ Any HTTPParseError                   │ 400, close                   │
    │ Parsed, status 200, no close flag    │ write, next cycle            │
    │ Parsed, 404 or "Connection: close"   │ write, close                 │
    │ Write failed before any byte sent    │ try a 400, close             │
    │ Write failed after bytes were sent   │ close                        │
    └──────────────────────────────────────┴──────────────────────────────┘

"Nothing read" means not one byte of a request arrived during this cycle.

Every failure ends the connection. Only a successful parse, classify and
write can keep it open.

=============================================================================
"""

import time
import logging
from typing import Optional

from ..http.request import (
    Request,
    RequestParser,
    HTTPParseError,
    RequestReadError,
    ReadTimeoutError,
)
from ..http.response import Response, ResponseWriter, ResponseWriteError, bad_request
from ..http.status_codes import HTTPStatus
from ..handlers.static import StaticFileHandler
from ..access_log import AccessLogger
from .connection import Connection, ConnectionState


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Serves sequential requests on one connection.

    One instance per connection, used by exactly one thread. The parser,
    writer, file handler and access logger hold no per-request state and
    may be shared across handlers.

    Usage:
        handler = ConnectionHandler(conn, StaticFileHandler("/var/www"))
        handler.serve()   # returns once the connection is closed
    """

    def __init__(
        self,
        connection: Connection,
        file_handler: StaticFileHandler,
        parser: Optional[RequestParser] = None,
        writer: Optional[ResponseWriter] = None,
        idle_timeout: float = 5.0,
        access_log: Optional[AccessLogger] = None,
    ):
        """
        Args:
            connection: The accepted client connection. The handler owns it
                        from here on and always closes it.
            file_handler: Classifies parsed requests.
            parser: Request parser (default settings if omitted).
            writer: Response writer (default settings if omitted).
            idle_timeout: Seconds allowed for each complete request head.
            access_log: Receives one record per response written.
        """
        self.connection = connection
        self.file_handler = file_handler
        self.parser = parser or RequestParser()
        self.writer = writer or ResponseWriter()
        self.idle_timeout = idle_timeout
        self.access_log = access_log or AccessLogger()

    def serve(self):
        """
        Run request cycles until the connection has to close, then close it.

        Never raises: unexpected errors are logged and only end this
        connection.
        """
        conn = self.connection
        logger.debug(f"[{conn.id}] Serving {conn.client_ip}:{conn.client_port}")

        with conn:
            try:
                while self._serve_one():
                    pass
            except OSError as e:
                logger.debug(f"[{conn.id}] Socket error: {e}")
            except Exception:
                logger.exception(f"[{conn.id}] Unexpected error")

    def _serve_one(self) -> bool:
        """
        Run one request cycle.

        Returns:
            True if the connection stays open for another request.
        """
        conn = self.connection
        conn.state = ConnectionState.AWAITING_REQUEST
        conn.arm_deadline(self.idle_timeout)
        started = time.monotonic()

        # ─────────────────────────────────────────────────────────────────
        # READ AND PARSE
        # ─────────────────────────────────────────────────────────────────
        try:
            request = self.parser.parse(conn)

        except RequestReadError as e:
            if not e.bytes_consumed:
                reason = "idle timeout" if isinstance(e, ReadTimeoutError) else "client closed"
                logger.debug(f"[{conn.id}] Closing: {reason}")
                return False

            logger.debug(f"[{conn.id}] Incomplete request: {e}")
            conn.state = ConnectionState.RESPONDING
            self._send(bad_request(), started)
            return False

        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] Bad request ({e.kind.value}): {e}")
            conn.state = ConnectionState.RESPONDING
            self._send(bad_request(), started)
            return False

        # ─────────────────────────────────────────────────────────────────
        # CLASSIFY AND WRITE
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.RESPONDING
        response = self.file_handler.classify(request)

        if not self._send(response, started, request):
            return False

        return not request.close and response.status == HTTPStatus.OK

    def _send(
        self,
        response: Response,
        started: float,
        request: Optional[Request] = None,
    ) -> bool:
        """
        Write a response and log it.

        If the write fails before anything reached the client, a 400 is
        attempted in its place.

        Returns:
            True if `response` itself was written completely.
        """
        conn = self.connection

        try:
            size = self.writer.write(response, conn)
        except ResponseWriteError as e:
            logger.warning(f"[{conn.id}] Failed to write {int(response.status)}: {e}")
            if not e.started:
                self._send_fallback(started, request)
            return False

        conn.requests_handled += 1
        self._log_access(response.status, size, started, request)
        return True

    def _send_fallback(self, started: float, request: Optional[Request]):
        """Best-effort 400 on a stream nothing has been written to yet."""
        conn = self.connection
        try:
            self.writer.write(bad_request(), conn)
        except ResponseWriteError as e:
            logger.debug(f"[{conn.id}] Fallback 400 also failed: {e}")
            return

        self._log_access(HTTPStatus.BAD_REQUEST, 0, started, request)

    def _log_access(
        self,
        status: HTTPStatus,
        size: int,
        started: float,
        request: Optional[Request],
    ):
        conn = self.connection
        self.access_log.log(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            method=request.method if request else "-",
            path=request.path if request else "-",
            status_code=status,
            content_length=size,
            started=started,
        )
