"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the HTTP layer needs:

    readline(limit)      buffered, deadline-aware line reads
    has_pending()        whether a partial line is buffered
    arm_deadline(secs)   start a fresh read deadline for the next request
    write(data)/flush()  so the connection can be handed to ResponseWriter
    close()              orderly TCP shutdown

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP only guarantees that bytes arrive in order. It does not keep message
boundaries:

    Client sends:                      Server may receive:
        "GET / HTTP/1.1\\r\\n"              recv() → "GET / HT"
        "Host: x\\r\\n"                     recv() → "TP/1.1\\r\\nHost: x\\r\\n\\r\\nGET"
        "\\r\\n"                            recv() → " /next HTTP/1.1..."
        "GET /next HTTP/1.1..."

So reads go into a buffer, and readline() hands out one line at a time.
Anything past the current line stays in the buffer for the next call.
That is how a second request on a persistent connection survives being
received in the same recv() as the end of the first.

=============================================================================
READ DEADLINE
=============================================================================

A socket timeout applies to each recv() separately. A client that drips
one byte every 4 seconds would never trip a 5 second timeout. Instead the
connection keeps an absolute deadline:

    arm_deadline(5.0)            deadline = now + 5.0
        │
        ├── recv()   timeout = deadline - now   (e.g. 5.0)
        ├── recv()   timeout = deadline - now   (e.g. 2.7)
        └── recv()   timeout = deadline - now   (≤ 0 → TimeoutError)

The handler re-arms the deadline at the start of every request cycle, so
the limit applies per request, not to the whole connection.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    AWAITING_REQUEST ──────► RESPONDING ──────► AWAITING_REQUEST
           │                      │                (keep-alive)
           │                      │
           └──────────────────────┴──────────────► CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its request/response cycle."""
    AWAITING_REQUEST = "awaiting_request"   # Reading the next request head
    RESPONDING = "responding"               # Classifying and writing a response
    CLOSED = "closed"                       # Socket released, terminal


@dataclass
class Connection:
    """
    A client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── readline() returns exactly one line per call                 │
    │     └── _buffer keeps whatever arrived past that line                │
    │                                                                      │
    │  2. READ DEADLINE                                                    │
    │     └── Absolute, armed once per request cycle                       │
    │     └── Expiry surfaces as TimeoutError from readline()              │
    │                                                                      │
    │  3. WRITING                                                          │
    │     └── write() uses sendall(), bounded by write_timeout             │
    │                                                                      │
    │  4. GRACEFUL CLOSE                                                   │
    │     └── FIN first, short drain, then release the descriptor          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used to prefix log lines.
        state: Current ConnectionState.
        requests_handled: Responses written on this connection so far.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.AWAITING_REQUEST
    requests_handled: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192           # How much to recv() at once
    write_timeout: Optional[float] = 30.0

    # Internal state (not shown in repr for cleaner logs)
    _buffer: bytes = field(default=b"", repr=False)
    _deadline: Optional[float] = field(default=None, repr=False)

    def __post_init__(self):
        # Blocking mode; timeouts are set per operation
        self.socket.setblocking(True)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def client_port(self) -> int:
        return self.address[1] if self.address else 0

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def arm_deadline(self, seconds: float):
        """
        Start a new read deadline `seconds` from now.

        Replaces any previous deadline; deadlines never accumulate.
        """
        self._deadline = time.monotonic() + seconds

    def readline(self, limit: int = -1) -> bytes:
        """
        Read up to and including the next b"\\n".

        Mirrors io.BufferedReader.readline() so the parser can treat a
        Connection and an io.BytesIO the same way:

        - Returns the line with its terminator.
        - Returns at most `limit` bytes when limit >= 0; the result then
          has no terminator if the line was longer.
        - Returns whatever is left (possibly b"") when the peer closed.

        Raises:
            TimeoutError: The read deadline expired before a full line
                          arrived. Buffered bytes are kept.
        """
        while True:
            newline = self._buffer.find(b"\n")
            if newline != -1 and (limit < 0 or newline < limit):
                end = newline + 1
                break

            if 0 <= limit <= len(self._buffer):
                end = limit
                break

            chunk = self._recv()
            if not chunk:
                end = len(self._buffer)  # Peer closed: hand out the remainder
                break

            self._buffer += chunk

        line, self._buffer = self._buffer[:end], self._buffer[end:]
        return line

    def has_pending(self) -> bool:
        """True if bytes of an unfinished line are waiting in the buffer."""
        return bool(self._buffer)

    def _recv(self) -> bytes:
        """
        Receive one chunk, honoring the read deadline.

        Returns:
            Received bytes, or b"" if the peer closed or reset the connection.
        """
        if self._deadline is not None:
            remaining = self._deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError("Read deadline expired")
            self.socket.settimeout(remaining)
        else:
            self.socket.settimeout(None)

        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes) -> int:
        """
        Send all of `data` to the client.

        sendall() loops until every byte is handed to the kernel, unlike
        send() which may stop short when the socket buffer is full.

        Raises:
            OSError: The client went away or the write timed out.
        """
        self.socket.settimeout(self.write_timeout)
        self.socket.sendall(data)
        return len(data)

    def flush(self):
        """Nothing to flush: write() never buffers."""

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    TCP Close Sequence                            │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   1. shutdown(SHUT_WR)   send FIN, client sees end of stream     │
        │   2. short drain         read what the client already sent so    │
        │                          the kernel does not answer with RST     │
        │   3. close()             release the file descriptor             │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            # Bounded: a client that keeps sending cannot hold us here
            self.socket.settimeout(0.5)
            drained = 0
            while drained < 64 * 1024:
                data = self.socket.recv(4096)
                if not data:
                    break
                drained += len(data)
        except OSError:
            pass  # Timeout or reset, we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self._buffer = b""
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
