"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: bind, listen, accept, and hand each accepted
client to a callback as a Connection. It knows nothing about HTTP.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create the listening socket
    2. bind()      Reserve IP:PORT (port 0 = let the OS pick)
    3. listen()    Start queueing incoming connections (backlog)
    4. accept()    Returns a NEW socket per client; the listener keeps
                   listening
    5. close()     Release the listener on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client    │         │ Client    │         │ Client    │
    │ Socket 1  │         │ Socket 2  │         │ Socket 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   Rebind right after a restart instead of waiting out
               TIME_WAIT ("Address already in use").

TCP_NODELAY    Disable Nagle's algorithm. The response head and a small
               body go out immediately instead of being held back to
               coalesce with later writes.

=============================================================================
SHUTDOWN
=============================================================================

accept() is given a 1 second timeout, so the loop wakes up regularly to
check whether shutdown() was called:

    while running:
        try:
            accept()          # Blocks for 1 second max
        except timeout:
            continue          # Check running flag, loop again

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) call shutdown(). Python
only allows signal handlers on the main thread, so when the server runs
in a background thread (as in the test suite) signals are left alone and
shutdown() must be called directly.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(callback)   Main entry point, BLOCKS until shutdown         │
    │        │                                                             │
    │        ├──► _create_socket()   socket() + setsockopt()              │
    │        ├──► bind(), listen()                                        │
    │        ├──► _setup_signals()   main thread only                     │
    │        └──► _accept_loop()     accept() → Connection → callback     │
    │                                                                      │
    │    shutdown()        Clear the running flag (any thread)            │
    │                                                                      │
    │    _cleanup()        Restore signal handlers, close the listener    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...  # Must return quickly; hand long work to a thread

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration containing host, port, backlog, etc.

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening, cleared again after cleanup
        self._ready = threading.Event()

        # Set when shutdown() is called
        self._shutdown_event = threading.Event()

        # Original signal handlers, restored in _cleanup()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The server's bound address (IP, port).

        Once listening this is the real address, so a configured port of 0
        reports the port the OS actually assigned.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the socket is listening.

        Returns:
            True if the server is ready, False on timeout.
        """
        return self._ready.wait(timeout)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # Lets the accept loop notice shutdown() within a second
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """
        Route SIGTERM and SIGINT to shutdown().

        Skipped off the main thread, where signal.signal() would raise.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Start accepting connections.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with each new Connection on the
                                accept thread.

        Raises:
            OSError: The address could not be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() clears the running flag.

        Args:
            connection_handler: Callback for each new connection.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Check running flag, loop again
            except OSError as e:
                # Socket error - usually means we're shutting down
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
            )

            connection_handler(conn)

    def shutdown(self):
        """
        Initiate graceful shutdown.

        Safe to call from a signal handler, from another thread, and more
        than once. Connections already handed off keep running until their
        own handlers finish.
        """
        logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        """Clean up resources on shutdown."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._ready.clear()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for shutdown() to be called.

        Args:
            timeout: Maximum time to wait in seconds. None = wait forever.

        Returns:
            True if shutdown was requested, False if timeout.
        """
        return self._shutdown_event.wait(timeout)
