"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Wires the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ServerConfig ──► validate() ──► StaticServer                      │
    │                                        │                             │
    │                                        ├── StaticFileHandler (root)  │
    │                                        ├── RequestParser             │
    │                                        ├── ResponseWriter            │
    │                                        ├── AccessLogger              │
    │                                        └── SocketServer              │
    │                                               │                      │
    │                      accept() ────────────────┘                      │
    │                          │                                           │
    │                          ▼                                           │
    │          threading.Thread(ConnectionHandler(conn).serve)            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONCURRENCY MODEL
=============================================================================

One daemon thread per accepted connection, no upper bound. Threads share
only read-only objects (config, file handler, parser, writer, access
logger), so no locks are needed anywhere in the request path.

Daemon threads do not keep the process alive: once the accept loop ends,
the process can exit even if a client is still holding a connection open.

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionHandler
from .http import RequestParser, ResponseWriter
from .handlers import StaticFileHandler
from .access_log import AccessLogger


logger = logging.getLogger(__name__)


class StaticServer:
    """
    HTTP/1.1 static file server.

    =========================================================================
    USAGE
    =========================================================================

        server = StaticServer(ServerConfig(doc_root="./public", port=8000))
        server.run()   # Blocks until Ctrl+C / SIGTERM

    From another thread (tests, embedding):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the server.

        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: The configuration is invalid (including a document
                        root that does not exist).
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._file_handler = StaticFileHandler(self.config.doc_root)
        self._parser = RequestParser(max_line_length=self.config.max_line_length)
        self._writer = ResponseWriter(chunk_size=self.config.buffer_size)
        self._access_log = AccessLogger(log_format=self.config.log_format)

        self._socket_server = SocketServer(self.config)

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def run(self):
        """
        Start the server (blocking).

        Returns after shutdown() is called or SIGINT/SIGTERM is received.

        Raises:
            OSError: The configured address could not be bound.
        """
        self._setup_logging()

        logger.info(
            f"Starting {self.config.server_name}, serving {self._file_handler.root_dir}"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections. Safe to call from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("statichttp").setLevel(level)

    def _handle_connection(self, conn: Connection):
        """
        Hand a new connection to its own worker thread.

        Called on the accept thread, so it only starts the thread and
        returns.
        """
        thread = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def _process_connection(self, conn: Connection):
        """Serve one connection (runs in its worker thread)."""
        handler = ConnectionHandler(
            conn,
            self._file_handler,
            parser=self._parser,
            writer=self._writer,
            idle_timeout=self.config.idle_timeout,
            access_log=self._access_log,
        )
        handler.serve()


def create_app(config: Optional[ServerConfig] = None) -> StaticServer:
    """
    Create a static file server.

    Example:
        app = create_app(ServerConfig(doc_root="./public"))
        app.run()
    """
    return StaticServer(config)
