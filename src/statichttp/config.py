"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server lives in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m statichttp --port 3000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 python -m statichttp                       │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The config is built once at startup, validated, and then only read. All
connection threads share the same instance.

=============================================================================
"""

import os
from pathlib import Path
from dataclasses import dataclass


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size

    HTTP SETTINGS
    - doc_root, idle_timeout, max_line_length

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """
    The port number to listen on. 0 asks the OS for a free port; the
    actual one is available from StaticServer.address once bound.
    """

    backlog: int = 128
    """
    Maximum number of queued connections.
    When the accept queue is full, new connections are refused.
    """

    buffer_size: int = 8192
    """
    Bytes per recv() call, and per chunk when streaming a file body.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    doc_root: str = "."
    """
    Directory that files are served from. Must exist at startup.
    """

    idle_timeout: float = 5.0
    """
    Seconds a client gets to deliver each complete request head.
    Re-armed for every request on a persistent connection. A client that
    sends nothing in that time is disconnected silently; one that stalls
    half way through a request gets a 400.
    """

    max_line_length: int = 8192
    """
    Longest request line or header line accepted, in bytes.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    log_format: str = "text"
    """
    Access log format: 'json' or 'text'.
    JSON is better for log aggregators, text for human reading.
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "statichttp/1.0"
    """
    Name shown in the startup log line.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST          Server host (default: 127.0.0.1)
        HTTP_PORT          Server port (default: 8080)
        HTTP_DOC_ROOT      Document root (default: .)
        HTTP_IDLE_TIMEOUT  Per-request read deadline in seconds (default: 5)
        HTTP_LOG_LEVEL     Logging level (default: INFO)
        HTTP_LOG_FORMAT    Access log format, text or json (default: text)

        =====================================================================

        Raises:
            ValueError: HTTP_PORT or HTTP_IDLE_TIMEOUT is not a number.
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            doc_root=os.getenv("HTTP_DOC_ROOT", "."),
            idle_timeout=float(os.getenv("HTTP_IDLE_TIMEOUT", "5")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup, before the socket is bound, so a typo in the
        document root fails immediately instead of turning every request
        into a 404.

        Raises:
            ValueError: The first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.idle_timeout <= 0:
            raise ValueError("idle_timeout must be > 0")

        if self.max_line_length < 64:
            raise ValueError("max_line_length must be >= 64")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log format: {self.log_format}. Must be text or json.")

        if not Path(self.doc_root).is_dir():
            raise ValueError(f"Document root is not a directory: {self.doc_root}")
