"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking half of the server: sockets, connections and the
per-connection request loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Binds, listens, runs the accept() loop                           │
    │  • Wraps each client socket in a Connection                         │
    │  • Handles graceful shutdown via signals (SIGTERM, SIGINT)          │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ One thread per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                       CONNECTION HANDLER                             │
    │  • Arms the read deadline, parses, classifies, writes               │
    │  • Decides keep-alive vs close after every response                 │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                           CONNECTION                                 │
    │  • Buffered, deadline-aware readline()                              │
    │  • write() for the response, graceful close()                       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .handler import ConnectionHandler

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ConnectionHandler",
]
