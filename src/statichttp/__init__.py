"""
=============================================================================
STATICHTTP - A MINIMAL HTTP/1.1 STATIC FILE SERVER
=============================================================================

Serves files from one directory over raw TCP sockets, standard library
only.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /docs/ HTTP/1.1        ──►  <doc_root>/docs/index.html  200   │
    │   GET /missing HTTP/1.1      ──►  404, connection closed            │
    │   POST / HTTP/1.1            ──►  400, connection closed            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

What it does:

- GET only, HTTP/1.1 only, Host header required
- Persistent connections: requests are served one after another on the
  same connection until the client sends "Connection: close" or an error
  response is sent
- A per-request read deadline: idle clients are dropped silently, clients
  that stall mid-request get a 400
- "/dir/" serves "/dir/index.html"; directories and anything resolving
  outside the document root are 404
- File bodies are streamed from disk, never loaded whole

What it does not do: other methods, chunked encoding, ranges, compression,
TLS, HTTP/2, caching.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    statichttp/
    ├── http/            Protocol: parser, response writer, status, MIME
    ├── handlers/        StaticFileHandler (request → response)
    ├── core/            Sockets: listener, connection, per-connection loop
    ├── access_log.py    One log record per response
    ├── config.py        ServerConfig
    ├── server.py        StaticServer, ties everything together
    └── __main__.py      python -m statichttp

=============================================================================
"""

__version__ = "1.0.0"

from .server import StaticServer, create_app
from .config import ServerConfig

__all__ = ["StaticServer", "ServerConfig", "create_app", "__version__"]
