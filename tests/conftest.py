"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from statichttp import StaticServer, ServerConfig
from statichttp.core import Connection


INDEX_HTML = b"<!DOCTYPE html><html><body>home</body></html>\n"
SUBDIR_INDEX_HTML = b"<html><body>subdir</body></html>\n"
STYLE_CSS = b"body { color: #333; }\n"
DATA_BIN = bytes(range(256)) * 4


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """
    A small document root:

        index.html
        style.css
        data.bin
        subdir/index.html
        emptydir/
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(STYLE_CSS)
    (root / "data.bin").write_bytes(DATA_BIN)
    (root / "subdir").mkdir()
    (root / "subdir" / "index.html").write_bytes(SUBDIR_INDEX_HTML)
    (root / "emptydir").mkdir()
    return root


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /index.html HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"\r\n"
    )


@pytest.fixture
def config(doc_root: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        doc_root=str(doc_root),
        idle_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def socket_pair() -> Generator[tuple, None, None]:
    """
    A connected (server_side, client_side) socket pair.

    The server side is wrapped in a Connection; the raw client side plays
    the role of the HTTP client.
    """
    server_sock, client_sock = socket.socketpair()
    conn = Connection(socket=server_sock, address=("127.0.0.1", 54321))
    client_sock.settimeout(5.0)

    yield conn, client_sock

    conn.close()
    client_sock.close()


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class, despite the name

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self) -> socket.socket:
        """Open a raw client connection to the server."""
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=5.0)
        return sock


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server on a free port, serving doc_root."""
    test_srv = TestServer(StaticServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


class RawResponse:
    """A response as read off the wire by ResponseReader."""

    def __init__(self, status_line: str, headers: list, body: bytes):
        self.status_line = status_line
        self.header_list = headers          # [(name, value), ...] in wire order
        self.headers = dict(headers)
        self.body = body

    @property
    def status(self) -> int:
        return int(self.status_line.split(" ")[1])


class ResponseReader:
    """
    Reads sequential HTTP responses from a client socket.

    Bodies are sized by Content-Length; responses without one have no body.
    """

    def __init__(self, sock: socket.socket):
        self._file = sock.makefile("rb")

    def read(self) -> RawResponse:
        status_line = self._file.readline()
        if not status_line:
            raise EOFError("Connection closed before a response arrived")

        headers = []
        while True:
            line = self._file.readline()
            assert line.endswith(b"\r\n"), f"Header line not CRLF-terminated: {line!r}"
            if line == b"\r\n":
                break
            name, _, value = line.decode("latin-1").rstrip("\r\n").partition(": ")
            headers.append((name, value))

        length = int(dict(headers).get("Content-Length", "0"))
        body = self._file.read(length) if length else b""

        return RawResponse(status_line.decode("latin-1").rstrip("\r\n"), headers, body)

    def at_eof(self) -> bool:
        """True if the server closed the connection with nothing more to read."""
        return self._file.read() == b""


@pytest.fixture
def response_reader():
    """Factory: response_reader(sock) -> ResponseReader."""
    return ResponseReader
