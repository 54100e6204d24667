"""
Unit tests for the per-connection state machine.

Each test drives a ConnectionHandler over socket.socketpair(): the handler
serves the server end in a background thread while the test plays the
client on the other end.
"""

import logging
import os
import socket
import threading
import time
from pathlib import Path

import pytest

from statichttp.core.handler import ConnectionHandler
from statichttp.core.connection import ConnectionState
from statichttp.handlers import StaticFileHandler
from statichttp.http.request import Request
from statichttp.http.response import Response


IDLE_TIMEOUT = 0.3


class VanishingFileHandler(StaticFileHandler):
    """Classifies normally, then deletes the file before it can be written."""

    def classify(self, request: Request) -> Response:
        response = super().classify(request)
        if response.file_path:
            os.remove(response.file_path)
        return response


class RunningHandler:
    """A ConnectionHandler serving in a background thread."""

    def __init__(self, handler: ConnectionHandler):
        self.handler = handler
        self.thread = threading.Thread(target=handler.serve, daemon=True)
        self.thread.start()

    def wait(self, timeout: float = 5.0) -> bool:
        """Wait for serve() to return. True if it did."""
        self.thread.join(timeout)
        return not self.thread.is_alive()


@pytest.fixture
def serve(socket_pair, doc_root: Path):
    """Start serving the server end of the socket pair; returns the client side."""
    conn, client = socket_pair
    started = []

    def start(file_handler=None, idle_timeout: float = IDLE_TIMEOUT):
        handler = ConnectionHandler(
            conn,
            file_handler or StaticFileHandler(str(doc_root)),
            idle_timeout=idle_timeout,
        )
        running = RunningHandler(handler)
        started.append(running)
        return running, client

    yield start

    for running in started:
        running.wait()


class TestScenarios:
    """Request/response cycles end to end over a socket pair."""

    def test_ok_keeps_connection_open(self, serve, response_reader, doc_root: Path):
        """Scenario A: 200 with size and type, no Connection header."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"GET /index.html HTTP/1.1\r\nHost: test\r\n\r\n")
        response = reader.read()

        assert response.status_line == "HTTP/1.1 200 OK"
        assert response.headers["Content-Length"] == str((doc_root / "index.html").stat().st_size)
        assert response.headers["Content-Type"] == "text/html"
        assert "Connection" not in response.headers
        assert response.body == (doc_root / "index.html").read_bytes()

        # Still open: a second request on the same connection works
        client.sendall(b"GET /style.css HTTP/1.1\r\nHost: test\r\n\r\n")
        assert reader.read().status == 200
        assert running.thread.is_alive()

    def test_ok_with_close(self, serve, response_reader):
        """Scenario B: Connection: close is echoed, then the connection ends."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"GET /index.html HTTP/1.1\r\nHost: test\r\nConnection: close\r\n\r\n")
        response = reader.read()

        assert response.status == 200
        assert response.headers["Connection"] == "close"
        assert reader.at_eof()
        assert running.wait()

    def test_bad_request(self, serve, response_reader):
        """Scenario C: garbage gets a 400 and the connection closes."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"This is a bad request\r\n")
        response = reader.read()

        assert response.status_line == "HTTP/1.1 400 Bad Request"
        assert response.headers["Connection"] == "close"
        assert response.body == b""
        assert reader.at_eof()
        assert running.wait()

    def test_good_then_bad(self, serve, response_reader):
        """Scenario D: first request served, second rejected, then close."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(
            b"GET /index.html HTTP/1.1\r\nHost: test\r\n\r\n"
            b"GETT /index.html HTTP/1.1\r\nHost: test\r\n\r\n"
        )

        assert reader.read().status == 200
        assert reader.read().status == 400
        assert reader.at_eof()
        assert running.wait()

    def test_not_found(self, serve, response_reader):
        """Scenario E: a missing file gets a 404 and the connection closes."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"GET /missing.html HTTP/1.1\r\nHost: test\r\n\r\n")
        response = reader.read()

        assert response.status_line == "HTTP/1.1 404 Not Found"
        assert response.headers["Connection"] == "close"
        assert reader.at_eof()
        assert running.wait()

    def test_idle_client_closed_silently(self, serve):
        """Scenario F: nothing sent before the deadline, nothing written back."""
        running, client = serve()

        start = time.monotonic()
        assert client.recv(1024) == b""
        assert time.monotonic() - start >= IDLE_TIMEOUT * 0.9
        assert running.wait()


class TestTransitions:
    """The remaining transition rules."""

    def test_timeout_mid_request_gets_400(self, serve, response_reader):
        """Test that a client stalling after the request line gets a 400."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"GET /index.html HTTP/1.1\r\nHost: test\r\n")
        response = reader.read()

        assert response.status == 400
        assert reader.at_eof()
        assert running.wait()

    def test_timeout_on_partial_first_line_gets_400(self, serve, response_reader):
        """Test that a client stalling inside the request line gets a 400."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"GET /index.html HTTP/1.1")
        response = reader.read()

        assert response.status == 400
        assert reader.at_eof()
        assert running.wait()

    def test_bare_lf_connection_close_gets_400(self, serve, response_reader):
        """Test that LF-only header lines are rejected, not silently kept alive."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"GET / HTTP/1.1\r\nHost: test\nConnection: close\n\r\n")
        response = reader.read()

        assert response.status == 400
        assert reader.at_eof()
        assert running.wait()

    def test_close_mid_request_gets_400(self, serve, response_reader):
        """Test that closing the write side mid-headers still gets a 400."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"GET / HTTP/1.1\r\n")
        client.shutdown(socket.SHUT_WR)

        assert reader.read().status == 400
        assert running.wait()

    def test_client_close_before_request_is_silent(self, serve):
        """Test that a client that connects and leaves gets nothing."""
        running, client = serve()
        client.shutdown(socket.SHUT_WR)

        assert client.recv(1024) == b""
        assert running.wait()

    def test_deadline_rearmed_per_request(self, serve, response_reader):
        """Test that each request gets the full idle time again."""
        running, client = serve()
        reader = response_reader(client)

        for _ in range(3):
            time.sleep(IDLE_TIMEOUT * 0.6)
            client.sendall(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")
            assert reader.read().status == 200

        assert running.thread.is_alive()

    def test_directory_without_slash(self, serve, response_reader):
        """Test that /subdir (no slash) is a 404, not a redirect."""
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"GET /subdir HTTP/1.1\r\nHost: test\r\n\r\n")
        assert reader.read().status == 404
        assert running.wait()

    def test_body_file_vanished(self, serve, response_reader, doc_root: Path):
        """Test that a file deleted before writing yields a 400 and close."""
        running, client = serve(file_handler=VanishingFileHandler(str(doc_root)))
        reader = response_reader(client)

        client.sendall(b"GET /style.css HTTP/1.1\r\nHost: test\r\n\r\n")
        response = reader.read()

        assert response.status == 400
        assert reader.at_eof()
        assert running.wait()

    def test_connection_closed_at_end(self, serve, socket_pair):
        """Test that the handler leaves its connection CLOSED."""
        running, client = serve()
        conn, _ = socket_pair

        client.sendall(b"BAD\r\n")
        assert running.wait()
        assert conn.state == ConnectionState.CLOSED
        assert conn.requests_handled == 1


class TestAccessLog:
    """Tests for the access log records."""

    def test_one_record_per_response(self, serve, response_reader, caplog):
        """Test that each response produces one access record."""
        caplog.set_level(logging.INFO, logger="statichttp.access")
        running, client = serve()
        reader = response_reader(client)

        client.sendall(
            b"GET /index.html HTTP/1.1\r\nHost: test\r\n\r\n"
            b"GET /nope HTTP/1.1\r\nHost: test\r\n\r\n"
        )
        reader.read()
        reader.read()
        assert running.wait()

        records = [r.getMessage() for r in caplog.records if r.name == "statichttp.access"]
        assert len(records) == 2
        assert '"GET /index.html" 200' in records[0]
        assert '"GET /nope" 404 0' in records[1]

    def test_bad_request_logged_with_dashes(self, serve, response_reader, caplog):
        """Test that an unparsed request is logged without method or path."""
        caplog.set_level(logging.INFO, logger="statichttp.access")
        running, client = serve()
        reader = response_reader(client)

        client.sendall(b"nonsense\r\n")
        reader.read()
        assert running.wait()

        records = [r.getMessage() for r in caplog.records if r.name == "statichttp.access"]
        assert len(records) == 1
        assert '"- -" 400 0' in records[0]
