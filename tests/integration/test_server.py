"""
Integration tests: a real StaticServer on a free port, driven over TCP.
"""

import socket
import threading
from pathlib import Path

import pytest

from statichttp import StaticServer, ServerConfig


class TestServerLifecycle:
    """Starting and stopping the server."""

    def test_ephemeral_port_reported(self, test_server):
        """Test that port 0 resolves to a real port once listening."""
        assert test_server.port > 0
        assert test_server.server.is_running

    def test_shutdown_stops_accepting(self, config: ServerConfig):
        """Test that shutdown() ends run() and frees the port."""
        server = StaticServer(config)
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        assert server.wait_until_ready(5.0)
        port = server.address[1]

        server.shutdown()
        thread.join(5.0)

        assert not thread.is_alive()
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0)

    def test_invalid_root_fails_fast(self, tmp_path: Path):
        """Test that construction rejects a missing document root."""
        with pytest.raises(ValueError):
            StaticServer(ServerConfig(port=0, doc_root=str(tmp_path / "nope")))

    def test_port_in_use(self, test_server, doc_root: Path):
        """Test that binding a taken port raises from run()."""
        other = StaticServer(ServerConfig(port=test_server.port, doc_root=str(doc_root)))
        with pytest.raises(OSError):
            other.run()


class TestScenarios:
    """The request/response scenarios over a real TCP connection."""

    def test_scenario_a_ok(self, test_server, response_reader, doc_root: Path):
        """Test a plain 200 on a persistent connection."""
        with test_server.connect() as sock:
            sock.sendall(b"GET /index.html HTTP/1.1\r\nHost: test\r\n\r\n")
            response = response_reader(sock).read()

        assert response.status_line == "HTTP/1.1 200 OK"
        assert response.headers["Content-Type"] == "text/html"
        assert response.headers["Content-Length"] == str((doc_root / "index.html").stat().st_size)
        assert "Connection" not in response.headers
        assert response.body == (doc_root / "index.html").read_bytes()

    def test_scenario_b_close(self, test_server, response_reader):
        """Test Connection: close."""
        with test_server.connect() as sock:
            sock.sendall(b"GET /index.html HTTP/1.1\r\nHost: test\r\nConnection: close\r\n\r\n")
            reader = response_reader(sock)
            response = reader.read()

            assert response.status == 200
            assert response.headers["Connection"] == "close"
            assert reader.at_eof()

    def test_scenario_c_bad_request(self, test_server, response_reader):
        """Test garbage input."""
        with test_server.connect() as sock:
            sock.sendall(b"This is a bad request\r\n")
            reader = response_reader(sock)
            response = reader.read()

            assert response.status == 400
            assert response.headers["Connection"] == "close"
            assert reader.at_eof()

    def test_scenario_d_good_then_bad(self, test_server, response_reader):
        """Test a good request followed by GETT on one connection."""
        with test_server.connect() as sock:
            sock.sendall(
                b"GET /index.html HTTP/1.1\r\nHost: test\r\n\r\n"
                b"GETT /index.html HTTP/1.1\r\nHost: test\r\n\r\n"
            )
            reader = response_reader(sock)

            assert reader.read().status == 200
            assert reader.read().status == 400
            assert reader.at_eof()

    def test_scenario_e_not_found(self, test_server, response_reader):
        """Test a missing file."""
        with test_server.connect() as sock:
            sock.sendall(b"GET /missing.html HTTP/1.1\r\nHost: test\r\n\r\n")
            reader = response_reader(sock)

            assert reader.read().status == 404
            assert reader.at_eof()

    def test_scenario_f_idle(self, test_server):
        """Test that an idle client is dropped without a response."""
        with test_server.connect() as sock:
            assert sock.recv(1024) == b""


class TestServing:
    """Broader serving behaviour."""

    def test_keep_alive_sequence(self, test_server, response_reader, doc_root: Path):
        """Test several requests on one connection, in order."""
        with test_server.connect() as sock:
            reader = response_reader(sock)
            for path, name in [("/", "index.html"), ("/style.css", "style.css"),
                               ("/subdir/", "subdir/index.html")]:
                sock.sendall(f"GET {path} HTTP/1.1\r\nHost: test\r\n\r\n".encode())
                response = reader.read()

                assert response.status == 200
                assert response.body == (doc_root / name).read_bytes()

    def test_binary_body(self, test_server, response_reader, doc_root: Path):
        """Test that binary content arrives unchanged."""
        with test_server.connect() as sock:
            sock.sendall(b"GET /data.bin HTTP/1.1\r\nHost: test\r\n\r\n")
            response = response_reader(sock).read()

        assert response.headers["Content-Type"] == "application/octet-stream"
        assert response.body == (doc_root / "data.bin").read_bytes()

    def test_large_file_streamed(self, test_server, response_reader, doc_root: Path):
        """Test a body several times larger than the chunk size."""
        payload = bytes(range(256)) * 4096  # 1 MiB
        (doc_root / "big.bin").write_bytes(payload)

        with test_server.connect() as sock:
            sock.sendall(b"GET /big.bin HTTP/1.1\r\nHost: test\r\n\r\n")
            response = response_reader(sock).read()

        assert response.headers["Content-Length"] == str(len(payload))
        assert response.body == payload

    def test_headers_sorted_on_wire(self, test_server, response_reader):
        """Test header order in the raw response."""
        with test_server.connect() as sock:
            sock.sendall(b"GET /style.css HTTP/1.1\r\nHost: test\r\nConnection: close\r\n\r\n")
            response = response_reader(sock).read()

        names = [name for name, _ in response.header_list]
        assert names == sorted(names)
        assert names == ["Connection", "Content-Length", "Content-Type", "Date", "Last-Modified"]

    def test_traversal_is_404(self, test_server, response_reader):
        """Test that escaping the root is answered like a missing file."""
        with test_server.connect() as sock:
            sock.sendall(b"GET /../../../../etc/passwd HTTP/1.1\r\nHost: test\r\n\r\n")
            assert response_reader(sock).read().status == 404

    def test_missing_host_is_400(self, test_server, response_reader):
        """Test that Host is mandatory."""
        with test_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\nAccept: */*\r\n\r\n")
            assert response_reader(sock).read().status == 400

    def test_concurrent_connections(self, test_server, response_reader):
        """Test that a stalled client does not block others."""
        with test_server.connect() as idle:
            idle.sendall(b"GET / HTTP/1.1\r\n")  # never finished

            results = []

            def fetch():
                with test_server.connect() as sock:
                    sock.sendall(b"GET / HTTP/1.1\r\nHost: test\r\nConnection: close\r\n\r\n")
                    results.append(response_reader(sock).read().status)

            threads = [threading.Thread(target=fetch) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(5.0)

            assert results == [200] * 8
