"""
End-to-end tests against a running server on an ephemeral port.
"""

import socket
import threading
from pathlib import Path

import pytest

from conftest import (
    INDEX_HTML,
    BINARY_BLOB,
    TestServer,
    make_config,
    read_all,
    split_response,
)
from tinyhttpd import HTTPServer, __version__
from tinyhttpd.__main__ import main
from tinyhttpd.http.response import NOT_FOUND_BODY, NOT_IMPLEMENTED_BODY


class TestRequests:
    """The four basic request outcomes over real TCP."""

    def test_get_root(self, test_server):
        raw = test_server.request(b"GET / HTTP/1.0\r\n\r\n")

        status, headers, body = split_response(raw)
        assert status == b"HTTP/1.0 200 OK"
        assert b"Server: httpd/0.1.0" in headers
        assert b"Content-Type: text/html" in headers
        assert body == INDEX_HTML

    def test_missing_file(self, test_server):
        raw = test_server.request(
            b"GET /nope.html HTTP/1.0\r\nHost: localhost\r\nAccept: */*\r\n\r\n"
        )

        status, _, body = split_response(raw)
        assert status == b"HTTP/1.0 404 NOT FOUND"
        assert body == NOT_FOUND_BODY
        assert raw.count(b"HTTP/1.0 ") == 1

    def test_post_not_implemented(self, test_server):
        raw = test_server.request(
            b"POST / HTTP/1.0\r\nContent-Length: 5\r\n\r\nhello"
        )

        status, _, body = split_response(raw)
        assert status == b"HTTP/1.0 501 Method Not Implemented"
        assert body == NOT_IMPLEMENTED_BODY

    def test_connect_and_close_gets_nothing(self, test_server):
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as s:
            s.shutdown(socket.SHUT_WR)
            assert read_all(s) == b""

        # Server is still serving afterwards
        assert test_server.request(b"GET / HTTP/1.0\r\n\r\n").startswith(b"HTTP/1.0 200 OK")

    def test_binary_file(self, test_server):
        raw = test_server.request(b"GET /blob.bin HTTP/1.0\r\n\r\n")

        assert split_response(raw)[2] == BINARY_BLOB
        assert b"Content-Length" not in raw.partition(b"\r\n\r\n")[0]

    def test_traversal_stays_inside_root(self, test_server, docroot):
        (docroot.parent / "secret.txt").write_text("top secret")

        raw = test_server.request(b"GET /../secret.txt HTTP/1.0\r\n\r\n")

        assert raw.startswith(b"HTTP/1.0 404 NOT FOUND\r\n")
        assert b"top secret" not in raw

    def test_requests_are_independent(self, test_server):
        first = test_server.request(b"GET /nope HTTP/1.0\r\n\r\n")
        second = test_server.request(b"GET / HTTP/1.0\r\n\r\n")
        third = test_server.request(b"DELETE / HTTP/1.0\r\n\r\n")

        assert first.startswith(b"HTTP/1.0 404")
        assert second.startswith(b"HTTP/1.0 200")
        assert third.startswith(b"HTTP/1.0 501")


class TestLifecycle:

    def test_ephemeral_port_is_reported(self, test_server):
        assert test_server.port not in (None, 0)

    def test_startup_banner(self, docroot, capsys):
        srv = TestServer(HTTPServer(make_config(docroot)))
        srv.start()
        try:
            port = srv.port
        finally:
            srv.stop()

        assert f"httpd running on port {port}" in capsys.readouterr().out

    def test_bind_failure_raises(self, test_server, docroot):
        server = HTTPServer(make_config(docroot))

        # Port override, already taken by the running server
        with pytest.raises(OSError):
            server.run(port=test_server.port)

        assert server.config.port == test_server.port


class TestConcurrency:

    def _stall(self, port: int) -> socket.socket:
        """Open a connection that has sent half a request line."""
        s = socket.create_connection(("127.0.0.1", port), timeout=5.0)
        s.sendall(b"GET / HTTP/1.0")
        return s

    def test_sequential_server_blocks_behind_slow_client(self, test_server):
        slow = self._stall(test_server.port)
        try:
            with socket.create_connection(("127.0.0.1", test_server.port), timeout=0.5) as fast:
                fast.sendall(b"GET / HTTP/1.0\r\n\r\n")
                with pytest.raises(socket.timeout):
                    fast.recv(1)

                slow.sendall(b"\r\n\r\n")
                assert split_response(read_all(slow))[2] == INDEX_HTML

                fast.settimeout(5.0)
                assert read_all(fast).startswith(b"HTTP/1.0 200 OK")
        finally:
            slow.close()

    def test_pooled_server_serves_around_slow_client(self, pooled_server):
        slow = self._stall(pooled_server.port)
        try:
            raw = pooled_server.request(b"GET / HTTP/1.0\r\n\r\n", timeout=2.0)
            assert raw.startswith(b"HTTP/1.0 200 OK")
        finally:
            slow.close()

    def test_pooled_server_parallel_requests(self, pooled_server):
        results = [None] * 8
        errors = []

        def fetch(i: int):
            try:
                path = b"/" if i % 2 else b"/missing"
                results[i] = pooled_server.request(b"GET " + path + b" HTTP/1.0\r\n\r\n")
            except OSError as e:
                errors.append(e)

        threads = [threading.Thread(target=fetch, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert errors == []
        for i, raw in enumerate(results):
            expected = b"HTTP/1.0 200 OK" if i % 2 else b"HTTP/1.0 404 NOT FOUND"
            assert raw.startswith(expected + b"\r\n")


class TestCLI:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("HTTPD_HOST", "HTTPD_PORT", "HTTPD_DOCUMENT_ROOT",
                     "HTTPD_WORKERS", "HTTPD_TIMEOUT", "HTTPD_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

    def test_missing_root(self, tmp_path: Path, capsys):
        assert main(["--root", str(tmp_path / "absent"), "--port", "0"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_port(self, docroot, capsys):
        assert main(["--root", str(docroot), "--port", "70000"]) == 1
        assert "Invalid port" in capsys.readouterr().err

    def test_bad_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("HTTPD_WORKERS", "many")

        assert main([]) == 1
        assert "bad environment" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])

        assert exc.value.code == 0
        assert f"tinyhttpd {__version__}" in capsys.readouterr().out
