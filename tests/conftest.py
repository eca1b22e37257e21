"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyhttpd import HTTPServer, ServerConfig
from tinyhttpd.core.connection import Connection


INDEX_HTML = b"<html>Hi</html>"
SUB_INDEX_HTML = b"<html>sub</html>"
BINARY_BLOB = bytes(range(256)) * 8 + b"\x00\x00\r\n\x00tail"


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """
    Document root laid out as:

        root/index.html        "<html>Hi</html>"
        root/sub/index.html    "<html>sub</html>"
        root/empty/            (directory without index.html)
        root/blob.bin          binary data with NUL bytes
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "sub").mkdir()
    (root / "sub" / "index.html").write_bytes(SUB_INDEX_HTML)
    (root / "empty").mkdir()
    (root / "blob.bin").write_bytes(BINARY_BLOB)
    return root


@pytest.fixture
def socket_pair() -> Generator[Tuple[Connection, socket.socket], None, None]:
    """A server-side Connection and the client socket connected to it."""
    server_sock, client_sock = socket.socketpair()
    conn = Connection(socket=server_sock, address=("local", 0), close_timeout=0.05)

    yield conn, client_sock

    conn.close()
    client_sock.close()


def read_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    chunks = []
    while True:
        data = sock.recv(65536)
        if not data:
            return b"".join(chunks)
        chunks.append(data)


def split_response(raw: bytes) -> Tuple[bytes, list, bytes]:
    """Split a raw response into (status line, header lines, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.split(b"\r\n")
    return lines[0], lines[1:], body


class TestServer:
    """Runs an HTTPServer on an ephemeral port in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes on a fresh connection and return everything received."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            s.sendall(raw)
            return read_all(s)


def make_config(docroot: Path, **overrides) -> ServerConfig:
    options = dict(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        document_root=str(docroot),
        log_level="WARNING",
        close_timeout=0.2,
    )
    options.update(overrides)
    return ServerConfig(**options)


@pytest.fixture
def test_server(docroot: Path) -> Generator[TestServer, None, None]:
    """Sequential server over the docroot fixture."""
    srv = TestServer(HTTPServer(make_config(docroot)))
    srv.start()

    yield srv

    srv.stop()


@pytest.fixture
def pooled_server(docroot: Path) -> Generator[TestServer, None, None]:
    """Same server with a 4-thread worker pool."""
    srv = TestServer(HTTPServer(make_config(docroot, workers=4, queue_size=8)))
    srv.start()

    yield srv

    srv.stop()
