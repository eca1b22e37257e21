"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Frames and sends the one response a connection gets.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.0 200 OK\r\n                  ← status line                │
    │  Server: httpd/0.1.0\r\n              ← fixed header set           │
    │  Content-Type: text/html\r\n                                        │
    │  \r\n                                 ← end of headers             │
    │  <body bytes ...>                     ← until the socket closes    │
    └─────────────────────────────────────────────────────────────────────┘

No Content-Length and no Connection header: this is HTTP/1.0 without
keep-alive, so the client knows the body is complete when we close.

Content-Type is always text/html, whatever the file extension. The header
set is identical for all three outcomes.

=============================================================================
STREAMING
=============================================================================

A 200 body is never loaded into memory. The open file is read in binary
chunks of chunk_size bytes and each chunk is sent as soon as it is read:

    file.read(1024) ──► send ──► file.read(1024) ──► send ──► ... b"" stop

Binary reads keep NUL bytes, lone \r and invalid UTF-8 intact: the body
on the wire is byte-identical to the file on disk.

=============================================================================
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import BinaryIO, Optional

from .status_codes import HTTPStatus
from ..core.connection import Connection


logger = logging.getLogger(__name__)


CRLF = "\r\n"

NOT_FOUND_BODY = (
    b"<HTML><TITLE>Not Found</TITLE>\r\n"
    b"<BODY><P>The server could not fulfill\r\n"
    b"your request because the resource specified\r\n"
    b"is unavailable or nonexistent.\r\n"
    b"</BODY></HTML>\r\n"
)

NOT_IMPLEMENTED_BODY = (
    b"<HTML><HEAD><TITLE>Method Not Implemented\r\n"
    b"</TITLE></HEAD>\r\n"
    b"<BODY><P>HTTP request method not supported.\r\n"
    b"</BODY></HTML>\r\n"
)


@dataclass(frozen=True)
class StatusOutcome:
    """
    The single decision that picks the response for a connection.

    Exactly one of these exists per answered connection. Only an OK
    outcome carries a resource, and that resource is an already open
    binary file handle: a file that could not be opened never becomes
    an OK outcome.

    Build with the named constructors:
        StatusOutcome.ok(open(path, "rb"))
        StatusOutcome.not_found()
        StatusOutcome.not_implemented()
    """

    status: HTTPStatus
    resource: Optional[BinaryIO] = None

    def __post_init__(self):
        if (self.status == HTTPStatus.OK) != (self.resource is not None):
            raise ValueError("only an OK outcome carries a resource")

    @classmethod
    def ok(cls, resource: BinaryIO) -> "StatusOutcome":
        return cls(HTTPStatus.OK, resource)

    @classmethod
    def not_found(cls) -> "StatusOutcome":
        return cls(HTTPStatus.NOT_FOUND)

    @classmethod
    def not_implemented(cls) -> "StatusOutcome":
        return cls(HTTPStatus.NOT_IMPLEMENTED)


def status_line(status: HTTPStatus) -> str:
    """Format: HTTP/1.0 SP code SP phrase, e.g. "HTTP/1.0 404 NOT FOUND"."""
    return f"HTTP/1.0 {status.value} {status.phrase}"


def build_head(status: HTTPStatus, server_name: str = "httpd/0.1.0") -> bytes:
    """
    Serialize the status line and headers, blank line included.

    Example:
        build_head(HTTPStatus.OK)
        # b"HTTP/1.0 200 OK\\r\\nServer: httpd/0.1.0\\r\\n"
        # b"Content-Type: text/html\\r\\n\\r\\n"
    """
    lines = [
        status_line(status),
        f"Server: {server_name}",
        "Content-Type: text/html",
        "",
    ]
    return (CRLF.join(lines) + CRLF).encode("latin-1")


class ResponseWriter:
    """
    Writes one complete response for a StatusOutcome.

    Usage:
        writer = ResponseWriter(conn, server_name="httpd/0.1.0")
        writer.write(StatusOutcome.not_found())

    The writer does not close the file handle of an OK outcome; whoever
    opened it owns it.
    """

    def __init__(
        self,
        connection: Connection,
        server_name: str = "httpd/0.1.0",
        chunk_size: int = 1024,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.connection = connection
        self.server_name = server_name
        self.chunk_size = chunk_size

    def write(self, outcome: StatusOutcome) -> int:
        """
        Send the response for outcome.

        Returns:
            Number of body bytes sent.

        Raises:
            TransportError: If the client stops accepting data. Whatever
                            was sent before that is not repaired.
        """
        self.connection.send(build_head(outcome.status, self.server_name))

        if outcome.status == HTTPStatus.OK:
            return self._stream(outcome.resource)

        body = NOT_FOUND_BODY if outcome.status == HTTPStatus.NOT_FOUND else NOT_IMPLEMENTED_BODY
        self.connection.send(body)
        return len(body)

    def _stream(self, resource: BinaryIO) -> int:
        sent = 0
        for chunk in iter(partial(resource.read, self.chunk_size), b""):
            self.connection.send(chunk)
            sent += len(chunk)
        logger.debug(f"[{self.connection.id}] Streamed {sent} bytes")
        return sent
