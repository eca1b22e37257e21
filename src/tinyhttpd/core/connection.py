"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for exactly one request/response cycle.

=============================================================================
BYTE-AT-A-TIME READING
=============================================================================

The request pipeline never reads "a request" in one go. It pulls single
bytes off the socket so that nothing past the current line is consumed:

    Client sends:   G E T ␠ / ␠ H T T P / 1 . 0 \r \n H o s t ...
                    ───────────────────────────────────┬─
                                                       │
                    recv_byte() consumes up to here ───┘
                    peek_byte() looks at '\n' without consuming it

Peeking uses MSG_PEEK: the kernel hands us a copy of the next byte and
leaves it queued, so the following recv() sees it again.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  recv(1)             → b"\r"   (consumed)                          │
    │  recv(1, MSG_PEEK)   → b"\n"   (still queued)                      │
    │  recv(1)             → b"\n"   (now consumed)                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CLOSING WITHOUT RESETTING THE CLIENT
=============================================================================

Some responses (the 501 path) are sent while the client's header lines are
still unread in our receive buffer. Closing a TCP socket with unread data
makes the kernel send RST instead of FIN, and a RST can destroy response
bytes the client has not read yet. close() therefore half-closes first,
drains for a short while, and only then releases the descriptor.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class TransportError(ConnectionError):
    """
    A read or write on the client socket failed mid-cycle.

    The current response is abandoned; the caller closes the connection.
    Never escalated past the connection that raised it.
    """


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and debugging)."""
    NEW = "new"              # Just accepted, nothing read yet
    READING = "reading"      # Pulling request bytes
    WRITING = "writing"      # Sending response bytes
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    One client connection, used for a single request/response cycle.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current lifecycle state.
        timeout: Socket timeout (None = blocking forever).
        close_timeout: How long close() drains unread bytes.
        bytes_received: Bytes consumed from the client.
        bytes_sent: Bytes written to the client.
    """

    socket: socket.socket
    address: tuple = ("", 0)

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    timeout: Optional[float] = None
    close_timeout: float = 0.5

    bytes_received: int = 0
    bytes_sent: int = 0

    def __post_init__(self):
        # Accepted sockets can inherit the listener's accept timeout.
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address (empty for socketpair peers)."""
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return ""

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def recv_byte(self) -> bytes:
        """
        Consume one byte from the socket.

        Returns:
            A one-byte bytes object, or b"" if the peer closed (or reset)
            the connection.

        Raises:
            TransportError: On timeout or any other socket failure.
        """
        self.state = ConnectionState.READING
        data = self._recv(0)
        self.bytes_received += len(data)
        return data

    def peek_byte(self) -> bytes:
        """
        Look at the next byte without consuming it.

        Blocks like recv_byte() until a byte arrives or the peer closes.

        Returns:
            A one-byte bytes object, or b"" on closure.
        """
        self.state = ConnectionState.READING
        return self._recv(socket.MSG_PEEK)

    def _recv(self, flags: int) -> bytes:
        try:
            return self.socket.recv(1, flags)
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly; same as an orderly close to us
            return b""
        except OSError as e:
            raise TransportError(f"recv failed: {e}") from e

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> None:
        """
        Send all of data to the client.

        Uses sendall() so a full kernel buffer never results in a
        silently truncated response.

        Raises:
            TransportError: If the client went away or the send timed out.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise TransportError(f"send failed: {e}") from e
        self.bytes_sent += len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN: the client sees end-of-body.
        2. Drain whatever the client still has in flight (bounded by
           close_timeout) so the kernel does not answer with RST.
        3. close() releases the descriptor.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(self.close_timeout)
            deadline = time.time() + self.close_timeout
            while time.time() < deadline and self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed "
            f"(in={self.bytes_received}B out={self.bytes_sent}B {self.age:.3f}s)"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False
