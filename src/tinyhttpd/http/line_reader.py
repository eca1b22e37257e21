"""
=============================================================================
LINE READER
=============================================================================

Tokenizes the client's byte stream into lines, one byte at a time.

=============================================================================
TERMINATORS
=============================================================================

Clients in the wild end lines three different ways. All of them are
accepted and collapsed into a single terminator:

    ┌──────────────┬──────────────────────────────────────────────────────┐
    │ bytes        │ handling                                             │
    ├──────────────┼──────────────────────────────────────────────────────┤
    │ \n           │ terminator                                           │
    │ \r\n         │ \r seen, peek shows \n → consume it, one terminator  │
    │ \r<other>    │ \r seen, peek shows other → \r alone terminates,     │
    │              │ <other> stays unread and starts the next line        │
    │ \r<EOF>      │ \r alone terminates                                  │
    └──────────────┴──────────────────────────────────────────────────────┘

=============================================================================
BOUNDED BUFFER
=============================================================================

A reader built with max_size=N consumes at most N - 1 characters per call,
the terminator counting as one (so at most N - 2 content bytes when the
terminator fits). A longer line is cut at the limit; the rest of it comes
back from the next read_line() call. Nothing is ever buffered beyond the
current line, so whatever the handler does not read stays in the socket.

=============================================================================
RETURN VALUES
=============================================================================

    b"GET / HTTP/1.0"   a line, terminator removed
    b""                 a blank line (end of headers)
    None                the peer closed before sending a single byte

=============================================================================
"""

from typing import Optional

from ..core.connection import Connection


CR = b"\r"
LF = b"\n"


class LineReader:
    """
    Reads CR, LF or CRLF terminated lines from a Connection.

    Usage:
        reader = LineReader(conn, max_size=1024)
        request_line = reader.read_line()
        if request_line is None:
            ...  # client hung up without sending anything
    """

    def __init__(self, connection: Connection, max_size: int = 1024):
        if max_size < 2:
            raise ValueError("max_size must be >= 2")
        self.connection = connection
        self.max_size = max_size

    def read_line(self) -> Optional[bytes]:
        """
        Read one line.

        Returns:
            The line without its terminator, b"" for a blank line, or None
            if the connection was closed before any byte arrived.

        Raises:
            TransportError: If the socket fails while reading.
        """
        buf = bytearray()
        consumed = 0

        while consumed < self.max_size - 1:
            c = self.connection.recv_byte()
            if not c:
                # Closed mid-line: hand back what we have
                return bytes(buf) if consumed else None
            consumed += 1

            if c == CR:
                # Only eat the next byte if it completes a CRLF pair
                if self.connection.peek_byte() == LF:
                    self.connection.recv_byte()
                return bytes(buf)

            if c == LF:
                return bytes(buf)

            buf += c

        return bytes(buf)
