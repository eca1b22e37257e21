"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs one full request/response cycle over one connection.

=============================================================================
STATE MACHINE
=============================================================================

    START
      │
      ▼
    READ_REQUEST_LINE ──── peer closed, nothing read ────────────┐
      │                                                          │
      ▼                                                          │
    PARSED ───── method is not GET ────► SEND_501 ──────────────►│
      │                                                          │
      ▼                                                          │
    RESOLVE_PATH                                                 │
      │                                                          │
      ▼                                                          │
    DRAIN_HEADERS ── not found ────────► SEND_404 ──────────────►│
      │                                     ▲                    │
      ▼                                     │ open() failed      │
    OPEN_AND_SEND_200 ──────────────────────┘                    │
      │                                                          │
      └─────────────────────────────────────────────────────────►DONE

Each state is one method returning the next state. The TRANSITIONS table
lists every legal edge; anything else is a programming error and raises.

Header lines are drained only on the GET branches. The 501 branch answers
straight after the request line, leaving any headers unread (the
connection's close() copes with them).

=============================================================================
ONE RESPONSE PER CONNECTION
=============================================================================

All per-connection data lives in a _Cycle object created inside handle()
and dropped when it returns. The handler itself holds only configuration,
so one instance can serve any number of connections, sequentially or from
several worker threads at once.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .static import PathResolver, ResolvedPath
from ..config import ServerConfig
from ..core.connection import Connection, TransportError
from ..http.line_reader import LineReader
from ..http.request import RequestLine, RequestParser
from ..http.response import ResponseWriter, StatusOutcome
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("tinyhttpd.access")


class HandlerState(Enum):
    START = "start"
    READ_REQUEST_LINE = "read_request_line"
    PARSED = "parsed"
    RESOLVE_PATH = "resolve_path"
    SEND_501 = "send_501"
    DRAIN_HEADERS = "drain_headers"
    SEND_404 = "send_404"
    OPEN_AND_SEND_200 = "open_and_send_200"
    DONE = "done"


TRANSITIONS: Dict[HandlerState, frozenset] = {
    HandlerState.START: frozenset({HandlerState.READ_REQUEST_LINE}),
    HandlerState.READ_REQUEST_LINE: frozenset({HandlerState.PARSED, HandlerState.DONE}),
    HandlerState.PARSED: frozenset({HandlerState.RESOLVE_PATH, HandlerState.SEND_501}),
    HandlerState.RESOLVE_PATH: frozenset({HandlerState.DRAIN_HEADERS}),
    HandlerState.DRAIN_HEADERS: frozenset({HandlerState.SEND_404, HandlerState.OPEN_AND_SEND_200}),
    HandlerState.OPEN_AND_SEND_200: frozenset({HandlerState.SEND_404, HandlerState.DONE}),
    HandlerState.SEND_404: frozenset({HandlerState.DONE}),
    HandlerState.SEND_501: frozenset({HandlerState.DONE}),
    HandlerState.DONE: frozenset(),
}


@dataclass
class CycleResult:
    """
    What happened on one connection.

    Attributes:
        history: Every state visited, START first, DONE last.
        request: Parsed request line (None if the client sent nothing).
        resolved: Path resolution (None unless the method was GET).
        status: Status sent, or None when no response was sent.
        body_bytes: Body bytes written.
        headers_drained: Header lines read and discarded.
        error: TransportError message if the cycle was abandoned.
    """

    history: List[HandlerState] = field(default_factory=lambda: [HandlerState.START])
    request: Optional[RequestLine] = None
    resolved: Optional[ResolvedPath] = None
    status: Optional[HTTPStatus] = None
    body_bytes: int = 0
    headers_drained: int = 0
    error: Optional[str] = None

    @property
    def responded(self) -> bool:
        return self.status is not None


@dataclass
class _Cycle:
    """Per-connection working state; never outlives handle()."""
    connection: Connection
    reader: LineReader
    writer: ResponseWriter
    result: CycleResult
    line: Optional[bytes] = None


class ConnectionHandler:
    """
    Serves one request per connection from a document root.

    Usage:
        handler = ConnectionHandler.from_config(config)
        with conn:
            result = handler.handle(conn)
        result.status   # HTTPStatus.OK, NOT_FOUND, NOT_IMPLEMENTED or None

    handle() never closes the connection; the caller owns it.
    """

    def __init__(
        self,
        resolver: PathResolver,
        line_buffer_size: int = 1024,
        max_token_length: int = 254,
        chunk_size: int = 1024,
        server_name: str = "httpd/0.1.0",
    ):
        self.resolver = resolver
        self.parser = RequestParser(max_token_length)
        self.line_buffer_size = line_buffer_size
        self.chunk_size = chunk_size
        self.server_name = server_name

        self._steps: Dict[HandlerState, Callable[[_Cycle], HandlerState]] = {
            HandlerState.START: self._start,
            HandlerState.READ_REQUEST_LINE: self._read_request_line,
            HandlerState.PARSED: self._parsed,
            HandlerState.RESOLVE_PATH: self._resolve_path,
            HandlerState.SEND_501: self._send_501,
            HandlerState.DRAIN_HEADERS: self._drain_headers,
            HandlerState.SEND_404: self._send_404,
            HandlerState.OPEN_AND_SEND_200: self._open_and_send_200,
        }

    @classmethod
    def from_config(cls, config: ServerConfig) -> "ConnectionHandler":
        return cls(
            resolver=PathResolver(config.document_root, config.index_file),
            line_buffer_size=config.line_buffer_size,
            max_token_length=config.max_token_length,
            chunk_size=config.chunk_size,
            server_name=config.server_name,
        )

    def handle(self, connection: Connection) -> CycleResult:
        """
        Run the state machine until DONE.

        Transport failures end the cycle early: they are logged, recorded
        in the result and not re-raised.
        """
        cycle = _Cycle(
            connection=connection,
            reader=LineReader(connection, self.line_buffer_size),
            writer=ResponseWriter(connection, self.server_name, self.chunk_size),
            result=CycleResult(),
        )
        result = cycle.result

        state = HandlerState.START
        try:
            while state is not HandlerState.DONE:
                state = self._advance(state, cycle)
        except TransportError as e:
            logger.warning(f"[{connection.id}] Abandoned in {state.value}: {e}")
            result.error = str(e)
            result.history.append(HandlerState.DONE)

        self._log_access(connection, result)
        return result

    def _advance(self, state: HandlerState, cycle: _Cycle) -> HandlerState:
        next_state = self._steps[state](cycle)
        if next_state not in TRANSITIONS[state]:
            raise RuntimeError(f"Illegal transition {state.value} -> {next_state.value}")
        cycle.result.history.append(next_state)
        return next_state

    # =========================================================================
    # STATES
    # =========================================================================

    def _start(self, cycle: _Cycle) -> HandlerState:
        return HandlerState.READ_REQUEST_LINE

    def _read_request_line(self, cycle: _Cycle) -> HandlerState:
        cycle.line = cycle.reader.read_line()
        if cycle.line is None:
            logger.debug(f"[{cycle.connection.id}] Closed before request line")
            return HandlerState.DONE
        return HandlerState.PARSED

    def _parsed(self, cycle: _Cycle) -> HandlerState:
        request = self.parser.parse(cycle.line)
        cycle.result.request = request
        if not request.is_get:
            return HandlerState.SEND_501
        return HandlerState.RESOLVE_PATH

    def _resolve_path(self, cycle: _Cycle) -> HandlerState:
        cycle.result.resolved = self.resolver.resolve(cycle.result.request.url)
        return HandlerState.DRAIN_HEADERS

    def _drain_headers(self, cycle: _Cycle) -> HandlerState:
        # Stop at the blank line ending the headers, or at closure
        while cycle.reader.read_line():
            cycle.result.headers_drained += 1

        if cycle.result.resolved.found:
            return HandlerState.OPEN_AND_SEND_200
        return HandlerState.SEND_404

    def _open_and_send_200(self, cycle: _Cycle) -> HandlerState:
        path = cycle.result.resolved.path
        try:
            resource = open(path, "rb")
        except OSError as e:
            # stat() said yes but open() says no: permissions, a race,
            # or a directory where the index file should be
            logger.info(f"[{cycle.connection.id}] Cannot open {path}: {e}")
            return HandlerState.SEND_404

        with resource:
            self._respond(cycle, StatusOutcome.ok(resource))
        return HandlerState.DONE

    def _send_404(self, cycle: _Cycle) -> HandlerState:
        self._respond(cycle, StatusOutcome.not_found())
        return HandlerState.DONE

    def _send_501(self, cycle: _Cycle) -> HandlerState:
        self._respond(cycle, StatusOutcome.not_implemented())
        return HandlerState.DONE

    def _respond(self, cycle: _Cycle, outcome: StatusOutcome):
        result = cycle.result
        if result.responded:
            raise RuntimeError("Response already sent on this connection")
        result.status = outcome.status
        result.body_bytes = cycle.writer.write(outcome)

    # =========================================================================
    # ACCESS LOG
    # =========================================================================

    def _log_access(self, connection: Connection, result: CycleResult):
        if result.request is None:
            return

        request = result.request
        line = (
            f'{connection.client_ip or "-"} '
            f'"{_printable(request.method)} {_printable(request.url)}" '
            f'{int(result.status) if result.status else "-"} {result.body_bytes}'
        )
        if result.error:
            access_logger.warning(f"{line} (aborted: {result.error})")
        else:
            access_logger.info(line)


def _printable(token: str) -> str:
    """Undo os.fsdecode() for logging; bytes that are not UTF-8 show as escapes."""
    return os.fsencode(token).decode("utf-8", "backslashreplace")
