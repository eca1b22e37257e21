"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows what HTTP bytes look like:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ LINE READER (line_reader.py)                                        │
    │ Byte stream → lines. CR, LF and CRLF all terminate a line.          │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ First line → RequestLine(method, url).                              │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE WRITER (response.py)                                       │
    │ StatusOutcome → status line, fixed headers, body.                   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .line_reader import LineReader
from .request import RequestLine, RequestParser, parse_request_line
from .response import (
    ResponseWriter,
    StatusOutcome,
    build_head,
    status_line,
    NOT_FOUND_BODY,
    NOT_IMPLEMENTED_BODY,
)
from .status_codes import HTTPStatus

__all__ = [
    "LineReader",
    "RequestLine",
    "RequestParser",
    "parse_request_line",
    "ResponseWriter",
    "StatusOutcome",
    "build_head",
    "status_line",
    "NOT_FOUND_BODY",
    "NOT_IMPLEMENTED_BODY",
    "HTTPStatus",
]
