"""
=============================================================================
REQUEST LINE PARSER
=============================================================================

Extracts the method and URL from the first line of an HTTP request.

=============================================================================
WHAT WE LOOK AT
=============================================================================

    GET /docs/index.html HTTP/1.0
    ─┬─ ───────┬──────── ────┬───
     │         │             │
   method     url         ignored (as is anything after it)

Only the first two whitespace-separated tokens matter. The version is
never checked: "GET /" (HTTP/0.9 style), "GET / HTTP/1.1" and
"GET / banana" are all the same request to us.

=============================================================================
BOUNDS
=============================================================================

Each token is capped at max_token_length bytes (254 by default).
Longer tokens are silently truncated; parsing then resumes after the full
token, so a truncated method never leaks into the URL.

Bytes are decoded with os.fsdecode() (the filesystem encoding with
surrogateescape). Decoding cannot fail, and when the URL becomes a
filesystem path Python encodes it back to exactly the bytes the client
sent, so non-ASCII file names are found as they are on disk.

=============================================================================
"""

import os
from dataclasses import dataclass


# C isspace() in the "C" locale: space, \t, \n, \v, \f, \r
WHITESPACE = b" \t\n\v\f\r"


@dataclass(frozen=True)
class RequestLine:
    """
    The parsed request line.

    Attributes:
        method: Method token as sent (case preserved), possibly empty.
        url: URL token as sent, possibly empty. No decoding, no query
             splitting.
    """

    method: str
    url: str

    @property
    def is_get(self) -> bool:
        """True for GET in any letter case; the only method we implement."""
        return self.method.upper() == "GET"


class RequestParser:
    """
    Splits a request line into method and URL.

    Usage:
        parser = RequestParser()
        request = parser.parse(b"get /index.html HTTP/1.0")
        request.method   # "get"
        request.is_get   # True
    """

    def __init__(self, max_token_length: int = 254):
        if max_token_length < 1:
            raise ValueError("max_token_length must be >= 1")
        self.max_token_length = max_token_length

    def parse(self, line: bytes) -> RequestLine:
        """
        Parse one line produced by LineReader.

        Never fails: a blank or garbage line yields a RequestLine whose
        method is not GET, which the handler answers with 501.
        """
        method, pos = self._token(line, 0)
        pos = self._skip_whitespace(line, pos)
        url, _ = self._token(line, pos)
        return RequestLine(method=method, url=url)

    def _token(self, line: bytes, pos: int):
        """Return (token, index after the whole token) starting at pos."""
        end = pos
        while end < len(line) and line[end] not in WHITESPACE:
            end += 1
        token = line[pos:min(end, pos + self.max_token_length)]
        return os.fsdecode(token), end

    @staticmethod
    def _skip_whitespace(line: bytes, pos: int) -> int:
        while pos < len(line) and line[pos] in WHITESPACE:
            pos += 1
        return pos


def parse_request_line(line: bytes, max_token_length: int = 254) -> RequestLine:
    """
    Convenience function for one-off parsing.

    Example:
        request = parse_request_line(b"GET / HTTP/1.0")
    """
    return RequestParser(max_token_length).parse(line)
