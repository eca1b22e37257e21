"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server only ever answers with three statuses:

    200  OK                       file found and streamed
    404  NOT FOUND                nothing servable at that path
    501  Method Not Implemented   anything but GET

The reason phrases are part of the wire format clients of this server
already see, so they are spelled exactly as sent (note the upper-case
"NOT FOUND"), not taken from the standard library's http.HTTPStatus.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes sent by the server.

    IntEnum, so HTTPStatus.NOT_FOUND == 404 holds and the value formats
    as a plain number in the status line.
    """

    OK = 200
    NOT_FOUND = 404
    NOT_IMPLEMENTED = 501

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _PHRASES[self]

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx."""
        return self >= 400


_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.NOT_IMPLEMENTED: "Method Not Implemented",
}
