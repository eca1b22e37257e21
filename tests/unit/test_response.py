"""
Unit tests for response framing and streaming.
"""

import io

import pytest

from tinyhttpd.http.response import (
    ResponseWriter,
    StatusOutcome,
    build_head,
    status_line,
    NOT_FOUND_BODY,
    NOT_IMPLEMENTED_BODY,
)
from tinyhttpd.http.status_codes import HTTPStatus


class RecordingConnection:
    """Stands in for Connection; keeps every send() call."""

    id = "test"

    def __init__(self):
        self.sent = []

    def send(self, data: bytes):
        self.sent.append(data)

    @property
    def data(self) -> bytes:
        return b"".join(self.sent)


class TestStatusLine:
    """Tests for status line and header framing."""

    def test_status_lines(self):
        assert status_line(HTTPStatus.OK) == "HTTP/1.0 200 OK"
        assert status_line(HTTPStatus.NOT_FOUND) == "HTTP/1.0 404 NOT FOUND"
        assert status_line(HTTPStatus.NOT_IMPLEMENTED) == "HTTP/1.0 501 Method Not Implemented"

    def test_head_exact_bytes(self):
        assert build_head(HTTPStatus.OK) == (
            b"HTTP/1.0 200 OK\r\n"
            b"Server: httpd/0.1.0\r\n"
            b"Content-Type: text/html\r\n"
            b"\r\n"
        )

    def test_custom_server_name(self):
        assert b"Server: custom/2\r\n" in build_head(HTTPStatus.NOT_FOUND, "custom/2")

    def test_is_error(self):
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.NOT_IMPLEMENTED.is_error


class TestResponseWriter:
    """Tests for ResponseWriter class."""

    def test_not_found(self):
        conn = RecordingConnection()

        sent = ResponseWriter(conn).write(StatusOutcome.not_found())

        assert conn.data == build_head(HTTPStatus.NOT_FOUND) + NOT_FOUND_BODY
        assert sent == len(NOT_FOUND_BODY)

    def test_not_implemented(self):
        conn = RecordingConnection()

        ResponseWriter(conn).write(StatusOutcome.not_implemented())

        assert conn.data == build_head(HTTPStatus.NOT_IMPLEMENTED) + NOT_IMPLEMENTED_BODY

    def test_ok_streams_in_chunks(self):
        content = b"\x00binary\x00\r\n\xff\xfe" * 10
        conn = RecordingConnection()

        sent = ResponseWriter(conn, chunk_size=7).write(StatusOutcome.ok(io.BytesIO(content)))

        head = build_head(HTTPStatus.OK)
        assert conn.sent[0] == head
        assert conn.data == head + content
        assert sent == len(content)
        assert all(len(chunk) <= 7 for chunk in conn.sent[1:])

    def test_ok_empty_file(self):
        conn = RecordingConnection()

        sent = ResponseWriter(conn).write(StatusOutcome.ok(io.BytesIO(b"")))

        assert conn.data == build_head(HTTPStatus.OK)
        assert sent == 0

    @pytest.mark.parametrize("outcome", [
        StatusOutcome.not_found(),
        StatusOutcome.not_implemented(),
    ])
    def test_no_length_or_connection_headers(self, outcome):
        conn = RecordingConnection()

        ResponseWriter(conn).write(outcome)

        head = conn.data.split(b"\r\n\r\n")[0]
        assert b"Content-Length" not in head
        assert b"Connection" not in head

    def test_writer_does_not_close_resource(self):
        resource = io.BytesIO(b"x")

        ResponseWriter(RecordingConnection()).write(StatusOutcome.ok(resource))

        assert not resource.closed

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            ResponseWriter(RecordingConnection(), chunk_size=0)


class TestStatusOutcome:
    """Tests for the StatusOutcome invariants."""

    def test_ok_requires_resource(self):
        with pytest.raises(ValueError):
            StatusOutcome(HTTPStatus.OK)

    def test_errors_carry_no_resource(self):
        with pytest.raises(ValueError):
            StatusOutcome(HTTPStatus.NOT_FOUND, io.BytesIO(b""))

    def test_constructors(self):
        assert StatusOutcome.not_found().status == HTTPStatus.NOT_FOUND
        assert StatusOutcome.not_implemented().status == HTTPStatus.NOT_IMPLEMENTED
        assert StatusOutcome.ok(io.BytesIO()).status == HTTPStatus.OK
