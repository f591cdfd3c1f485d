"""
Unit tests for request-line reading, parsing and validation.
"""

import os

import pytest

from tinyhttpd.http import HTTPStatus
from tinyhttpd.http.request import (
    Request,
    RequestError,
    MalformedRequest,
    UnsupportedMethod,
    UnsupportedVersion,
    decode_path,
    parse_request_line,
    read_request,
    validate_request,
)


class TestParseRequestLine:
    """Tests for parse_request_line()."""

    def test_parse_simple_get(self):
        """A plain GET line splits into method, path and version."""
        request = parse_request_line(b"GET /index.html HTTP/1.1\r\n")

        assert request.method == "GET"
        assert request.path == "/index.html"
        assert request.version == "HTTP/1.1\r\n"

    def test_version_keeps_terminator(self):
        """The version token keeps whatever terminator arrived."""
        assert parse_request_line(b"GET / HTTP/1.0\n").version == "HTTP/1.0\n"
        assert parse_request_line(b"GET / HTTP/1.1\r\n").version == "HTTP/1.1\r\n"

    def test_protocol_strips_terminator(self):
        """Request.protocol is the version without CR/LF."""
        request = parse_request_line(b"GET / HTTP/1.1\r\n")
        assert request.protocol == "HTTP/1.1"

    def test_path_is_percent_decoded(self):
        """Escapes in the path are decoded."""
        request = parse_request_line(b"GET /docs/a%20b.txt HTTP/1.1\r\n")
        assert request.path == "/docs/a b.txt"

    def test_method_is_verbatim(self):
        """The method is not upper-cased or otherwise touched."""
        assert parse_request_line(b"get / HTTP/1.1\r\n").method == "get"

    @pytest.mark.parametrize("line", [
        b"GET /\r\n",
        b"GET\r\n",
        b"\r\n",
        b"GET / HTTP/1.1 extra\r\n",
        b"GET  / HTTP/1.1\r\n",
    ])
    def test_wrong_token_count(self, line: bytes):
        """Anything other than exactly three tokens is malformed."""
        with pytest.raises(MalformedRequest) as exc_info:
            parse_request_line(line)

        assert exc_info.value.status_code == HTTPStatus.BAD_REQUEST
        assert exc_info.value.reason == "Bad Request"

    def test_missing_terminator(self):
        """A line without "\\n" is malformed even with three tokens."""
        with pytest.raises(MalformedRequest):
            parse_request_line(b"GET / HTTP/1.1")

    def test_bad_escape_in_path(self):
        """An invalid escape in the path is malformed."""
        with pytest.raises(MalformedRequest):
            parse_request_line(b"GET /a%zz HTTP/1.1\r\n")


class TestDecodePath:
    """Tests for decode_path()."""

    def test_plain_path_unchanged(self):
        assert decode_path("/docs/readme.txt") == "/docs/readme.txt"

    def test_utf8_escapes(self):
        """Multi-byte UTF-8 escapes decode to one character."""
        assert decode_path("/caf%C3%A9") == "/café"

    def test_encoded_dots_decode(self):
        """Encoded ".." decodes; containment is the resolver's job."""
        assert decode_path("/%2e%2e/etc") == "/../etc"

    def test_plus_is_not_space(self):
        """Paths use percent-encoding only, "+" stays literal."""
        assert decode_path("/a+b") == "/a+b"

    @pytest.mark.parametrize("raw", ["/%", "/%4", "/%zz", "/a%g1b", "/100%"])
    def test_invalid_escapes_rejected(self, raw: str):
        """"%" must be followed by exactly two hex digits."""
        with pytest.raises(MalformedRequest):
            decode_path(raw)

    def test_non_utf8_bytes_round_trip(self):
        """Bytes that are not UTF-8 come back unchanged through fsencode."""
        decoded = decode_path("/%FF%FE.bin")
        assert os.fsencode(decoded) == b"/\xff\xfe.bin"


class TestValidateRequest:
    """Tests for validate_request()."""

    def test_get_http11_is_valid(self):
        request = Request("GET", "/", "HTTP/1.1\r\n")
        assert validate_request(request) is request

    def test_any_http_prefix_is_valid(self):
        """Only the "HTTP" prefix is checked, not the version number."""
        validate_request(Request("GET", "/", "HTTP/1.0\r\n"))
        validate_request(Request("GET", "/", "HTTP/9.9\n"))

    @pytest.mark.parametrize("method", ["POST", "HEAD", "PUT", "DELETE", "get"])
    def test_other_methods_rejected(self, method: str):
        """Only GET is served."""
        with pytest.raises(UnsupportedMethod) as exc_info:
            validate_request(Request(method, "/", "HTTP/1.1\r\n"))

        assert exc_info.value.status_code == HTTPStatus.BAD_REQUEST
        assert exc_info.value.reason == "method not allowed"

    @pytest.mark.parametrize("version", ["BADPROTO\r\n", "FTP/1.0\r\n", "http/1.1\r\n", "\r\n"])
    def test_bad_version_rejected(self, version: str):
        """The version must start with "HTTP"."""
        with pytest.raises(UnsupportedVersion) as exc_info:
            validate_request(Request("GET", "/", version))

        assert exc_info.value.status_code == HTTPStatus.BAD_REQUEST
        assert exc_info.value.reason == "invalid HTTP version"

    def test_version_checked_before_method(self):
        """With both wrong, the version is what gets reported."""
        with pytest.raises(UnsupportedVersion):
            validate_request(Request("POST", "/", "FTP/1.0\r\n"))

    def test_all_errors_are_request_errors(self):
        assert issubclass(MalformedRequest, RequestError)
        assert issubclass(UnsupportedMethod, RequestError)
        assert issubclass(UnsupportedVersion, RequestError)


class TestReadRequest:
    """Tests for read_request() against an in-memory connection."""

    def test_reads_only_first_line(self, make_connection):
        """Headers after the request line are left unread."""
        conn, _ = make_connection([b"GET /a HTTP/1.1\r\nHost: x\r\n\r\n"])

        request = read_request(conn)

        assert request == Request("GET", "/a", "HTTP/1.1\r\n")

    def test_line_split_across_reads(self, make_connection):
        """TCP may deliver the line in pieces."""
        conn, _ = make_connection([b"GE", b"T /docs HT", b"TP/1.1\r", b"\n"])

        request = read_request(conn)

        assert request.path == "/docs"
        assert request.version == "HTTP/1.1\r\n"

    def test_immediate_close(self, make_connection):
        """A client that connects and closes sent no request."""
        conn, _ = make_connection([])

        with pytest.raises(MalformedRequest) as exc_info:
            read_request(conn)

        assert "empty request" in str(exc_info.value)

    def test_eof_before_terminator(self, make_connection):
        """Bytes without a line terminator are not a request."""
        conn, _ = make_connection([b"GET / HTTP/1.1"])

        with pytest.raises(MalformedRequest) as exc_info:
            read_request(conn)

        assert "before end of request line" in str(exc_info.value)

    def test_reset_reads_as_eof(self, make_connection):
        """A reset mid-line is reported like an early close."""
        conn, _ = make_connection([b"GET /", ConnectionResetError()])

        with pytest.raises(MalformedRequest):
            read_request(conn)

    def test_line_too_long(self, make_connection):
        """The read gives up after max_line bytes without a terminator."""
        conn, _ = make_connection([b"GET /" + b"a" * 100])

        with pytest.raises(MalformedRequest) as exc_info:
            read_request(conn, max_line=32)

        assert "longer than 32" in str(exc_info.value)

    def test_line_exactly_at_limit(self, make_connection):
        """A line whose terminator is the last allowed byte is accepted."""
        line = b"GET / HTTP/1.1\r\n"
        conn, _ = make_connection([line])

        request = read_request(conn, max_line=len(line))

        assert request.method == "GET"

    def test_socket_timeout_propagates(self, make_connection):
        """Timeouts are not turned into MalformedRequest here."""
        conn, _ = make_connection([TimeoutError("timed out")])

        with pytest.raises(TimeoutError):
            read_request(conn)
