"""
=============================================================================
REQUEST LINE PARSER
=============================================================================

Turns the first line a client sends into a Request value, and decides
whether tinyhttpd is willing to serve it.

=============================================================================
THE ONLY LINE WE READ
=============================================================================

A browser sends a full HTTP request:

    GET /docs/a%20b.txt HTTP/1.1\\r\\n     ◄── request line: all we read
    Host: localhost:8080\\r\\n             ◄── never read
    User-Agent: curl/8.5.0\\r\\n           ◄── never read
    \\r\\n

tinyhttpd reads up to and including the first "\\n" and ignores the rest.
The line is split on single spaces into exactly three tokens:

    "GET" │ "/docs/a%20b.txt" │ "HTTP/1.1\\r\\n"
    ─┬──   ─────────┬───────   ──────┬──────
   method      raw path           version (terminator kept!)

The version token keeps the line terminator exactly as it arrived. Code
that compares it must allow for that: validation only checks the prefix.

=============================================================================
FAILURE MODES
=============================================================================

    ┌──────────────────────────────────────┬────────────────────┬─────┐
    │ What went wrong                      │ Raised             │ HTTP│
    ├──────────────────────────────────────┼────────────────────┼─────┤
    │ no "\\n" before EOF / size limit       │ MalformedRequest   │ 400 │
    │ token count != 3                     │ MalformedRequest   │ 400 │
    │ "%" not followed by two hex digits   │ MalformedRequest   │ 400 │
    │ version not starting with "HTTP"     │ UnsupportedVersion │ 400 │
    │ method other than "GET"              │ UnsupportedMethod  │ 400 │
    └──────────────────────────────────────┴────────────────────┴─────┘

None of these is ever retried. The handler turns them into a 400 and closes.

=============================================================================
"""

from dataclasses import dataclass
from urllib.parse import unquote
import re

from .status_codes import HTTPStatus


class RequestError(Exception):
    """
    A request tinyhttpd will not serve.

    Carries the status to answer with and the short reason that becomes the
    plain-text body of the error response.
    """

    status_code = HTTPStatus.BAD_REQUEST
    default_reason = "Bad Request"

    def __init__(self, reason=None, detail: str = ""):
        self.reason = reason or self.default_reason
        self.detail = detail
        super().__init__(f"{self.reason}: {detail}" if detail else self.reason)


class MalformedRequest(RequestError):
    """The request line is missing, incomplete, or not three tokens."""


class UnsupportedMethod(RequestError):
    default_reason = "method not allowed"


class UnsupportedVersion(RequestError):
    default_reason = "invalid HTTP version"


@dataclass(frozen=True)
class Request:
    """
    One parsed request line.

    Attributes:
        method: First token, verbatim ("GET").
        path: Second token, percent-decoded ("/docs/a b.txt").
        version: Third token, verbatim INCLUDING its line terminator
                 ("HTTP/1.1\\r\\n").
    """

    method: str
    path: str
    version: str

    @property
    def protocol(self) -> str:
        """The version without its line terminator, for log lines."""
        return self.version.rstrip("\r\n")


SUPPORTED_METHOD = "GET"
VERSION_PREFIX = "HTTP"

# A "%" that is not followed by exactly two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_path(raw_path: str) -> str:
    """
    Percent-decode a request path.

    Escapes are strict: "%zz", a trailing "%" or "%4" are errors rather than
    being passed through. Decoded bytes that are not valid UTF-8 are kept
    as surrogate escapes, so os.fsencode() gives back the exact bytes the
    client asked for.

    Raises:
        MalformedRequest: On an invalid escape sequence.
    """
    if _BAD_ESCAPE.search(raw_path):
        raise MalformedRequest(detail=f"invalid URL encoding in {raw_path!r}")
    return unquote(raw_path, encoding="utf-8", errors="surrogateescape")


def parse_request_line(line: bytes) -> Request:
    """
    Parse one request line (terminator included) into a Request.

    Example:
        >>> parse_request_line(b"GET /a%20b HTTP/1.1\\r\\n")
        Request(method='GET', path='/a b', version='HTTP/1.1\\r\\n')

    Raises:
        MalformedRequest: If the line has no terminator, does not split into
                          exactly three space-separated tokens, or the path
                          has a bad escape.
    """
    if not line.endswith(b"\n"):
        raise MalformedRequest(detail="no line terminator")

    text = line.decode("utf-8", errors="surrogateescape")

    parts = text.split(" ")
    if len(parts) != 3:
        raise MalformedRequest(detail=f"expected 3 tokens, got {len(parts)}")

    method, raw_path, version = parts
    return Request(method=method, path=decode_path(raw_path), version=version)


def read_request(conn, max_line: int = 8192) -> Request:
    """
    Read the request line off a connection and parse it.

    Args:
        conn: A Connection (anything with read_line(limit)).
        max_line: Give up after this many bytes without a terminator.

    Raises:
        MalformedRequest: Peer closed early, sent nothing, or the line is
                          too long or unparsable.
        DeadlineExceeded, TimeoutError, OSError: From the connection.
    """
    line = conn.read_line(max_line)

    if not line:
        raise MalformedRequest(detail="empty request")
    if not line.endswith(b"\n"):
        if len(line) >= max_line:
            raise MalformedRequest(detail=f"request line longer than {max_line} bytes")
        raise MalformedRequest(detail="connection closed before end of request line")

    return parse_request_line(line)


def validate_request(request: Request) -> Request:
    """
    Check the request against the subset tinyhttpd supports.

    Only GET is served, and the version must start with "HTTP" (the
    terminator still attached to it does not matter). The version is
    checked first, so "POST / FTP/1.0" reports the version.

    Returns:
        The same request, for chaining.

    Raises:
        UnsupportedVersion: Version does not start with "HTTP".
        UnsupportedMethod: Method is not "GET".
    """
    if not request.version.startswith(VERSION_PREFIX):
        raise UnsupportedVersion(detail=repr(request.protocol))

    if request.method != SUPPORTED_METHOD:
        raise UnsupportedMethod(detail=repr(request.method))

    return request
