"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The small slice of HTTP/1.1 tinyhttpd speaks.

    bytes in                                                   bytes out
    ────────                                                   ─────────
    "GET /a HTTP/1.1\\r\\n" ──► read_request() ──► Request
                                validate_request()
                                                   Response ──► write_to(conn)
                                                      ▲
                              content_type_for() ─────┤
                              HTTPStatus ─────────────┘

=============================================================================
"""

from .request import (
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
from .response import (
    Response,
    TruncatedBody,
    file_response,
    listing_response,
    error_response,
)
from .status_codes import HTTPStatus
from .mime_types import content_type_for, DEFAULT_CONTENT_TYPE

__all__ = [
    # Request parsing
    "Request",
    "RequestError",
    "MalformedRequest",
    "UnsupportedMethod",
    "UnsupportedVersion",
    "decode_path",
    "parse_request_line",
    "read_request",
    "validate_request",

    # Response serialization
    "Response",
    "TruncatedBody",
    "file_response",
    "listing_response",
    "error_response",

    # Status codes
    "HTTPStatus",

    # MIME types
    "content_type_for",
    "DEFAULT_CONTENT_TYPE",
]
