"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes tinyhttpd can put on the wire.

A file daemon that speaks one request per connection has a very small
vocabulary. Every response it writes falls into one of four outcomes:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  Code  │ When                                                      │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  200   │ File streamed or directory listing rendered               │
    │  400   │ Request line unreadable, wrong token count, bad escape,   │
    │        │ method other than GET, version not starting with "HTTP"   │
    │  404   │ Nothing at that path (or the path escapes the root)       │
    │  500   │ The entry exists but could not be stat-ed, opened or      │
    │        │ listed                                                    │
    └────────┴───────────────────────────────────────────────────────────┘

Anything else a general-purpose server would send (304, 405, 413, 505...)
belongs to features this daemon does not have.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes with their RFC 7231 reason phrases.

    Being an IntEnum, a member formats as its number:

        f"{HTTPStatus.NOT_FOUND}"        -> "404"
        HTTPStatus.NOT_FOUND.phrase      -> "Not Found"
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    def __str__(self) -> str:
        return str(self.value)

    @property
    def phrase(self) -> str:
        """Reason phrase that follows the code on the status line."""
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
