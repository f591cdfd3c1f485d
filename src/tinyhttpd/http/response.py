"""
=============================================================================
HTTP RESPONSE SERIALIZER
=============================================================================

Builds the bytes tinyhttpd writes back: a status line, exactly two headers,
a blank line, and the body.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\\r\\n                       ◄── status line
    Content-Type: text/html; charset=utf-8\\r\\n ◄── always first
    Content-Length: 11\\r\\n                     ◄── always second
    \\r\\n                                       ◄── end of head
    hello world                                ◄── exactly Content-Length bytes

No Date, no Server, no Connection header. The connection is closed after
every response, so Content-Length alone tells the client where the body
ends. There is no chunked encoding.

=============================================================================
THREE SHAPES
=============================================================================

    ┌──────────────┬────────┬──────────────────────────┬────────────────────┐
    │ Shape        │ Status │ Content-Type             │ Body               │
    ├──────────────┼────────┼──────────────────────────┼────────────────────┤
    │ file         │ 200    │ from the extension table │ streamed from disk │
    │ listing      │ 200    │ text/html                │ rendered document  │
    │ error        │ code   │ text/plain               │ the message text   │
    └──────────────┴────────┴──────────────────────────┴────────────────────┘

File bodies are never loaded whole: write_to() copies them to the socket
in buffer-sized chunks, so a worker serving a 2 GB file holds 8 KB of it
at a time.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, BinaryIO

from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.1"


class TruncatedBody(OSError):
    """A streamed file ended before the announced Content-Length."""


@dataclass
class Response:
    """
    A response ready to be written to a connection.

    Either `body` holds the full body in memory, or `body_file` is an open
    binary file whose first Content-Length bytes are the body. The caller
    owns `body_file` and closes it.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    body_file: Optional[BinaryIO] = field(default=None, repr=False)

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{HTTP_VERSION} {self.status.value} {self.status.phrase}"

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    @property
    def content_length(self) -> int:
        return int(self.headers.get("Content-Length", len(self.body)))

    def head_bytes(self) -> bytes:
        """Status line, headers in insertion order, and the blank line."""
        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())
        lines.append("")
        lines.append("")
        return "\r\n".join(lines).encode("latin-1")

    def to_bytes(self) -> bytes:
        """
        Serialize an in-memory response in one piece.

        Raises:
            ValueError: If the body is a file (use write_to() for those).
        """
        if self.body_file is not None:
            raise ValueError("streamed responses cannot be serialized in one piece")
        return self.head_bytes() + self.body

    def write_to(self, conn, chunk_size: int = 8192) -> int:
        """
        Write the whole response to a connection.

        The head and an in-memory body go out in a single write. A file body
        follows the head chunk by chunk, never more than Content-Length
        bytes.

        Args:
            conn: A Connection (anything with write(bytes)).
            chunk_size: Read size for file bodies.

        Returns:
            Number of body bytes written.

        Raises:
            TruncatedBody: The file ran out before Content-Length bytes.
            DeadlineExceeded, TimeoutError, OSError: From the connection.
        """
        if self.body_file is None:
            conn.write(self.head_bytes() + self.body)
            return len(self.body)

        conn.write(self.head_bytes())

        remaining = self.content_length
        while remaining > 0:
            chunk = self.body_file.read(min(chunk_size, remaining))
            if not chunk:
                raise TruncatedBody(
                    f"file ended {remaining} bytes short of Content-Length "
                    f"{self.content_length}"
                )
            conn.write(chunk)
            remaining -= len(chunk)

        return self.content_length


# =============================================================================
# CANONICAL RESPONSES
# =============================================================================

def file_response(body_file: BinaryIO, size: int, content_type: str) -> Response:
    """200 with a body streamed from an open file."""
    return Response(
        status=HTTPStatus.OK,
        headers={"Content-Type": content_type, "Content-Length": str(size)},
        body_file=body_file,
    )


def listing_response(document: str) -> Response:
    """200 carrying a rendered HTML directory listing."""
    body = document.encode("utf-8")
    return Response(
        status=HTTPStatus.OK,
        headers={"Content-Type": "text/html", "Content-Length": str(len(body))},
        body=body,
    )


def error_response(status: HTTPStatus, message: Optional[str] = None) -> Response:
    """
    Plain-text error. The message defaults to the reason phrase.

    Example:
        >>> error_response(HTTPStatus.NOT_FOUND).to_bytes()
        b'HTTP/1.1 404 Not Found\\r\\nContent-Type: text/plain\\r\\nContent-Length: 9\\r\\n\\r\\nNot Found'
    """
    body = (message or status.phrase).encode("utf-8")
    return Response(
        status=status,
        headers={"Content-Type": "text/plain", "Content-Length": str(len(body))},
        body=body,
    )
