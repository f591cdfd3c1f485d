"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for the whole of its (short) life.

=============================================================================
ONE REQUEST, ONE DEADLINE
=============================================================================

tinyhttpd speaks exactly one request per connection. There is no keep-alive,
so the connection does not need idle timers or per-request timeouts. It
needs ONE thing: an absolute deadline, armed the moment the acceptor gets
the socket back from accept().

    accept()                                                 deadline
       │◄──────────────────── 5 second budget ─────────────────►│
       │                                                        │
       ├── waiting for a worker ──┤                             │
       │                          ├── read line ─┤              │
       │                                         ├── write ─────┤
       │                                                        │
                                           anything past here fails

Every blocking call re-arms the socket timeout to "whatever is left":

    remaining = deadline - now
    remaining <= 0  → DeadlineExceeded, the syscall is never made
    otherwise       → socket.settimeout(remaining); recv()/sendall()

So a slow client cannot stretch a connection past its budget by trickling
one byte per second: each recv() only gets the time that is still left.

Time spent queued behind busy workers counts against the budget too. Under
sustained overload a connection can reach a worker with its budget already
gone; it then fails on its first read and is closed.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

The request line can arrive split across any number of recv() calls:

    recv() → b"GET /do"
    recv() → b"cs HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"

read_line() buffers until it sees the first b"\\n" and returns everything
up to and including it. Whatever follows (headers the client sent) stays in
the buffer and is never looked at.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    OPEN ──► READING ──► WRITING ──► CLOSED
      │         │                      ▲
      └─────────┴──────────────────────┘

close() is idempotent: the first call tears the socket down, later calls
are no-ops. The socket is closed exactly once.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
import uuid


logger = logging.getLogger(__name__)


# Upper bound on the post-response drain in close().
DRAIN_TIMEOUT = 0.5


class DeadlineExceeded(TimeoutError):
    """The connection's time budget ran out before an I/O call could start."""


class ConnectionState(Enum):
    OPEN = "open"            # Accepted, nothing read yet
    READING = "reading"      # Reading the request line
    WRITING = "writing"      # Sending the response
    CLOSED = "closed"        # Socket released


@dataclass(eq=False)
class Connection:
    """
    An accepted client socket plus its absolute deadline.

    Owned by exactly one worker from hand-off until close().

    Attributes:
        socket: The client socket (anything with recv/sendall/settimeout/
                shutdown/close works, which is what the tests rely on).
        address: Client's (ip, port) tuple.
        deadline: Absolute time.monotonic() value after which no I/O starts.
        id: Short identifier for log lines.
        accepted_at: time.monotonic() at acceptance.
        bytes_sent: Total bytes handed to sendall() so far.
    """

    socket: socket.socket
    address: tuple
    deadline: float

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    accepted_at: float = field(default_factory=time.monotonic)
    state: ConnectionState = ConnectionState.OPEN
    buffer_size: int = 8192
    bytes_sent: int = 0

    _buffer: bytes = field(default=b"", repr=False)

    @classmethod
    def accept(
        cls,
        sock: socket.socket,
        address: tuple,
        budget: float,
        buffer_size: int = 8192,
    ) -> "Connection":
        """Wrap a freshly accepted socket, arming its deadline now."""
        now = time.monotonic()
        return cls(
            socket=sock,
            address=address,
            deadline=now + budget,
            accepted_at=now,
            buffer_size=buffer_size,
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return str(self.address[0]) if self.address else "-"

    @property
    def client_port(self) -> int:
        return self.address[1] if self.address and len(self.address) > 1 else 0

    @property
    def remaining(self) -> float:
        """Seconds left in the budget (never negative)."""
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.deadline

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def _arm_timeout(self):
        """Give the next socket call exactly the time that is left."""
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise DeadlineExceeded(f"[{self.id}] connection deadline exceeded")
        self.socket.settimeout(remaining)

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self, limit: int) -> bytes:
        """
        Read up to and including the first line terminator (b"\\n").

        Returns the line with its terminator. If the peer stops sending
        (EOF or reset) or `limit` bytes arrive without a terminator, the
        bytes read so far are returned WITHOUT a terminator; deciding what
        that means is the caller's job.

        Raises:
            DeadlineExceeded: The budget ran out before a recv() could start.
            TimeoutError: A recv() blocked past the remaining budget.
            OSError: Any other socket failure.
        """
        self.state = ConnectionState.READING

        while True:
            newline = self._buffer.find(b"\n", 0, limit)
            if newline != -1:
                line = self._buffer[:newline + 1]
                self._buffer = self._buffer[newline + 1:]
                return line

            if len(self._buffer) >= limit:
                return self._buffer[:limit]

            chunk = self._recv()
            if not chunk:
                return self._buffer  # Peer closed before the terminator

            self._buffer += chunk

    def _recv(self) -> bytes:
        self._arm_timeout()
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            # Abrupt disconnect reads as end-of-stream
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes):
        """
        Send all of `data` within the remaining budget.

        sendall() treats the socket timeout as the limit for the whole
        call, so a peer that stops reading cannot hold the worker past the
        deadline.

        Raises:
            DeadlineExceeded, TimeoutError, OSError: see read_line().
        """
        if not data:
            return
        self.state = ConnectionState.WRITING
        self._arm_timeout()
        self.socket.sendall(data)
        self.bytes_sent += len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call any number of times.

        Sequence (each step tolerates a peer that is already gone):

        1. shutdown(SHUT_WR)   send FIN, response is complete
        2. drain               read and discard the request headers we
                               never parsed, so the kernel does not answer
                               them with a RST that could eat the response
        3. close()             release the descriptor

        The drain is bounded by DRAIN_TIMEOUT and by the deadline,
        whichever is sooner.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSED

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        drain_for = min(DRAIN_TIMEOUT, self.remaining)
        if drain_for > 0:
            drain_until = time.monotonic() + drain_for
            try:
                while True:
                    left = drain_until - time.monotonic()
                    if left <= 0:
                        break
                    self.socket.settimeout(left)
                    if not self.socket.recv(self.buffer_size):
                        break
            except OSError:
                pass  # Timeout or reset while draining, we are closing anyway

        try:
            self.socket.close()
        except OSError as e:
            logger.debug(f"[{self.id}] close failed: {e}")

        logger.debug(
            f"[{self.id}] Connection closed after "
            f"{time.monotonic() - self.accepted_at:.3f}s, {self.bytes_sent} bytes sent"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
