"""
=============================================================================
FILE SERVER
=============================================================================

Wires the pieces together and runs one request per connection through them.

    Acceptor ──► WorkerPool ──► ConnectionHandler
                                   ├─ read_request / validate_request
                                   ├─ ResourceResolver
                                   ├─ render_listing
                                   └─ Response.write_to

=============================================================================
CONNECTION HANDLER STATE MACHINE
=============================================================================

    ACCEPTED ──parse ok──► PARSED ──valid──► VALIDATED ──File/Dir──► RESOLVED
       │                     │                  │                       │
       │ parse fails         │ invalid          │ Missing / Unreadable  │ serve
       │ (400)               │ (400)            │ (404 / 500)           │
       ▼                     ▼                  ▼                       ▼
    ERRORED ◄───────────────────────────────────────── I/O fails    SERVED
       │                                           before any byte      │
       └──────────────────────────► CLOSED ◄────────────────────────────┘

Every path ends in CLOSED, and conn.close() runs exactly once, in a
`finally`. Nothing a client can do makes the handler raise.

An error response is best effort. If the deadline is already gone or the
peer has hung up, the write fails, that is logged at DEBUG, and the
connection is simply closed.

=============================================================================
"""

import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .access_log import AccessLogEntry, AccessLogger, log_timestamp, printable
from .config import ServerConfig
from .core import Acceptor, Connection, WorkerPool
from .handlers import (
    DirectoryResource,
    FileResource,
    Missing,
    ResourceResolver,
    Unreadable,
    render_listing,
)
from .http import (
    HTTPStatus,
    Request,
    RequestError,
    Response,
    TruncatedBody,
    error_response,
    file_response,
    listing_response,
    read_request,
    validate_request,
)


logger = logging.getLogger(__name__)


class HandlerState(Enum):
    ACCEPTED = "accepted"
    PARSED = "parsed"
    VALIDATED = "validated"
    RESOLVED = "resolved"
    SERVED = "served"
    ERRORED = "errored"
    CLOSED = "closed"


@dataclass(eq=False)
class Exchange:
    """
    What happened to one connection.

    Attributes:
        conn: The connection being handled.
        history: Every state entered, in order, starting with ACCEPTED.
        request: The parsed request line, once there is one.
        status: Status of the response put on the wire, None if nothing
                was written.
        content_length: Content-Length of that response.
    """

    conn: Connection
    history: List[HandlerState] = field(default_factory=lambda: [HandlerState.ACCEPTED])
    request: Optional[Request] = None
    status: Optional[HTTPStatus] = None
    content_length: int = 0

    @property
    def state(self) -> HandlerState:
        return self.history[-1]

    def advance(self, state: HandlerState):
        self.history.append(state)


class ConnectionHandler:
    """
    Serves exactly one request on a connection and closes it.

    Callable, so it plugs straight into WorkerPool:

        handler = ConnectionHandler(config)
        pool = WorkerPool(handler, workers=config.workers)
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.resolver = ResourceResolver(config.resolved_root)
        self.access_log = AccessLogger(config.log_format)

    def __call__(self, conn: Connection) -> Exchange:
        return self.handle(conn)

    def handle(self, conn: Connection) -> Exchange:
        exchange = Exchange(conn)
        try:
            self._run(exchange)
        except Exception as e:
            logger.exception(f"[{conn.id}] Unexpected error handling connection: {e}")
            answered = exchange.state in (HandlerState.SERVED, HandlerState.ERRORED)
            if not answered and conn.bytes_sent == 0:
                self._fail(exchange, HTTPStatus.INTERNAL_SERVER_ERROR)
        finally:
            conn.close()
            exchange.advance(HandlerState.CLOSED)
            self._log_access(exchange)
        return exchange

    # =========================================================================
    # STATES
    # =========================================================================

    def _run(self, exchange: Exchange):
        conn = exchange.conn

        # ACCEPTED -> PARSED
        try:
            request = read_request(conn, self.config.max_request_line)
        except RequestError as e:
            logger.info(f"[{conn.id}] Error parsing request: {e}")
            self._fail(exchange, e.status_code, e.reason)
            return
        except OSError as e:
            # Includes DeadlineExceeded and socket timeouts
            logger.info(f"[{conn.id}] Error parsing request: {type(e).__name__}: {e}")
            self._fail(exchange, HTTPStatus.BAD_REQUEST)
            return

        exchange.request = request
        exchange.advance(HandlerState.PARSED)
        logger.debug(
            f"[{conn.id}] New request [method={request.method}, "
            f"path={printable(request.path)}, version={request.protocol}]"
        )

        # PARSED -> VALIDATED
        try:
            validate_request(request)
        except RequestError as e:
            logger.info(f"[{conn.id}] Rejected request: {e}")
            self._fail(exchange, e.status_code, e.reason)
            return

        exchange.advance(HandlerState.VALIDATED)

        # VALIDATED -> RESOLVED
        resource = self.resolver.resolve(request.path)

        if isinstance(resource, Missing):
            self._fail(exchange, HTTPStatus.NOT_FOUND)
            return
        if isinstance(resource, Unreadable):
            self._fail(exchange, HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        exchange.advance(HandlerState.RESOLVED)

        # RESOLVED -> SERVED
        try:
            if isinstance(resource, DirectoryResource):
                document = render_listing(request.path, resource.entries)
                self._send(exchange, listing_response(document))
            else:
                self._send_file(exchange, resource)
        except TruncatedBody as e:
            logger.warning(f"[{conn.id}] {printable(request.path)} shrank while serving: {e}")
            return
        except OSError as e:
            logger.warning(f"[{conn.id}] I/O error serving {printable(request.path)}: {e}")
            if conn.bytes_sent == 0:
                self._fail(exchange, HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        exchange.advance(HandlerState.SERVED)

    def _send(self, exchange: Exchange, response: Response):
        exchange.status = response.status
        exchange.content_length = response.content_length
        response.write_to(exchange.conn, self.config.buffer_size)

    def _send_file(self, exchange: Exchange, resource: FileResource):
        # Content-Length comes from the open file, not the earlier stat
        with open(resource.path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            self._send(exchange, file_response(f, size, resource.content_type))

    def _fail(self, exchange: Exchange, status: HTTPStatus, message: Optional[str] = None):
        """Enter ERRORED and try to tell the client why."""
        exchange.advance(HandlerState.ERRORED)
        response = error_response(status, message)
        exchange.status = status
        exchange.content_length = response.content_length
        try:
            response.write_to(exchange.conn)
        except OSError as e:
            logger.debug(f"[{exchange.conn.id}] Could not send {status} response: {e}")

    def _log_access(self, exchange: Exchange):
        conn = exchange.conn
        if conn.bytes_sent == 0 or exchange.status is None:
            return

        request = exchange.request
        self.access_log.log(AccessLogEntry(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            method=request.method if request else "-",
            path=printable(request.path) if request else "-",
            status_code=int(exchange.status),
            content_length=exchange.content_length,
            duration_ms=(time.monotonic() - conn.accepted_at) * 1000,
            timestamp=log_timestamp(),
        ))


class FileServer:
    """
    The daemon: acceptor, worker pool and connection handler.

    =========================================================================
    USAGE
    =========================================================================

        server = FileServer(ServerConfig(port=8080, root="/srv/www"))
        server.run()                  # blocks until SIGINT/SIGTERM

    Embedded or in tests:

        server = FileServer(ServerConfig(host="127.0.0.1", port=0, root=tmp))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        host, port = server.address
        ...
        server.shutdown()
        thread.join()

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        handler: Optional[Callable[[Connection], object]] = None,
    ):
        """
        Args:
            config: Server configuration, validated here.
            handler: Replaces the ConnectionHandler. It then owns closing
                     every connection it is given.

        Raises:
            ConfigError: Invalid configuration.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = handler or ConnectionHandler(self.config)
        self.pool = WorkerPool(self.handler, workers=self.config.workers)
        self.acceptor = Acceptor(self.config, on_shutdown=self.pool.close)

    @property
    def address(self):
        """(host, port) actually bound."""
        return self.acceptor.address

    @property
    def stats(self) -> dict:
        stats = self.pool.stats
        stats["connections"]["accepted"] = self.acceptor.connections_accepted
        return stats

    def run(self):
        """
        Bind, start the workers and accept until shutdown. Blocks.

        Raises:
            OSError: Bind failure, or the listener failed while running.
        """
        self._setup_logging()

        self.acceptor.bind()
        self.pool.start()

        try:
            self.acceptor.start(self.pool.deliver)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self.acceptor.wait_until_ready(timeout)

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self.acceptor.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("tinyhttpd").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self.acceptor.shutdown()
        # Busy workers get at most one deadline to finish
        self.pool.shutdown(wait=True, timeout=self.config.deadline + 1.0)
        logger.info("Server stopped")
