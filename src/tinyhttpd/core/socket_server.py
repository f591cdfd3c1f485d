"""
=============================================================================
ACCEPTOR
=============================================================================

Owns the listening socket. Accepts TCP connections, arms each one's
deadline, and hands it to the worker pool.

=============================================================================
THE ACCEPT LOOP
=============================================================================

    ┌──────────────────────────────────────────────────────────────────┐
    │   while running:                                                 │
    │       │                                                          │
    │       ├──► accept()            at most ACCEPT_POLL_INTERVAL,     │
    │       │                        then re-check `running`           │
    │       │                                                          │
    │       ├──► Connection.accept() deadline = now + budget           │
    │       │                                                          │
    │       └──► deliver(conn)       BLOCKS until a worker is free     │
    └──────────────────────────────────────────────────────────────────┘

While deliver() blocks, nobody calls accept(). New clients queue in the
kernel's listen backlog (config.backlog) and the process holds no more
sockets than it has workers, plus the one in hand.

=============================================================================
WHEN accept() FAILS
=============================================================================

    ┌────────────────────────────────────┬──────────────────────────────┐
    │ Error                              │ Action                       │
    ├────────────────────────────────────┼──────────────────────────────┤
    │ socket.timeout                     │ poll tick, loop              │
    │ ConnectionAbortedError             │ client gave up, loop         │
    │ InterruptedError                   │ signal arrived, loop         │
    │ EMFILE / ENFILE                    │ out of descriptors: log,     │
    │ ENOBUFS / ENOMEM                   │ back off, loop               │
    │ anything else while running        │ listener is gone: raise      │
    │ anything after shutdown()          │ stop quietly                 │
    └────────────────────────────────────┴──────────────────────────────┘

=============================================================================
"""

import errno
import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection
from .thread_pool import ChannelClosed


logger = logging.getLogger(__name__)


# How often a blocked accept() wakes up to check for shutdown
ACCEPT_POLL_INTERVAL = 0.5

# Pause after a resource-exhaustion accept error
ACCEPT_BACKOFF = 0.1

_TRANSIENT_ERRNOS = frozenset({errno.EMFILE, errno.ENFILE, errno.ENOBUFS, errno.ENOMEM})


def is_transient_accept_error(error: OSError) -> bool:
    """True for accept() failures that leave the listener usable."""
    if isinstance(error, (ConnectionAbortedError, InterruptedError)):
        return True
    return error.errno in _TRANSIENT_ERRNOS


class Acceptor:
    """
    Listening socket plus accept loop.

    Usage:
        acceptor = Acceptor(config)
        acceptor.start(pool.deliver)   # blocks until shutdown()

    `deliver` receives each new Connection and may block. If it raises
    ChannelClosed the acceptor closes that connection itself and stops.
    """

    def __init__(self, config: ServerConfig, on_shutdown: Optional[Callable[[], None]] = None):
        """
        Args:
            config: Bind address, backlog, deadline and buffer size.
            on_shutdown: Called by shutdown(), e.g. to close the pool's
                         hand-off channel so a blocked deliver() wakes up.
        """
        self.config = config
        self.on_shutdown = on_shutdown

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

        self.connections_accepted = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once bound, even for port 0."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def bind(self):
        """
        Create, bind and listen. Separate from start() so bind errors reach
        the caller before any thread is spawned.

        Raises:
            OSError: Address in use, permission denied, bad host...
        """
        if self._socket is not None:
            return

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        host, port = self.address
        logger.info(f"Listening on {host}:{port}")

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """
        SIGINT/SIGTERM trigger a graceful shutdown.

        Python only lets the main thread install handlers, so an acceptor
        running on any other thread (tests, embedding) leaves them alone.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def start(self, deliver: Callable[[Connection], None]):
        """
        Accept connections until shutdown(). Blocks.

        Raises:
            OSError: Bind failure, or a fatal accept() error.
        """
        self.bind()

        # A shutdown() issued before start() still stops the loop
        self._running = True
        self._setup_signals()
        self._ready.set()

        try:
            self._accept_loop(deliver)
        finally:
            self._cleanup()

    def _accept_loop(self, deliver: Callable[[Connection], None]):
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._shutdown_event.is_set():
                    break
                if is_transient_accept_error(e):
                    logger.warning(f"Accept error (retrying): {e}")
                    self._shutdown_event.wait(ACCEPT_BACKOFF)
                    continue
                logger.error(f"Accept failed, stopping: {e}")
                raise

            conn = Connection.accept(
                client_socket,
                client_address,
                budget=self.config.deadline,
                buffer_size=self.config.buffer_size,
            )
            self.connections_accepted += 1
            logger.debug(
                f"Accepted connection from {conn.client_ip}:{conn.client_port} [{conn.id}]"
            )

            try:
                deliver(conn)
            except ChannelClosed:
                conn.close()
                break

    def shutdown(self):
        """Stop the accept loop. Safe from any thread or a signal handler."""
        if self._running:
            logger.info("Shutting down acceptor...")
        self._running = False
        self._shutdown_event.set()
        if self.on_shutdown is not None:
            self.on_shutdown()

    def _cleanup(self):
        self._restore_signals()
        self._running = False

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready.clear()
        self._shutdown_event.set()
        logger.info("Acceptor stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running. False on timeout."""
        return self._ready.wait(timeout)
