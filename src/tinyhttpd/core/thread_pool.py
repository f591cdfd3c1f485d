"""
=============================================================================
WORKER POOL
=============================================================================

A fixed set of worker threads, each handling one connection at a time from
start to close.

=============================================================================
NO QUEUE: A HAND-OFF
=============================================================================

A classic pool puts work in a queue and lets workers pull from it. The
queue then becomes a place where accepted sockets pile up with nobody
looking at them. tinyhttpd does not buffer at all: the acceptor hands a
connection DIRECTLY to a worker that is already waiting for one.

    Acceptor                  HandoffChannel                 Workers
    ────────                  ──────────────                 ───────

    accept() ──► conn ──► put(conn) ─────────────────► get() ◄── Worker 1 (idle)
                             │                                   Worker 2 (busy)
                             │ blocks while nobody is            Worker 3 (busy)
                             │ waiting in get()
                             ▼
                     acceptor stops calling accept()
                             │
                             ▼
                 new clients wait in the kernel's listen backlog

So at most `workers` connections are in flight, and overload pushes back
onto the kernel instead of growing memory inside the process.

=============================================================================
SHUTDOWN
=============================================================================

    pool.shutdown()
        └─ channel.close()
              ├─ idle workers blocked in get()  ──► ChannelClosed ──► exit
              ├─ a put() still waiting           ──► ChannelClosed
              └─ busy workers finish their connection, then see the closed
                 channel on their next get() and exit

There is no poison pill per worker: closing the channel wakes everyone.

=============================================================================
"""

import threading
import time
import logging
from typing import Callable, List, Optional, Any
from enum import Enum


logger = logging.getLogger(__name__)


class ChannelClosed(Exception):
    """The hand-off channel was closed; no more items will pass through it."""


class HandoffChannel:
    """
    Unbuffered rendezvous channel.

    put() returns only once a consumer blocked in get() has taken the item.
    It holds at most one item in transit, and only while a taker is already
    committed to it.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._waiting_takers = 0
        self._item: Any = None
        self._has_item = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def waiting_takers(self) -> int:
        """Consumers currently blocked in get()."""
        with self._cond:
            return self._waiting_takers

    def put(self, item: Any):
        """
        Hand `item` to a waiting consumer, blocking until one is free.

        Raises:
            ChannelClosed: The channel was closed before a consumer took it.
        """
        with self._cond:
            while not self._closed and (self._has_item or self._waiting_takers == 0):
                self._cond.wait()
            if self._closed:
                raise ChannelClosed("hand-off channel closed")

            self._item = item
            self._has_item = True
            self._waiting_takers -= 1
            self._cond.notify_all()

    def get(self) -> Any:
        """
        Wait for the next item.

        Raises:
            ChannelClosed: The channel was closed and no item is in transit.
        """
        with self._cond:
            self._waiting_takers += 1
            self._cond.notify_all()

            while not self._has_item:
                if self._closed:
                    self._waiting_takers -= 1
                    raise ChannelClosed("hand-off channel closed")
                self._cond.wait()

            item = self._item
            self._item = None
            self._has_item = False
            self._cond.notify_all()
            return item

    def close(self):
        """Wake every blocked put() and get(). Idempotent."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class WorkerState(Enum):
    IDLE = "idle"        # Blocked in get()
    BUSY = "busy"        # Handling a connection
    STOPPED = "stopped"  # Thread exited


class Worker(threading.Thread):
    """
    Worker thread: take a connection, run the handler on it, repeat.

    The handler owns the connection for its whole life, including close().
    Anything the handler lets escape is logged here and the worker carries
    on with the next connection.
    """

    def __init__(
        self,
        channel: HandoffChannel,
        handler: Callable[[Any], Any],
        worker_id: int,
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.channel = channel
        self.handler = handler
        self.worker_id = worker_id

        self.state = WorkerState.IDLE
        self.connections_handled = 0
        self.connections_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            try:
                conn = self.channel.get()
            except ChannelClosed:
                break
            self._handle(conn)

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _handle(self, conn):
        self.state = WorkerState.BUSY
        start_time = time.monotonic()
        logger.debug(f"Worker {self.worker_id}: handling connection {getattr(conn, 'id', conn)}")

        try:
            self.handler(conn)
            self.connections_handled += 1
        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.exception(
                f"Worker {self.worker_id} handler failed after {elapsed:.3f}s: {e}"
            )
            self.connections_failed += 1
        finally:
            self.state = WorkerState.IDLE


class WorkerPool:
    """
    Fixed-size pool fed through a HandoffChannel.

    Usage:
        pool = WorkerPool(handler=handle_connection, workers=4)
        pool.start()

        pool.deliver(conn)   # blocks until a worker takes it

        pool.shutdown()
    """

    def __init__(self, handler: Callable[[Any], Any], workers: int = 4):
        """
        Args:
            handler: Called with each connection on a worker thread. It is
                     responsible for closing the connection.
            workers: Number of worker threads, at least 1.
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")

        self.handler = handler
        self.size = workers

        self._channel = HandoffChannel()
        self._workers: List[Worker] = []
        self._started = False

    def start(self):
        """Start all worker threads."""
        if self._started:
            return

        for worker_id in range(1, self.size + 1):
            worker = Worker(self._channel, self.handler, worker_id)
            worker.start()
            self._workers.append(worker)

        self._started = True
        logger.info(f"Worker pool started with {self.size} workers")

    def deliver(self, conn):
        """
        Hand a connection to the next free worker.

        Blocks for as long as every worker is busy.

        Raises:
            ChannelClosed: The pool is shutting down. The caller still owns
                           `conn` and must close it.
        """
        self._channel.put(conn)

    def close(self):
        """
        Stop taking connections without waiting for the workers.

        A deliver() blocked on busy workers raises ChannelClosed at once.
        """
        self._channel.close()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Idle workers exit at once. Busy workers finish the connection they
        hold (bounded by that connection's own deadline).

        Args:
            wait: Join the worker threads before returning.
            timeout: Overall limit on the join.
        """
        if not self._started:
            return

        logger.info("Shutting down worker pool...")
        self.close()

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            for worker in self._workers:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                worker.join(timeout=remaining)
                if worker.is_alive():
                    logger.warning(f"Worker {worker.worker_id} did not stop in time")

        self._started = False
        logger.info("Worker pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._started

    @property
    def active_workers(self) -> int:
        return sum(1 for w in self._workers if w.is_alive())

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": len(self._workers),
                "active": self.active_workers,
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "connections": {
                "handled": sum(w.connections_handled for w in self._workers),
                "failed": sum(w.connections_failed for w in self._workers),
            },
        }
