"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the request handling.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            ACCEPTOR                                  │
    │  • Binds the listening socket, runs the accept() loop               │
    │  • Arms each connection's deadline the moment it is accepted        │
    │  • Handles SIGTERM / SIGINT for graceful shutdown                   │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ deliver(conn), blocks while all busy
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                           WORKER POOL                                │
    │  • Fixed number of threads, one connection each                     │
    │  • Unbuffered hand-off: no queue of waiting sockets in-process      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                           CONNECTION                                 │
    │  • Buffered line reading over a byte stream                         │
    │  • Every recv()/sendall() bounded by the remaining budget           │
    │  • Idempotent close()                                               │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState, DeadlineExceeded
from .thread_pool import ChannelClosed, HandoffChannel, Worker, WorkerPool, WorkerState
from .socket_server import Acceptor

__all__ = [
    "Acceptor",
    "Connection",
    "ConnectionState",
    "DeadlineExceeded",
    "ChannelClosed",
    "HandoffChannel",
    "Worker",
    "WorkerPool",
    "WorkerState",
]
