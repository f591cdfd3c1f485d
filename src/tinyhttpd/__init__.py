"""
=============================================================================
TINYHTTPD - A Minimal Static File Daemon
=============================================================================

Serves files and directory listings from one directory over raw TCP
sockets, with a hand-rolled request-line parser and a fixed pool of worker
threads.

=============================================================================
WHAT IT DOES, AND WHAT IT DOES NOT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  DOES                              │  DOES NOT                      │
    ├────────────────────────────────────┼────────────────────────────────┤
    │  GET only                          │  HEAD, POST, PUT, ...          │
    │  one request per connection        │  keep-alive, pipelining        │
    │  reads the request line only       │  read headers or bodies        │
    │  Content-Type + Content-Length     │  Date, Server, chunked, ranges │
    │  5 s absolute deadline per socket  │  per-read idle timers          │
    │  fixed worker count, backpressure  │  grow threads under load       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tinyhttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tinyhttpd)
    ├── server.py            # FileServer + ConnectionHandler
    ├── config.py            # ServerConfig (frozen dataclass)
    ├── access_log.py        # Per-connection access log line
    ├── core/
    │   ├── socket_server.py # Acceptor: listen/accept loop, signals
    │   ├── connection.py    # Socket wrapper with an absolute deadline
    │   └── thread_pool.py   # Hand-off channel + fixed worker pool
    ├── http/
    │   ├── request.py       # Request-line reader, parser, validator
    │   ├── response.py      # Response serializer
    │   ├── status_codes.py  # 200 / 400 / 404 / 500
    │   └── mime_types.py    # Extension -> Content-Type table
    └── handlers/
        ├── static.py        # ResourceResolver
        └── listing.py       # Directory listing HTML

=============================================================================
QUICK START
=============================================================================

    from tinyhttpd import FileServer, ServerConfig

    server = FileServer(ServerConfig(port=8080, root="/srv/www", workers=4))
    server.run()

Or from a shell:

    python -m tinyhttpd --port 8080 --dir /srv/www --workers 4

=============================================================================
"""

__version__ = "1.0.0"

from .server import FileServer, ConnectionHandler
from .config import ServerConfig, ConfigError

__all__ = ["FileServer", "ConnectionHandler", "ServerConfig", "ConfigError", "__version__"]
