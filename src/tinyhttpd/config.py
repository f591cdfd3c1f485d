"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the daemon in one immutable value.

A ServerConfig is built once at startup (from CLI flags or environment
variables) and passed explicitly to the acceptor, the worker pool and the
connection handler. Nothing in the request path reads global state.

    CLI flags ──┐
                ├──► ServerConfig ──► validate() ──► FileServer(config)
    env vars  ──┘     (frozen)        (fail fast)

=============================================================================
"""

import os
from dataclasses import dataclass, field
from functools import cached_property


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


class ConfigError(ValueError):
    """A configuration value is out of range or unusable."""


def default_workers() -> int:
    """One worker per CPU, or 1 if the count is unknown."""
    return os.cpu_count() or 1


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, buffer_size

    SERVING
    - root, workers, deadline, max_request_line

    LOGGING
    - log_level, log_format

    =========================================================================
    EXAMPLES
    =========================================================================

    Development:
        ServerConfig(host="127.0.0.1", root="./public", log_level="DEBUG")

    Tests (ephemeral port):
        ServerConfig(host="127.0.0.1", port=0, root=tmp_path, workers=2)

    =========================================================================
    """

    # NETWORK

    host: str = "0.0.0.0"
    """
    Address to bind to.
    - "0.0.0.0"   all interfaces
    - "127.0.0.1" localhost only
    """

    port: int = 8080
    """TCP port. 0 asks the kernel for a free one (see FileServer.address)."""

    backlog: int = 128
    """
    Kernel listen backlog. While every worker is busy, new clients wait
    here rather than inside the process.
    """

    buffer_size: int = 8192
    """Bytes per recv() and per chunk when streaming a file."""

    # SERVING

    root: str = "."
    """Directory being served. Nothing outside it is ever returned."""

    workers: int = field(default_factory=default_workers)
    """Worker threads, and so the maximum number of connections in flight."""

    deadline: float = 5.0
    """
    Seconds a connection may live, counted from accept(). Covers waiting
    for a worker, reading the request line and writing the response.
    """

    max_request_line: int = 8192
    """Bytes read looking for the request line's terminator before giving up."""

    # LOGGING

    log_level: str = "INFO"
    """DEBUG shows one line per connection, INFO only startup and problems."""

    log_format: str = "text"
    """Access log format: 'text' (one human-readable line) or 'json'."""

    @cached_property
    def resolved_root(self) -> str:
        """Canonical absolute path of `root`, symlinks resolved."""
        return os.path.realpath(self.root)

    @classmethod
    def from_env(cls, environ=None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TINYHTTPD_HOST        Bind address (default: 0.0.0.0)
        TINYHTTPD_PORT        Port (default: 8080)
        TINYHTTPD_ROOT        Served directory (default: .)
        TINYHTTPD_WORKERS     Worker threads (default: CPU count)
        TINYHTTPD_DEADLINE    Per-connection budget in seconds (default: 5)
        TINYHTTPD_LOG_LEVEL   Logging level (default: INFO)
        TINYHTTPD_LOG_FORMAT  text or json (default: text)

        =====================================================================

        Raises:
            ConfigError: A numeric variable does not parse.
        """
        env = os.environ if environ is None else environ

        def get(name, default):
            return env.get(f"TINYHTTPD_{name}", default)

        try:
            return cls(
                host=get("HOST", "0.0.0.0"),
                port=int(get("PORT", "8080")),
                root=get("ROOT", "."),
                workers=int(get("WORKERS", str(default_workers()))),
                deadline=float(get("DEADLINE", "5.0")),
                log_level=get("LOG_LEVEL", "INFO").upper(),
                log_format=get("LOG_FORMAT", "text").lower(),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid environment configuration: {e}") from e

    def validate(self) -> None:
        """
        Check every value before the server starts.

        Raises:
            ConfigError: On the first invalid value.
        """
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")

        if self.deadline <= 0:
            raise ConfigError(f"deadline must be > 0, got {self.deadline}")

        if self.backlog < 1:
            raise ConfigError(f"backlog must be >= 1, got {self.backlog}")

        if self.buffer_size < 1024:
            raise ConfigError(f"buffer_size must be >= 1024, got {self.buffer_size}")

        if self.max_request_line < 16:
            raise ConfigError(f"max_request_line must be >= 16, got {self.max_request_line}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {', '.join(LOG_FORMATS)}")

        if not os.path.isdir(self.root):
            raise ConfigError(f"Root is not a directory: {self.root}")
