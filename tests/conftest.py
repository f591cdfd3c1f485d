"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import dataclass, field
from typing import Dict, Generator, List, Union
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyhttpd import FileServer, ServerConfig
from tinyhttpd.core import Connection


@pytest.fixture
def served_root(tmp_path: Path) -> Path:
    """A root with index.html ("hello world", 11 bytes) and an empty docs/."""
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(b"hello world")
    (root / "docs").mkdir()
    return root


@pytest.fixture
def config(served_root: Path) -> ServerConfig:
    """Test configuration: localhost, ephemeral port, two workers."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        root=str(served_root),
        workers=2,
        deadline=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


# =============================================================================
# IN-MEMORY SOCKET
# =============================================================================

class FakeSocket:
    """
    Socket double for driving a Connection without the network.

    recv() plays back `chunks` in order (an exception in the list is
    raised instead of returned), then reports EOF. sendall() appends to
    `sent`. close() is counted.
    """

    def __init__(self, chunks: List[Union[bytes, Exception]] = None):
        self.chunks = list(chunks or [])
        self.sent = bytearray()
        self.timeouts: List[float] = []
        self.shutdown_calls = 0
        self.close_calls = 0
        self.fail_send: Exception = None

    def recv(self, size: int) -> bytes:
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if isinstance(chunk, Exception):
            raise chunk
        if len(chunk) > size:
            self.chunks.insert(0, chunk[size:])
            chunk = chunk[:size]
        return chunk

    def sendall(self, data: bytes):
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.extend(data)

    def settimeout(self, value):
        self.timeouts.append(value)

    def shutdown(self, how):
        self.shutdown_calls += 1

    def close(self):
        self.close_calls += 1

    @property
    def response(self) -> "RawResponse":
        return RawResponse.parse(bytes(self.sent))


@pytest.fixture
def make_connection():
    """Factory: make_connection(chunks, budget=5.0) -> (Connection, FakeSocket)."""
    def factory(chunks=None, budget: float = 5.0, buffer_size: int = 8192):
        fake = FakeSocket(chunks)
        conn = Connection.accept(fake, ("127.0.0.1", 50000), budget=budget, buffer_size=buffer_size)
        return conn, fake
    return factory


# =============================================================================
# WIRE HELPERS
# =============================================================================

@dataclass
class RawResponse:
    """A response as read off the wire."""

    raw: bytes
    status_line: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    header_names: List[str] = field(default_factory=list)
    body: bytes = b""

    @property
    def status(self) -> int:
        return int(self.status_line.split(" ")[1])

    @classmethod
    def parse(cls, raw: bytes) -> "RawResponse":
        head, _, body = raw.partition(b"\r\n\r\n")
        lines = head.decode("latin-1").split("\r\n")
        response = cls(raw=raw, status_line=lines[0], body=body)
        for line in lines[1:]:
            name, _, value = line.partition(": ")
            response.headers[name] = value
            response.header_names.append(name)
        return response


def exchange(address, request: bytes, timeout: float = 10.0) -> RawResponse:
    """Send raw bytes, read until the server closes, parse the result."""
    with socket.create_connection(address, timeout=timeout) as sock:
        sock.sendall(request)
        data = bytearray()
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            data.extend(chunk)
    return RawResponse.parse(bytes(data))


@pytest.fixture
def send_request():
    """send_request(address, b"GET / HTTP/1.1\\r\\n\\r\\n") -> RawResponse"""
    return exchange


# =============================================================================
# LIVE SERVER
# =============================================================================

class ServerThread:
    """Runs a FileServer in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self):
        return self.server.address

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A real FileServer on an ephemeral localhost port."""
    server_thread = ServerThread(FileServer(config))
    server_thread.start()

    yield server_thread

    server_thread.stop()
