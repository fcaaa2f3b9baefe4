"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator, List, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from restserver import RestServer
from restserver.core import Connection
from restserver.handlers import handle_ping


CLIENT_ADDRESS = ("127.0.0.1", 50123)


def recv_all(sock: socket.socket, timeout: float = 5.0) -> bytes:
    """Read from sock until the peer closes its side."""
    sock.settimeout(timeout)
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


@pytest.fixture
def server() -> RestServer:
    """A server with /ping registered, never started."""
    srv = RestServer("test-server", "127.0.0.1", 0, max_workers=2, log_level="WARNING")
    srv.register_path("/ping", handle_ping)
    return srv


@pytest.fixture
def connect() -> Generator[Callable[..., Tuple[Connection, socket.socket]], None, None]:
    """
    Factory for in-process connections over socket.socketpair().

    connect(raw) sends raw from the client side, closes the client's write
    side (unless eof=False) and returns (server-side Connection, client socket).
    """
    opened: List[socket.socket] = []

    def factory(raw: bytes = b"", eof: bool = True, **conn_kwargs):
        server_sock, client_sock = socket.socketpair()
        opened.extend([server_sock, client_sock])
        if raw:
            client_sock.sendall(raw)
        if eof:
            client_sock.shutdown(socket.SHUT_WR)
        conn_kwargs.setdefault("timeout", 2.0)
        conn = Connection(socket=server_sock, address=CLIENT_ADDRESS, **conn_kwargs)
        return conn, client_sock

    yield factory

    for sock in opened:
        sock.close()


class ServerThread:
    """Runs RestServer.listen() in a background thread."""

    def __init__(self, server: RestServer):
        self.server = server
        self.error: BaseException = None
        self._thread = threading.Thread(target=self._run, daemon=True)

    def _run(self):
        try:
            self.server.listen()
        except BaseException as e:
            self.error = e

    def start(self) -> "ServerThread":
        self._thread.start()
        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError(f"Server failed to start: {self.error!r}")
        return self

    @property
    def port(self) -> int:
        return self.server.address[1]

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw, read until the server closes the connection."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as client:
            client.sendall(raw)
            return recv_all(client, timeout)

    def stop(self):
        self.server.shutdown()
        self._thread.join(timeout=10.0)

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def running_server(server: RestServer) -> Generator[ServerThread, None, None]:
    """The /ping server listening on an OS-assigned port."""
    thread = ServerThread(server).start()
    yield thread
    thread.stop()
