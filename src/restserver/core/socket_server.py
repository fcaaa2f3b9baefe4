"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()                                                            │
    │        ├──► _create_socket()   socket() + SO_REUSEADDR, TCP_NODELAY  │
    │        └──► bind() + listen()  fails → BindError                     │
    │                                                                      │
    │    serve(callback)                                                   │
    │        ├──► _setup_signals()   SIGTERM/SIGINT → shutdown()           │
    │        └──► _accept_loop()     blocks until shutdown()               │
    │                 └──► accept() → Connection → callback(conn)          │
    │                                                                      │
    │    shutdown()                  clears the running flag               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A failure to accept one client is logged and the loop carries on; only
bind/listen failures are fatal. The listening socket has a short timeout so
the loop wakes up regularly to notice shutdown().

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from ..errors import BindError
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 0.5


class SocketServer:
    """
    Accepts TCP connections and hands each one to a callback.

    Usage:
        def handle(conn: Connection):
            ...

        server = SocketServer(config)
        server.bind()
        server.serve(handle)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once bound and listening; cleared again on cleanup.
        self._listening_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Reports the real port once listening, which matters when the
        config asked for port 0.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting the server must not fail on sockets left in TIME_WAIT.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are a single small write; don't let Nagle hold them back.
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """
        Turn SIGTERM/SIGINT into a graceful shutdown.

        Python only allows signal handlers on the main thread; when the
        server runs elsewhere (tests, embedding) this is skipped.
        """
        if not self.config.install_signal_handlers:
            return
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def bind(self):
        """
        Create the listening socket.

        Nothing is accepted until serve() runs.

        Raises:
            BindError: If the address cannot be bound or listened on.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise BindError(
                f"cannot bind {self.config.host}:{self.config.port}: {e}"
            ) from e

    def serve(self, connection_handler: Callable[[Connection], None]):
        """
        Run the accept loop on the socket created by bind().

        Blocks until shutdown() is called. The socket is closed on return.

        Args:
            connection_handler: Called with each accepted Connection. It
                owns the connection from then on (and must close it).
        """
        if self._socket is None:
            raise RuntimeError("serve() called before bind()")

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"[{self.config.name}] listening on {host}:{port}")
        self._listening_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Poll the running flag
            except OSError as e:
                if not self._running:
                    break
                logger.error(f"Error in connection: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    timeout=self.config.timeout,
                    max_request_size=self.config.max_request_size,
                )
            except OSError as e:
                logger.error(f"Cannot set up connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            connection_handler(conn)

    def shutdown(self):
        """
        Stop the accept loop.

        Safe to call from any thread, from a signal handler, and more than
        once. start() returns within ACCEPT_POLL_INTERVAL.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._listening_event.clear()
        logger.info("Socket server stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._listening_event.wait(timeout)
