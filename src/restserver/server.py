"""
=============================================================================
REST SERVER
=============================================================================

Ties configuration, the handler registry, the listener and the worker pool
together.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── SocketServer accepts, wraps the socket in a Connection

    2. DISPATCH
       └── Connection queued on the ThreadPool (or handled inline when
           max_workers == 0)

    3. READ (worker thread)
       └── Lines up to the first blank line; headers are read and dropped

    4. PARSE
       └── Request line → method, path, protocol

    5. LOOKUP
       └── Exact path match in the registry

    6. HANDLE
       └── handler(request) → payload, or raises

    7. RESPOND
       └── "HTTP/1.1 200 OK\n<body>\r\n\r\n", then close

A failure in steps 3-5 (or writing in step 7) ends the connection with no
response and is logged; a failure in step 6 becomes an "error: ..." body.
Neither ever stops the accept loop.

=============================================================================
"""

import dataclasses
import logging
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .errors import RestServerError
from .http import Handler, HandlerRegistry, HttpResponse, parse_request


logger = logging.getLogger(__name__)


class RestServer:
    """
    Minimal HTTP/1.1 server dispatching on exact request paths.

    =========================================================================
    USAGE
    =========================================================================

        server = RestServer("sample-server", "127.0.0.1", 8080)

        def handle_ping(request):
            return "pong"

        server.register_path("/ping", handle_ping)

        @server.route("/status")
        def status(request):
            return {"ok": True}

        server.listen()  # Blocks until shutdown() or Ctrl+C

    =========================================================================
    """

    def __init__(self, name: str, address: str = "127.0.0.1", port: int = 8080, **settings):
        """
        Args:
            name: Server name, must be non-empty.
            address: Bind address.
            port: Bind port (0 = any free port).
            **settings: Any other ServerConfig field.

        Raises:
            InvalidConfig: If name is empty or a setting is invalid.
        """
        self.config = ServerConfig(name=name, host=address, port=port, **settings)

        self._registry = HandlerRegistry(owner=self.config.name)
        self._socket_server = SocketServer(self.config)
        self._thread_pool: Optional[ThreadPool] = None

    @classmethod
    def from_config(cls, config: ServerConfig) -> "RestServer":
        """Build a server from an existing ServerConfig."""
        settings = dataclasses.asdict(config)
        return cls(settings.pop("name"), settings.pop("host"), settings.pop("port"), **settings)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the configured pair before listen()."""
        return self._socket_server.address

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    # =========================================================================
    # HANDLER REGISTRATION
    # =========================================================================

    def register_path(self, path: str, handler: Handler) -> None:
        """
        Register a handler for an exact path.

        Raises:
            DuplicatePath: If the path already has a handler (the original
                handler stays registered).
            RuntimeError: If the server is already listening.
        """
        self._registry.register(path, handler)

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """Decorator form of register_path()."""
        return self._registry.route(path)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def listen(self) -> None:
        """
        Bind and serve until shutdown.

        Raises:
            BindError: If the configured address is unavailable.
        """
        self._setup_logging()

        # A failed bind leaves the registry open for another attempt.
        self._socket_server.bind()
        self._registry.freeze()
        self._registry.log_routes()

        try:
            if self.config.max_workers:
                self._thread_pool = ThreadPool(
                    max_workers=self.config.max_workers,
                    queue_size=self.config.queue_size,
                    name_prefix=f"{self.config.name}-worker",
                )
                self._thread_pool.start()
                dispatch = self._dispatch_to_pool
            else:
                logger.info(f"[{self.name}] handling connections sequentially")
                dispatch = self._process_connection

            self._socket_server.serve(dispatch)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown_pool()

    def shutdown(self) -> None:
        """Stop accepting connections; listen() returns once in-flight work is done."""
        self._socket_server.shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until listen() has bound its socket. False on timeout."""
        return self._socket_server.wait_until_listening(timeout)

    def _setup_logging(self):
        logging.basicConfig(
            level=self.config.log_level_number,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("restserver").setLevel(self.config.log_level_number)

    def _shutdown_pool(self):
        if self._thread_pool is None:
            return
        stats = self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        self._thread_pool = None
        logger.info(f"[{self.name}] stopped after {stats.get('completed', 0)} connections")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _dispatch_to_pool(self, conn: Connection):
        if not self._thread_pool.submit(self._process_connection, conn):
            logger.warning(f"[{conn.id}] worker queue full, dropping connection from {conn.client_ip}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Run one exchange and close the connection.

        Per-connection failures are logged here and go no further.
        """
        logger.debug(f"[{conn.id}] connection established from {conn.client_ip}")
        with conn:
            try:
                self.handle_connection(conn)
            except RestServerError as e:
                logger.warning(f"[{conn.id}] Error in handling connection: {e}")
            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error in handling connection: {e}")

    def handle_connection(self, conn: Connection) -> HttpResponse:
        """
        Read one request from conn, dispatch it, and write the response.

        Does not close the connection.

        Returns:
            The response that was written.

        Raises:
            InvalidRequest: Empty, malformed or unsupported request line.
            NotFound: No handler registered for the path.
            ConnectionIOError: Reading or writing the socket failed.
        """
        lines = conn.read_lines()
        logger.debug(f"[{conn.id}] request received: {lines!r}")

        request = parse_request(lines, client_address=conn.address)
        logger.debug(
            f"[{conn.id}] method: {request.method} path: {request.path} "
            f"protocol: {request.protocol}"
        )

        handler = self._registry.lookup(request.path)

        conn.state = ConnectionState.PROCESSING
        try:
            payload = handler(request)
        except Exception as e:
            logger.warning(f"[{conn.id}] handler for {request.path} failed: {e}")
            response = HttpResponse.from_error(e)
        else:
            response = HttpResponse.from_payload(payload)

        logger.debug(f"[{conn.id}] response string: {response.body!r}")
        conn.send_response(response.to_bytes())
        logger.info(f"[{conn.id}] {request.method.value} {request.path} -> {'error' if response.failed else 'ok'}")

        return response
