"""
=============================================================================
restserver
=============================================================================

A minimal HTTP/1.1 server: one request line per connection, handlers keyed
by exact path, a fixed "HTTP/1.1 200 OK" response envelope.

    from restserver import RestServer

    server = RestServer("sample-server", "127.0.0.1", 8080)
    server.register_path("/ping", lambda request: "pong")
    server.listen()

    $ printf 'GET /ping HTTP/1.1\r\n\r\n' | nc 127.0.0.1 8080
    HTTP/1.1 200 OK
    pong

=============================================================================
"""

__version__ = "0.1.0"

from .config import ServerConfig
from .errors import (
    BindError,
    ConnectionIOError,
    DuplicatePath,
    InvalidConfig,
    InvalidRequest,
    NotFound,
    RestServerError,
)
from .http import HttpMethod, HttpRequest, HttpResponse
from .server import RestServer

__all__ = [
    "RestServer",
    "ServerConfig",
    "HttpMethod",
    "HttpRequest",
    "HttpResponse",
    "RestServerError",
    "InvalidConfig",
    "DuplicatePath",
    "BindError",
    "InvalidRequest",
    "NotFound",
    "ConnectionIOError",
    "__version__",
]
