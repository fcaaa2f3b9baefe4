"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath RestServer:

    SocketServer ── accepts TCP connections, owns the listening socket
         │
         ▼
    ThreadPool ──── runs each connection on a worker thread
         │
         ▼
    Connection ──── reads the request head, writes the response, closes

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
