"""
=============================================================================
ERROR TYPES
=============================================================================

Every failure the server reports derives from RestServerError, so callers
can catch the whole family in one place:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ERROR HIERARCHY                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RestServerError                                                   │
    │     ├── InvalidConfig       bad ServerConfig value (empty name...)  │
    │     ├── DuplicatePath       path registered twice                   │
    │     ├── BindError           listen() could not bind the socket      │
    │     ├── InvalidRequest      malformed / unsupported request line    │
    │     ├── NotFound            no handler for the request path         │
    │     └── ConnectionIOError   read/write fault on a client socket     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

SETUP errors (InvalidConfig, DuplicatePath, BindError) are raised to the
caller synchronously. CONNECTION errors (InvalidRequest, NotFound,
ConnectionIOError) end one connection; the accept loop logs them and keeps
going.

Where a builtin exception means the same thing, the error also derives from
it (InvalidConfig is a ValueError, BindError is an OSError), so generic
handlers written against the builtins still work.

=============================================================================
"""


class RestServerError(Exception):
    """Base class for all server errors."""


class InvalidConfig(RestServerError, ValueError):
    """Raised when a server configuration value is rejected."""


class DuplicatePath(RestServerError):
    """Raised when a handler is registered for a path that already has one."""

    def __init__(self, server_name: str, path: str):
        super().__init__(
            f"server [{server_name}] path [{path}]: attempted to set handler twice"
        )
        self.server_name = server_name
        self.path = path


class BindError(RestServerError, OSError):
    """Raised when the listening socket cannot be bound."""


class InvalidRequest(RestServerError):
    """Raised when a request cannot be parsed or is not supported."""


class NotFound(RestServerError, LookupError):
    """Raised when no handler is registered for the requested path."""

    def __init__(self, path: str):
        super().__init__(f"no handler found for path {path}")
        self.path = path


class ConnectionIOError(RestServerError, OSError):
    """Raised when reading from or writing to a client socket fails."""
