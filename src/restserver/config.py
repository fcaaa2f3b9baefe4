"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for a RestServer.

The three values every server needs are the NAME (used in log lines and
error messages), the bind HOST and the PORT. Everything else has a default
that works for local development.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m restserver --port 3000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── REST_SERVER_PORT=3000 python -m restserver                │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The dataclass is FROZEN: a config is built once at startup and shared by
the listener and every worker thread, so nothing may change it afterwards.
Validation runs in __post_init__, which means an invalid config can never
exist - construction itself fails with InvalidConfig.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidConfig


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for a RestServer.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    IDENTITY
    - name

    NETWORK SETTINGS
    - host, port, backlog, timeout, max_request_size

    CONCURRENCY
    - max_workers, queue_size

    PROCESS
    - log_level, install_signal_handlers

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    name: str
    """Server name. Must be non-empty."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces (containers)
    """

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Maximum number of connections queued by the kernel before accept()."""

    timeout: Optional[float] = 30.0
    """
    Read/write timeout for each client socket, in seconds.
    None = block forever (a silent client then pins a worker thread).
    """

    max_request_size: int = 64 * 1024
    """Maximum size of the request head (request line + header lines)."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 8
    """
    Worker threads handling connections.
    0 handles every connection inline in the accept loop, one at a time.
    """

    queue_size: int = 128
    """Accepted connections waiting for a worker before new ones are dropped."""

    # ─────────────────────────────────────────────────────────────────────
    # PROCESS
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    install_signal_handlers: bool = True
    """Turn SIGINT/SIGTERM into a graceful shutdown (main thread only)."""

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        REST_SERVER_NAME       Server name (default: sample-server)
        REST_SERVER_HOST       Bind address (default: 127.0.0.1)
        REST_SERVER_PORT       Port (default: 8080)
        REST_SERVER_WORKERS    Worker threads, 0 = sequential (default: 8)
        REST_SERVER_TIMEOUT    Socket timeout in seconds (default: 30)
        REST_SERVER_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================

        Keyword arguments override the environment, which is how the CLI
        layers its flags on top.

        Raises:
            InvalidConfig: If a variable cannot be converted or is invalid.
        """
        try:
            values = {
                "name": os.getenv("REST_SERVER_NAME", "sample-server"),
                "host": os.getenv("REST_SERVER_HOST", "127.0.0.1"),
                "port": int(os.getenv("REST_SERVER_PORT", "8080")),
                "max_workers": int(os.getenv("REST_SERVER_WORKERS", "8")),
                "timeout": float(os.getenv("REST_SERVER_TIMEOUT", "30")),
                "log_level": os.getenv("REST_SERVER_LOG_LEVEL", "INFO"),
            }
        except ValueError as e:
            raise InvalidConfig(f"invalid environment configuration: {e}") from e

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def log_level_number(self) -> int:
        """The numeric logging level for log_level."""
        return getattr(logging, self.log_level.upper())

    def validate(self) -> None:
        """
        Validate configuration values.

        Called from __post_init__, so it is fail-fast: the error surfaces
        where the config is built, not when the first client connects.

        Raises:
            InvalidConfig: On the first invalid value found.
        """
        if not self.name:
            raise InvalidConfig("cannot create a server with an empty name")

        if not 0 <= self.port <= 65535:
            raise InvalidConfig(f"invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise InvalidConfig("backlog must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise InvalidConfig("timeout must be > 0")

        if self.max_request_size < 1024:
            raise InvalidConfig("max_request_size must be >= 1024")

        if self.max_workers < 0:
            raise InvalidConfig("max_workers must be >= 0")

        if self.queue_size < 1:
            raise InvalidConfig("queue_size must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise InvalidConfig(f"unknown log level: {self.log_level}")
