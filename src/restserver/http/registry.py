"""
=============================================================================
HANDLER REGISTRY
=============================================================================

Maps request paths to handler functions.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        LOOKUP FLOW                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /ping HTTP/1.1                                                 │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌──────────────────────────────────────────┐                      │
    │   │  /ping    → handle_ping   ← MATCH!       │                      │
    │   │  /status  → handle_status                │                      │
    │   └──────────────────────────────────────────┘                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Matching is EXACT string comparison: "/ping/" and "/ping?x=1" do not match
"/ping". There are no parameters, wildcards or per-method routes.

=============================================================================
LIFECYCLE
=============================================================================

    register() ... register() ──► freeze() ──► lookup() from any thread

Registration happens during setup on one thread. RestServer.listen()
freezes the registry before the first connection is accepted; from then on
the table is only read, so worker threads look handlers up without a lock.

=============================================================================
"""

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping

from ..errors import DuplicatePath, NotFound
from .request import HttpRequest


logger = logging.getLogger(__name__)


# A handler returns any payload on success and raises on failure.
Handler = Callable[[HttpRequest], Any]


class HandlerRegistry:
    """
    Path → handler table.

    Usage:
        registry = HandlerRegistry("sample-server")
        registry.register("/ping", handle_ping)

        @registry.route("/status")
        def status(request):
            return {"ok": True}

        registry.freeze()
        handler = registry.lookup("/ping")
    """

    def __init__(self, owner: str = ""):
        """
        Args:
            owner: Name of the server owning this registry (for messages).
        """
        self.owner = owner
        self._handlers: Dict[str, Handler] = {}
        self._frozen = False

    def register(self, path: str, handler: Handler) -> None:
        """
        Add a handler for an exact path.

        Raises:
            DuplicatePath: If the path already has a handler. The registry
                is left unchanged.
            RuntimeError: If the registry has been frozen.
        """
        if self._frozen:
            raise RuntimeError(
                f"server [{self.owner}]: cannot register {path} while listening"
            )

        if path in self._handlers:
            raise DuplicatePath(self.owner, path)

        self._handlers[path] = handler
        logger.debug(f"[{self.owner}] registered {path} -> {_handler_name(handler)}")

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of register().

        Example:
            @registry.route("/ping")
            def ping(request):
                return "pong"
        """
        def decorator(handler: Handler) -> Handler:
            self.register(path, handler)
            return handler
        return decorator

    def lookup(self, path: str) -> Handler:
        """
        Find the handler for a path.

        Raises:
            NotFound: If no handler is registered for exactly this path.
        """
        try:
            return self._handlers[path]
        except KeyError:
            raise NotFound(path) from None

    def freeze(self) -> Mapping[str, Handler]:
        """
        Stop accepting registrations.

        Idempotent. Returns a read-only view of the table.
        """
        self._frozen = True
        return MappingProxyType(self._handlers)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def paths(self) -> List[str]:
        """Registered paths, sorted."""
        return sorted(self._handlers)

    def __contains__(self, path: object) -> bool:
        return path in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def log_routes(self) -> None:
        """Log the registered paths at INFO level (startup banner)."""
        if not self._handlers:
            logger.warning(f"[{self.owner}] no handlers registered")
            return
        for path in self.paths:
            logger.info(f"[{self.owner}]   {path} -> {_handler_name(self._handlers[path])}")


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
