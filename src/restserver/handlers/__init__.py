"""
Built-in request handlers.

A handler is any callable taking an HttpRequest. Whatever it returns is
rendered into the response body; if it raises, the body becomes
"error: <message>".
"""

from .ping import handle_ping

__all__ = ["handle_ping"]
