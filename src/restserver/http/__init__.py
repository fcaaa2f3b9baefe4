"""
=============================================================================
HTTP LAYER
=============================================================================

Everything between "bytes read off the socket" and "bytes written back":

    request.py   - request-line grammar, HttpMethod, HttpRequest
    registry.py  - exact-path handler table
    response.py  - fixed "HTTP/1.1 200 OK" envelope and body rendering

=============================================================================
"""

from .request import (
    HttpMethod,
    HttpRequest,
    RequestLine,
    REQUEST_LINE_PATTERN,
    parse_request,
    parse_request_line,
)
from .registry import Handler, HandlerRegistry
from .response import HttpResponse, STATUS_LINE, render_error, render_payload

__all__ = [
    # Request
    "HttpMethod",
    "HttpRequest",
    "RequestLine",
    "REQUEST_LINE_PATTERN",
    "parse_request",
    "parse_request_line",
    # Registry
    "Handler",
    "HandlerRegistry",
    # Response
    "HttpResponse",
    "STATUS_LINE",
    "render_error",
    "render_payload",
]
