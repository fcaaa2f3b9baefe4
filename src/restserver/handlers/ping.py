"""
Liveness handler.

    GET /ping HTTP/1.1   →   HTTP/1.1 200 OK
                             pong
"""

import logging

from ..http.request import HttpRequest


logger = logging.getLogger(__name__)


def handle_ping(request: HttpRequest) -> str:
    """Answer "pong" to any request."""
    logger.debug(f"Handling ping from {request.client_address[0] or 'unknown'}")
    return "pong"
