"""
=============================================================================
REQUEST-LINE PARSING
=============================================================================

Turns the lines read from a client into an HttpRequest.

Only the FIRST line is parsed. Anything after it (the header lines) has
been read off the socket but is discarded: the request's header map stays
empty and the body is never read.

=============================================================================
REQUEST LINE FORMAT
=============================================================================

    METHOD SP PATH SP PROTOCOL

    Example: "GET /ping HTTP/1.1"
              ─┬─ ──┬── ───┬────
               │    │      │
            Method Path  Protocol

=============================================================================
PARSING STEPS
=============================================================================

    lines ──► empty? ──► grammar ──► method check ──► protocol check
               │           │              │                 │
               ▼           ▼              ▼                 ▼
        InvalidRequest  InvalidRequest  InvalidRequest  InvalidRequest

The grammar accepts five method tokens but only GET and POST survive the
method check, so "DELETE /x HTTP/1.1" gets past the regex and is then
rejected with "unexpected method: DELETE".

=============================================================================
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, NamedTuple, Sequence

from ..errors import InvalidRequest


class HttpMethod(Enum):
    """Methods the server dispatches."""
    GET = "GET"
    POST = "POST"

    def __str__(self) -> str:
        return f"[{self.value}]"


# =========================================================================
# COMPILED GRAMMAR
# =========================================================================
#
# (GET|POST|OPTION|PUT|DELETE)  - group 1: method token
# ` `                           - single space
# (/\S*)                        - group 2: path, starts with "/"
# ` `                           - single space
# (\S+)                         - group 3: protocol token
# $                             - anchored at end of line
#
# Applied with search(), so the line is anchored at its end only.
# Compiled once at import time; re.Pattern is safe to share between threads.
#
REQUEST_LINE_PATTERN = re.compile(r"(GET|POST|OPTION|PUT|DELETE) (/\S*) (\S+)$")
REQUEST_LINE_GROUPS = 3


class RequestLine(NamedTuple):
    """The three tokens of a request line, after validation."""
    method: HttpMethod
    path: str
    protocol: str


@dataclass
class HttpRequest:
    """
    A parsed request, handed to the path's handler.

    Attributes:
        method: GET or POST.
        path: Exact path token from the request line (query string included).
        protocol: Protocol token, e.g. "HTTP/1.1".
        headers: Always empty; header lines are read and discarded.
        body: Always the empty placeholder; bodies are never read.
        client_address: (ip, port) of the client, for logging.
    """
    method: HttpMethod
    path: str
    protocol: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    client_address: tuple = ("", 0)


def parse_request_line(line: str) -> RequestLine:
    """
    Apply the request-line grammar to one line.

    Raises:
        InvalidRequest: If the line does not match, the method is not
            GET/POST, or the protocol token does not contain "HTTP".
    """
    match = REQUEST_LINE_PATTERN.search(line)
    if match is None:
        raise InvalidRequest(f"request is invalid - no parts found in line: {line}")

    groups = match.groups()
    if len(groups) != REQUEST_LINE_GROUPS:
        raise InvalidRequest(
            f"request is invalid: expected {REQUEST_LINE_GROUPS} parts "
            f"but found {len(groups)}: {groups!r}"
        )

    method_token, path, protocol = groups

    try:
        method = HttpMethod(method_token)
    except ValueError:
        raise InvalidRequest(f"unexpected method: {method_token}") from None

    if "HTTP" not in protocol:
        raise InvalidRequest(
            f"request is invalid: expected protocol to be HTTP but got {protocol}"
        )

    return RequestLine(method, path, protocol)


def parse_request(
    lines: Sequence[str],
    client_address: tuple = ("", 0),
) -> HttpRequest:
    """
    Build an HttpRequest from the lines of a request head.

    Args:
        lines: Lines read before the first blank line, terminators stripped.
        client_address: Client's (ip, port), stored on the request.

    Raises:
        InvalidRequest: If no lines were read or the request line is invalid.
    """
    if not lines:
        raise InvalidRequest("request is invalid: no request line received")

    request_line = parse_request_line(lines[0])

    return HttpRequest(
        method=request_line.method,
        path=request_line.path,
        protocol=request_line.protocol,
        client_address=client_address,
    )


def strip_line_terminator(line: str) -> str:
    """Drop a trailing "\\n" and then one trailing "\\r", if present."""
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line
