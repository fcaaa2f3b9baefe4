"""
=============================================================================
RESPONSE ENVELOPE
=============================================================================

Every exchange ends with the same fixed envelope:

    HTTP/1.1 200 OK\n            ← Status line, always 200
    <rendered body>\r\n          ← Payload or "error: <message>"
    \r\n                         ← Blank line

The status line does NOT reflect the outcome. A handler that raises still
produces "200 OK"; the failure is only visible in the body text. Clients
that need to tell the two apart must look for the "error: " prefix.

=============================================================================
RENDERING
=============================================================================

    payload is a str    → written as-is          "pong"
    any other payload   → pprint.pformat()       {'status': 'ok'}
    handler raised      → "error: " + message    error: database down

=============================================================================
"""

import pprint
from dataclasses import dataclass
from typing import Any


STATUS_LINE = "HTTP/1.1 200 OK"
ERROR_PREFIX = "error: "


def render_payload(payload: Any) -> str:
    """Render a handler's return value as body text."""
    if isinstance(payload, str):
        return payload
    return pprint.pformat(payload)


def render_error(error: BaseException) -> str:
    """Render a handler failure as body text."""
    message = str(error) or type(error).__name__
    return f"{ERROR_PREFIX}{message}"


@dataclass(frozen=True)
class HttpResponse:
    """
    The outcome of one handler call, ready to be written to the client.

    Attributes:
        body: Rendered body text.
        failed: True when the handler raised instead of returning.
    """
    body: str
    failed: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> "HttpResponse":
        return cls(body=render_payload(payload))

    @classmethod
    def from_error(cls, error: BaseException) -> "HttpResponse":
        return cls(body=render_error(error), failed=True)

    @property
    def status_line(self) -> str:
        return STATUS_LINE

    def to_bytes(self) -> bytes:
        """Serialize to the wire format, encoded as UTF-8."""
        return f"{STATUS_LINE}\n{self.body}\r\n\r\n".encode("utf-8")
