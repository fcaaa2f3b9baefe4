"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for a single request/response exchange.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

recv() may hand back half a line, or three lines and a bit. We never call
recv() directly to find line boundaries; instead the socket is wrapped in a
buffered binary file (socket.makefile("rb")) and read with readline(), which
keeps whatever follows the newline for the next call.

    Client sends:    "GET /ping HTTP/1.1\r\nHost: x\r\n\r\n"

    readline() →     b"GET /ping HTTP/1.1\r\n"   → "GET /ping HTTP/1.1"
    readline() →     b"Host: x\r\n"              → "Host: x"
    readline() →     b"\r\n"                     → ""   (stop here)

A line ends at "\n"; one "\r" before it is also stripped, so both CRLF and
bare LF clients work. End-of-stream also stops the read.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING
     │             │                                  │
     │             ▼                                  │
     └──────────► CLOSING ◄───────────────────────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, List, Optional

from ..errors import ConnectionIOError, InvalidRequest
from ..http.request import strip_line_terminator


logger = logging.getLogger(__name__)

# Upper bound, in seconds, on reading leftover client data while closing.
DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""
    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Reading the request head
    PROCESSING = "processing"  # Request parsed, handler is executing
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier used as a log prefix.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        timeout: Socket timeout for reads and writes (None = blocking).
        max_request_size: Maximum bytes accepted for the request head.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    timeout: Optional[float] = 30.0
    max_request_size: int = 64 * 1024

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_lines(self) -> List[str]:
        """
        Read the request head, one line at a time.

        Collects lines until (and excluding) the first empty line, or until
        the client closes its side of the stream.

        Returns:
            The collected lines with their terminators stripped. Empty if
            the client sent nothing before the blank line / end of stream.

        Raises:
            ConnectionIOError: If the socket read fails or times out.
            InvalidRequest: If the head exceeds max_request_size or is not
                valid UTF-8.
        """
        self.state = ConnectionState.READING

        if self._reader is None:
            self._reader = self.socket.makefile("rb")

        lines: List[str] = []
        total = 0

        while True:
            # Ask for one byte more than the remaining budget so an
            # oversized line is detected instead of silently truncated.
            remaining = self.max_request_size - total
            try:
                raw = self._reader.readline(remaining + 1)
            except OSError as e:
                raise ConnectionIOError(f"[{self.id}] read failed: {e}") from e

            if not raw:
                break  # Client closed its side

            total += len(raw)
            if total > self.max_request_size:
                raise InvalidRequest(
                    f"request head exceeds {self.max_request_size} bytes"
                )

            try:
                line = strip_line_terminator(raw.decode("utf-8"))
            except UnicodeDecodeError as e:
                raise InvalidRequest(f"request is not valid UTF-8: {e}") from e

            logger.debug(f"[{self.id}] - request line: {line}")
            if not line:
                break
            lines.append(line)

        return lines

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> None:
        """
        Send the full response buffer.

        sendall() blocks until every byte is written or the socket fails.

        Raises:
            ConnectionIOError: If the client went away or the write timed out.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise ConnectionIOError(f"[{self.id}] send failed: {e}") from e

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN so the client sees end-of-response
        2. drain whatever the client still sent (headers we never read),
           for at most DRAIN_TIMEOUT seconds
        3. close() releases the file descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        # DRAIN_TIMEOUT bounds the whole drain, not each recv().
        deadline = time.monotonic() + DRAIN_TIMEOUT
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.debug(f"[{self.id}] drain deadline reached, closing")
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(4096):
                    break
        except OSError:
            pass

        if self._reader is not None:
            self._reader.close()
            self._reader = None

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] connection closed after {self.age:.3f}s")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
