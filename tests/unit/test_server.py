"""
Unit tests for RestServer construction and connection handling.

Connections run in-process over socket.socketpair(); nothing listens.
"""

import logging
import threading
import time

import pytest

from conftest import recv_all
from restserver import RestServer, ServerConfig
from restserver.core import ConnectionState
from restserver.errors import (
    ConnectionIOError,
    DuplicatePath,
    InvalidConfig,
    InvalidRequest,
    NotFound,
)
from restserver.handlers import handle_ping
from restserver.http import HttpMethod


class TestConstruction:
    """Tests for building a server and registering handlers."""

    def test_empty_name(self):
        with pytest.raises(InvalidConfig):
            RestServer("", "127.0.0.1", 8080)

    def test_holds_config(self):
        server = RestServer("sample-server", "0.0.0.0", 9000)

        assert server.name == "sample-server"
        assert server.config.host == "0.0.0.0"
        assert server.config.port == 9000
        assert server.address == ("0.0.0.0", 9000)
        assert len(server.registry) == 0

    def test_extra_settings(self):
        server = RestServer("s", "127.0.0.1", 0, max_workers=0, timeout=1.5)

        assert server.config.max_workers == 0
        assert server.config.timeout == 1.5

    def test_from_config(self):
        config = ServerConfig(name="edge", host="127.0.0.2", port=81, max_workers=3)
        server = RestServer.from_config(config)

        assert server.config == config

    def test_duplicate_registration(self, server):
        def other(request):
            return "other"

        with pytest.raises(DuplicatePath):
            server.register_path("/ping", other)

        assert server.registry.lookup("/ping") is handle_ping

    def test_route_decorator(self, server):
        @server.route("/status")
        def status(request):
            return {"ok": True}

        assert "/status" in server.registry


class TestHandleConnection:
    """Tests for one request/response exchange."""

    def test_ping(self, server, connect):
        conn, client = connect(b"GET /ping HTTP/1.1\r\nHost: localhost\r\n\r\n")

        response = server.handle_connection(conn)
        conn.close()

        assert response.body == "pong"
        assert recv_all(client) == b"HTTP/1.1 200 OK\npong\r\n\r\n"

    def test_post(self, server, connect):
        seen = []
        server.register_path("/items", lambda request: seen.append(request) or "created")
        conn, client = connect(b"POST /items HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc")

        server.handle_connection(conn)
        conn.close()

        assert recv_all(client) == b"HTTP/1.1 200 OK\ncreated\r\n\r\n"
        request = seen[0]
        assert request.method is HttpMethod.POST
        assert request.path == "/items"
        assert request.headers == {}
        assert request.body == ""
        assert request.client_address == conn.address

    def test_structured_payload(self, server, connect):
        server.register_path("/status", lambda request: {"status": "ok", "count": 2})
        conn, _ = connect(b"GET /status HTTP/1.1\r\n\r\n")

        response = server.handle_connection(conn)

        assert response.body == "{'count': 2, 'status': 'ok'}"

    def test_handler_error_rendered_with_200(self, server, connect):
        def broken(request):
            raise ValueError("database down")

        server.register_path("/broken", broken)
        conn, client = connect(b"GET /broken HTTP/1.1\r\n\r\n")

        response = server.handle_connection(conn)
        conn.close()

        assert response.failed
        assert recv_all(client) == b"HTTP/1.1 200 OK\nerror: database down\r\n\r\n"

    def test_unsupported_method(self, server, connect):
        conn, client = connect(b"DELETE /ping HTTP/1.1\r\n\r\n")

        with pytest.raises(InvalidRequest, match="unexpected method: DELETE"):
            server.handle_connection(conn)
        conn.close()

        assert recv_all(client) == b""

    def test_not_found(self, server, connect):
        conn, client = connect(b"GET /missing HTTP/1.1\r\n\r\n")

        with pytest.raises(NotFound):
            server.handle_connection(conn)
        conn.close()

        assert recv_all(client) == b""

    def test_trailing_slash_not_normalized(self, server, connect):
        conn, _ = connect(b"GET /ping/ HTTP/1.1\r\n\r\n")

        with pytest.raises(NotFound):
            server.handle_connection(conn)

    def test_empty_stream(self, server, connect):
        conn, _ = connect(b"")

        with pytest.raises(InvalidRequest, match="no request line"):
            server.handle_connection(conn)

    def test_malformed_line(self, server, connect):
        conn, _ = connect(b"hello\r\n\r\n")

        with pytest.raises(InvalidRequest):
            server.handle_connection(conn)

    def test_handler_not_called_on_bad_request(self, server, connect):
        calls = []
        server.register_path("/count", lambda request: calls.append(request))
        conn, _ = connect(b"PUT /count HTTP/1.1\r\n\r\n")

        with pytest.raises(InvalidRequest):
            server.handle_connection(conn)

        assert calls == []

    def test_write_failure(self, server, connect):
        conn, client = connect(b"GET /ping HTTP/1.1\r\n\r\n")
        client.close()

        with pytest.raises(ConnectionIOError, match="send failed"):
            server.handle_connection(conn)


class TestProcessConnection:
    """Tests for the per-connection wrapper used by the accept loop."""

    def test_errors_logged_not_raised(self, server, connect, caplog):
        conn, _ = connect(b"GET /missing HTTP/1.1\r\n\r\n")

        with caplog.at_level(logging.WARNING, logger="restserver"):
            server._process_connection(conn)

        assert conn.state == ConnectionState.CLOSED
        assert "no handler found for path /missing" in caplog.text

    def test_success_closes_connection(self, server, connect):
        conn, client = connect(b"GET /ping HTTP/1.1\r\n\r\n")

        server._process_connection(conn)

        assert conn.state == ConnectionState.CLOSED
        assert recv_all(client) == b"HTTP/1.1 200 OK\npong\r\n\r\n"

    def test_trickling_client_does_not_pin_worker(self, server, connect):
        conn, client = connect(b"GET /missing HTTP/1.1\r\n\r\n", eof=False, timeout=0.3)
        stop = threading.Event()

        def trickle():
            while not stop.is_set():
                try:
                    client.sendall(b"x" * 512)
                except OSError:
                    return
                time.sleep(0.05)

        sender = threading.Thread(target=trickle, daemon=True)
        sender.start()
        try:
            started = time.monotonic()
            server._process_connection(conn)
            elapsed = time.monotonic() - started
        finally:
            stop.set()
            sender.join(5.0)

        assert conn.state == ConnectionState.CLOSED
        assert elapsed < 2.0
