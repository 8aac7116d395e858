"""
Unit tests for the per-connection static file handler.

The handler runs on one end of a socketpair; the test plays the client.
"""

import logging
import socket
import threading

import pytest

from staticserver.config import ServerConfig
from staticserver.core.connection import ConnectionState
from staticserver.handlers.static import StaticFileHandler

from conftest import INDEX_HTML, split_response


@pytest.fixture
def handler(web_root) -> StaticFileHandler:
    return StaticFileHandler(ServerConfig(web_root=str(web_root), max_request_line=256))


def exchange(handler, conn_pair, request: bytes) -> bytes:
    """Send ``request``, run the handler, return everything it wrote."""
    conn, client = conn_pair

    worker = threading.Thread(target=handler.handle, args=(conn,))
    worker.start()

    if request:
        client.sendall(request)
    client.shutdown(socket.SHUT_WR)

    chunks = []
    while True:
        chunk = client.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)

    worker.join(5.0)
    assert conn.state == ConnectionState.CLOSED
    return b"".join(chunks)


class TestStaticFileHandler:
    """Tests for StaticFileHandler.handle."""

    def test_serves_file(self, handler, conn_pair, web_root):
        status, headers, body = split_response(
            exchange(handler, conn_pair, b"GET /style.css HTTP/1.1\r\n\r\n")
        )

        assert status == 200
        assert headers["Content-Type"] == "text/css"
        assert body == (web_root / "style.css").read_bytes()

    def test_root_serves_index(self, handler, conn_pair):
        status, headers, body = split_response(exchange(handler, conn_pair, b"GET / HTTP/1.1\r\n"))

        assert status == 200
        assert headers["Content-Type"] == "text/html"
        assert body == INDEX_HTML

    def test_missing_file(self, handler, conn_pair):
        status, _, body = split_response(exchange(handler, conn_pair, b"GET /nope HTTP/1.1\r\n"))

        assert status == 404
        assert b"404 Not Found" in body

    def test_directory_is_not_found(self, handler, conn_pair):
        status, _, _ = split_response(exchange(handler, conn_pair, b"GET /sub HTTP/1.1\r\n"))

        assert status == 404

    def test_traversal_forbidden(self, handler, conn_pair, caplog):
        with caplog.at_level(logging.WARNING, logger="staticserver.handlers.static"):
            status, _, body = split_response(
                exchange(handler, conn_pair, b"GET /../www-secret/secret.txt HTTP/1.1\r\n")
            )

        assert status == 403
        assert b"403 Forbidden" in body
        assert "Path traversal attempt" in caplog.text

    def test_post_not_allowed(self, handler, conn_pair):
        raw = exchange(handler, conn_pair, b"POST /index.html HTTP/1.1\r\n")
        status, headers, body = split_response(raw)

        assert status == 405
        assert headers["Content-Type"] == "text/plain"
        assert body == b"Method Not Supported\n"

    def test_missing_method_is_not_allowed(self, handler, conn_pair):
        """Test that a blank request line gets 405, not a crash."""
        status, _, _ = split_response(exchange(handler, conn_pair, b"\r\n"))

        assert status == 405

    def test_oversized_request_line(self, handler, conn_pair):
        raw = exchange(handler, conn_pair, b"GET /" + b"a" * 1000 + b" HTTP/1.1\r\n")
        status, _, _ = split_response(raw)

        assert status == 400

    def test_empty_connection_gets_no_response(self, handler, conn_pair, caplog):
        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            raw = exchange(handler, conn_pair, b"")

        assert raw == b""
        assert [r for r in caplog.records if r.name == "staticserver.access"] == []

    def test_access_log_record(self, handler, conn_pair, caplog):
        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            exchange(handler, conn_pair, b"GET /style.css HTTP/1.1\r\n")

        records = [r for r in caplog.records if r.name == "staticserver.access"]
        assert len(records) == 1
        assert '"GET /style.css HTTP/1.1" 200 21' in records[0].getMessage()
