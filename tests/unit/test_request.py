"""
Unit tests for request line parsing and reading.
"""

import socket
import threading

import pytest

from staticserver.core.connection import ConnectionState, RequestTooLarge
from staticserver.http.request import ParsedRequest, parse_request_line


class TestParseRequestLine:
    """Tests for parse_request_line."""

    def test_parse_full_line(self):
        """Test the three tokens of a normal request line."""
        request = parse_request_line(b"GET /index.html HTTP/1.1\r\n")

        assert request.method == "GET"
        assert request.raw_path == "/index.html"
        assert request.protocol_version == "HTTP/1.1"

    def test_parse_str_line(self):
        """Test that text input is accepted too."""
        request = parse_request_line("GET / HTTP/1.0")
        assert request == ParsedRequest("GET", "/", "HTTP/1.0")

    def test_missing_tokens_are_empty(self):
        """Test that missing tokens become empty strings."""
        request = parse_request_line(b"GET\r\n")

        assert request.method == "GET"
        assert request.raw_path == ""
        assert request.protocol_version == ""

    def test_empty_line(self):
        """Test that a blank line parses to all-empty tokens."""
        request = parse_request_line(b"\r\n")
        assert request == ParsedRequest("", "", "")

    def test_extra_whitespace(self):
        """Test that any run of whitespace separates tokens."""
        request = parse_request_line(b"GET    /a.txt\tHTTP/1.1\r\n")

        assert request.raw_path == "/a.txt"
        assert request.protocol_version == "HTTP/1.1"

    def test_protocol_not_validated(self):
        """Test that an odd protocol token is kept as-is."""
        request = parse_request_line(b"GET / SPDY/9\r\n")
        assert request.protocol_version == "SPDY/9"

    def test_non_ascii_bytes_do_not_fail(self):
        """Test that arbitrary bytes decode without error."""
        request = parse_request_line(b"GET /caf\xe9 HTTP/1.1\r\n")
        assert request.raw_path == "/caf\xe9"


class TestParsedRequest:
    """Tests for ParsedRequest properties."""

    @pytest.mark.parametrize("method,expected", [
        ("GET", True),
        ("POST", False),
        ("HEAD", False),
        ("get", False),
        ("", False),
    ])
    def test_is_retrieval(self, method, expected):
        """Test that only GET is a retrieval method."""
        assert ParsedRequest(method, "/").is_retrieval is expected

    def test_path_drops_query_string(self):
        """Test that the query string is not part of the path."""
        assert ParsedRequest("GET", "/search.html?q=1&x=2").path == "/search.html"

    def test_path_percent_decoded(self):
        """Test percent-escape decoding."""
        assert ParsedRequest("GET", "/a%20b.txt").path == "/a b.txt"

    def test_encoded_dots_decoded(self):
        """Test that %2e%2e decodes to .. (containment is checked later)."""
        assert ParsedRequest("GET", "/%2e%2e/etc/passwd").path == "/../etc/passwd"

    def test_double_slash_kept(self):
        """Test that a leading // is treated as a path, not a host."""
        assert ParsedRequest("GET", "//etc/passwd").path == "//etc/passwd"

    def test_str_joins_present_tokens(self):
        """Test the request line rendering used in logs."""
        assert str(ParsedRequest("GET", "/x", "HTTP/1.1")) == "GET /x HTTP/1.1"
        assert str(ParsedRequest("GET", "", "")) == "GET"


class TestReadRequestLine:
    """Tests for Connection.read_request_line over a socketpair."""

    def test_reads_first_line_only(self, conn_pair):
        """Test that headers after the first line are left alone."""
        conn, client = conn_pair
        client.sendall(b"GET / HTTP/1.1\r\nHost: x\r\n\r\n")

        assert conn.read_request_line(8192) == b"GET / HTTP/1.1\r\n"
        assert conn.state == ConnectionState.READING

    def test_line_split_across_segments(self, conn_pair):
        """Test a request line delivered in several writes."""
        conn, client = conn_pair
        conn.buffer_size = 4

        def send_slowly():
            for part in (b"GE", b"T /ind", b"ex.html HT", b"TP/1.1\r", b"\n"):
                client.sendall(part)

        sender = threading.Thread(target=send_slowly)
        sender.start()
        line = conn.read_request_line(8192)
        sender.join()

        assert line == b"GET /index.html HTTP/1.1\r\n"

    def test_empty_connection_returns_none(self, conn_pair):
        """Test that a client that sends nothing yields None."""
        conn, client = conn_pair
        client.close()

        assert conn.read_request_line(8192) is None

    def test_partial_line_on_close(self, conn_pair):
        """Test that a line without terminator is returned when the peer closes."""
        conn, client = conn_pair
        client.sendall(b"GET /a.txt")
        client.shutdown(socket.SHUT_WR)

        assert conn.read_request_line(8192) == b"GET /a.txt"

    def test_overflow_without_newline(self, conn_pair):
        """Test that too many bytes without a newline raise RequestTooLarge."""
        conn, client = conn_pair
        client.sendall(b"G" * 200)

        with pytest.raises(RequestTooLarge) as exc_info:
            conn.read_request_line(64)

        assert exc_info.value.limit == 64
        assert exc_info.value.size > 64

    def test_overflow_with_late_newline(self, conn_pair):
        """Test that a newline beyond the limit still counts as too large."""
        conn, client = conn_pair
        client.sendall(b"G" * 100 + b"\r\n")

        with pytest.raises(RequestTooLarge):
            conn.read_request_line(64)

    def test_line_exactly_at_limit(self, conn_pair):
        """Test that a line of exactly max_size bytes is accepted."""
        conn, client = conn_pair
        line = b"GET /" + b"a" * 57 + b"\r\n"
        assert len(line) == 64
        client.sendall(line)

        assert conn.read_request_line(64) == line

    def test_timeout(self, conn_pair):
        """Test that a stalled client raises TimeoutError when a timeout is set."""
        conn, client = conn_pair
        conn.socket.settimeout(0.1)

        with pytest.raises(TimeoutError):
            conn.read_request_line(8192)
