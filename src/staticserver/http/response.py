"""
=============================================================================
RESPONSE FRAMING
=============================================================================

Formats and transmits responses over a client connection.

=============================================================================
WIRE FORMAT
=============================================================================

Every response this server sends has the same shape and the same five
headers, in this order:

    HTTP/1.1 200 OK\r\n                          ← Status line
    Content-Type: text/html\r\n
    Content-Length: 1024\r\n                     ← Exact body size
    Date: Tue, 01 Jan 2024 00:00:00 GMT\r\n      ← Always UTC
    Server: StaticServer/1.0\r\n
    Connection: close\r\n                        ← One request per TCP conn
    \r\n                                         ← End of headers
    <body bytes>

Connections are never reused, so "Connection: close" is unconditional and
the client can also treat EOF as end-of-body.

=============================================================================
THREE KINDS OF BODY
=============================================================================

    write_success()             File contents, streamed in bounded chunks.
                                Memory use is O(chunk), not O(file).

    write_error()               Generated HTML:
                                <html><body><h1>404 Not Found</h1></body></html>

    write_method_not_allowed()  Fixed plain text "Method Not Supported\\n".
                                Does not go through the HTML template.

=============================================================================
WRITE FAILURES
=============================================================================

Connection.send() returns False when the peer is gone. The writer stops
at the first failed send and abandons the response: there is no retry and
no partial-response recovery. Closing the socket is the caller's job.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Optional

from .status_codes import HTTPStatus
from ..core.connection import Connection


logger = logging.getLogger(__name__)


DEFAULT_SERVER_NAME = "StaticServer/1.0"
DEFAULT_CHUNK_SIZE = 4096

METHOD_NOT_ALLOWED_BODY = b"Method Not Supported\n"


@dataclass
class ResponseHead:
    """
    Status line plus headers of an outbound response.

    The body is not stored here: file bodies are streamed straight from
    disk, so only the head is ever serialized as a whole.
    """

    status: HTTPStatus = HTTPStatus.OK
    reason: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE

        Example: "HTTP/1.1 403 Forbidden"
        """
        return f"{self.version} {int(self.status)} {self.reason or self.status.phrase}"

    def to_bytes(self) -> bytes:
        """Serialize status line, headers and the blank separator line."""
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("iso-8859-1")


class ResponseWriter:
    """
    Writes complete responses to a Connection.

    Holds no per-request state, so one instance is shared by all workers.

    Usage:
        writer = ResponseWriter(server_name="StaticServer/1.0")

        with open(path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            writer.write_success(conn, f, "text/html", size)

        writer.write_error(conn, HTTPStatus.NOT_FOUND)
    """

    def __init__(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.server_name = server_name
        self.chunk_size = chunk_size

    def build_head(
        self,
        status: HTTPStatus,
        content_type: str,
        content_length: int,
        reason: Optional[str] = None,
    ) -> ResponseHead:
        """Build the head with the standard header set, in wire order."""
        return ResponseHead(
            status=status,
            reason=reason,
            headers={
                "Content-Type": content_type,
                "Content-Length": str(content_length),
                "Date": format_http_date(datetime.now(timezone.utc)),
                "Server": self.server_name,
                "Connection": "close",
            },
        )

    def write_success(
        self,
        conn: Connection,
        file: BinaryIO,
        content_type: str,
        size: int,
    ) -> int:
        """
        Send a 200 response and stream ``size`` bytes of ``file``.

        Reads at most ``size`` bytes even if the file grew after it was
        opened, so the body always agrees with Content-Length (a file that
        shrank simply ends early).

        Args:
            conn: Client connection.
            file: File object opened for binary reading.
            content_type: Value for the Content-Type header.
            size: Byte count reported in Content-Length.

        Returns:
            Number of body bytes actually sent.
        """
        head = self.build_head(HTTPStatus.OK, content_type, size)
        if not conn.send(head.to_bytes()):
            return 0

        sent = 0
        remaining = size
        while remaining > 0:
            chunk = file.read(min(self.chunk_size, remaining))
            if not chunk:
                break
            if not conn.send(chunk):
                logger.debug(f"[{conn.id}] Aborted response after {sent}/{size} bytes")
                break
            sent += len(chunk)
            remaining -= len(chunk)
        return sent

    def write_error(
        self,
        conn: Connection,
        status: HTTPStatus,
        reason: Optional[str] = None,
    ) -> int:
        """
        Send an error response with the generated HTML body.

        Args:
            conn: Client connection.
            status: Error status (400, 403, 404, ...).
            reason: Reason phrase; defaults to the status's standard phrase.

        Returns:
            Number of body bytes sent (0 if the send failed).
        """
        reason = reason or status.phrase
        body = error_page(int(status), reason)
        head = self.build_head(status, "text/html", len(body), reason=reason)
        if not conn.send(head.to_bytes() + body):
            return 0
        return len(body)

    def write_method_not_allowed(self, conn: Connection) -> int:
        """
        Send the 405 response with its fixed plain-text body.

        Returns:
            Number of body bytes sent (0 if the send failed).
        """
        body = METHOD_NOT_ALLOWED_BODY
        head = self.build_head(HTTPStatus.METHOD_NOT_ALLOWED, "text/plain", len(body))
        if not conn.send(head.to_bytes() + body):
            return 0
        return len(body)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def error_page(code: int, reason: str) -> bytes:
    """
    Build the minimal HTML error body.

        >>> error_page(404, "Not Found")
        b'<html><body><h1>404 Not Found</h1></body></html>'
    """
    return f"<html><body><h1>{code} {reason}</h1></body></html>".encode("utf-8")


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Tue, 01 Jan 2024 00:00:00 GMT

    HTTP dates are always GMT, and the day/month names must be English
    regardless of the process locale (strftime's %a/%b are not).

    Args:
        dt: Datetime to format (should be UTC).
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
