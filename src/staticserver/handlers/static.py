"""
=============================================================================
STATIC FILE REQUEST HANDLER
=============================================================================

Runs on a worker thread, once per accepted connection: read the request
line, decide what to answer, answer it, close.

=============================================================================
DECISION TREE
=============================================================================

    read_request_line()
        │
        ├── nothing received ..................... close, no response
        ├── line too long ........................ 400 Bad Request
        │
        └── parse "METHOD PATH PROTOCOL"
                │
                ├── METHOD != GET ................ 405 (plain-text body)
                │
                └── resolve PATH under web root
                        │
                        ├── can't canonicalize ... 404 Not Found
                        ├── outside web root ..... 403 Forbidden
                        ├── not a regular file ... 404 Not Found
                        ├── open() fails ......... 404 Not Found
                        └── 200 OK, file streamed in chunks

Whatever happens, the connection is closed on the way out (``with conn``).
Exceptions that escape are logged by the pool worker.

=============================================================================
SECURITY
=============================================================================

The 403 check happens BEFORE any file is opened or even stat'ed: a path
that canonicalizes outside the root is refused whether or not it exists.
See http/resolver.py for how containment is decided.

    GET /../../etc/passwd       → 403 (exists, but outside the root)
    GET /../../no/such/file     → 404 (can't canonicalize a missing path)

=============================================================================
"""

import os
import stat
import time
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from ..access_log import AccessLogEntry, log_access
from ..config import ServerConfig
from ..core.connection import Connection, RequestTooLarge
from ..http.mime_types import get_mime_type
from ..http.request import ParsedRequest, parse_request_line
from ..http.resolver import PathResolver
from ..http.response import ResponseWriter
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Handler for one connection of the static file server.

    Holds only read-only collaborators (config, resolver, writer), so one
    instance is shared by every worker thread without locking.

    Usage:
        handler = StaticFileHandler(ServerConfig(web_root="/var/www"))
        acceptor = ConnectionAcceptor(config, handler.handle)
    """

    def __init__(
        self,
        config: ServerConfig,
        resolver: Optional[PathResolver] = None,
        writer: Optional[ResponseWriter] = None,
    ):
        self.config = config
        self.resolver = resolver or PathResolver(default_document=config.default_document)
        self.writer = writer or ResponseWriter(
            server_name=config.server_name,
            chunk_size=config.buffer_size,
        )

    def handle(self, conn: Connection) -> None:
        """
        Handle one connection end to end.

        The connection is always closed before this returns, including
        when an exception propagates.
        """
        with conn:
            try:
                line = conn.read_request_line(self.config.max_request_line)
            except RequestTooLarge as e:
                logger.warning(f"[{conn.id}] {e} from {conn.client_ip}")
                sent = self.writer.write_error(conn, HTTPStatus.BAD_REQUEST)
                self._log(conn, "-", HTTPStatus.BAD_REQUEST, sent)
                return
            except TimeoutError:
                logger.info(f"[{conn.id}] Timed out waiting for request from {conn.client_ip}")
                return

            if line is None:
                return  # Client connected and left without a word

            request = parse_request_line(line)

            if request.is_retrieval:
                status, sent = self._handle_get(conn, request)
            else:
                status = HTTPStatus.METHOD_NOT_ALLOWED
                sent = self.writer.write_method_not_allowed(conn)

            self._log(conn, str(request), status, sent)

    def _handle_get(self, conn: Connection, request: ParsedRequest) -> Tuple[HTTPStatus, int]:
        """
        Serve a GET request.

        Returns:
            (status sent, body bytes sent)
        """
        target = self.resolver.resolve(request.path, self.config.web_root)

        if not target.found:
            return self._error(conn, HTTPStatus.NOT_FOUND)

        if not target.within_root:
            logger.warning(
                f"[{conn.id}] Path traversal attempt from {conn.client_ip}: "
                f"{request.raw_path!r} -> {target.absolute_path}"
            )
            return self._error(conn, HTTPStatus.FORBIDDEN)

        path = target.absolute_path

        # Directories, FIFOs and devices are never served
        try:
            if not stat.S_ISREG(os.stat(path).st_mode):
                return self._error(conn, HTTPStatus.NOT_FOUND)
            file = open(path, "rb")
        except OSError as e:
            logger.debug(f"[{conn.id}] Cannot open {path}: {e}")
            return self._error(conn, HTTPStatus.NOT_FOUND)

        with file:
            size = os.fstat(file.fileno()).st_size
            sent = self.writer.write_success(conn, file, get_mime_type(path), size)

        return HTTPStatus.OK, sent

    def _error(self, conn: Connection, status: HTTPStatus) -> Tuple[HTTPStatus, int]:
        return status, self.writer.write_error(conn, status)

    def _log(self, conn: Connection, request_line: str, status: HTTPStatus, sent: int):
        log_access(
            AccessLogEntry(
                connection_id=conn.id,
                client_ip=conn.client_ip,
                request_line=request_line,
                status_code=int(status),
                bytes_sent=sent,
                duration_ms=(time.time() - conn.created_at) * 1000,
                timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            ),
            self.config.log_format,
        )
