"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the request handler
needs: read the request line, send bytes, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP only guarantees that bytes arrive IN ORDER and INTACT. It does not
preserve the boundaries of the sender's writes:

    Client sends:
        "GET /index.html HTTP/1.1\r\nHost: x\r\n\r\n"

    Server might receive:
        recv() → "GET /ind"
        recv() → "ex.html HTTP/1.1\r\nHo"
        recv() → "st: x\r\n\r\n"

A single recv() is therefore NOT guaranteed to hold the whole request
line. read_request_line() keeps reading until it sees "\n":

    ┌─────────────────────────────────────────────────────────────────┐
    │                  read_request_line() Flow                       │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                 │
    │   while "\n" not in buffer:                                     │
    │       chunk = recv(buffer_size)                                 │
    │       │                                                         │
    │       ├── b""  and buffer empty  → return None (client left)    │
    │       ├── b""  and buffer partial → return partial line         │
    │       └── data → buffer += data                                 │
    │                  └── len(buffer) > limit → RequestTooLarge      │
    │                                                                 │
    │   return buffer up to and including "\n"                        │
    │                                                                 │
    └─────────────────────────────────────────────────────────────────┘

The byte cap keeps a client from streaming an endless line into memory.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

The server never keeps connections alive. Each Connection goes through
its states exactly once:

    NEW ──► READING ──► WRITING ──► CLOSING ──► CLOSED
              │                        ▲
              └── client sent nothing ─┘

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)

# Upper bounds on reading leftover client data while closing
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Tracked for logging and to make close() idempotent.
    """
    NEW = "new"            # Just accepted, nothing read yet
    READING = "reading"    # Reading the request line
    WRITING = "writing"    # Sending the response
    CLOSING = "closing"    # Shutdown sequence in progress
    CLOSED = "closed"      # Socket released


class RequestTooLarge(ValueError):
    """Raised when the request line exceeds the configured byte limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Request line too large: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


@dataclass
class Connection:
    """
    Represents one accepted client connection.

    Owned by exactly one worker thread for its whole life, and closed
    unconditionally when that worker is done (use it as a context manager).

        with conn:
            line = conn.read_request_line(8192)
            conn.send(response_bytes)
        # socket closed here, even if an exception escaped

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier used in log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 4096
    timeout: Optional[float] = None   # None = block forever

    def __post_init__(self):
        """Put the socket in blocking mode with the configured timeout."""
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Client IP address ("" for non-IP sockets)."""
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request_line(self, max_size: int) -> Optional[bytes]:
        """
        Read the first line of the request.

        Args:
            max_size: Maximum number of bytes to buffer while looking for
                      the line terminator.

        Returns:
            The line including its terminator, a partial line if the client
            closed mid-line, or None if the client sent nothing at all.

        Raises:
            RequestTooLarge: If ``max_size`` bytes arrive without a "\\n".
            TimeoutError: If a timeout is configured and the client stalls.
        """
        self.state = ConnectionState.READING
        buffer = b""

        while b"\n" not in buffer:
            chunk = self._recv()
            if not chunk:
                break  # Client closed (or reset) the connection

            buffer += chunk

            if b"\n" not in buffer and len(buffer) > max_size:
                raise RequestTooLarge(len(buffer), max_size)

        if not buffer:
            return None

        line_end = buffer.find(b"\n")
        if line_end == -1:
            return buffer  # Partial line, client hung up
        if line_end + 1 > max_size:
            raise RequestTooLarge(line_end + 1, max_size)
        return buffer[:line_end + 1]

    def _recv(self) -> bytes:
        """
        Receive data from the socket.

        Returns:
            Received bytes, or empty bytes if the connection was closed or
            reset by the peer.
        """
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        except socket.timeout:
            raise TimeoutError(f"[{self.id}] Request read timeout")

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Uses sendall() so a short write never silently truncates the
        response.

        Returns:
            True if the data was handed to the kernel, False if the
            connection is gone.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, the client sees end-of-response
        2. drain what the client still sends (rest of its headers),
           so the kernel doesn't answer our FIN with a RST that could
           destroy unread response bytes on the client side.
           Bounded by DRAIN_TIMEOUT seconds and DRAIN_LIMIT bytes in total.
        3. close(): release the file descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        # The whole drain is bounded in time and bytes, however the client trickles
        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(1024)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Timeout or reset, we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Always close; never suppress the exception."""
        self.close()
        return False
