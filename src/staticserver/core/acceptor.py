"""
=============================================================================
CONNECTION ACCEPTOR
=============================================================================

Owns the listening socket, accepts connections, and hands each one to a
worker thread.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create the listening socket
    2. setsockopt  SO_REUSEADDR (restart without "Address already in use")
                   TCP_NODELAY  (inherited by accepted sockets: no Nagle
                                 delay on the response head)
    3. bind()      Reserve HOST:PORT
    4. listen()    Kernel starts queueing connections (backlog)
    5. accept()    One new socket per client; the listener keeps listening

Any failure in steps 1-4 is a configuration problem (port taken, no
permission, bad address). It is raised as ServerStartupError and never
retried.

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────┐  start()   ┌─────────┐  stop()   ┌──────────┐  in-flight  ┌─────────┐
    │ STOPPED │──────────►│ RUNNING │─────────►│ DRAINING │────done────►│ STOPPED │
    └─────────┘            └─────────┘           └──────────┘             └─────────┘
                            accept loop           no new accepts,
                                                  workers finish

The state lives in one enum guarded by a lock. stop() does two things:

    1. RUNNING → DRAINING
    2. shutdown() + close() the listening socket

Step 2 makes a blocked accept() fail immediately. The loop sees the error,
sees it is no longer RUNNING, and leaves quietly. The accept() poll
interval is only a fallback for platforms where closing a socket does not
wake a thread blocked on it.

=============================================================================
ERRORS IN THE LOOP
=============================================================================

    accept() fails while RUNNING   → log it, keep accepting (EMFILE,
                                     ECONNABORTED and friends are transient)
    accept() fails after stop()    → expected, exit the loop silently

=============================================================================
"""

import socket
import logging
import threading
from enum import Enum
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection
from .thread_pool import ThreadPool


logger = logging.getLogger(__name__)


class ServerStartupError(OSError):
    """Socket creation, option setting, bind or listen failed."""


class AcceptorState(Enum):
    """Lifecycle states of the ConnectionAcceptor."""
    STOPPED = "stopped"
    RUNNING = "running"
    DRAINING = "draining"


class ConnectionAcceptor:
    """
    Accept loop plus the worker pool it dispatches to.

    ┌─────────────────────────────────────────────────────────────────────┐
    │    start()            create socket, bind, listen, start pool       │
    │        │                                                            │
    │    serve_forever()    while RUNNING:                                │
    │        │                  accept() → Connection → pool.submit()     │
    │        │              pool.shutdown(wait=True)                      │
    │        │                                                            │
    │    stop()             (any thread) RUNNING → DRAINING, close socket │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        acceptor = ConnectionAcceptor(config, handler.handle)
        acceptor.start()            # raises ServerStartupError
        acceptor.serve_forever()    # blocks until stop() and drain
    """

    def __init__(self, config: ServerConfig, handler: Callable[[Connection], None]):
        """
        Args:
            config: Server configuration (host, port, backlog, pool sizes).
            handler: Called once per accepted connection, on a worker thread.
                     The handler owns the connection and must close it.
        """
        self.config = config
        self.handler = handler

        self._socket: Optional[socket.socket] = None
        self._state = AcceptorState.STOPPED
        self._state_lock = threading.RLock()  # stop() may run in a signal handler

        self._pool = ThreadPool(
            min_workers=config.min_workers,
            max_workers=config.max_workers,
            queue_size=config.queue_size,
        )

    @property
    def state(self) -> AcceptorState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is AcceptorState.RUNNING

    @property
    def server_address(self) -> Tuple[str, int]:
        """
        The (host, port) actually bound.

        Differs from the config when port 0 was requested.
        """
        if self._socket is not None:
            try:
                return self._socket.getsockname()[:2]
            except OSError:
                pass
        return (self.config.host, self.config.port)

    @property
    def in_flight(self) -> int:
        """Connections currently being handled by a worker."""
        return self._pool.busy_workers

    @property
    def pool(self) -> ThreadPool:
        return self._pool

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

            # accept() wakes up at least this often to re-check the state
            sock.settimeout(self.config.accept_poll_interval)
        except OSError:
            sock.close()
            raise
        return sock

    def start(self):
        """
        Create the listening endpoint and start the worker pool.

        Raises:
            ServerStartupError: If the socket can't be created, configured,
                                bound or put into listening mode.
            RuntimeError: If the acceptor is not STOPPED.
        """
        with self._state_lock:
            if self._state is not AcceptorState.STOPPED:
                raise RuntimeError(f"Cannot start acceptor in state {self._state.value}")

            address = (self.config.host, self.config.port)
            sock = None
            try:
                sock = self._create_socket()
                sock.bind(address)
                sock.listen(self.config.backlog)
            except OSError as e:
                if sock is not None:
                    sock.close()
                logger.error(f"Failed to listen on {address[0]}:{address[1]}: {e}")
                raise ServerStartupError(
                    e.errno, f"Failed to listen on {address[0]}:{address[1]}: {e.strerror or e}"
                ) from e

            self._socket = sock
            self._pool.start()
            self._state = AcceptorState.RUNNING

        host, port = self.server_address
        logger.info(f"Listening on {host}:{port} (backlog {self.config.backlog})")

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def serve_forever(self):
        """
        Accept connections until stop() is called, then drain.

        Returns only after every dispatched connection has been handled.
        """
        with self._state_lock:
            if self._state is AcceptorState.STOPPED:
                raise RuntimeError("Acceptor not started")
            sock = self._socket  # None if stop() already ran; the loop is skipped
        try:
            while self._state is AcceptorState.RUNNING:
                try:
                    client_socket, client_address = sock.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._state is AcceptorState.RUNNING:
                        logger.error(f"Accept error: {e}")
                        continue
                    break  # Listening socket closed by stop()

                logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                )

                # Blocks while the pool is saturated
                self._pool.submit(self.handler, args=(conn,))
        finally:
            self.drain()

    def drain(self):
        """Close the listener (if still open) and wait for in-flight work."""
        with self._state_lock:
            self._state = AcceptorState.DRAINING
            self._close_socket()

        in_flight = self._pool.busy_workers + self._pool.queue_size
        if in_flight:
            logger.info(f"Waiting for {in_flight} in-flight connection(s) to finish...")
        self._pool.shutdown(wait=True)

        with self._state_lock:
            self._state = AcceptorState.STOPPED
        logger.info("Acceptor stopped")

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def stop(self):
        """
        Stop accepting new connections.

        Safe to call from any thread (or a signal handler) and more than
        once. Does not wait: serve_forever() returns once the drain is done.
        """
        with self._state_lock:
            if self._state is not AcceptorState.RUNNING:
                return
            logger.info("Stopping acceptor...")
            self._state = AcceptorState.DRAINING
            self._close_socket()

    def _close_socket(self):
        """Shut down and close the listening socket. Caller holds the lock."""
        if self._socket is None:
            return
        try:
            self._socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Not connected; close() below is what matters
        try:
            self._socket.close()
        except OSError:
            pass
        self._socket = None
