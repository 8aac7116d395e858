"""
=============================================================================
STATIC FILE SERVER
=============================================================================

The public face of the package: wires configuration, the connection
acceptor and the static file handler together, and owns the process-level
concerns (logging setup, signals).

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          StaticServer                               │
    │                                                                     │
    │   ServerConfig ──────────────┬──────────────────────┐               │
    │                              ▼                      ▼               │
    │                    ┌───────────────────┐   ┌──────────────────┐     │
    │   SIGINT/SIGTERM──►│ConnectionAcceptor │──►│StaticFileHandler │     │
    │     (stop)         │ socket + pool     │   │ resolve + write  │     │
    │                    └───────────────────┘   └──────────────────┘     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    server = StaticServer(config)
    server.start()           bind + listen, install signal handlers
    server.serve_forever()   accept until stop(), then drain in-flight work
    server.stop()            from anywhere (other thread, signal handler)

    run() = logging setup + start() + serve_forever(), with Ctrl+C treated
    as a stop. This is what the CLI calls.

For tests, use the server as a context manager and run serve_forever() in
a background thread:

    with StaticServer(ServerConfig(port=0, web_root=tmp)) as server:
        threading.Thread(target=server.serve_forever).start()
        server.wait_until_ready(5)
        host, port = server.server_address

=============================================================================
"""

import signal
import logging
import threading
from typing import Optional, Tuple

from .config import ServerConfig
from .core.acceptor import AcceptorState, ConnectionAcceptor
from .handlers.static import StaticFileHandler


logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class StaticServer:
    """
    Minimal static-content HTTP server.

    Serves regular files below ``config.web_root`` in answer to GET requests.
    One request per connection; every response closes the connection.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        install_signal_handlers: bool = True,
    ):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            install_signal_handlers: Route SIGINT/SIGTERM to stop(). Only
                honoured when start() runs on the main thread.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = StaticFileHandler(self.config)
        self._acceptor = ConnectionAcceptor(self.config, self.handler.handle)

        self._install_signal_handlers = install_signal_handlers
        self._previous_handlers: dict = {}
        self._ready = threading.Event()
        self._served = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def server_address(self) -> Tuple[str, int]:
        """The (host, port) actually bound."""
        return self._acceptor.server_address

    @property
    def in_flight(self) -> int:
        """Connections currently being handled."""
        return self._acceptor.in_flight

    @property
    def is_running(self) -> bool:
        return self._acceptor.is_running

    @property
    def acceptor(self) -> ConnectionAcceptor:
        return self._acceptor

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        """
        Bind, listen and start the worker pool.

        Raises:
            ServerStartupError: If the listening socket can't be set up.
        """
        self._acceptor.start()
        self._setup_signals()

        host, port = self.server_address
        logger.info(f"Serving {self.config.web_root} on http://{host}:{port}/")
        self._ready.set()

    def serve_forever(self):
        """
        Accept connections until stop() is called.

        Returns once every in-flight connection has been answered.
        """
        self._served = True
        try:
            self._acceptor.serve_forever()
        finally:
            self._ready.clear()
            self._restore_signals()
            logger.info("Server stopped")

    def run(self):
        """
        Start the server and block until it is stopped (Ctrl+C, SIGTERM).

        Raises:
            ServerStartupError: If the listening socket can't be set up.
        """
        self._setup_logging()
        self.start()
        try:
            self.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
            self.stop()

    def stop(self):
        """
        Stop accepting connections. Idempotent and non-blocking.

        In-flight connections are still answered; serve_forever() returns
        after they finish.
        """
        self._acceptor.stop()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until start() has completed.

        Returns:
            True if the server is listening, False on timeout.
        """
        return self._ready.wait(timeout)

    def __enter__(self) -> "StaticServer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        if not self._served and self._acceptor.state is not AcceptorState.STOPPED:
            # Started but never served: nobody else will release the pool
            self._acceptor.drain()
        self._restore_signals()

    # =========================================================================
    # PROCESS-LEVEL SETUP
    # =========================================================================

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("staticserver").setLevel(level)

    def _setup_signals(self):
        """Route SIGINT/SIGTERM to stop(). Signals can only be set from the main thread."""
        if not self._install_signal_handlers:
            return
        if threading.current_thread() is not threading.main_thread():
            return

        for sig in SHUTDOWN_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)

    def _restore_signals(self):
        if not self._previous_handlers:
            return
        if threading.current_thread() is not threading.main_thread():
            return

        for sig, previous in self._previous_handlers.items():
            signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
        self._previous_handlers.clear()

    def _handle_signal(self, signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
        self.stop()
