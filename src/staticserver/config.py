"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the static file server.

Only two settings change what the server SERVES: ``port`` and
``web_root``. Everything else is operational: where to bind, how many
worker threads, how chatty the logs are.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m staticserver 3000 ./public                       │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 HTTP_WEB_ROOT=./public                      │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THREAD SAFETY
=============================================================================

One ServerConfig is shared read-only by the accept loop and every worker
thread. It is frozen: derive a new one with dataclasses.replace() instead
of mutating it.

=============================================================================
"""

import os
from dataclasses import dataclass, replace
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    CONTENT
    - web_root, default_document

    NETWORK
    - host, port, backlog, buffer_size, max_request_line, timeout,
      accept_poll_interval

    THREAD POOL
    - min_workers, max_workers, queue_size

    IDENTITY / LOGGING
    - server_name, log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    web_root: str = "./www"
    """
    Directory below which every served file must live.
    Stored as an absolute path; symlinks are resolved per request.
    """

    default_document: str = "index.html"
    """File served for a request to "/"."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" = all IPv4 interfaces."""

    port: int = 8080
    """Port to listen on. 0 asks the OS for a free ephemeral port."""

    backlog: int = 10
    """Maximum number of connections queued by the kernel before accept()."""

    buffer_size: int = 4096
    """recv() size when reading the request, and chunk size when streaming files."""

    max_request_line: int = 8192
    """Longest request line accepted; longer ones get 400 Bad Request."""

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds.
    None = block forever: a silent client holds its worker until it leaves.
    """

    accept_poll_interval: float = 1.0
    """How often the accept loop wakes up to re-check its state."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on concurrently handled connections."""

    queue_size: int = 64
    """
    Accepted connections allowed to wait for a free worker.
    When full, the accept loop blocks (backpressure).
    """

    # ─────────────────────────────────────────────────────────────────────
    # IDENTITY / LOGGING
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "StaticServer/1.0"
    """Value of the Server response header."""

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-style) or 'json'."""

    def __post_init__(self):
        object.__setattr__(self, "web_root", os.path.abspath(self.web_root))

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST        Bind address           (default: 0.0.0.0)
        HTTP_PORT        Listen port            (default: 8080)
        HTTP_WEB_ROOT    Web root directory     (default: ./www)
        HTTP_WORKERS     Max worker threads     (default: 16; also sets min_workers to at most 4)
        HTTP_TIMEOUT     Socket timeout seconds (default: none)
        HTTP_LOG_LEVEL   Logging level          (default: INFO)
        HTTP_LOG_FORMAT  text or json           (default: text)

        =====================================================================

        Keyword ``overrides`` win over the environment (used by the CLI).

        Raises:
            ValueError: If a numeric variable is not a number.
        """
        timeout = os.getenv("HTTP_TIMEOUT")
        workers = int(os.getenv("HTTP_WORKERS", "16"))
        config = cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            web_root=os.getenv("HTTP_WEB_ROOT", "./www"),
            min_workers=min(4, workers),
            max_workers=workers,
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text").lower(),
        )
        return replace(config, **overrides) if overrides else config

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at startup rather than on the first request.

        Raises:
            ValueError: Describing the first invalid field.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.max_request_line < 16:
            raise ValueError("max_request_line must be >= 16")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.accept_poll_interval <= 0:
            raise ValueError("accept_poll_interval must be > 0")

        if not self.default_document or "/" in self.default_document:
            raise ValueError(f"Invalid default_document: {self.default_document!r}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}")
