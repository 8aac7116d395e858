"""
=============================================================================
STATICSERVER - Minimal Static-Content HTTP Server
=============================================================================

Serves files from one directory (the web root) over HTTP/1.1, using raw
sockets and a bounded worker thread pool. One request per connection, GET
only, and nothing outside the web root is ever served.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   client ──TCP──► ConnectionAcceptor ──► ThreadPool worker          │
    │                                              │                      │
    │                                              ▼                      │
    │                                     StaticFileHandler               │
    │                                      ├─ read request line           │
    │                                      ├─ PathResolver (web root)     │
    │                                      ├─ MIME lookup                 │
    │                                      └─ ResponseWriter → close      │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserver)
    ├── server.py            # StaticServer lifecycle, signals, logging
    ├── config.py            # ServerConfig dataclass
    ├── bootstrap.py         # Create the web root on first run
    ├── access_log.py        # One record per answered request
    ├── core/                # Networking and concurrency
    │   ├── acceptor.py      # Listening socket + accept loop
    │   ├── connection.py    # Client socket wrapper
    │   └── thread_pool.py   # Bounded worker pool
    ├── http/                # Protocol pieces
    │   ├── request.py       # Request line parsing
    │   ├── resolver.py      # URL path → file, containment check
    │   ├── response.py      # Status line, headers, body streaming
    │   ├── status_codes.py  # Status enum
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/
        └── static.py        # The per-connection handler

=============================================================================
QUICK START
=============================================================================

    from staticserver import StaticServer, ServerConfig

    StaticServer(ServerConfig(port=8080, web_root="./public")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import StaticServer
from .config import ServerConfig

__all__ = ["StaticServer", "ServerConfig", "__version__"]
