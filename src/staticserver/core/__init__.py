"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking and concurrency plumbing. Nothing in here knows about HTTP.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      CONNECTION ACCEPTOR                            │
    │  • Owns the listening socket (bind, listen, accept)                 │
    │  • STOPPED → RUNNING → DRAINING → STOPPED                           │
    │  • Hands every accepted socket to the pool                          │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ submit(handler, conn)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                │
    │  • min..max worker threads, bounded queue                           │
    │  • A full queue blocks the acceptor (backpressure)                  │
    │  • shutdown(wait=True) returns when every task is done              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ worker runs handler(conn)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                 │
    │  • Incremental request-line reader with a size cap                  │
    │  • sendall()-based writes that report failure instead of raising    │
    │  • Graceful close; context manager                                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .acceptor import ConnectionAcceptor, AcceptorState, ServerStartupError
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "ConnectionAcceptor",  # Listening socket + accept loop
    "AcceptorState",       # STOPPED / RUNNING / DRAINING
    "ServerStartupError",  # bind/listen failures
    "Connection",          # One client socket
    "ConnectionState",     # Connection lifecycle states
    "RequestTooLarge",     # Request line over the limit
    "ThreadPool",          # Bounded worker threads
]
