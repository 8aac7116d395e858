"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about HTTP syntax, but nothing about sockets or
threads:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py      Request line → ParsedRequest                        │
    │ resolver.py     Request path → ResolvedTarget (traversal check)     │
    │ mime_types.py   File extension → Content-Type                       │
    │ response.py     Status + headers + body → bytes on a Connection     │
    │ status_codes.py HTTPStatus enum with reason phrases                 │
    └─────────────────────────────────────────────────────────────────────┘

    REQUEST (only line 1 is read):    RESPONSE:
    ──────────────────────────────    ─────────
    GET /path HTTP/1.1\r\n            HTTP/1.1 200 OK\r\n
    Header: Value\r\n   (ignored)     Content-Type: ...\r\n
    \r\n                              ...\r\n
                                      \r\n
                                      [body]

=============================================================================
"""

from .request import ParsedRequest, parse_request_line, RETRIEVAL_METHODS
from .resolver import PathResolver, ResolvedTarget, is_within
from .response import ResponseWriter, ResponseHead, format_http_date, error_page
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, MIME_TYPES, DEFAULT_MIME_TYPE

__all__ = [
    # Request parsing
    "ParsedRequest",
    "parse_request_line",
    "RETRIEVAL_METHODS",

    # Path resolution
    "PathResolver",
    "ResolvedTarget",
    "is_within",

    # Response framing
    "ResponseWriter",
    "ResponseHead",
    "format_http_date",
    "error_page",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
]
