"""
=============================================================================
HTTP REQUEST LINE PARSING
=============================================================================

A static server only cares about the FIRST line of a request:

    GET /css/site.css HTTP/1.1\r\n
    └─┘ └───────────┘ └──────┘
   Method  Raw path   Protocol

Headers that follow are never looked at, and request bodies are not
supported, so parsing stops at the first line terminator.

=============================================================================
LENIENT BY DESIGN
=============================================================================

The request line is split on whitespace and taken at face value:

    "GET /index.html HTTP/1.1"   → ("GET", "/index.html", "HTTP/1.1")
    "GET /index.html"            → ("GET", "/index.html", "")
    "   "                        → ("", "", "")

Missing tokens become empty strings. The protocol token is kept for logging
but never validated. A bad method ends up as a 405, a bad path as a 403 or
404, so there is no separate "malformed request" outcome here.

=============================================================================
"""

from dataclasses import dataclass
from urllib.parse import unquote


# The one retrieval verb this server answers.
RETRIEVAL_METHODS = frozenset({"GET"})


@dataclass(frozen=True)
class ParsedRequest:
    """
    The parsed request line of one connection.

    Frozen: built once per connection and discarded after the handler
    returns.

    Attributes:
        method:           Request method exactly as sent ("GET", "POST", ...).
        raw_path:         Request target exactly as sent, query and all.
        protocol_version: Third token ("HTTP/1.1"), unchecked.
    """

    method: str
    raw_path: str
    protocol_version: str = ""

    @property
    def is_retrieval(self) -> bool:
        """True if the method is one the server answers with a file."""
        return self.method in RETRIEVAL_METHODS

    @property
    def path(self) -> str:
        """
        Filesystem-facing form of ``raw_path``.

        Drops the query string and decodes percent-escapes:

            "/docs/a%20b.txt?v=2"  →  "/docs/a b.txt"

        The result may still contain ".." segments; containment is the
        resolver's job, not the parser's.
        """
        return unquote(self.raw_path.partition("?")[0])

    def __str__(self) -> str:
        return " ".join(part for part in (self.method, self.raw_path, self.protocol_version) if part)


def parse_request_line(line: bytes | str) -> ParsedRequest:
    """
    Parse a raw request line into a ParsedRequest.

    Args:
        line: First line of the request, with or without its CRLF.
              Bytes are decoded as ISO-8859-1, which never fails.

    Returns:
        ParsedRequest with empty strings for any missing token.

    Examples:
        >>> parse_request_line(b"GET / HTTP/1.1\\r\\n")
        ParsedRequest(method='GET', raw_path='/', protocol_version='HTTP/1.1')
    """
    if isinstance(line, bytes):
        line = line.decode("iso-8859-1")

    tokens = line.split()
    tokens += [""] * (3 - len(tokens))
    method, raw_path, protocol_version = tokens[:3]

    return ParsedRequest(
        method=method,
        raw_path=raw_path,
        protocol_version=protocol_version,
    )
