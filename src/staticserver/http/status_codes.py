"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on the wire, with reason phrases.

A static file server only needs a handful of them:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK                  - File found and streamed             │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Bad Request         - Request line exceeded the limit     │
    │  403   │ Forbidden           - Path escapes the web root           │
    │  404   │ Not Found           - Missing, unreadable or unresolvable │
    │  405   │ Method Not Allowed  - Anything other than GET             │
    └────────┴───────────────────────────────────────────────────────────┘

Q: "Why is a traversal attempt 403 and not 404?"
A: "The request was understood and the target may well exist, the server
   just refuses to serve it. When the path cannot even be canonicalized
   we can't tell, so that case falls back to 404."

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                    # File served

    BAD_REQUEST = 400           # Request line too long
    FORBIDDEN = 403             # Outside the web root
    NOT_FOUND = 404             # Missing or unopenable
    METHOD_NOT_ALLOWED = 405    # Only GET is served

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
}
