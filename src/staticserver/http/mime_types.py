"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type sent with a served file.

MIME types tell the client how to interpret the body (type/subtype):

    text/html                 → render as a web page
    image/png                 → display as an image
    application/octet-stream  → unknown binary, usually downloaded

The table is static and read-only, so worker threads can share it without
locking.

=============================================================================
LOOKUP RULES
=============================================================================

    1. Take everything from the LAST "." in the path
           "/css/site.min.css"  →  ".css"
           "/archive.tar.gz"    →  ".gz"
           "/README"            →  (no extension)
    2. Exact match against MIME_TYPES (".HTML" is not ".html")
    3. Anything else is application/octet-stream

Note the rule looks at the whole path string, not just the file name:
"/v1.2/notes" yields ".2/notes", which is simply not in the table.

=============================================================================
"""

from pathlib import Path


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are extensions with the leading dot. Lookup is case-sensitive.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT / DOCUMENTS
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".pdf": "application/pdf",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # -------------------------------------------------------------------------
    # FONTS / BINARY
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".wasm": "application/wasm",
    ".mp4": "video/mp4",
    ".zip": "application/zip",
}

# "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_extension(path: str | Path) -> str:
    """
    Return the substring starting at the last "." of ``path``.

    Returns an empty string when the path has no dot at all.

        >>> get_extension("/img/logo.png")
        '.png'
        >>> get_extension("Makefile")
        ''
    """
    path = str(path)
    dot = path.rfind(".")
    if dot == -1:
        return ""
    return path[dot:]


def get_mime_type(path: str | Path) -> str:
    """
    Get the MIME type for a file based on its extension.

    Args:
        path: File path or name.

    Returns:
        The registered MIME type, or application/octet-stream.

    Examples:
        >>> get_mime_type("/var/www/index.html")
        'text/html'

        >>> get_mime_type("data.xyz")
        'application/octet-stream'
    """
    return MIME_TYPES.get(get_extension(path), DEFAULT_MIME_TYPE)
