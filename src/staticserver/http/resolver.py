"""
=============================================================================
PATH RESOLUTION AND TRAVERSAL CONTAINMENT
=============================================================================

Turns a request path into a filesystem path and decides whether the server
is allowed to touch it. This is the ONLY security boundary of the server:
no file is opened unless ``within_root`` is true.

=============================================================================
SECURITY: PATH TRAVERSAL ATTACK
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../etc/passwd HTTP/1.1                                     │
    │                                                                     │
    │  root      = /var/www                                               │
    │  candidate = /var/www/../../etc/passwd                              │
    │  canonical = /etc/passwd              ← outside root → 403          │
    └─────────────────────────────────────────────────────────────────────┘

Canonicalization (``Path.resolve(strict=True)``) folds "..", follows
symlinks and collapses "//", so a symlink inside the root that points
outside it is caught the same way.

=============================================================================
THE SIBLING-DIRECTORY TRAP
=============================================================================

A raw string-prefix test is NOT a containment test:

    root      = /var/www
    canonical = /var/www-secret/key.pem

    "/var/www-secret/key.pem".startswith("/var/www")   →  True   (WRONG)
    Path("/var/www-secret/key.pem").relative_to(root)  →  ValueError

We compare path SEGMENTS with ``relative_to``, so only the root itself and
paths strictly below it pass.

=============================================================================
RESOLUTION VS. EXISTENCE
=============================================================================

``strict=True`` makes canonicalization fail for anything that does not
exist (or can't be stat'ed, or is a broken symlink). Those targets come back
with ``found=False`` and the handler answers 404, not 403: we cannot say
where a nonexistent path "really" points.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path


logger = logging.getLogger(__name__)


DEFAULT_DOCUMENT = "index.html"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Result of resolving one request path.

    Attributes:
        absolute_path: Canonical path when ``found``; otherwise the
                       uncanonicalized candidate (for logging only).
        within_root:   True iff the canonical path is the root or below it.
                       Always False when not ``found``.
        found:         True iff canonicalization succeeded.
    """

    absolute_path: Path
    within_root: bool
    found: bool = True


class PathResolver:
    """
    Resolves request paths against a web root.

    Stateless apart from the default document name, so a single instance is
    shared by every worker thread.

    Usage:
        resolver = PathResolver()
        target = resolver.resolve("/css/site.css", "/var/www")
        if not target.found:
            ...  # 404
        elif not target.within_root:
            ...  # 403
        else:
            open(target.absolute_path, "rb")
    """

    def __init__(self, default_document: str = DEFAULT_DOCUMENT):
        self.default_document = default_document

    def resolve(self, request_path: str, root: str | Path) -> ResolvedTarget:
        """
        Resolve ``request_path`` against ``root``.

        Args:
            request_path: Decoded request path ("/", "/img/a.png", ...).
            root: Web root directory.

        Returns:
            ResolvedTarget. Never raises for bad input.
        """
        if request_path == "/":
            request_path = "/" + self.default_document

        # Plain string concatenation, not Path "/": an absolute request path
        # must not replace the root.
        candidate = Path(f"{root}{request_path}")

        try:
            canonical_root = Path(root).resolve(strict=True)
            canonical = candidate.resolve(strict=True)
        except (OSError, RuntimeError, ValueError) as e:
            # OSError: missing / permission denied / broken symlink
            # RuntimeError: symlink loop (older Pythons)
            # ValueError: embedded NUL byte
            logger.debug(f"Cannot canonicalize {candidate}: {e}")
            return ResolvedTarget(absolute_path=candidate, within_root=False, found=False)

        return ResolvedTarget(
            absolute_path=canonical,
            within_root=is_within(canonical, canonical_root),
        )


def is_within(path: Path, root: Path) -> bool:
    """
    Segment-aware containment test for two canonical paths.

        >>> is_within(Path("/var/www/a.html"), Path("/var/www"))
        True
        >>> is_within(Path("/var/www-evil/a.html"), Path("/var/www"))
        False
    """
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
