"""
Web root bootstrap.

Before the first start the web root may not exist yet. ``ensure_web_root``
creates it (with parents) and drops a small welcome page in as the default
document, so a fresh install answers "/" with 200 instead of 404.

Existing files are never overwritten.
"""

import logging
from pathlib import Path


logger = logging.getLogger(__name__)

WELCOME_PAGE = (
    "<html>\n"
    "<head><title>Welcome</title></head>\n"
    "<body>\n"
    "<h1>Welcome to StaticServer</h1>\n"
    "<p>Server is running successfully!</p>\n"
    "</body>\n"
    "</html>"
)


def ensure_web_root(web_root, default_document: str = "index.html") -> Path:
    """
    Create ``web_root`` and a placeholder default document if missing.

    Args:
        web_root: Directory to create.
        default_document: File name of the placeholder page.

    Returns:
        The web root as a Path.

    Raises:
        OSError: If the directory or file can't be created (e.g. the path
                 exists and is a regular file).
    """
    root = Path(web_root)
    root.mkdir(parents=True, exist_ok=True)

    index = root / default_document
    if not index.exists():
        index.write_text(WELCOME_PAGE, encoding="utf-8")
        logger.info(f"Created placeholder {index}")

    return root
