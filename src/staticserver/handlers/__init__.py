"""
Request handlers.

Only one kind of content is served: files below the web root.
"""

from .static import StaticFileHandler

__all__ = ["StaticFileHandler"]
