"""
Unit tests for request path resolution and web root containment.
"""

import os
from pathlib import Path

import pytest

from staticserver.http.resolver import PathResolver, is_within


@pytest.fixture
def resolver() -> PathResolver:
    return PathResolver()


class TestResolve:
    """Tests for PathResolver.resolve."""

    def test_existing_file(self, resolver, web_root):
        """Test a plain file below the root."""
        target = resolver.resolve("/style.css", str(web_root))

        assert target.found
        assert target.within_root
        assert target.absolute_path == (web_root / "style.css").resolve()

    def test_nested_file(self, resolver, web_root):
        target = resolver.resolve("/sub/page.html", web_root)

        assert target.found and target.within_root
        assert target.absolute_path.name == "page.html"

    def test_root_maps_to_default_document(self, resolver, web_root):
        """Test that '/' is the same as '/index.html'."""
        assert resolver.resolve("/", web_root) == resolver.resolve("/index.html", web_root)

    def test_custom_default_document(self, web_root):
        (web_root / "home.htm").write_text("home")
        target = PathResolver(default_document="home.htm").resolve("/", web_root)

        assert target.absolute_path.name == "home.htm"

    def test_missing_file_not_found(self, resolver, web_root):
        """Test that a missing file is reported as not found."""
        target = resolver.resolve("/nope.html", web_root)

        assert not target.found
        assert not target.within_root

    def test_dotdot_inside_root(self, resolver, web_root):
        """Test that '..' which stays inside the root is allowed."""
        target = resolver.resolve("/sub/../style.css", web_root)

        assert target.found and target.within_root
        assert target.absolute_path == (web_root / "style.css").resolve()

    def test_traversal_outside_root(self, resolver, web_root):
        """Test that escaping to an existing file outside the root is refused."""
        outside = web_root.parent / "outside.txt"
        outside.write_text("x")

        target = resolver.resolve("/../outside.txt", web_root)

        assert target.found
        assert not target.within_root

    def test_traversal_to_etc_passwd(self, resolver, web_root):
        depth = "/.." * len(web_root.parts)
        target = resolver.resolve(f"{depth}/etc/passwd", web_root)

        if Path("/etc/passwd").exists():
            assert target.found
            assert not target.within_root
        else:
            assert not target.found

    def test_sibling_with_shared_prefix(self, resolver, web_root):
        """Test that /www-secret is not considered inside /www."""
        target = resolver.resolve("/../www-secret/secret.txt", web_root)

        assert target.found
        assert not target.within_root

    def test_request_path_cannot_replace_root(self, resolver, web_root):
        """Test that a double slash still resolves below the root."""
        target = resolver.resolve("//etc/passwd", web_root)

        assert not target.found

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlink_escape(self, resolver, web_root):
        """Test that a symlink pointing outside the root is refused."""
        secret = web_root.parent / "www-secret"
        (web_root / "link").symlink_to(secret, target_is_directory=True)

        target = resolver.resolve("/link/secret.txt", web_root)

        assert target.found
        assert not target.within_root

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlink_inside_root(self, resolver, web_root):
        (web_root / "alias.css").symlink_to(web_root / "style.css")

        target = resolver.resolve("/alias.css", web_root)

        assert target.found and target.within_root
        assert target.absolute_path.name == "style.css"

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_root_is_symlink(self, resolver, web_root, tmp_path):
        """Test that a symlinked root is canonicalized before comparison."""
        link_root = tmp_path / "link-root"
        link_root.symlink_to(web_root, target_is_directory=True)

        target = resolver.resolve("/style.css", link_root)

        assert target.found and target.within_root

    def test_nul_byte_not_found(self, resolver, web_root):
        """Test that an embedded NUL is reported as not found, not raised."""
        target = resolver.resolve("/a\x00b", web_root)

        assert not target.found

    def test_missing_root(self, resolver, tmp_path):
        target = resolver.resolve("/index.html", tmp_path / "does-not-exist")

        assert not target.found


class TestIsWithin:
    """Tests for the segment-aware containment check."""

    def test_below(self):
        assert is_within(Path("/var/www/a/b.html"), Path("/var/www"))

    def test_root_itself(self):
        assert is_within(Path("/var/www"), Path("/var/www"))

    def test_prefix_sibling(self):
        assert not is_within(Path("/var/www-secret/x"), Path("/var/www"))

    def test_parent(self):
        assert not is_within(Path("/var"), Path("/var/www"))
