"""
Tests for the FileSystemGate path sandbox.
"""

import os

import pytest

from cellar.FileSystemGate.security import (
    PathSecurityError,
    is_valid_leaf_name,
    is_within_root,
    relative_to_root,
    resolve_sandbox_path,
    sanitize_filename,
)


class TestResolveSandboxPath:
    """Tests for resolve_sandbox_path."""

    def test_empty_path_is_root(self, temp_dir):
        """Empty, '.', and bare slashes all denote the root."""
        root = str(temp_dir)
        for raw in ("", ".", "/", "\\", "///"):
            assert resolve_sandbox_path(root, raw) == root

    def test_none_is_root(self, temp_dir):
        """A missing path denotes the root."""
        assert resolve_sandbox_path(str(temp_dir), None) == str(temp_dir)

    def test_nested_path(self, temp_dir):
        """Should join and normalize nested paths."""
        resolved = resolve_sandbox_path(str(temp_dir), "a/./b/../c")

        assert resolved == os.path.join(str(temp_dir), "a", "c")

    def test_leading_slash_is_relative_to_root(self, temp_dir):
        """An absolute-looking path stays under the root."""
        resolved = resolve_sandbox_path(str(temp_dir), "/etc/passwd")

        assert resolved == os.path.join(str(temp_dir), "etc", "passwd")

    def test_parent_traversal_rejected(self, temp_dir):
        """Paths climbing out of the root are rejected, not clamped."""
        for raw in ("..", "../etc/passwd", "docs/../../secret", "a/b/../../../x"):
            with pytest.raises(PathSecurityError):
                resolve_sandbox_path(str(temp_dir), raw)

    def test_traversal_that_returns_inside_is_allowed(self, temp_dir):
        """'..' that stays inside the root is fine."""
        resolved = resolve_sandbox_path(str(temp_dir), "docs/../readme.txt")

        assert resolved == os.path.join(str(temp_dir), "readme.txt")

    def test_sibling_prefix_rejected(self, temp_dir):
        """A sibling sharing the root's name prefix is outside the root."""
        root = temp_dir / "data"
        root.mkdir()
        (temp_dir / "data-other").mkdir()

        with pytest.raises(PathSecurityError):
            resolve_sandbox_path(str(root), "../data-other/file.txt")

    def test_null_byte_rejected(self, temp_dir):
        """Paths containing NUL are rejected."""
        with pytest.raises(PathSecurityError):
            resolve_sandbox_path(str(temp_dir), "file\0.txt")

    def test_root_with_trailing_slash(self, temp_dir):
        """Root given with a trailing separator is normalized."""
        resolved = resolve_sandbox_path(str(temp_dir) + os.sep, "x")

        assert resolved == os.path.join(str(temp_dir), "x")


class TestIsWithinRoot:
    """Tests for is_within_root."""

    def test_root_itself(self):
        assert is_within_root("/srv/data", "/srv/data") is True

    def test_descendant(self):
        assert is_within_root("/srv/data", "/srv/data/a/b") is True

    def test_sibling_prefix(self):
        assert is_within_root("/srv/data", "/srv/data-other") is False

    def test_parent(self):
        assert is_within_root("/srv/data", "/srv") is False


class TestRelativeToRoot:
    """Tests for relative_to_root."""

    def test_root_is_empty(self, temp_dir):
        assert relative_to_root(str(temp_dir), str(temp_dir)) == ""

    def test_nested(self, temp_dir):
        path = os.path.join(str(temp_dir), "a", "b.txt")

        assert relative_to_root(str(temp_dir), path) == "a/b.txt"


class TestFilenames:
    """Tests for filename sanitizing and leaf-name validation."""

    def test_sanitize_strips_directories(self):
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("C:\\Users\\me\\photo.jpg") == "photo.jpg"

    def test_sanitize_strips_control_chars(self):
        assert sanitize_filename("bad\x00name\x1f.txt") == "badname.txt"

    def test_sanitize_rejects_dots(self):
        assert sanitize_filename(".") == ""
        assert sanitize_filename("..") == ""
        assert sanitize_filename("") == ""

    def test_sanitize_limits_length(self):
        result = sanitize_filename("a" * 300 + ".txt")

        assert len(result) == 255
        assert result.endswith(".txt")

    def test_valid_leaf_names(self):
        assert is_valid_leaf_name("report.pdf") is True
        assert is_valid_leaf_name(".hidden") is True

    def test_invalid_leaf_names(self):
        for name in ("", ".", "..", "a/b", "a\\b", "../x", "nul\0"):
            assert is_valid_leaf_name(name) is False
