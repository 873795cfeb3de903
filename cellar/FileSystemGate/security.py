"""
FileSystemGate security module.

Provides the path sandbox: every client-supplied path is turned into an
absolute path under the configured root, or rejected.
"""

import os
import re


class PathSecurityError(Exception):
    """Raised when a path fails sandbox validation."""
    pass


def normalize_path(path: str) -> str:
    """
    Lexically normalize a path into an absolute one.

    Args:
        path: Raw path string

    Returns:
        Normalized absolute path
    """
    path = os.path.expanduser(path)
    # Resolve . and .. without touching the filesystem
    path = os.path.normpath(path)
    path = os.path.abspath(path)
    return path


def is_within_root(root: str, path: str) -> bool:
    """
    Check that ``path`` is ``root`` itself or one of its descendants.

    Both arguments must already be normalized absolute paths.
    """
    try:
        return os.path.commonpath([root, path]) == root
    except ValueError:
        # Different drives on Windows
        return False


def resolve_sandbox_path(root: str, relative_path: str) -> str:
    """
    Resolve a client-supplied path against the sandbox root.

    Args:
        root: Configured root directory
        relative_path: Path relative to the root (may carry leading slashes
            or ``..`` segments)

    Returns:
        Absolute, normalized path inside the root

    Raises:
        PathSecurityError: If the result would leave the root
    """
    root_path = normalize_path(root)

    if relative_path is None:
        relative_path = ""

    if "\0" in relative_path:
        raise PathSecurityError("Access denied: path contains a null byte")

    # Paths are always relative to the root, never to the host root
    relative_path = relative_path.lstrip("/\\")
    if not relative_path or relative_path == ".":
        return root_path

    target = os.path.normpath(os.path.join(root_path, relative_path))

    if not is_within_root(root_path, target):
        raise PathSecurityError(f"Access denied: path escapes the served directory: {relative_path}")

    return target


def relative_to_root(root: str, path: str) -> str:
    """Path of ``path`` relative to ``root`` using forward slashes ('' for the root)."""
    rel_path = os.path.relpath(path, normalize_path(root))
    if rel_path == ".":
        return ""
    return rel_path.replace(os.sep, "/")


def sanitize_filename(filename: str) -> str:
    """
    Reduce a client-supplied filename to a safe leaf name.

    Args:
        filename: Raw filename

    Returns:
        Sanitized filename, or an empty string if nothing usable remains
    """
    if not filename:
        return ""

    # Drop any directory part a client may send (both separator styles)
    filename = filename.replace("\\", "/").rsplit("/", 1)[-1]

    # Remove null bytes and other control characters
    filename = re.sub(r'[\x00-\x1f\x7f]', '', filename)

    if filename in (".", ".."):
        return ""

    # Limit length
    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        max_name_len = 255 - len(ext)
        filename = name[:max_name_len] + ext

    return filename


def is_valid_leaf_name(name: str) -> bool:
    """True when ``name`` is a single path component that cannot move a node."""
    if not name or name in (".", ".."):
        return False
    if "/" in name or "\\" in name or "\0" in name:
        return False
    return True
