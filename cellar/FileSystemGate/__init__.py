"""
FileSystemGate - Sandboxed file operations for Cellar.

Provides:
- Path sandboxing against the single served root
- Browse, download, upload, rename, delete and mkdir
- A change hook fired after every successful mutation (used to reindex)

Usage:
    from cellar import FileSystemGate

    # Initialize (call on startup)
    FileSystemGate.initialize("/srv/files", on_change=IndexGate.schedule_rebuild)

    # List a directory
    result = FileSystemGate.browse("photos/2024")

    # Create a folder
    result = FileSystemGate.mkdir("photos", "2025")
"""

import os
from typing import Any, BinaryIO, Callable, Dict, List, Optional

from cellar.shared.gate import GateErrorHandler, GateLogger, build_health_status

from .models import BROKEN_SYMLINK, ErrorKind, FileEntry, OperationResult
from .security import (
    PathSecurityError,
    normalize_path,
    resolve_sandbox_path,
    is_within_root,
)
from .operations import (
    browse_directory as op_browse_directory,
    resolve_download as op_resolve_download,
    save_upload as op_save_upload,
    rename_path as op_rename_path,
    delete_path as op_delete_path,
    make_directory as op_make_directory,
    describe_entry,
)

# Logger for this gate
_log = GateLogger.get("FileSystemGate")

# Module-level state
_root: Optional[str] = None
_on_change: Optional[Callable[[str], Any]] = None
_initialized: bool = False


class FileSystemGate:
    """
    Main interface for Cellar's file operations.

    All methods are class methods for easy access throughout the application.
    """

    @classmethod
    def initialize(cls, root: str, on_change: Optional[Callable[[str], Any]] = None) -> bool:
        """
        Initialize the file system gate.

        Args:
            root: Directory tree to serve
            on_change: Called with a short reason after every successful mutation

        Returns:
            True if initialization successful
        """
        global _root, _on_change, _initialized

        root_path = normalize_path(root)
        if not os.path.isdir(root_path):
            _log.error(f"Served directory does not exist: {root_path}")
            return False

        _root = root_path
        _on_change = on_change
        _initialized = True
        _log.info(f"Serving {root_path}")
        return True

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the gate is initialized."""
        return _initialized

    @classmethod
    def get_root(cls) -> str:
        """Get the served root, failing if the gate was never initialized."""
        if _root is None:
            raise RuntimeError("FileSystemGate not initialized. Call initialize(root) first.")
        return _root

    @classmethod
    def _notify_change(cls, result: OperationResult) -> OperationResult:
        """Fire the change hook for a successful mutation."""
        if result.success and _on_change is not None:
            try:
                _on_change(f"{result.operation}:{result.path}")
            except Exception as e:
                GateErrorHandler.handle("FileSystemGate", "change notification", e)
        return result

    # ==================== Health Checks ====================

    @classmethod
    def is_healthy(cls) -> bool:
        """Check if the gate is operational."""
        if not _initialized or _root is None:
            return False
        return os.path.isdir(_root) and os.access(_root, os.R_OK)

    @classmethod
    def get_health_status(cls) -> Dict[str, Any]:
        """Get detailed health information."""
        checks = {}
        details = {}

        if _initialized and _root is not None:
            checks["root_exists"] = os.path.isdir(_root)
            checks["root_readable"] = os.access(_root, os.R_OK)
            checks["root_writable"] = os.access(_root, os.W_OK)
            details["root"] = _root

        return build_health_status(
            gate_name="FileSystemGate",
            initialized=_initialized,
            dependencies=["filesystem"],
            checks=checks,
            details=details,
        )

    @classmethod
    def get_dependencies(cls) -> List[str]:
        """List external dependencies."""
        return ["filesystem"]

    # ==================== File Operations ====================

    @classmethod
    def browse(cls, relative_path: str = "") -> OperationResult:
        """List the immediate children of a directory."""
        return op_browse_directory(cls.get_root(), relative_path)

    @classmethod
    def download(cls, relative_path: str) -> OperationResult:
        """Validate a file for download; data carries its absolute path and name."""
        return op_resolve_download(cls.get_root(), relative_path)

    @classmethod
    def upload(
        cls,
        relative_dir: str,
        filename: Optional[str],
        stream: Optional[BinaryIO],
    ) -> OperationResult:
        """Write an uploaded file into a directory and schedule a reindex."""
        result = op_save_upload(cls.get_root(), relative_dir, filename, stream)
        return cls._notify_change(result)

    @classmethod
    def rename(cls, relative_path: str, new_name: Optional[str]) -> OperationResult:
        """Rename a node within its parent directory and schedule a reindex."""
        result = op_rename_path(cls.get_root(), relative_path, new_name)
        return cls._notify_change(result)

    @classmethod
    def delete(cls, relative_path: str) -> OperationResult:
        """Delete a file or directory tree and schedule a reindex."""
        result = op_delete_path(cls.get_root(), relative_path)
        return cls._notify_change(result)

    @classmethod
    def mkdir(cls, relative_path: str, name: Optional[str]) -> OperationResult:
        """Create a directory (with intermediates) and schedule a reindex."""
        result = op_make_directory(cls.get_root(), relative_path, name)
        return cls._notify_change(result)


# ==================== Module-level convenience functions ====================

def initialize(root: str, on_change: Optional[Callable[[str], Any]] = None) -> bool:
    """Initialize FileSystemGate."""
    return FileSystemGate.initialize(root, on_change)


def is_initialized() -> bool:
    """Check if FileSystemGate is initialized."""
    return FileSystemGate.is_initialized()


def get_health_status() -> Dict[str, Any]:
    """Get FileSystemGate health status."""
    return FileSystemGate.get_health_status()


def browse(relative_path: str = "") -> OperationResult:
    """List a directory."""
    return FileSystemGate.browse(relative_path)


def download(relative_path: str) -> OperationResult:
    """Validate a download target."""
    return FileSystemGate.download(relative_path)


def upload(relative_dir: str, filename: Optional[str], stream: Optional[BinaryIO]) -> OperationResult:
    """Store an uploaded file."""
    return FileSystemGate.upload(relative_dir, filename, stream)


def rename(relative_path: str, new_name: Optional[str]) -> OperationResult:
    """Rename a node."""
    return FileSystemGate.rename(relative_path, new_name)


def delete(relative_path: str) -> OperationResult:
    """Delete a node."""
    return FileSystemGate.delete(relative_path)


def mkdir(relative_path: str, name: Optional[str]) -> OperationResult:
    """Create a directory."""
    return FileSystemGate.mkdir(relative_path, name)


__all__ = [
    # Class
    "FileSystemGate",
    # Health
    "initialize",
    "is_initialized",
    "get_health_status",
    # File operations
    "browse",
    "download",
    "upload",
    "rename",
    "delete",
    "mkdir",
    "describe_entry",
    # Models
    "ErrorKind",
    "FileEntry",
    "OperationResult",
    "BROKEN_SYMLINK",
    # Sandbox
    "PathSecurityError",
    "resolve_sandbox_path",
    "is_within_root",
    "normalize_path",
]
