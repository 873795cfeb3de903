"""
IndexGate - In-memory index of the served tree.

Provides:
- A full-tree snapshot (files, directories, totals)
- Synchronous rebuilds for explicit requests
- Background rebuilds after mutations, coalesced on a worker thread

Readers always see a complete snapshot. After a mutation the snapshot
may briefly lag the filesystem until the background rebuild lands.

Usage:
    from cellar import IndexGate

    IndexGate.initialize("/srv/files")
    index = IndexGate.get_index()
    IndexGate.schedule_rebuild("upload:photos/cat.jpg")
"""

from typing import Any, Dict, List, Optional

from cellar.shared.gate import GateLogger, build_health_status
from cellar.FileSystemGate.security import normalize_path

from .indexer import build_index
from .models import FileIndex
from .worker import IndexHolder, RebuildWorker

_log = GateLogger.get("IndexGate")

# Module-level state
_root: Optional[str] = None
_holder: IndexHolder = IndexHolder()
_worker: Optional[RebuildWorker] = None
_initialized: bool = False


class IndexGate:
    """
    Main interface for the file index.

    All methods are class methods for easy access throughout the application.
    """

    @classmethod
    def initialize(cls, root: str) -> bool:
        """
        Build the first snapshot and start the rebuild worker.

        Returns only after the initial build, so the index is populated
        before the server accepts requests.
        """
        global _root, _holder, _worker, _initialized

        if _worker is not None:
            _worker.stop()

        _root = normalize_path(root)
        _holder = IndexHolder(build_index(_root))
        _worker = RebuildWorker(_root, _holder)
        _worker.start()
        _initialized = True
        _log.info(f"Index ready for {_root}")
        return True

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the gate is initialized."""
        return _initialized

    @classmethod
    def get_index(cls) -> FileIndex:
        """Return the current snapshot."""
        return _holder.get()

    @classmethod
    def rebuild(cls) -> FileIndex:
        """Rebuild synchronously and return the new snapshot."""
        if _root is None:
            raise RuntimeError("IndexGate not initialized. Call initialize(root) first.")
        snapshot = build_index(_root)
        _holder.install(snapshot)
        return snapshot

    @classmethod
    def schedule_rebuild(cls, reason: str = "manual") -> None:
        """Queue a background rebuild; returns immediately."""
        if _worker is None:
            _log.debug(f"Rebuild skipped, IndexGate not initialized ({reason})")
            return
        _log.debug(f"Rebuild scheduled: {reason}")
        _worker.request(reason)

    @classmethod
    def wait_idle(cls, timeout: Optional[float] = None) -> bool:
        """Block until no background rebuild is pending or running."""
        if _worker is None:
            return True
        return _worker.wait_idle(timeout)

    @classmethod
    def shutdown(cls):
        """Stop the rebuild worker."""
        global _worker, _initialized
        if _worker is not None:
            _worker.stop()
            _worker = None
        _initialized = False

    # ==================== Health Checks ====================

    @classmethod
    def is_healthy(cls) -> bool:
        """Check if the gate is operational."""
        return _initialized and _worker is not None and _worker.is_running

    @classmethod
    def get_health_status(cls) -> Dict[str, Any]:
        """Get detailed health information."""
        snapshot = _holder.get()
        return build_health_status(
            gate_name="IndexGate",
            initialized=_initialized,
            dependencies=["filesystem"],
            checks={"worker_running": _worker is not None and _worker.is_running},
            details={
                "root": _root,
                "total_files": snapshot.total_files,
                "total_directories": len(snapshot.directories),
                "last_indexed": snapshot.last_indexed.isoformat(),
            },
        )

    @classmethod
    def get_dependencies(cls) -> List[str]:
        """List external dependencies."""
        return ["filesystem"]


# ==================== Module-level convenience functions ====================

def initialize(root: str) -> bool:
    """Initialize IndexGate."""
    return IndexGate.initialize(root)


def get_index() -> FileIndex:
    """Get the current snapshot."""
    return IndexGate.get_index()


def schedule_rebuild(reason: str = "manual") -> None:
    """Queue a background rebuild."""
    IndexGate.schedule_rebuild(reason)


__all__ = [
    "IndexGate",
    "FileIndex",
    "IndexHolder",
    "RebuildWorker",
    "build_index",
    "initialize",
    "get_index",
    "schedule_rebuild",
]
