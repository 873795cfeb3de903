"""
Full-tree indexer.

Walks the served root and produces a FileIndex snapshot. The walk is
lenient: directories that can't be listed and entries that can't be
inspected are skipped.
"""

import os
import time
from datetime import datetime
from typing import List

from cellar.shared.gate import GateLogger
from cellar.FileSystemGate.operations import describe_entry
from cellar.FileSystemGate.security import normalize_path, relative_to_root

from .models import FileIndex

_log = GateLogger.get("IndexGate")


def _on_walk_error(error: OSError) -> None:
    _log.debug(f"Skipping unreadable directory: {error}")


def _walk_order(entry) -> List[str]:
    """Sort key keeping each directory's subtree together (``a/c`` before ``a-x``)."""
    return entry.relative_path.split("/")


def build_index(root: str) -> FileIndex:
    """
    Walk ``root`` and build a snapshot of every node below it.

    Symlinks are classified by what they resolve to (broken links count as
    files) and are never descended into.

    Args:
        root: Served root directory

    Returns:
        New FileIndex
    """
    root_path = normalize_path(root)
    started = time.monotonic()

    files: List = []
    directories: List = []

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_walk_error, followlinks=False):
        dirnames.sort()
        filenames.sort()

        for name in dirnames + filenames:
            path = os.path.join(dirpath, name)
            rel_path = relative_to_root(root_path, path)
            try:
                entry = describe_entry(path, name, rel_path)
            except OSError as e:
                _log.debug(f"Skipping {rel_path}: {e}")
                continue

            if entry.is_dir:
                directories.append(entry)
            else:
                files.append(entry)

    files.sort(key=_walk_order)
    directories.sort(key=_walk_order)

    snapshot = FileIndex(
        files=tuple(files),
        directories=tuple(directories),
        last_indexed=datetime.now(),
        total_files=len(files),
        total_size=sum(f.size for f in files),
    )

    elapsed = time.monotonic() - started
    _log.info(
        f"Indexed {snapshot.total_files} files and {len(directories)} directories "
        f"({snapshot.total_size} bytes) in {elapsed:.3f}s"
    )
    return snapshot
