"""
FileSystemGate file operations.

Provides browse, download, upload, rename, delete and mkdir against the
served root. Every operation resolves its target through the sandbox before
any filesystem call.
"""

import os
import shutil
import stat as stat_module
from datetime import datetime
from typing import BinaryIO, List, Optional

from cellar.shared.gate import GateLogger

from .models import BROKEN_SYMLINK, ErrorKind, FileEntry, OperationResult
from .security import (
    PathSecurityError,
    is_valid_leaf_name,
    is_within_root,
    normalize_path,
    relative_to_root,
    resolve_sandbox_path,
    sanitize_filename,
)

_log = GateLogger.get("FileSystemGate")

COPY_CHUNK_SIZE = 1024 * 1024


def _extension(name: str) -> str:
    return os.path.splitext(name)[1].lower()


def describe_entry(path: str, name: str, relative_path: str) -> FileEntry:
    """
    Build a FileEntry for one node, inspecting symlinks before following them.

    Args:
        path: Absolute path of the node
        name: Leaf name to report
        relative_path: Path relative to the served root

    Returns:
        FileEntry describing the node (or its target, for working symlinks)

    Raises:
        OSError: If the node itself cannot be inspected
    """
    lstat = os.lstat(path)
    is_symlink = stat_module.S_ISLNK(lstat.st_mode)

    if not is_symlink:
        is_dir = stat_module.S_ISDIR(lstat.st_mode)
        return FileEntry(
            name=name,
            path=path,
            relative_path=relative_path,
            size=lstat.st_size,
            mod_time=datetime.fromtimestamp(lstat.st_mtime),
            is_dir=is_dir,
            extension="" if is_dir else _extension(name),
        )

    broken = dict(
        name=name,
        path=path,
        relative_path=relative_path,
        size=0,
        mod_time=datetime.fromtimestamp(lstat.st_mtime),
        is_dir=False,
        extension="",
        is_symlink=True,
    )

    try:
        target = os.readlink(path)
    except OSError:
        return FileEntry(link_target=BROKEN_SYMLINK, **broken)

    try:
        target_stat = os.stat(path)
    except OSError:
        # Missing, permission-denied or cyclic target
        return FileEntry(link_target=f"{target} (broken)", **broken)

    is_dir = stat_module.S_ISDIR(target_stat.st_mode)
    return FileEntry(
        name=name,
        path=path,
        relative_path=relative_path,
        size=target_stat.st_size,
        mod_time=datetime.fromtimestamp(target_stat.st_mtime),
        is_dir=is_dir,
        extension="" if is_dir else _extension(name),
        is_symlink=True,
        link_target=target,
    )


def _denied(operation: str, relative_path: str, error: PathSecurityError) -> OperationResult:
    _log.warning(f"Sandbox rejected {operation} on {relative_path!r}")
    return OperationResult.fail(operation, relative_path, ErrorKind.ACCESS_DENIED, str(error))


def browse_directory(root: str, relative_path: str = "") -> OperationResult:
    """
    List the immediate children of a directory.

    Entries are built fresh from the filesystem, not read from the index.

    Args:
        root: Served root directory
        relative_path: Directory path relative to the root

    Returns:
        OperationResult with {"path", "files"} in data
    """
    try:
        resolved = resolve_sandbox_path(root, relative_path)
    except PathSecurityError as e:
        return _denied("browse", relative_path, e)

    request_path = relative_to_root(root, resolved)

    if not os.path.exists(resolved):
        return OperationResult.fail("browse", request_path, ErrorKind.NOT_FOUND, "Path not found")

    if not os.path.isdir(resolved):
        return OperationResult.fail("browse", request_path, ErrorKind.BAD_REQUEST, "Path is not a directory")

    try:
        names = sorted(os.listdir(resolved))
    except OSError as e:
        _log.error(f"Failed to read directory {resolved}: {e}")
        return OperationResult.fail("browse", request_path, ErrorKind.INTERNAL_ERROR, "Failed to read directory")

    files: List[FileEntry] = []
    for name in names:
        entry_path = os.path.join(resolved, name)
        entry_rel = f"{request_path}/{name}" if request_path else name
        try:
            files.append(describe_entry(entry_path, name, entry_rel))
        except OSError:
            # Skip entries we can't stat
            continue

    return OperationResult.ok(
        "browse",
        request_path,
        message=f"Listed {len(files)} items",
        data={"path": request_path, "files": [f.to_dict() for f in files]},
    )


def resolve_download(root: str, relative_path: str) -> OperationResult:
    """
    Validate a download target.

    Returns:
        OperationResult with {"absolute_path", "filename"} in data; the caller
        streams the file
    """
    try:
        resolved = resolve_sandbox_path(root, relative_path)
    except PathSecurityError as e:
        return _denied("download", relative_path, e)

    request_path = relative_to_root(root, resolved)

    if not os.path.exists(resolved):
        return OperationResult.fail("download", request_path, ErrorKind.NOT_FOUND, "File not found")

    if os.path.isdir(resolved):
        return OperationResult.fail("download", request_path, ErrorKind.BAD_REQUEST, "Cannot download directory")

    return OperationResult.ok(
        "download",
        request_path,
        data={"absolute_path": resolved, "filename": os.path.basename(resolved)},
    )


def save_upload(
    root: str,
    relative_dir: str,
    filename: Optional[str],
    stream: Optional[BinaryIO],
) -> OperationResult:
    """
    Write an uploaded file into a directory, creating the directory if needed.

    An existing file with the same name is overwritten.

    Args:
        root: Served root directory
        relative_dir: Target directory relative to the root
        filename: Client-supplied filename
        stream: Readable binary stream with the file content

    Returns:
        OperationResult
    """
    try:
        target_dir = resolve_sandbox_path(root, relative_dir)
    except PathSecurityError as e:
        return _denied("upload", relative_dir, e)

    request_path = relative_to_root(root, target_dir)

    if stream is None:
        return OperationResult.fail("upload", request_path, ErrorKind.BAD_REQUEST, "No file provided")

    safe_name = sanitize_filename(filename or "")
    if not safe_name:
        return OperationResult.fail("upload", request_path, ErrorKind.BAD_REQUEST, "No file provided")

    target_path = os.path.join(target_dir, safe_name)
    if not is_within_root(normalize_path(root), os.path.normpath(target_path)):
        return OperationResult.fail("upload", request_path, ErrorKind.ACCESS_DENIED, "Access denied")

    try:
        os.makedirs(target_dir, exist_ok=True)
    except OSError as e:
        _log.error(f"Failed to create upload directory {target_dir}: {e}")
        return OperationResult.fail("upload", request_path, ErrorKind.INTERNAL_ERROR, "Failed to create directory")

    try:
        with open(target_path, "wb") as out:
            shutil.copyfileobj(stream, out, COPY_CHUNK_SIZE)
    except OSError as e:
        _log.error(f"Failed to save upload {target_path}: {e}")
        return OperationResult.fail("upload", request_path, ErrorKind.INTERNAL_ERROR, "Failed to save file")

    saved_rel = relative_to_root(root, target_path)
    _log.info(f"Uploaded {saved_rel}")
    return OperationResult.ok("upload", saved_rel, message="File uploaded successfully")


def rename_path(root: str, relative_path: str, new_name: Optional[str]) -> OperationResult:
    """
    Change the leaf name of a node, keeping it in the same parent directory.

    Args:
        root: Served root directory
        relative_path: Node to rename, relative to the root
        new_name: New leaf name (must not contain separators)

    Returns:
        OperationResult
    """
    try:
        resolved = resolve_sandbox_path(root, relative_path)
    except PathSecurityError as e:
        return _denied("rename", relative_path, e)

    request_path = relative_to_root(root, resolved)

    if not is_valid_leaf_name(new_name or ""):
        return OperationResult.fail("rename", request_path, ErrorKind.BAD_REQUEST, "Invalid new name")

    root_path = normalize_path(root)
    if resolved == root_path:
        return OperationResult.fail("rename", request_path, ErrorKind.ACCESS_DENIED, "Cannot rename the served root")

    new_path = os.path.join(os.path.dirname(resolved), new_name)
    if not is_within_root(root_path, os.path.normpath(new_path)):
        return OperationResult.fail("rename", request_path, ErrorKind.ACCESS_DENIED, "Access denied")

    if os.path.lexists(new_path):
        return OperationResult.fail("rename", request_path, ErrorKind.INTERNAL_ERROR, "Failed to rename file: destination exists")

    try:
        os.rename(resolved, new_path)
    except OSError as e:
        _log.error(f"Rename {resolved} -> {new_path} failed: {e}")
        return OperationResult.fail("rename", request_path, ErrorKind.INTERNAL_ERROR, "Failed to rename file")

    new_rel = relative_to_root(root, new_path)
    _log.info(f"Renamed {request_path} -> {new_rel}")
    return OperationResult.ok("rename", new_rel, message="File renamed successfully")


def _remove_all(path: str) -> None:
    """Remove a file, symlink or directory tree; a missing path is not an error."""
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
    except FileNotFoundError:
        pass


def delete_path(root: str, relative_path: str) -> OperationResult:
    """
    Delete a file or a whole directory tree.

    Args:
        root: Served root directory
        relative_path: Path relative to the root

    Returns:
        OperationResult
    """
    try:
        resolved = resolve_sandbox_path(root, relative_path)
    except PathSecurityError as e:
        return _denied("delete", relative_path, e)

    request_path = relative_to_root(root, resolved)

    # Cannot delete the served root itself
    if resolved == normalize_path(root):
        return OperationResult.fail("delete", request_path, ErrorKind.ACCESS_DENIED, "Cannot delete the served root")

    try:
        _remove_all(resolved)
    except OSError as e:
        _log.error(f"Delete {resolved} failed: {e}")
        return OperationResult.fail("delete", request_path, ErrorKind.INTERNAL_ERROR, "Failed to delete file")

    _log.info(f"Deleted {request_path}")
    return OperationResult.ok("delete", request_path, message="File deleted successfully")


def make_directory(root: str, relative_path: str, name: Optional[str]) -> OperationResult:
    """
    Create ``name`` under a parent directory, including missing intermediates.

    Recreating an existing directory succeeds.

    Args:
        root: Served root directory
        relative_path: Parent directory relative to the root
        name: New directory name

    Returns:
        OperationResult
    """
    if not name or not name.strip("/\\"):
        return OperationResult.fail("mkdir", relative_path, ErrorKind.BAD_REQUEST, "Directory name is required")

    joined = f"{relative_path.rstrip('/')}/{name}" if relative_path else name

    try:
        resolved = resolve_sandbox_path(root, joined)
    except PathSecurityError as e:
        return _denied("mkdir", joined, e)

    request_path = relative_to_root(root, resolved)

    try:
        os.makedirs(resolved, exist_ok=True)
    except OSError as e:
        # Also covers an existing non-directory at that path
        _log.error(f"Failed to create directory {resolved}: {e}")
        return OperationResult.fail("mkdir", request_path, ErrorKind.INTERNAL_ERROR, "Failed to create directory")

    _log.info(f"Created directory {request_path}")
    return OperationResult.ok("mkdir", request_path, message="Directory created successfully")
