"""
FileSystemGate Pydantic models.

Defines file metadata, operation results and the error taxonomy shared by
every gate.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ErrorKind(str, Enum):
    """Stable failure kinds reported to clients."""
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"


BROKEN_SYMLINK = "broken symlink"


class FileEntry(BaseModel):
    """Information about a single file, directory or symlink."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    name: str
    path: str = Field(description="Absolute path on the host")
    relative_path: str = Field(description="Path relative to the served root")
    size: int = 0
    mod_time: datetime
    is_dir: bool = False
    extension: str = ""
    is_symlink: bool = False
    link_target: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def is_broken_link(self) -> bool:
        """True for symlinks whose target could not be resolved."""
        return self.is_symlink and bool(self.link_target) and (
            self.link_target == BROKEN_SYMLINK or self.link_target.endswith(" (broken)")
        )


class OperationResult(BaseModel):
    """Result of a file system operation."""
    success: bool
    operation: str = Field(description="Operation type: browse/download/upload/rename/delete/mkdir")
    path: str
    message: str = ""
    data: Optional[Any] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")

    @classmethod
    def ok(cls, operation: str, path: str, message: str = "", data: Any = None) -> "OperationResult":
        """Create a successful result."""
        return cls(success=True, operation=operation, path=path, message=message, data=data)

    @classmethod
    def fail(cls, operation: str, path: str, kind: ErrorKind, error: str) -> "OperationResult":
        """Create a failed result."""
        return cls(success=False, operation=operation, path=path, error=error, error_kind=kind)
