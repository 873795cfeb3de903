"""
IndexGate Pydantic models.
"""

from datetime import datetime
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from cellar.FileSystemGate.models import FileEntry


class FileIndex(BaseModel):
    """Immutable snapshot of every node under the served root."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    files: Tuple[FileEntry, ...] = ()
    directories: Tuple[FileEntry, ...] = ()
    last_indexed: datetime
    total_files: int = 0
    total_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def empty(cls) -> "FileIndex":
        """Snapshot with no entries, used before the first build completes."""
        return cls(last_indexed=datetime.fromtimestamp(0))
