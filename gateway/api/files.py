"""
File routes: browse, download, upload, rename, delete and mkdir.

Mutations return as soon as the filesystem change is done; the index
catches up in the background, so GET /api/index may briefly show the
previous state.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field

from gateway.api.deps import raise_for_result


class RenameRequest(BaseModel):
    """Model for renaming a node."""
    model_config = ConfigDict(populate_by_name=True)

    new_name: str = Field(alias="newName")


class MkdirRequest(BaseModel):
    """Model for creating a directory."""
    name: str


def create_router(FileSystemGate) -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.get("/browse")
    @router.get("/browse/{path:path}")
    def api_browse(path: str = ""):
        """List a directory."""
        result = raise_for_result(FileSystemGate.browse(path))
        return result.data

    @router.get("/download/{path:path}")
    def api_download(path: str):
        """Stream a file as an attachment."""
        result = raise_for_result(FileSystemGate.download(path))
        return FileResponse(
            result.data["absolute_path"],
            filename=result.data["filename"],
            media_type="application/octet-stream",
        )

    @router.post("/upload")
    @router.post("/upload/{path:path}")
    def api_upload(path: str = "", file: Optional[UploadFile] = File(None)):
        """Store the multipart ``file`` field in the target directory."""
        if file is None:
            result = FileSystemGate.upload(path, None, None)
        else:
            try:
                result = FileSystemGate.upload(path, file.filename, file.file)
            finally:
                file.file.close()
        raise_for_result(result)
        return {"message": result.message, "path": result.path}

    @router.put("/rename/{path:path}")
    def api_rename(path: str, data: RenameRequest):
        """Rename a file or directory in place."""
        result = raise_for_result(FileSystemGate.rename(path, data.new_name))
        return {"message": result.message, "path": result.path}

    @router.delete("/delete")
    @router.delete("/delete/{path:path}")
    def api_delete(path: str = ""):
        """Delete a file or a directory tree."""
        result = raise_for_result(FileSystemGate.delete(path))
        return {"message": result.message, "path": result.path}

    @router.post("/mkdir")
    @router.post("/mkdir/{path:path}")
    def api_mkdir(data: MkdirRequest, path: str = ""):
        """Create a directory under ``path``."""
        result = raise_for_result(FileSystemGate.mkdir(path, data.name))
        return {"message": result.message, "path": result.path}

    return router
