from __future__ import annotations

from fastapi import APIRouter


def create_router(IndexGate) -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.get("/index")
    def api_index():
        """Current index snapshot (may lag recent mutations briefly)."""
        return IndexGate.get_index().to_dict()

    @router.post("/index/rebuild")
    def api_rebuild_index():
        """Rebuild the index now and wait for it."""
        snapshot = IndexGate.rebuild()
        return {
            "message": "Index rebuilt successfully",
            "totalFiles": snapshot.total_files,
            "totalSize": snapshot.total_size,
        }

    return router
