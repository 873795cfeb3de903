from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from gateway.api.deps import require_admin


class UserCreate(BaseModel):
    """Model for creating a user."""
    model_config = ConfigDict(populate_by_name=True)

    username: str
    password: str
    is_admin: bool = Field(False, alias="isAdmin")


def create_router(SecurityManager) -> APIRouter:
    router = APIRouter(prefix="/api", dependencies=[Depends(require_admin)])

    @router.post("/users", status_code=201)
    def api_create_user(data: UserCreate):
        """Create an account (admin only)."""
        return SecurityManager.create_user(data.username, data.password, data.is_admin)

    @router.get("/users")
    def api_list_users():
        """List all accounts (admin only)."""
        return SecurityManager.list_users()

    @router.delete("/users/{user_id}")
    def api_delete_user(user_id: int):
        """Delete an account (admin only). The last admin can't be removed."""
        SecurityManager.delete_user(user_id)
        return {"message": "User deleted successfully"}

    return router
