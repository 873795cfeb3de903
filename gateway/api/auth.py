from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from cellar.SecurityManager import TokenClaims
from gateway.api.deps import current_user


class LoginRequest(BaseModel):
    """Model for login."""
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    """Model for password change."""
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")


def create_router(SecurityManager) -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.post("/login")
    def api_login(data: LoginRequest):
        """Exchange credentials for a bearer token."""
        token, user = SecurityManager.login(data.username, data.password)
        return {"token": token, "user": user}

    @router.get("/me")
    def api_me(claims: TokenClaims = Depends(current_user)):
        """Identity of the caller, straight from the token."""
        return claims.to_public_dict()

    @router.put("/me/password")
    def api_change_password(data: ChangePasswordRequest, claims: TokenClaims = Depends(current_user)):
        """Change the caller's own password."""
        SecurityManager.change_password(claims.user_id, data.current_password, data.new_password)
        return {"message": "Password changed successfully"}

    return router
