"""
SecurityManager models: the user table and decoded token claims.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A login account.

    The password is only ever stored as an Argon2 hash.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)

    # Timestamps (UTC)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for API responses."""
        return {
            "id": self.id,
            "username": self.username,
            "isAdmin": bool(self.is_admin),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Identity fields only, as returned by login and /me."""
        return {
            "id": self.id,
            "username": self.username,
            "isAdmin": bool(self.is_admin),
        }


class TokenClaims(BaseModel):
    """Identity carried by a verified bearer token."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    user_id: int
    username: str
    is_admin: bool = False
    issued_at: datetime
    expires_at: datetime

    def to_public_dict(self) -> Dict[str, Any]:
        """Identity fields only."""
        return {
            "id": self.user_id,
            "username": self.username,
            "isAdmin": self.is_admin,
        }
