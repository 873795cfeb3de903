"""
SecurityManager - Accounts and bearer-token authentication for Cellar.

Provides:
- Argon2id password hashing
- Stateless HS256 bearer tokens (24 hour lifetime)
- User management with an always-present administrator
- Bootstrap of the default admin account on an empty store

Usage:
    from cellar import SecurityManager

    # Initialize after db_service.init_db(); creates the users table if needed
    SecurityManager.initialize(secret, admin_password)

    token, user = SecurityManager.login("admin", "admin123")
    claims = SecurityManager.authenticate(f"Bearer {token}")
    SecurityManager.require_admin(claims)
"""

import secrets
from typing import Any, Dict, List, Optional, Tuple

from cellar.shared import db_service
from cellar.shared.gate import GateLogger, build_health_status
from cellar.Config.schema import DEFAULT_ADMIN_PASSWORD, DEFAULT_JWT_SECRET

from .errors import (
    AuthError,
    InvalidCredentialsError,
    InvalidTokenError,
    AdminRequiredError,
    UserNotFoundError,
    UsernameTakenError,
    LastAdminError,
    PasswordPolicyError,
    IncorrectPasswordError,
)
from .models import TokenClaims, User
from .passwords import hash_password, needs_rehash, set_hasher, verify_password
from .store import UserStore, init_user_tables
from .tokens import TOKEN_LIFETIME, extract_bearer, issue_token, verify_token

_log = GateLogger.get("SecurityManager")

MIN_PASSWORD_LENGTH = 6
DEFAULT_ADMIN_USERNAME = "admin"

# Module-level state
_secret: Optional[str] = None
_store: Optional[UserStore] = None
_dummy_hash: Optional[str] = None
_initialized: bool = False


class SecurityManager:
    """
    Main interface for Cellar's authentication system.

    All methods are class methods for easy access throughout the application.
    """

    @classmethod
    def initialize(cls, secret: str, admin_password: str = DEFAULT_ADMIN_PASSWORD) -> bool:
        """
        Initialize the security system.

        Creates the users table if needed and bootstraps the default admin
        when the store is empty. This is the only place an account is
        created without an admin request.

        Args:
            secret: Token signing secret
            admin_password: Password for the bootstrapped admin account

        Returns:
            True if initialization successful
        """
        global _secret, _store, _dummy_hash, _initialized

        if not secret:
            raise ValueError("A token signing secret is required")

        if secret == DEFAULT_JWT_SECRET:
            _log.warning("JWT_SECRET is the built-in default; set JWT_SECRET before exposing this server")

        init_user_tables()
        _secret = secret
        _store = UserStore()
        _dummy_hash = None

        if _store.count() == 0:
            _store.create(DEFAULT_ADMIN_USERNAME, hash_password(admin_password), is_admin=True)
            _log.info(f"Created default admin user '{DEFAULT_ADMIN_USERNAME}'")
            if admin_password == DEFAULT_ADMIN_PASSWORD:
                _log.warning("Default admin password in use; change it immediately")

        _initialized = True
        return True

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the gate is initialized."""
        return _initialized

    @classmethod
    def _require(cls) -> Tuple[str, UserStore]:
        if not _initialized or _store is None or _secret is None:
            raise RuntimeError("SecurityManager not initialized. Call initialize() first.")
        return _secret, _store

    @classmethod
    def _burn_verify(cls, password: str):
        """Run one verification against a throwaway hash."""
        global _dummy_hash
        if _dummy_hash is None:
            _dummy_hash = hash_password(secrets.token_urlsafe(16))
        verify_password(_dummy_hash, password)

    # ==================== Authentication ====================

    @classmethod
    def login(cls, username: str, password: str) -> Tuple[str, Dict[str, Any]]:
        """
        Check credentials and issue a token.

        Returns:
            (token, {"id", "username", "isAdmin"})

        Raises:
            InvalidCredentialsError: Unknown user or wrong password (same error)
        """
        secret, store = cls._require()

        user = store.get_by_username(username or "")
        if user is None:
            cls._burn_verify(password or "")
            _log.info(f"Failed login for unknown user {username!r}")
            raise InvalidCredentialsError()

        if not verify_password(user.password_hash, password or ""):
            _log.info(f"Failed login for {username!r}")
            raise InvalidCredentialsError()

        if needs_rehash(user.password_hash):
            user = store.update_password(user.id, hash_password(password))

        _log.debug(f"Login: {user.username}")
        return issue_token(user, secret), user.to_public_dict()

    @classmethod
    def authenticate(cls, header: Optional[str]) -> TokenClaims:
        """
        Verify an Authorization header value.

        Raises:
            InvalidTokenError: Missing header or bad token
        """
        secret, _ = cls._require()
        token = extract_bearer(header)
        if token is None:
            raise InvalidTokenError("Authorization header required")
        return verify_token(token, secret)

    @classmethod
    def require_admin(cls, claims: TokenClaims) -> TokenClaims:
        """
        Raises:
            AdminRequiredError: If the claims lack the admin flag
        """
        if not claims.is_admin:
            raise AdminRequiredError()
        return claims

    # ==================== User Management ====================

    @classmethod
    def _check_password_policy(cls, password: Optional[str]):
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise PasswordPolicyError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

    @classmethod
    def create_user(cls, username: str, password: str, is_admin: bool = False) -> Dict[str, Any]:
        """
        Create an account.

        Raises:
            PasswordPolicyError: Blank username or short password
            UsernameTakenError: Username in use
        """
        _, store = cls._require()

        username = (username or "").strip()
        if not username:
            raise PasswordPolicyError("Username and password are required")
        cls._check_password_policy(password)

        user = store.create(username, hash_password(password), is_admin=is_admin)
        _log.info(f"Created user {user.username!r} (admin={bool(user.is_admin)})")
        return user.to_dict()

    @classmethod
    def list_users(cls) -> List[Dict[str, Any]]:
        """All accounts, without password hashes."""
        _, store = cls._require()
        return [u.to_dict() for u in store.list_all()]

    @classmethod
    def delete_user(cls, user_id: int) -> None:
        """
        Delete an account. The last remaining admin cannot be deleted.

        Raises:
            UserNotFoundError: No such user
            LastAdminError: The user is the only admin
        """
        _, store = cls._require()
        user = store.delete_unless_last_admin(user_id)
        _log.info(f"Deleted user {user.username!r}")

    @classmethod
    def change_password(cls, user_id: int, current_password: str, new_password: str) -> None:
        """
        Change a user's own password.

        Raises:
            PasswordPolicyError: New password too short
            UserNotFoundError: No such user
            IncorrectPasswordError: Current password doesn't match
        """
        _, store = cls._require()
        cls._check_password_policy(new_password)

        user = store.get(user_id)
        if user is None:
            raise UserNotFoundError()

        if not verify_password(user.password_hash, current_password or ""):
            raise IncorrectPasswordError()

        store.update_password(user_id, hash_password(new_password))
        _log.info(f"Password changed for {user.username!r}")

    # ==================== Health Checks ====================

    @classmethod
    def is_healthy(cls) -> bool:
        """Check if the gate is operational."""
        return _initialized and db_service.is_initialized()

    @classmethod
    def get_health_status(cls) -> Dict[str, Any]:
        """Get detailed health information."""
        checks = {"database": db_service.is_initialized()}
        details = {}

        if _initialized and checks["database"]:
            try:
                details["users"] = _store.count()
                details["admins"] = _store.count_admins()
                checks["admin_present"] = details["admins"] > 0
            except Exception as e:
                _log.error(f"Health check query failed: {e}")
                checks["database"] = False

        details["default_secret"] = _secret == DEFAULT_JWT_SECRET

        return build_health_status(
            gate_name="SecurityManager",
            initialized=_initialized,
            dependencies=["database"],
            checks=checks,
            details=details,
        )

    @classmethod
    def get_dependencies(cls) -> List[str]:
        """List external dependencies."""
        return ["database"]


# ==================== Convenience Functions ====================

def initialize(secret: str, admin_password: str = DEFAULT_ADMIN_PASSWORD) -> bool:
    """Initialize security system."""
    return SecurityManager.initialize(secret, admin_password)


def login(username: str, password: str) -> Tuple[str, Dict[str, Any]]:
    """Log in and get a token."""
    return SecurityManager.login(username, password)


def authenticate(header: Optional[str]) -> TokenClaims:
    """Verify an Authorization header."""
    return SecurityManager.authenticate(header)


def get_health_status() -> Dict[str, Any]:
    """Get security status."""
    return SecurityManager.get_health_status()


__all__ = [
    "SecurityManager",
    "MIN_PASSWORD_LENGTH",
    "TOKEN_LIFETIME",
    # Models
    "User",
    "TokenClaims",
    "UserStore",
    "init_user_tables",
    # Passwords and tokens
    "hash_password",
    "verify_password",
    "set_hasher",
    "issue_token",
    "verify_token",
    "extract_bearer",
    # Exceptions
    "AuthError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "AdminRequiredError",
    "UserNotFoundError",
    "UsernameTakenError",
    "LastAdminError",
    "PasswordPolicyError",
    "IncorrectPasswordError",
    # Functions
    "initialize",
    "login",
    "authenticate",
    "get_health_status",
]
