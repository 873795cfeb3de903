"""
Password hashing with Argon2id.

Hashes are self-describing PHC strings (parameters and salt included), so
verification needs nothing but the stored hash.
"""

from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

# Argon2id parameters (OWASP recommendations)
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536  # 64 MB
ARGON2_PARALLELISM = 4

_hasher: Optional[PasswordHasher] = None


def get_hasher() -> PasswordHasher:
    """Get or create the shared PasswordHasher."""
    global _hasher
    if _hasher is None:
        _hasher = PasswordHasher(
            time_cost=ARGON2_TIME_COST,
            memory_cost=ARGON2_MEMORY_COST,
            parallelism=ARGON2_PARALLELISM,
        )
    return _hasher


def set_hasher(hasher: Optional[PasswordHasher]):
    """Replace the shared hasher (None restores the defaults on next use)."""
    global _hasher
    _hasher = hasher


def hash_password(password: str) -> str:
    """Hash a password with a fresh random salt."""
    return get_hasher().hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """
    Check a password against a stored hash.

    Returns False on mismatch and on malformed hashes; never raises for
    either.
    """
    if not password_hash:
        return False
    try:
        return get_hasher().verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    """True when the hash was made with parameters other than the current ones."""
    try:
        return get_hasher().check_needs_rehash(password_hash)
    except InvalidHashError:
        return True
