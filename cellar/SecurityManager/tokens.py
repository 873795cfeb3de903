"""
Stateless bearer tokens.

HS256 JWTs carrying the user id, username and admin flag. A token is
valid until it expires; there is no server-side session to revoke.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from .errors import InvalidTokenError
from .models import TokenClaims, User

ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(hours=24)


def issue_token(user: User, secret: str, issued_at: Optional[datetime] = None) -> str:
    """
    Create a signed token for ``user``.

    Args:
        user: Account the token identifies
        secret: HMAC signing secret
        issued_at: Issue time (defaults to now, UTC)

    Returns:
        Encoded JWT
    """
    if issued_at is None:
        issued_at = datetime.now(timezone.utc)
    elif issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    claims = {
        "userId": user.id,
        "username": user.username,
        "isAdmin": bool(user.is_admin),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + TOKEN_LIFETIME).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str) -> TokenClaims:
    """
    Verify a token's signature and expiry and decode its claims.

    Raises:
        InvalidTokenError: Malformed, wrongly signed, expired or missing claims
    """
    if not token:
        raise InvalidTokenError("Invalid token")

    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise InvalidTokenError("Token expired")
    except JWTError:
        raise InvalidTokenError("Invalid token")

    user_id = payload.get("userId")
    username = payload.get("username")
    issued = payload.get("iat")
    expires = payload.get("exp")
    if not isinstance(user_id, int) or not username or issued is None or expires is None:
        raise InvalidTokenError("Invalid token claims")

    return TokenClaims(
        user_id=user_id,
        username=username,
        is_admin=bool(payload.get("isAdmin", False)),
        issued_at=datetime.fromtimestamp(issued, tz=timezone.utc),
        expires_at=datetime.fromtimestamp(expires, tz=timezone.utc),
    )


def extract_bearer(header: Optional[str]) -> Optional[str]:
    """Pull the token out of an Authorization header ("Bearer <t>" or a bare token)."""
    if not header:
        return None
    header = header.strip()
    if header[:7].lower() == "bearer ":
        return header[7:].strip() or None
    return header
