"""
SecurityManager exceptions.

Each exception carries the ErrorKind the gateway reports to clients.
"""

from cellar.FileSystemGate.models import ErrorKind


class AuthError(Exception):
    """Base exception for authentication and account errors."""
    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)

    default_message = "Authentication error"


class InvalidCredentialsError(AuthError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Invalid credentials"


class InvalidTokenError(AuthError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Invalid token"


class AdminRequiredError(AuthError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Admin access required"


class UserNotFoundError(AuthError):
    kind = ErrorKind.NOT_FOUND
    default_message = "User not found"


class UsernameTakenError(AuthError):
    kind = ErrorKind.CONFLICT
    default_message = "Username already exists"


class LastAdminError(AuthError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Cannot delete the last admin user"


class PasswordPolicyError(AuthError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Password does not meet requirements"


class IncorrectPasswordError(AuthError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Current password is incorrect"
