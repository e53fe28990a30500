"""
Auth error hierarchy.

Every failure an auth handler can report is one of these. Each carries the
HTTP status it maps to and the message sent back to the caller:

    AuthError (base)
    ├── ValidationError          400
    ├── InvalidCredentialsError  400
    ├── NotFoundError            404
    ├── MissingTokenError        401
    ├── InvalidTokenError        403
    └── ServerError              500
"""

from typing import Optional


class AuthError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(AuthError):
    """Malformed or missing input."""
    status_code = 400
    default_message = "Invalid request"


class InvalidCredentialsError(AuthError):
    status_code = 400
    default_message = "Invalid credentials"


class NotFoundError(AuthError):
    status_code = 404
    default_message = "User not found"


class MissingTokenError(AuthError):
    status_code = 401
    default_message = "Refresh token required"


class InvalidTokenError(AuthError):
    status_code = 403
    default_message = "Invalid refresh token"


class ServerError(AuthError):
    """Catch-all for persistence and unexpected failures."""
    status_code = 500
