"""Error types raised by the store and auth layers.

Each error carries the HTTP status it is rendered with; the handlers that
turn them into responses are registered in ``userapi.main``.
"""

from fastapi import status


class UserApiError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(UserApiError):
    """Missing, malformed or conflicting user fields."""
    default_message = "Validation failed"


class InvalidArgument(UserApiError):
    """An identifier that is not shaped like a record id."""
    default_message = "Invalid identifier"


class NotFound(UserApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not Found!"


class Unauthorized(UserApiError):
    """Bad username/password at login."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Invalid Login"


class Unauthenticated(UserApiError):
    """Missing, invalid, expired or rotated bearer token."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class Forbidden(UserApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"
