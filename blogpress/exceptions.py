"""Domain errors raised by the publishing and moderation layers."""

from fastapi import status


class BlogError(Exception):
    """Base class for caller-facing failures."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(BlogError):
    """Malformed input: bad comment content, invalid parent, duplicate slug."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class AuthorizationFailed(BlogError):
    """The caller may not perform this action on this resource."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFound(BlogError):
    """The identifier does not resolve, or resolves to something hidden from the caller."""

    status_code = status.HTTP_404_NOT_FOUND
