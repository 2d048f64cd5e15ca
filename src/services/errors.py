"""Application error kinds and their HTTP status codes."""

from fastapi import status


class AppError(Exception):
    """Base error carrying an HTTP status code and a client-safe message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers: dict[str, str] | None = None

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidCredentials(AppError):
    """Password did not match the stored hash."""

    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(AppError):
    """Missing, invalid, expired or reused token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    """Duplicate value for a unique field."""

    status_code = status.HTTP_409_CONFLICT


class InternalError(AppError):
    """Upstream store or blob store failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
