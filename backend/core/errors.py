"""HTTP error taxonomy shared by routes and services."""

from __future__ import annotations

from fastapi import HTTPException, status


class APIError(HTTPException):
    """Base class for errors rendered as ``{"detail": ...}`` with a fixed status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(
        self,
        detail: str | None = None,
        *,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class BadRequestError(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"


class AuthenticationError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Token"})


class PermissionDeniedError(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(APIError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class ServiceError(APIError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"


__all__ = [
    "APIError",
    "BadRequestError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "ServiceError",
]
