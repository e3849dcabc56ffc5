"""Core configuration, security and error primitives."""

from .config import Settings, settings
from .errors import (
    APIError,
    AuthenticationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
)
from .logging_config import configure_logging
from .security import (
    generate_token,
    hash_password,
    hash_token,
    needs_rehash,
    verify_password,
)

__all__ = [
    "Settings",
    "settings",
    "APIError",
    "AuthenticationError",
    "BadRequestError",
    "ConflictError",
    "NotFoundError",
    "PermissionDeniedError",
    "ServiceError",
    "configure_logging",
    "generate_token",
    "hash_password",
    "hash_token",
    "needs_rehash",
    "verify_password",
]
