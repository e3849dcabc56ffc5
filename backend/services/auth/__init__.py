"""Authentication domain services."""

from .identity_resolution import (
    normalize_email,
    normalize_username,
    registration_conflict_exists,
    resolve_login_user,
)
from .token_store import (
    enforce_token_limit,
    issue_token,
    resolve_token_user,
    revoke_token,
)

__all__ = [
    "normalize_email",
    "normalize_username",
    "registration_conflict_exists",
    "resolve_login_user",
    "enforce_token_limit",
    "issue_token",
    "resolve_token_user",
    "revoke_token",
]
