"""Path identifier validation."""

from __future__ import annotations

from uuid import UUID

from core import NotFoundError

INVALID_ID_DETAIL = "Invalid ID"


def is_valid_id(raw_value: str) -> bool:
    try:
        UUID(raw_value)
    except (ValueError, AttributeError, TypeError):
        return False
    return True


def parse_id(raw_value: str) -> str:
    """Return the canonical id string or raise 404 before any query runs."""
    try:
        return str(UUID(raw_value))
    except (ValueError, AttributeError, TypeError) as exc:
        raise NotFoundError(INVALID_ID_DETAIL) from exc
