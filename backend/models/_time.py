"""Timestamp defaults shared by table models."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    # Microsecond precision keeps newest-first ordering stable on SQLite,
    # whose CURRENT_TIMESTAMP only resolves to the second.
    return datetime.now(timezone.utc)
