"""Maintenance script to change an account's role.

Usage:
    uv run python scripts/set_user_role.py <username-or-email> [admin|user]

The role defaults to ``admin``. There is no HTTP endpoint for this; granting
admin rights requires shell access to the deployment.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, cast

from sqlalchemy import func, or_, select
from sqlalchemy.sql import ColumnElement

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from db.session import AsyncSessionMaker  # noqa: E402
from models import User, UserRole  # noqa: E402

USAGE = "usage: set_user_role.py <username-or-email> [admin|user]"


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _parse_args(argv: Sequence[str]) -> tuple[str, UserRole]:
    if not argv or len(argv) > 2:
        raise ValueError(USAGE)
    identifier = argv[0].strip()
    if not identifier:
        raise ValueError("username or email must not be blank")
    raw_role = argv[1].strip().lower() if len(argv) == 2 else UserRole.ADMIN.value
    try:
        role = UserRole(raw_role)
    except ValueError as exc:
        raise ValueError(f"role must be one of: {', '.join(r.value for r in UserRole)}") from exc
    return identifier, role


async def set_role(identifier: str, role: UserRole) -> bool:
    """Return False when no account matches ``identifier``."""
    lowered = identifier.lower()
    async with AsyncSessionMaker() as session:
        result = await session.execute(
            select(User)
            .where(
                or_(
                    _eq(func.lower(cast(Any, User.username)), lowered),
                    _eq(func.lower(cast(Any, User.email)), lowered),
                )
            )
            .limit(1)
        )
        user = result.scalar_one_or_none()
        if user is None:
            return False

        user.role = role.value
        await session.commit()
    return True


def main(argv: Sequence[str] | None = None) -> int:
    try:
        identifier, role = _parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 2

    if not asyncio.run(set_role(identifier, role)):
        print(f"No user matches {identifier!r}", file=sys.stderr)
        return 1
    print(f"Role of {identifier} set to {role.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
