"""Issuing, resolving and revoking opaque client tokens."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import generate_token, hash_token, settings
from models import AuthToken, User

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def enforce_token_limit(
    session: AsyncSession,
    user_id: str,
    *,
    max_active_tokens: int | None = None,
) -> None:
    """Drop the oldest tokens beyond the per-user cap."""
    limit = max_active_tokens if max_active_tokens is not None else settings.max_active_tokens
    created_at_column = cast(Any, AuthToken.created_at)
    id_column = cast(Any, AuthToken.id)

    result = await session.execute(
        select(AuthToken)
        .where(_eq(AuthToken.user_id, user_id))
        .order_by(created_at_column.desc(), id_column.desc())
    )
    tokens = result.scalars().all()
    surplus = tokens[limit:]
    for token_obj in surplus:
        await session.delete(token_obj)
    if surplus:
        await session.flush()
        logger.debug(
            "Pruned surplus auth tokens",
            extra={"user_id": user_id, "pruned": len(surplus)},
        )


async def issue_token(
    session: AsyncSession,
    user_id: str,
    *,
    max_active_tokens: int | None = None,
) -> str:
    """Add a new token to the user's active set and return the raw value.

    The caller owns the transaction and must commit.
    """
    token = generate_token()
    session.add(AuthToken(user_id=user_id, token_hash=hash_token(token)))
    await session.flush()
    await enforce_token_limit(session, user_id, max_active_tokens=max_active_tokens)
    return token


async def resolve_token_user(session: AsyncSession, token: str) -> User | None:
    """Return the user whose active token set contains ``token``."""
    result = await session.execute(
        select(User)
        .join(AuthToken, _eq(AuthToken.user_id, User.id))
        .where(_eq(AuthToken.token_hash, hash_token(token)))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def revoke_token(session: AsyncSession, user_id: str, token: str) -> bool:
    """Remove exactly ``token`` from the user's active set. Returns whether a row was removed."""
    result = await session.execute(
        delete(AuthToken).where(
            _eq(AuthToken.user_id, user_id),
            _eq(AuthToken.token_hash, hash_token(token)),
        )
    )
    return bool(getattr(result, "rowcount", 0))
