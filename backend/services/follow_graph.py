"""Follow relationship reads and idempotent follow/unfollow mutations."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, cast

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_unique_violation
from models import Follow

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(slots=True)
class FollowLists:
    followers: list[str] = field(default_factory=list)
    following: list[str] = field(default_factory=list)


async def is_following(
    session: AsyncSession,
    *,
    follower_id: str,
    followee_id: str,
) -> bool:
    result = await session.execute(
        select(Follow.follower_id).where(
            _eq(Follow.follower_id, follower_id),
            _eq(Follow.followee_id, followee_id),
        )
    )
    return result.scalar_one_or_none() is not None


async def collect_follow_lists(
    session: AsyncSession,
    user_ids: Iterable[str],
) -> dict[str, FollowLists]:
    """Return followers/following id lists for each requested user in one query."""
    requested = list(dict.fromkeys(user_ids))
    lists: dict[str, FollowLists] = defaultdict(FollowLists)
    if not requested:
        return lists

    follower_column = cast(ColumnElement[str], Follow.follower_id)
    followee_column = cast(ColumnElement[str], Follow.followee_id)
    created_at_column = cast(Any, Follow.created_at)
    result = await session.execute(
        select(follower_column, followee_column)
        .where(or_(follower_column.in_(requested), followee_column.in_(requested)))
        .order_by(created_at_column.asc())
    )
    wanted = set(requested)
    for follower_id, followee_id in result.all():
        if follower_id in wanted:
            lists[follower_id].following.append(followee_id)
        if followee_id in wanted:
            lists[followee_id].followers.append(follower_id)
    return lists


async def follow(
    session: AsyncSession,
    *,
    follower_id: str,
    followee_id: str,
) -> bool:
    """Add the relationship; returns False when it already existed."""
    if await is_following(session, follower_id=follower_id, followee_id=followee_id):
        return False

    session.add(Follow(follower_id=follower_id, followee_id=followee_id))
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            return False
        raise
    logger.info(
        "User followed",
        extra={"follower_id": follower_id, "followee_id": followee_id},
    )
    return True


async def unfollow(
    session: AsyncSession,
    *,
    follower_id: str,
    followee_id: str,
) -> bool:
    """Remove the relationship; returns False when there was nothing to remove."""
    result = await session.execute(
        delete(Follow).where(
            _eq(Follow.follower_id, follower_id),
            _eq(Follow.followee_id, followee_id),
        )
    )
    await session.commit()
    removed = bool(getattr(result, "rowcount", 0))
    if removed:
        logger.info(
            "User unfollowed",
            extra={"follower_id": follower_id, "followee_id": followee_id},
        )
    return removed
