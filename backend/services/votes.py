"""Before/after vote transitions.

A voter sits on at most one side of a post. ``place_vote`` moves the voter
to the requested side with guarded statements instead of rewriting vote
lists, so concurrent voters on the same post never overwrite each other.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, cast

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from db.errors import is_unique_violation
from models import Vote, VoteSide
from models._time import utc_now

logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


class VoteOutcome(str, Enum):
    CAST = "cast"
    MOVED = "moved"
    UNCHANGED = "unchanged"


@dataclass(slots=True)
class VoteSets:
    before: list[str] = field(default_factory=list)
    after: list[str] = field(default_factory=list)


async def place_vote(
    session: AsyncSession,
    *,
    post_id: str,
    voter_id: str,
    side: VoteSide,
) -> VoteOutcome:
    moved = await session.execute(
        update(Vote)
        .where(
            _eq(Vote.post_id, post_id),
            _eq(Vote.voter_id, voter_id),
            _eq(Vote.side, side.opposite.value),
        )
        .values(side=side.value, updated_at=utc_now())
    )
    if getattr(moved, "rowcount", 0):
        await session.commit()
        logger.info(
            "Vote moved",
            extra={"post_id": post_id, "voter_id": voter_id, "side": side.value},
        )
        return VoteOutcome.MOVED

    session.add(Vote(post_id=post_id, voter_id=voter_id, side=side.value))
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            # The voter is already on the requested side.
            return VoteOutcome.UNCHANGED
        raise
    logger.info(
        "Vote cast",
        extra={"post_id": post_id, "voter_id": voter_id, "side": side.value},
    )
    return VoteOutcome.CAST


async def retract_vote(
    session: AsyncSession,
    *,
    post_id: str,
    voter_id: str,
) -> bool:
    result = await session.execute(
        delete(Vote).where(
            _eq(Vote.post_id, post_id),
            _eq(Vote.voter_id, voter_id),
        )
    )
    await session.commit()
    return bool(getattr(result, "rowcount", 0))


async def collect_vote_sets(
    session: AsyncSession,
    post_ids: list[str],
) -> dict[str, VoteSets]:
    sets: dict[str, VoteSets] = defaultdict(VoteSets)
    if not post_ids:
        return sets

    post_id_column = cast(ColumnElement[str], Vote.post_id)
    created_at_column = cast(Any, Vote.created_at)
    result = await session.execute(
        select(post_id_column, Vote.voter_id, Vote.side)
        .where(post_id_column.in_(post_ids))
        .order_by(created_at_column.asc())
    )
    for post_id, voter_id, side in result.all():
        bucket = sets[post_id]
        if side == VoteSide.BEFORE.value:
            bucket.before.append(voter_id)
        else:
            bucket.after.append(voter_id)
    return sets
