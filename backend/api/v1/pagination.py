"""Shared pagination helpers for list endpoints."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fastapi import Response
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from core import settings

MAX_PAGE_SIZE = settings.max_page_size
DEFAULT_FEED_PAGE_SIZE = settings.feed_page_size


def set_next_offset_header(
    response: Response,
    *,
    offset: int,
    limit: int,
    has_more: bool,
) -> None:
    if has_more:
        response.headers["X-Next-Offset"] = str(offset + limit)


async def fetch_page(
    session: AsyncSession,
    query: Select[Any],
    response: Response,
    *,
    limit: int | None,
    offset: int,
) -> Sequence[Any]:
    """Run ``query`` for one page of entities, fetching one extra row to detect more."""
    if offset > 0:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit + 1)

    result = await session.execute(query)
    rows = result.scalars().all()
    if limit is not None:
        has_more = len(rows) > limit
        if has_more:
            rows = rows[:limit]
        set_next_offset_header(response, offset=offset, limit=limit, has_more=has_more)
    return rows
