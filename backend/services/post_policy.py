"""Post visibility and ownership checks."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import NotFoundError
from models import Post

POST_NOT_FOUND_DETAIL = "Post not found"


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def can_view_post(viewer_id: str | None, post: Post) -> bool:
    """Public posts are visible to everyone; private posts only to their owner."""
    if not post.private:
        return True
    return viewer_id is not None and viewer_id == post.user_id


def build_post_visibility_filter(viewer_id: str | None) -> ColumnElement[bool]:
    """SQL counterpart of ``can_view_post`` for feed queries."""
    private_column = cast(Any, Post.private)
    public_only = cast(ColumnElement[bool], private_column.is_(False))
    if viewer_id is None:
        return public_only
    return cast(ColumnElement[bool], or_(public_only, _eq(Post.user_id, viewer_id)))


async def require_visible_post(
    session: AsyncSession,
    *,
    post_id: str,
    viewer_id: str | None,
) -> Post:
    """Return the post when the viewer may see it; otherwise raise 404."""
    result = await session.execute(select(Post).where(_eq(Post.id, post_id)).limit(1))
    post = result.scalar_one_or_none()
    if post is None or not can_view_post(viewer_id, post):
        raise NotFoundError(POST_NOT_FOUND_DETAIL)
    return post


async def require_owned_post(
    session: AsyncSession,
    *,
    post_id: str,
    owner_id: str,
) -> Post:
    """Return the post when ``owner_id`` created it; missing and foreign posts both raise 404."""
    result = await session.execute(
        select(Post).where(_eq(Post.id, post_id), _eq(Post.user_id, owner_id)).limit(1)
    )
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundError(POST_NOT_FOUND_DETAIL)
    return post
