"""Shared post/feed view models and query helpers."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime
from typing import Any, cast

from fastapi import Response
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import AuthenticationError
from models import Comment, Follow, Post, PostCategory
from services.post_policy import build_post_visibility_filter
from services.votes import collect_vote_sets
from .pagination import fetch_page


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: str
    user_id: str
    username: str
    text: str
    created_at: datetime


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    category: PostCategory
    before_img: str
    after_img: str
    user_id: str
    username: str
    private: bool = False
    created_at: datetime
    updated_at: datetime
    before_votes: list[str] = []
    after_votes: list[str] = []
    comments: list[CommentResponse] = []

    @classmethod
    def from_post(
        cls,
        post: Post,
        *,
        before_votes: list[str] | None = None,
        after_votes: list[str] | None = None,
        comments: list[CommentResponse] | None = None,
    ) -> "PostResponse":
        return cls(
            id=post.id,
            title=post.title,
            description=post.description,
            category=PostCategory(post.category),
            before_img=post.before_img,
            after_img=post.after_img,
            user_id=post.user_id,
            username=post.username,
            private=post.private,
            created_at=post.created_at,
            updated_at=post.updated_at,
            before_votes=before_votes or [],
            after_votes=after_votes or [],
            comments=comments or [],
        )


PostResponse.model_rebuild()


async def collect_comments(
    session: AsyncSession,
    post_ids: list[str],
) -> dict[str, list[CommentResponse]]:
    """Return each post's comments, newest first."""
    comments: dict[str, list[CommentResponse]] = defaultdict(list)
    if not post_ids:
        return comments

    post_id_column = cast(ColumnElement[str], Comment.post_id)
    result = await session.execute(
        select(Comment)
        .where(post_id_column.in_(post_ids))
        .order_by(
            _desc(Comment.created_at),
            _desc(Comment.id),
        )
    )
    for comment in result.scalars().all():
        comments[comment.post_id].append(CommentResponse.model_validate(comment))
    return comments


async def build_post_responses(
    session: AsyncSession,
    posts: Sequence[Post],
) -> list[PostResponse]:
    post_ids = [post.id for post in posts]
    vote_sets = await collect_vote_sets(session, post_ids)
    comments = await collect_comments(session, post_ids)
    return [
        PostResponse.from_post(
            post,
            before_votes=vote_sets[post.id].before,
            after_votes=vote_sets[post.id].after,
            comments=comments[post.id],
        )
        for post in posts
    ]


async def build_post_response(session: AsyncSession, post: Post) -> PostResponse:
    responses = await build_post_responses(session, [post])
    return responses[0]


async def build_feed(
    *,
    session: AsyncSession,
    response: Response,
    viewer_id: str | None,
    limit: int,
    offset: int,
    category: PostCategory | None = None,
    following_only: bool = False,
    author_id: str | None = None,
) -> list[PostResponse]:
    """Return one newest-first page of posts the viewer is allowed to see.

    ``following_only`` narrows the feed to authors the viewer follows;
    ``category`` and ``author_id`` narrow it further.
    """
    query = select(Post).where(build_post_visibility_filter(viewer_id))
    if category is not None:
        query = query.where(_eq(Post.category, category.value))
    if author_id is not None:
        query = query.where(_eq(Post.user_id, author_id))
    if following_only:
        if viewer_id is None:
            raise AuthenticationError("Authentication required for the following feed")
        followee_ids = select(Follow.followee_id).where(_eq(Follow.follower_id, viewer_id))
        post_user_column = cast(ColumnElement[str], Post.user_id)
        query = query.where(post_user_column.in_(followee_ids))
    query = query.order_by(
        _desc(Post.created_at),
        _desc(Post.id),
    )

    posts = await fetch_page(session, query, response, limit=limit, offset=offset)
    return await build_post_responses(session, posts)
