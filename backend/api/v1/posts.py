"""Post, vote and comment endpoints."""

from __future__ import annotations

import logging
from typing import Annotated, Any, cast

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from api.deps import AuthContext, get_current_auth, get_db, get_optional_auth
from core import NotFoundError, ServiceError
from models import DEFAULT_POST_CATEGORY, Comment, Post, PostCategory, Vote, VoteSide
from services.ids import parse_id
from services.post_policy import require_owned_post, require_visible_post
from services.votes import VoteOutcome, place_vote, retract_vote
from .pagination import DEFAULT_FEED_PAGE_SIZE, MAX_PAGE_SIZE
from .post_views import PostResponse, build_feed, build_post_response

router = APIRouter(prefix="/posts", tags=["posts"])
logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2200
MAX_IMAGE_REF_LENGTH = 2048
MAX_COMMENT_LENGTH = 500

PageLimit = Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)]
PageOffset = Annotated[int, Query(ge=0)]


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _require_text(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError("Value cannot be blank")
    return normalized


class PostCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str = Field(min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    before_img: str = Field(min_length=1, max_length=MAX_IMAGE_REF_LENGTH)
    after_img: str = Field(min_length=1, max_length=MAX_IMAGE_REF_LENGTH)
    category: PostCategory = DEFAULT_POST_CATEGORY
    private: bool = False

    @field_validator("title", "description", "before_img", "after_img")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _require_text(value)


class PostUpdateRequest(BaseModel):
    """Editable post fields; anything else in the body is ignored."""

    title: str | None = Field(default=None, min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str | None = Field(default=None, min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    before_img: str | None = Field(default=None, min_length=1, max_length=MAX_IMAGE_REF_LENGTH)
    after_img: str | None = Field(default=None, min_length=1, max_length=MAX_IMAGE_REF_LENGTH)

    @field_validator("title", "description", "before_img", "after_img")
    @classmethod
    def _strip(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _require_text(value)


class CommentCreateRequest(BaseModel):
    text: str = Field(min_length=1, max_length=MAX_COMMENT_LENGTH)

    @field_validator("text")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _require_text(value)


class VoteResponse(BaseModel):
    detail: str
    post: PostResponse


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
async def create_post(
    payload: PostCreateRequest,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> PostResponse:
    post = Post(
        title=payload.title,
        description=payload.description,
        category=payload.category.value,
        before_img=payload.before_img,
        after_img=payload.after_img,
        user_id=auth.user_id,
        username=auth.user.username,
        private=payload.private,
    )
    session.add(post)
    try:
        await session.commit()
    except Exception as exc:
        await session.rollback()
        raise ServiceError("Failed to create post") from exc
    await session.refresh(post)
    logger.info("Post created", extra={"post_id": post.id, "user_id": post.user_id})
    return await build_post_response(session, post)


@router.api_route("/personal", methods=["GET", "POST"], response_model=list[PostResponse])
async def list_personal_posts(
    response: Response,
    limit: PageLimit = DEFAULT_FEED_PAGE_SIZE,
    offset: PageOffset = 0,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> list[PostResponse]:
    """The caller's own posts, private ones included."""
    return await build_feed(
        session=session,
        response=response,
        viewer_id=auth.user_id,
        limit=limit,
        offset=offset,
        author_id=auth.user_id,
    )


@router.api_route("/all", methods=["GET", "POST"], response_model=list[PostResponse])
async def list_all_posts(
    response: Response,
    limit: PageLimit = DEFAULT_FEED_PAGE_SIZE,
    offset: PageOffset = 0,
    category: PostCategory | None = None,
    following: bool = False,
    auth: AuthContext | None = Depends(get_optional_auth),
    session: AsyncSession = Depends(get_db),
) -> list[PostResponse]:
    """Global feed, or the following feed when ``following`` is set."""
    return await build_feed(
        session=session,
        response=response,
        viewer_id=auth.user_id if auth else None,
        limit=limit,
        offset=offset,
        category=category,
        following_only=following,
    )


@router.api_route(
    "/category/{category}",
    methods=["GET", "POST"],
    response_model=list[PostResponse],
)
async def list_category_posts(
    category: PostCategory,
    response: Response,
    limit: PageLimit = DEFAULT_FEED_PAGE_SIZE,
    offset: PageOffset = 0,
    following: bool = False,
    auth: AuthContext | None = Depends(get_optional_auth),
    session: AsyncSession = Depends(get_db),
) -> list[PostResponse]:
    return await build_feed(
        session=session,
        response=response,
        viewer_id=auth.user_id if auth else None,
        limit=limit,
        offset=offset,
        category=category,
        following_only=following,
    )


@router.get("/user/{user_id}", response_model=list[PostResponse])
async def list_user_posts(
    user_id: str,
    response: Response,
    limit: PageLimit = DEFAULT_FEED_PAGE_SIZE,
    offset: PageOffset = 0,
    auth: AuthContext | None = Depends(get_optional_auth),
    session: AsyncSession = Depends(get_db),
) -> list[PostResponse]:
    return await build_feed(
        session=session,
        response=response,
        viewer_id=auth.user_id if auth else None,
        limit=limit,
        offset=offset,
        author_id=parse_id(user_id),
    )


async def _vote(
    session: AsyncSession,
    *,
    raw_post_id: str,
    voter_id: str,
    side: VoteSide,
) -> VoteResponse:
    post_id = parse_id(raw_post_id)
    await require_visible_post(session, post_id=post_id, viewer_id=voter_id)
    outcome = await place_vote(session, post_id=post_id, voter_id=voter_id, side=side)
    # Reload: a rolled-back duplicate insert expires every loaded instance.
    post = await require_visible_post(session, post_id=post_id, viewer_id=voter_id)
    detail = {
        VoteOutcome.CAST: f"Voted {side.value}",
        VoteOutcome.MOVED: f"Vote moved to {side.value}",
        VoteOutcome.UNCHANGED: f"Already voted {side.value}",
    }[outcome]
    return VoteResponse(detail=detail, post=await build_post_response(session, post))


@router.api_route(
    "/vote/before/{post_id}",
    methods=["PATCH", "POST"],
    response_model=VoteResponse,
)
async def vote_before(
    post_id: str,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> VoteResponse:
    return await _vote(session, raw_post_id=post_id, voter_id=auth.user_id, side=VoteSide.BEFORE)


@router.api_route(
    "/vote/after/{post_id}",
    methods=["PATCH", "POST"],
    response_model=VoteResponse,
)
async def vote_after(
    post_id: str,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> VoteResponse:
    return await _vote(session, raw_post_id=post_id, voter_id=auth.user_id, side=VoteSide.AFTER)


@router.delete("/vote/{post_id}", response_model=VoteResponse)
async def withdraw_vote(
    post_id: str,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> VoteResponse:
    parsed_id = parse_id(post_id)
    post = await require_visible_post(session, post_id=parsed_id, viewer_id=auth.user_id)
    removed = await retract_vote(session, post_id=parsed_id, voter_id=auth.user_id)
    return VoteResponse(
        detail="Vote removed" if removed else "No vote to remove",
        post=await build_post_response(session, post),
    )


@router.post(
    "/comment/{post_id}",
    status_code=status.HTTP_201_CREATED,
    response_model=PostResponse,
)
async def create_comment(
    post_id: str,
    payload: CommentCreateRequest,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> PostResponse:
    parsed_id = parse_id(post_id)
    post = await require_visible_post(session, post_id=parsed_id, viewer_id=auth.user_id)

    session.add(
        Comment(
            post_id=parsed_id,
            user_id=auth.user_id,
            username=auth.user.username,
            text=payload.text,
        )
    )
    try:
        await session.commit()
    except Exception as exc:
        await session.rollback()
        raise ServiceError("Failed to add comment") from exc
    return await build_post_response(session, post)


@router.delete("/comment/{post_id}/{comment_id}", response_model=PostResponse)
async def delete_comment(
    post_id: str,
    comment_id: str,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> PostResponse:
    """Comment authors and the post owner may remove a comment; nobody else."""
    parsed_post_id = parse_id(post_id)
    parsed_comment_id = parse_id(comment_id)
    viewer_id = auth.user_id

    post_owner_column = cast(ColumnElement[str], Post.user_id)
    comment_author_column = cast(ColumnElement[str], Comment.user_id)
    result = await session.execute(
        select(Comment)
        .join(Post, _eq(Post.id, Comment.post_id))
        .where(
            _eq(Comment.post_id, parsed_post_id),
            _eq(Comment.id, parsed_comment_id),
            or_(
                _eq(comment_author_column, viewer_id),
                _eq(post_owner_column, viewer_id),
            ),
        )
        .limit(1)
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFoundError("Comment not found")

    await session.delete(comment)
    try:
        await session.commit()
    except Exception as exc:
        await session.rollback()
        raise ServiceError("Failed to delete comment") from exc

    post = await require_visible_post(session, post_id=parsed_post_id, viewer_id=viewer_id)
    return await build_post_response(session, post)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    auth: AuthContext | None = Depends(get_optional_auth),
    session: AsyncSession = Depends(get_db),
) -> PostResponse:
    post = await require_visible_post(
        session,
        post_id=parse_id(post_id),
        viewer_id=auth.user_id if auth else None,
    )
    return await build_post_response(session, post)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    payload: PostUpdateRequest,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> PostResponse:
    post = await require_owned_post(session, post_id=parse_id(post_id), owner_id=auth.user_id)

    changes = {
        field_name: value
        for field_name, value in payload.model_dump(exclude_unset=True).items()
        if value is not None
    }
    for field_name, value in changes.items():
        setattr(post, field_name, value)

    if changes:
        session.add(post)
        try:
            await session.commit()
        except Exception as exc:
            await session.rollback()
            raise ServiceError("Failed to update post") from exc
        await session.refresh(post)
    return await build_post_response(session, post)


@router.delete("/{post_id}", status_code=status.HTTP_200_OK)
async def delete_post(
    post_id: str,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    post = await require_owned_post(session, post_id=parse_id(post_id), owner_id=auth.user_id)
    owned_post_id = post.id

    await session.execute(delete(Vote).where(_eq(Vote.post_id, owned_post_id)))
    await session.execute(delete(Comment).where(_eq(Comment.post_id, owned_post_id)))
    await session.delete(post)
    try:
        await session.commit()
    except Exception as exc:
        await session.rollback()
        raise ServiceError("Failed to delete post") from exc

    logger.info("Post deleted", extra={"post_id": owned_post_id, "user_id": auth.user_id})
    return {"detail": "Deleted"}
