"""Account, profile and follow endpoints."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Annotated, Any, cast

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from api.deps import AuthContext, get_current_auth, get_db, require_admin
from core import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    ServiceError,
    hash_password,
    needs_rehash,
)
from db.errors import is_unique_violation
from models import User, UserRole
from services.auth import (
    issue_token,
    normalize_email,
    normalize_username,
    registration_conflict_exists,
    resolve_login_user,
    revoke_token,
)
from services.follow_graph import collect_follow_lists, follow, unfollow
from services.ids import parse_id
from .pagination import MAX_PAGE_SIZE, fetch_page

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)

MAX_PROFILE_NAME_LENGTH = 80
MAX_PROFILE_BIO_LENGTH = 500
MAX_AVATAR_URL_LENGTH = 2048
DEFAULT_USER_PAGE_SIZE = 10
USER_EXISTS_DETAIL = "User with that username or email already exists"


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _ne(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column != value)


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=30)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    first_name: str | None = Field(default=None, max_length=MAX_PROFILE_NAME_LENGTH)
    last_name: str | None = Field(default=None, max_length=MAX_PROFILE_NAME_LENGTH)

    @field_validator("username")
    @classmethod
    def _validate_username(cls, value: str) -> str:
        normalized = normalize_username(value)
        if not normalized:
            raise ValueError("Username cannot be blank")
        if "@" in normalized:
            raise ValueError("Username cannot contain '@'")
        return normalized


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class ProfileUpdateRequest(BaseModel):
    """Only these profile fields are editable; unknown keys are ignored."""

    first_name: str | None = Field(default=None, max_length=MAX_PROFILE_NAME_LENGTH)
    last_name: str | None = Field(default=None, max_length=MAX_PROFILE_NAME_LENGTH)
    avatar: str | None = Field(default=None, max_length=MAX_AVATAR_URL_LENGTH)
    bio: str | None = Field(default=None, max_length=MAX_PROFILE_BIO_LENGTH)


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    avatar: str | None = None
    role: UserRole = UserRole.USER
    verified: bool = False
    followers: list[str] = []
    following: list[str] = []
    created_at: datetime


class UserPrivate(UserPublic):
    email: EmailStr


class AuthResponse(BaseModel):
    user: UserPrivate
    token: str


class FollowResponse(BaseModel):
    detail: str
    following: list[str]
    followers: list[str]


async def _build_users(
    session: AsyncSession,
    users: Sequence[User],
    *,
    model: type[UserPublic] = UserPublic,
) -> list[Any]:
    lists = await collect_follow_lists(session, [user.id for user in users])
    return [
        model.model_validate(user).model_copy(
            update={
                "followers": lists[user.id].followers,
                "following": lists[user.id].following,
            }
        )
        for user in users
    ]


async def _build_private_user(session: AsyncSession, user: User) -> UserPrivate:
    built = await _build_users(session, [user], model=UserPrivate)
    return cast(UserPrivate, built[0])


async def _require_user(session: AsyncSession, user_id: str) -> User:
    result = await session.execute(select(User).where(_eq(User.id, user_id)).limit(1))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.post("/register", response_model=AuthResponse)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    normalized_email = normalize_email(str(payload.email))
    if await registration_conflict_exists(
        session,
        username=payload.username,
        normalized_email=normalized_email,
    ):
        raise ConflictError(USER_EXISTS_DETAIL)

    user = User(
        username=payload.username,
        email=normalized_email,
        password_hash=hash_password(payload.password),
        first_name=_strip_or_none(payload.first_name),
        last_name=_strip_or_none(payload.last_name),
    )
    session.add(user)
    try:
        await session.flush()
        token = await issue_token(session, user.id)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise ConflictError(USER_EXISTS_DETAIL) from exc
        raise
    logger.info("User registered", extra={"user_id": user.id})
    return AuthResponse(user=await _build_private_user(session, user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    user = await resolve_login_user(
        session,
        email=str(payload.email),
        password=payload.password,
    )
    if user is None:
        logger.info("Rejected login attempt")
        raise AuthenticationError("Invalid credentials")

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)

    token = await issue_token(session, user.id)
    try:
        await session.commit()
    except Exception as exc:
        await session.rollback()
        raise ServiceError("Failed to log in") from exc
    return AuthResponse(user=await _build_private_user(session, user), token=token)


@router.delete("/logout", status_code=status.HTTP_200_OK)
async def logout(
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    await revoke_token(session, auth.user_id, auth.token)
    try:
        await session.commit()
    except Exception as exc:
        await session.rollback()
        raise ServiceError("Failed to log out") from exc
    return {"detail": "Logged out"}


@router.get("/verify", response_model=UserPrivate)
async def verify(
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> UserPrivate:
    """Return the caller's own profile, proving the token is valid."""
    return await _build_private_user(session, auth.user)


@router.get("", response_model=list[UserPublic])
async def list_users(
    response: Response,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_USER_PAGE_SIZE,
    offset: Annotated[int, Query(ge=0)] = 0,
    random: bool = False,
    auth: AuthContext = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> list[UserPublic]:
    """Admin-only listing of every other account."""
    query = select(User).where(_ne(User.id, auth.user_id))
    if random:
        query = query.order_by(func.random())
    else:
        query = query.order_by(User.username, User.id)

    users = await fetch_page(session, query, response, limit=limit, offset=offset)
    return await _build_users(session, users)


@router.patch("/edit", response_model=UserPrivate)
async def edit_profile(
    payload: ProfileUpdateRequest,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> UserPrivate:
    user = auth.user
    changes = payload.model_dump(exclude_unset=True)
    for field_name, value in changes.items():
        setattr(user, field_name, _strip_or_none(value))

    if changes:
        session.add(user)
        try:
            await session.commit()
        except Exception as exc:
            await session.rollback()
            raise ServiceError("Failed to update profile") from exc
        await session.refresh(user)
    return await _build_private_user(session, user)


@router.patch("/follow/{user_id}", response_model=FollowResponse)
async def follow_user(
    user_id: str,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> FollowResponse:
    target_id = parse_id(user_id)
    follower_id = auth.user_id
    if target_id == follower_id:
        raise BadRequestError("You cannot follow yourself")
    await _require_user(session, target_id)

    created = await follow(session, follower_id=follower_id, followee_id=target_id)
    lists = await collect_follow_lists(session, [follower_id, target_id])
    return FollowResponse(
        detail="Followed" if created else "Already following",
        following=lists[follower_id].following,
        followers=lists[target_id].followers,
    )


@router.patch("/unfollow/{user_id}", response_model=FollowResponse)
async def unfollow_user(
    user_id: str,
    auth: AuthContext = Depends(get_current_auth),
    session: AsyncSession = Depends(get_db),
) -> FollowResponse:
    target_id = parse_id(user_id)
    follower_id = auth.user_id
    if target_id == follower_id:
        raise BadRequestError("You cannot unfollow yourself")
    await _require_user(session, target_id)

    removed = await unfollow(session, follower_id=follower_id, followee_id=target_id)
    lists = await collect_follow_lists(session, [follower_id, target_id])
    return FollowResponse(
        detail="Unfollowed" if removed else "Not following",
        following=lists[follower_id].following,
        followers=lists[target_id].followers,
    )


@router.get("/{user_id}", response_model=UserPublic)
async def get_user_profile(
    user_id: str,
    session: AsyncSession = Depends(get_db),
) -> UserPublic:
    """Public profile; never includes email or tokens."""
    user = await _require_user(session, parse_id(user_id))
    built = await _build_users(session, [user])
    return cast(UserPublic, built[0])
