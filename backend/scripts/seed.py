"""Database seed script for local development.

Usage:
    uv run python scripts/seed.py

Optional image host override:
    SEED_IMAGE_BASE_URL=https://cdn.example.com/demo uv run python scripts/seed.py

Posts reference images as ``<base-url>/<slug>-before/1080`` and
``<base-url>/<slug>-after/1080``; the default host serves a stable
placeholder for every slug.
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.sql import ColumnElement

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from core.security import hash_password  # noqa: E402
from db.session import AsyncSessionMaker  # noqa: E402
from models import Comment, Follow, Post, PostCategory, User, Vote, VoteSide  # noqa: E402


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(frozen=True)
class SeedUser:
    username: str
    email: str
    first_name: str
    bio: str


@dataclass(frozen=True)
class SeedPost:
    username: str
    slug: str
    title: str
    description: str
    category: PostCategory
    private: bool = False


@dataclass(frozen=True)
class SeedPlan:
    users: list[SeedUser]
    posts: list[SeedPost]
    follows: list[tuple[str, str]]
    image_base_url: str


BASE_USERS: Sequence[SeedUser] = [
    SeedUser(
        username="demo_alex",
        email="alex@example.com",
        first_name="Alex",
        bio="Weekend renovator.",
    ),
    SeedUser(
        username="demo_bella",
        email="bella@example.com",
        first_name="Bella",
        bio="Marathon in progress.",
    ),
    SeedUser(
        username="demo_cara",
        email="cara@example.com",
        first_name="Cara",
        bio="Painting every morning.",
    ),
    SeedUser(
        username="demo_dan",
        email="dan@example.com",
        first_name="Dan",
        bio="Sourdough believer.",
    ),
    SeedUser(
        username="demo_ella",
        email="ella@example.com",
        first_name="Ella",
        bio="Thrift flips and tailoring.",
    ),
]

BASE_POSTS: Sequence[SeedPost] = [
    SeedPost(
        username="demo_alex",
        slug="alex-kitchen",
        title="Kitchen cabinets",
        description="Sanded, primed and painted over three weekends.",
        category=PostCategory.HOME,
    ),
    SeedPost(
        username="demo_alex",
        slug="alex-garden-shed",
        title="Garden shed",
        description="Still deciding on the door colour.",
        category=PostCategory.HOME,
        private=True,
    ),
    SeedPost(
        username="demo_bella",
        slug="bella-training",
        title="Six months of training",
        description="Couch to half marathon.",
        category=PostCategory.FITNESS,
    ),
    SeedPost(
        username="demo_cara",
        slug="cara-portrait",
        title="Portrait study",
        description="Underpainting versus the finished piece.",
        category=PostCategory.ART,
    ),
    SeedPost(
        username="demo_dan",
        slug="dan-loaf",
        title="First loaf vs. latest loaf",
        description="Hydration is everything.",
        category=PostCategory.FOOD,
    ),
    SeedPost(
        username="demo_ella",
        slug="ella-jacket",
        title="Denim jacket rework",
        description="Cropped, patched and re-dyed.",
        category=PostCategory.FASHION,
    ),
]

DEFAULT_PASSWORD = "password123"
DEFAULT_IMAGE_BASE_URL = "https://picsum.photos/seed"
SEED_IMAGE_BASE_URL_ENV = "SEED_IMAGE_BASE_URL"
SEED_COMMENT_TEXT = "What a difference!"


def _build_seed_follows(usernames: Sequence[str]) -> list[tuple[str, str]]:
    if len(usernames) < 2:
        return []

    relationships: set[tuple[str, str]] = set()
    total_users = len(usernames)
    for index, follower in enumerate(usernames):
        followee = usernames[(index + 1) % total_users]
        if followee != follower:
            relationships.add((follower, followee))

    return sorted(relationships)


def build_seed_plan() -> SeedPlan:
    image_base_url = os.getenv(SEED_IMAGE_BASE_URL_ENV, DEFAULT_IMAGE_BASE_URL).rstrip("/")
    users = list(BASE_USERS)
    return SeedPlan(
        users=users,
        posts=list(BASE_POSTS),
        follows=_build_seed_follows([user.username for user in users]),
        image_base_url=image_base_url,
    )


def _image_url(base_url: str, slug: str, side: VoteSide) -> str:
    return f"{base_url}/{slug}-{side.value}/1080"


async def get_or_create_user(session, payload: SeedUser) -> User:
    result = await session.execute(select(User).where(_eq(User.username, payload.username)))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        username=payload.username,
        email=payload.email,
        first_name=payload.first_name,
        bio=payload.bio,
        password_hash=hash_password(DEFAULT_PASSWORD),
    )
    session.add(user)
    await session.flush()
    return user


async def ensure_posts(
    session,
    users: dict[str, User],
    posts: Sequence[SeedPost],
    *,
    image_base_url: str,
) -> list[Post]:
    ensured: list[Post] = []
    for payload in posts:
        author = users[payload.username]
        result = await session.execute(
            select(Post).where(
                _eq(Post.user_id, author.id),
                _eq(Post.title, payload.title),
            )
        )
        post = result.scalar_one_or_none()
        if post is None:
            post = Post(
                title=payload.title,
                description=payload.description,
                category=payload.category.value,
                before_img=_image_url(image_base_url, payload.slug, VoteSide.BEFORE),
                after_img=_image_url(image_base_url, payload.slug, VoteSide.AFTER),
                user_id=author.id,
                username=author.username,
                private=payload.private,
            )
            session.add(post)
            await session.flush()
        ensured.append(post)
    return ensured


async def ensure_follows(
    session,
    users: dict[str, User],
    follows: Sequence[tuple[str, str]],
) -> None:
    for follower_username, followee_username in follows:
        follower = users[follower_username]
        followee = users[followee_username]

        result = await session.execute(
            select(Follow).where(
                _eq(Follow.follower_id, follower.id),
                _eq(Follow.followee_id, followee.id),
            )
        )
        if result.scalar_one_or_none():
            continue

        session.add(Follow(follower_id=follower.id, followee_id=followee.id))


async def ensure_engagement(session, users: dict[str, User], posts: Sequence[Post]) -> int:
    """Give every public post a vote and a comment from the next seeded user."""
    voters = list(users.values())
    created = 0
    for index, post in enumerate(posts):
        if post.private:
            continue
        voter = voters[(index + 1) % len(voters)]
        if voter.id == post.user_id:
            continue

        existing = await session.execute(
            select(Vote).where(_eq(Vote.post_id, post.id), _eq(Vote.voter_id, voter.id))
        )
        if existing.scalar_one_or_none() is None:
            side = VoteSide.AFTER if index % 3 else VoteSide.BEFORE
            session.add(Vote(post_id=post.id, voter_id=voter.id, side=side.value))
            session.add(
                Comment(
                    post_id=post.id,
                    user_id=voter.id,
                    username=voter.username,
                    text=SEED_COMMENT_TEXT,
                )
            )
            created += 1
    return created


async def seed() -> None:
    plan = build_seed_plan()

    async with AsyncSessionMaker() as session:
        users: dict[str, User] = {}
        for payload in plan.users:
            user = await get_or_create_user(session, payload)
            users[user.username] = user

        posts = await ensure_posts(
            session,
            users,
            plan.posts,
            image_base_url=plan.image_base_url,
        )
        await ensure_follows(session, users, plan.follows)
        engaged = await ensure_engagement(session, users, posts)
        await session.commit()

    print("✅ Seed data inserted.")
    print("   Users:", ", ".join(user.username for user in plan.users))
    print("   Default password:", DEFAULT_PASSWORD)
    print("   Posts:", len(plan.posts))
    print("   Follows:", len(plan.follows))
    print("   New votes/comments:", engaged)
    print("   Images served from:", plan.image_base_url)


if __name__ == "__main__":
    asyncio.run(seed())
