"""Before/after post model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, text
from sqlmodel import Field, SQLModel

from ._time import utc_now


class PostCategory(str, Enum):
    ENTERTAINMENT = "entertainment"
    FITNESS = "fitness"
    FASHION = "fashion"
    BEAUTY = "beauty"
    HOME = "home"
    FOOD = "food"
    ART = "art"
    TRAVEL = "travel"
    OTHER = "other"


DEFAULT_POST_CATEGORY = PostCategory.ENTERTAINMENT


class Post(SQLModel, table=True):
    """A pair of before/after images published by a user."""

    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_created_at_id", "created_at", "id"),
        Index("ix_posts_user_created_at", "user_id", "created_at"),
        Index("ix_posts_category_created_at", "category", "created_at"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    title: str = Field(sa_column=Column(String(200), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    category: str = Field(
        default=DEFAULT_POST_CATEGORY.value,
        sa_column=Column(
            String(32),
            nullable=False,
            server_default=text("'entertainment'"),
        ),
    )
    before_img: str = Field(sa_column=Column(String(2048), nullable=False))
    after_img: str = Field(sa_column=Column(String(2048), nullable=False))
    user_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    # Owner username cached at creation so feeds render without a join.
    username: str = Field(sa_column=Column(String(30), nullable=False))
    private: bool = Field(
        default=False,
        sa_column=Column(
            Boolean,
            nullable=False,
            server_default=text("false"),
        ),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(
            DateTime(timezone=True),
            onupdate=utc_now,
            nullable=False,
        ),
    )
