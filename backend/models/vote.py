"""Before/after vote model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String
from sqlmodel import Field, SQLModel

from ._time import utc_now


class VoteSide(str, Enum):
    BEFORE = "before"
    AFTER = "after"

    @property
    def opposite(self) -> "VoteSide":
        return VoteSide.AFTER if self is VoteSide.BEFORE else VoteSide.BEFORE


class Vote(SQLModel, table=True):
    """A voter's choice on one post.

    The composite primary key keeps every voter on at most one side.
    """

    __tablename__ = "votes"
    __table_args__ = (
        CheckConstraint("side IN ('before', 'after')", name="ck_votes_side"),
    )

    post_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("posts.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    voter_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    side: str = Field(sa_column=Column(String(8), nullable=False))
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
