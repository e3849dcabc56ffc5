"""Directed follow relationship between two users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlmodel import Field, SQLModel

from ._time import utc_now


class Follow(SQLModel, table=True):
    """``follower_id`` follows ``followee_id``.

    A single row backs both the follower's ``following`` list and the
    followee's ``followers`` list.
    """

    __tablename__ = "follows"
    __table_args__ = (
        Index("ix_follows_followee_id", "followee_id"),
    )

    follower_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    followee_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
