"""User domain model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, Text, text
from sqlmodel import Field, SQLModel

from ._time import utc_now


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class User(SQLModel, table=True):
    """Registered application user."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    username: str = Field(
        sa_column=Column(String(30), unique=True, nullable=False, index=True)
    )
    email: str = Field(
        sa_column=Column(String(255), unique=True, nullable=False, index=True)
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    first_name: str | None = Field(
        default=None, sa_column=Column(String(80), nullable=True)
    )
    last_name: str | None = Field(
        default=None, sa_column=Column(String(80), nullable=True)
    )
    bio: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    avatar: str | None = Field(
        default=None, sa_column=Column(String(2048), nullable=True)
    )
    role: str = Field(
        default=UserRole.USER.value,
        sa_column=Column(
            String(16),
            nullable=False,
            server_default=text("'user'"),
        ),
    )
    verified: bool = Field(
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

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
