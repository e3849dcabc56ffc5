"""SQLModel models package."""

from .auth_token import AuthToken
from .comment import Comment
from .follow import Follow
from .post import DEFAULT_POST_CATEGORY, Post, PostCategory
from .user import User, UserRole
from .vote import Vote, VoteSide

__all__ = [
    "User",
    "UserRole",
    "AuthToken",
    "Follow",
    "Post",
    "PostCategory",
    "DEFAULT_POST_CATEGORY",
    "Vote",
    "VoteSide",
    "Comment",
]
