"""Version 1 of the HTTP API."""

from fastapi import APIRouter

from .posts import router as posts_router
from .users import router as users_router

router = APIRouter()
router.include_router(users_router)
router.include_router(posts_router)

__all__ = ["router"]
