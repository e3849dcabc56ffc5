"""Request-scoped dependencies: database session and caller identity."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from core import AuthenticationError, PermissionDeniedError, settings
from db.session import get_session
from models import User
from services.auth import resolve_token_user

token_header = APIKeyHeader(
    name=settings.auth_header_name,
    scheme_name="TokenHeader",
    auto_error=False,
)


@dataclass(frozen=True, slots=True)
class AuthContext:
    """The authenticated caller and the exact token they presented."""

    user: User
    token: str

    @property
    def user_id(self) -> str:
        return self.user.id


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


async def _resolve_auth(session: AsyncSession, raw_token: str) -> AuthContext:
    token = raw_token.strip()
    if not token:
        raise AuthenticationError("Invalid token")
    user = await resolve_token_user(session, token)
    if user is None:
        raise AuthenticationError("Invalid token")
    return AuthContext(user=user, token=token)


async def get_current_auth(
    raw_token: str | None = Security(token_header),
    session: AsyncSession = Depends(get_db),
) -> AuthContext:
    if raw_token is None:
        raise AuthenticationError("Not authenticated")
    return await _resolve_auth(session, raw_token)


async def get_optional_auth(
    raw_token: str | None = Security(token_header),
    session: AsyncSession = Depends(get_db),
) -> AuthContext | None:
    """Anonymous when no token header is sent; a bad token is still rejected."""
    if raw_token is None:
        return None
    return await _resolve_auth(session, raw_token)


async def require_admin(auth: AuthContext = Depends(get_current_auth)) -> AuthContext:
    if not auth.user.is_admin:
        raise PermissionDeniedError()
    return auth
