"""Redis-backed rate limiting utilities."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network, ip_address, ip_network
from typing import Callable, Iterable, Protocol, runtime_checkable

from fastapi import status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

from core import hash_token, settings

logger = logging.getLogger(__name__)


@runtime_checkable
class SupportsRateLimitClient(Protocol):
    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, ttl: int) -> None: ...


# Credential endpoints are keyed by address and fail closed when the limiter
# is unavailable.
GUARDED_PATH_SUFFIXES = ("/users/login", "/users/register")


def _parse_networks(cidrs: Iterable[str]) -> tuple[IPv4Network | IPv6Network, ...]:
    networks: list[IPv4Network | IPv6Network] = []
    for cidr in cidrs:
        try:
            networks.append(ip_network(cidr, strict=False))
        except ValueError as exc:  # pragma: no cover - invalid configuration
            raise ValueError(f"Invalid CIDR in RATE_LIMIT_TRUSTED_PROXIES: {cidr}") from exc
    return tuple(networks)


@lru_cache
def _trusted_proxy_networks() -> tuple[IPv4Network | IPv6Network, ...]:
    return _parse_networks(settings.rate_limit_trusted_proxies)


def _extract_client_ip_from_headers(request: Request) -> str | None:
    for header in settings.rate_limit_ip_headers:
        value = request.headers.get(header)
        if not value:
            continue
        for candidate in value.split(","):
            ip_candidate = candidate.strip()
            if not ip_candidate:
                continue
            try:
                ip_address(ip_candidate)
            except ValueError:
                continue
            return ip_candidate
    return None


def _remote_ip(request: Request) -> tuple[str | None, IPv4Address | IPv6Address | None]:
    host = request.client.host if request.client else None
    if not host:
        return None, None
    try:
        addr = ip_address(host)
    except ValueError:
        return host, None
    return host, addr


def _is_trusted_proxy(remote_ip: IPv4Address | IPv6Address | None) -> bool:
    if remote_ip is None:
        return False
    return any(remote_ip in network for network in _trusted_proxy_networks())


def _is_guarded_path(path: str) -> bool:
    return path.rstrip("/").endswith(GUARDED_PATH_SUFFIXES)


def _client_ip(request: Request) -> str | None:
    remote_host, remote_ip = _remote_ip(request)
    # Forwarded client addresses are only honoured from configured proxies.
    if _is_trusted_proxy(remote_ip):
        forwarded_ip = _extract_client_ip_from_headers(request)
        if forwarded_ip:
            return forwarded_ip
    return remote_host


def default_client_identifier(request: Request) -> str:
    """Resolve a stable client identifier for rate limiting.

    Credential endpoints are always keyed by client address, whatever headers
    the caller sends. Elsewhere a presented token splits the address's bucket
    per token digest so one account cannot exhaust the budget of everyone
    behind the same address. The token is not validated here, so the address
    stays part of the key.
    """
    client_ip = _client_ip(request)
    address = f"ip:{client_ip}" if client_ip else "anonymous"
    if _is_guarded_path(request.url.path):
        return address

    token = request.headers.get(settings.auth_header_name, "").strip()
    if token:
        return f"{address}:token:{hash_token(token)[:32]}"
    return address


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    # Seconds until the current window closes; 0 when unlimited.
    reset_after: int = 0


class RateLimiter:
    """Fixed-window request counter kept in Redis, one key per client and window."""

    def __init__(
        self,
        redis_client: SupportsRateLimitClient,
        limit: int,
        window_seconds: int,
        prefix: str = "rate-limit",
    ) -> None:
        self.redis = redis_client
        self.limit = max(limit, 0)
        self.window_seconds = max(window_seconds, 0)
        self.prefix = prefix

    @property
    def enabled(self) -> bool:
        return self.limit > 0 and self.window_seconds > 0

    async def check(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and report whether it fits the window."""
        if not self.enabled:
            return RateLimitDecision(allowed=True, limit=0, remaining=0)

        now = int(time.time())
        window = now // self.window_seconds
        redis_key = f"{self.prefix}:{key}:{window}"

        count = await self.redis.incr(redis_key)
        if count == 1:
            await self.redis.expire(redis_key, self.window_seconds)
        return RateLimitDecision(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(self.limit - count, 0),
            reset_after=(window + 1) * self.window_seconds - now,
        )


@lru_cache
def get_redis_client() -> SupportsRateLimitClient:
    """Return a cached async Redis client."""
    return Redis.from_url(settings.redis_url, decode_responses=False)


_cached_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter | None:
    """Shared limiter, or None when rate limiting is switched off."""
    global _cached_rate_limiter
    if _cached_rate_limiter is None and settings.rate_limit_requests > 0:
        _cached_rate_limiter = RateLimiter(
            redis_client=get_redis_client(),
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _cached_rate_limiter


def set_rate_limiter(limiter: RateLimiter | None) -> None:
    """Override the cached rate limiter (primarily for tests)."""
    global _cached_rate_limiter
    _cached_rate_limiter = limiter


class RateLimitMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that enforces the configured rate limits."""

    def __init__(
        self,
        app: ASGIApp,
        limiter_factory: Callable[[], RateLimiter | None] = get_rate_limiter,
        exempt_paths: Iterable[str] | None = None,
        client_identifier: Callable[[Request], str] | None = None,
    ) -> None:
        super().__init__(app)
        self.limiter_factory = limiter_factory
        self.exempt_paths = set(exempt_paths or ())
        self.client_identifier = client_identifier or default_client_identifier

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        path = request.url.path
        if path in self.exempt_paths:
            return await call_next(request)

        limiter = self.limiter_factory()
        if limiter is None:
            return await call_next(request)

        client_key = self.client_identifier(request) or "anonymous"
        try:
            decision = await limiter.check(client_key)
        except Exception as exc:
            logger.warning("Rate limiter unavailable", exc_info=exc)
            if _is_guarded_path(path):
                return JSONResponse(
                    {"detail": "Service unavailable"},
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                )
            return await call_next(request)

        if not decision.allowed:
            logger.info("Rate limit exceeded", extra={"client": client_key, "path": path})
            return JSONResponse(
                {"detail": "Too Many Requests"},
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={"Retry-After": str(decision.reset_after), **_limit_headers(decision)},
            )

        response = await call_next(request)
        response.headers.update(_limit_headers(decision))
        return response


def _limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    if decision.limit == 0:
        return {}
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }
