"""FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.v1 import router as v1_router
from core import configure_logging, settings
from services import RateLimitMiddleware, get_rate_limiter

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="Before/After API", version="0.1.0")

    app.add_middleware(
        RateLimitMiddleware,
        limiter_factory=get_rate_limiter,
        exempt_paths={HEALTH_PATH},
    )
    # Added last so it wraps the limiter and 429 responses keep CORS headers.
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(v1_router, prefix=settings.api_prefix)

    @app.get(HEALTH_PATH, include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    logger.debug("Application created", extra={"env": settings.app_env})
    return app
