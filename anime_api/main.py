from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from anime_api.api.router import router as api_router
from anime_api.core.auth import AccessPolicy, UserDirectory
from anime_api.core.config import Settings, get_settings
from anime_api.core.exception_handlers import register_exception_handlers
from anime_api.core.logging import setup_logging
from anime_api.core.middleware.access_log import AccessLogMiddleware
from anime_api.core.middleware.rate_limit import RateLimitMiddleware
from anime_api.core.middleware.request_context import RequestContextMiddleware
from anime_api.core.middleware.security_headers import SecurityHeadersMiddleware
from anime_api.infrastructure.db.session import build_async_engine, build_sessionmaker
from anime_api.infrastructure.redis.client import close_redis_client, create_redis_client

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    docs_url = "/docs" if settings.docs_enabled else None
    redoc_url = "/redoc" if settings.docs_enabled else None
    openapi_url = "/openapi.json" if settings.docs_enabled else None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        await _startup(app, settings)
        try:
            yield
        finally:
            await _shutdown(app)

    app = FastAPI(
        title=settings.app_name,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
        lifespan=lifespan,
    )

    app.state.user_directory = UserDirectory(settings.security_users)
    app.state.access_policy = AccessPolicy()

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        allow_credentials=settings.cors_allow_credentials,
    )

    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    app.add_middleware(RateLimitMiddleware, settings=settings)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestContextMiddleware, settings=settings)

    app.include_router(api_router, prefix=settings.api_prefix)

    logger.info(
        "app_configured",
        extra={"users": len(app.state.user_directory), "access_rules": len(app.state.access_policy.rules)},
    )
    return app


async def _startup(app: FastAPI, settings: Settings) -> None:
    engine: AsyncEngine = build_async_engine(settings)
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)

    redis = await create_redis_client(settings)
    app.state.redis = redis

    logger.info("startup_complete", extra={"redis_enabled": redis is not None})


async def _shutdown(app: FastAPI) -> None:
    redis = getattr(app.state, "redis", None)
    await close_redis_client(redis)

    engine: AsyncEngine | None = getattr(app.state, "engine", None)
    if engine is not None:
        try:
            await engine.dispose()
        except Exception as exc:  # noqa: BLE001
            logger.warning("engine_dispose_failed", extra={"reason": str(exc)})


app = create_app()
