from __future__ import annotations

import asyncio
import logging

import redis.asyncio as redis_async

from anime_api.core.config import Settings

logger = logging.getLogger(__name__)


async def create_redis_client(settings: Settings) -> redis_async.Redis | None:
    """Connect to redis for the rate limiter; ``None`` when unset or unreachable."""
    dsn = settings.redis_dsn_plain()
    if not dsn:
        if settings.rate_limit_enabled:
            logger.warning("rate_limit_without_redis")
        return None

    client = redis_async.Redis.from_url(
        dsn,
        socket_connect_timeout=float(settings.redis_connect_timeout_seconds),
        socket_timeout=float(settings.redis_operation_timeout_seconds),
        retry_on_timeout=True,
        health_check_interval=10,
    )
    try:
        await asyncio.wait_for(client.ping(), timeout=float(settings.redis_connect_timeout_seconds))
    except Exception as exc:  # noqa: BLE001
        logger.warning("redis_unavailable", extra={"reason": str(exc)})
        await close_redis_client(client)
        return None
    return client


async def close_redis_client(client: redis_async.Redis | None) -> None:
    if client is None:
        return
    try:
        await client.aclose()
    except Exception as exc:  # noqa: BLE001
        logger.debug("redis_close_failed", extra={"reason": str(exc)})
