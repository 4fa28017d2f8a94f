from __future__ import annotations

import asyncio
import logging
from typing import Literal

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncEngine

from anime_api.core.config import Settings
from anime_api.core.deps import settings_dep
from anime_api.infrastructure.db.session import ping_database

logger = logging.getLogger(__name__)

router = APIRouter()

CheckState = Literal["up", "down", "disabled"]


class LivenessResponse(BaseModel):
    status: str = "ok"


class ReadinessResponse(BaseModel):
    status: Literal["ready", "unavailable"]
    database: CheckState
    redis: CheckState


@router.get("/healthz", response_model=LivenessResponse)
async def healthz() -> LivenessResponse:
    """Process is up; touches no dependency."""
    return LivenessResponse()


async def _database_state(engine: AsyncEngine | None, timeout_seconds: float) -> CheckState:
    if engine is None:
        return "down"
    try:
        await ping_database(engine, timeout_seconds=timeout_seconds)
    except Exception as exc:  # noqa: BLE001
        logger.warning("readiness_database_down", extra={"reason": str(exc)})
        return "down"
    return "up"


async def _redis_state(client, timeout_seconds: float) -> CheckState:
    if client is None:
        return "disabled"
    try:
        await asyncio.wait_for(client.ping(), timeout=timeout_seconds)
    except Exception as exc:  # noqa: BLE001
        logger.warning("readiness_redis_down", extra={"reason": str(exc)})
        return "down"
    return "up"


@router.get(
    "/readyz",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readyz(request: Request, response: Response, settings: Settings = Depends(settings_dep)) -> ReadinessResponse:
    """Database must answer ``SELECT 1``; redis counts only when configured.

    Redis being down leaves the app serving (the rate limiter fails open),
    so it is reported but does not fail readiness.
    """
    database = await _database_state(
        getattr(request.app.state, "engine", None),
        settings.repository_timeout_seconds,
    )
    redis = await _redis_state(
        getattr(request.app.state, "redis", None),
        settings.redis_operation_timeout_seconds,
    )

    if database != "up":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="unavailable", database=database, redis=redis)
    return ReadinessResponse(status="ready", database=database, redis=redis)
