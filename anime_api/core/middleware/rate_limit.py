from __future__ import annotations

import asyncio
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from anime_api.core.config import Settings, get_settings
from anime_api.core.context import client_ip_ctx_var
from anime_api.core.errors import RateLimitedError
from anime_api.core.exception_handlers import app_error_response

logger = logging.getLogger(__name__)

_LUA_INCR_EXPIRE = """
local current = redis.call('INCR', KEYS[1])
if current == 1 then
  redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return current
"""

_EXEMPT_PATHS = ("/healthz", "/readyz")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window request counter per client IP, kept in redis.

    Fails open: when redis is absent or errors, requests pass through.
    Rejections are answered here since exceptions raised in middleware never
    reach the app's exception handlers.
    """

    def __init__(self, app: ASGIApp, *, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        settings = self._settings or get_settings()
        if not settings.rate_limit_enabled:
            return await call_next(request)

        if request.method.upper() == "OPTIONS" or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        redis = getattr(request.app.state, "redis", None)
        if redis is None:
            return await call_next(request)

        ip = client_ip_ctx_var.get()
        window = int(settings.rate_limit_window_seconds)
        limit = int(settings.rate_limit_requests)
        now = int(time.time())
        bucket = now // window
        key = f"{settings.rate_limit_key_prefix}{ip}:{bucket}"

        try:
            current = await asyncio.wait_for(
                redis.eval(_LUA_INCR_EXPIRE, 1, key, window + 1),
                timeout=settings.redis_operation_timeout_seconds,
            )
            count = int(current)
        except Exception as exc:  # noqa: BLE001
            logger.warning("rate_limit_unavailable", extra={"reason": str(exc)})
            return await call_next(request)

        if count > limit:
            retry_after = window - (now % window)
            return app_error_response(request, RateLimitedError(retry_after_seconds=retry_after))

        return await call_next(request)
