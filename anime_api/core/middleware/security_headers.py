from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from anime_api.core.config import Settings, get_settings

_API_HEADERS: tuple[tuple[str, str], ...] = (
    ("X-Content-Type-Options", "nosniff"),
    ("X-Frame-Options", "DENY"),
    ("Referrer-Policy", "no-referrer"),
    ("Cache-Control", "no-store"),
    ("Cross-Origin-Resource-Policy", "same-site"),
    ("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'"),
)

_DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        settings = self._settings or get_settings()
        if not settings.enable_security_headers:
            return response

        # swagger ui pulls scripts from a CDN
        is_docs = request.url.path.startswith(_DOCS_PATHS)
        for name, value in _API_HEADERS:
            if is_docs and name == "Content-Security-Policy":
                continue
            response.headers.setdefault(name, value)

        if settings.app_env == "prod":
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response
