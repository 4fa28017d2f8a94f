from __future__ import annotations

import ipaddress
import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import HTTPConnection, Request
from starlette.responses import Response
from starlette.types import ASGIApp

from anime_api.core.config import Settings, get_settings
from anime_api.core.context import client_ip_ctx_var, request_id_ctx_var, username_ctx_var

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]{7,63}")


def accept_request_id(incoming: str | None) -> str:
    """Echo a well-formed caller id, otherwise mint a fresh one."""
    candidate = (incoming or "").strip()
    if _REQUEST_ID_RE.fullmatch(candidate):
        return candidate
    return uuid.uuid4().hex


def _parse_ip(value: str) -> str | None:
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def resolve_client_ip(conn: HTTPConnection, *, trust_proxy_headers: bool) -> str:
    # forwarded values key the rate limiter, so anything that is not an address is dropped
    if trust_proxy_headers:
        first_hop = conn.headers.get("x-forwarded-for", "").split(",")[0]
        for candidate in (first_hop, conn.headers.get("x-real-ip", "")):
            ip = _parse_ip(candidate) if candidate else None
            if ip:
                return ip

    if conn.client and conn.client.host:
        return conn.client.host
    return "-"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request id, client IP and an anonymous username for everything downstream."""

    def __init__(self, app: ASGIApp, *, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        settings = self._settings or get_settings()
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = rid

        tokens = (
            (request_id_ctx_var, request_id_ctx_var.set(rid)),
            (client_ip_ctx_var, client_ip_ctx_var.set(resolve_client_ip(request, trust_proxy_headers=settings.trusted_proxy_headers))),
            (username_ctx_var, username_ctx_var.set("-")),
        )
        try:
            response = await call_next(request)
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
