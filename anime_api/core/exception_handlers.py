from __future__ import annotations

import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from anime_api.core.errors import AppError, InternalError

logger = logging.getLogger(__name__)

DEVELOPER_MESSAGE = "A ResponseStatusException Happened"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-") or "-"


def _reason(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"


def error_attributes(*, request: Request, status: int, message: str | None, with_developer_message: bool = True) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "path": request.url.path,
        "status": status,
        "error": _reason(status),
        "message": message or _reason(status),
        "requestId": _request_id(request),
    }
    if with_developer_message:
        payload["developerMessage"] = DEVELOPER_MESSAGE
    return payload


def app_error_response(request: Request, exc: AppError) -> JSONResponse:
    rid = _request_id(request)
    payload = error_attributes(request=request, status=exc.http_status, message=exc.message)

    headers: dict[str, str] = {}
    extra = exc.extra or {}
    if "retry_after_seconds" in extra:
        headers["Retry-After"] = str(int(extra["retry_after_seconds"]))
    if "www_authenticate" in extra:
        headers["WWW-Authenticate"] = str(extra["www_authenticate"])

    if exc.http_status >= 500:
        logger.warning("app_error", extra={"code": exc.code, "request_id": rid}, exc_info=exc)
    else:
        logger.info("app_error", extra={"code": exc.code, "status": exc.http_status, "request_id": rid})

    return JSONResponse(status_code=exc.http_status, content=payload, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return app_error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        rid = _request_id(request)
        logger.info("http_exception", extra={"status": exc.status_code, "request_id": rid})
        detail = exc.detail if isinstance(exc.detail, str) else None
        payload = error_attributes(request=request, status=exc.status_code, message=detail)
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        rid = _request_id(request)
        errors = exc.errors()
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in errors]
        logger.info("request_validation_error", extra={"request_id": rid, "fields": fields})

        message = "; ".join(f"{field}: {err.get('msg', 'invalid')}" for field, err in zip(fields, errors))
        payload = error_attributes(request=request, status=400, message=message or "Invalid request")
        return JSONResponse(status_code=400, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
        rid = _request_id(request)
        logger.exception("unhandled_exception", extra={"request_id": rid})
        safe = InternalError("Internal error")
        payload = error_attributes(
            request=request,
            status=safe.http_status,
            message=safe.message,
            with_developer_message=False,
        )
        return JSONResponse(status_code=safe.http_status, content=payload)
