from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class AppError(Exception):
    code: str
    http_status: int
    message: str | None = None
    extra: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message or self.code


class BadRequestError(AppError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(code="bad_request", http_status=400, message=message)


class UnauthorizedError(AppError):
    def __init__(self, message: str | None = None, *, realm: str = "anime-api") -> None:
        super().__init__(
            code="unauthorized",
            http_status=401,
            message=message,
            extra={"www_authenticate": f'Basic realm="{realm}"'},
        )


class ForbiddenError(AppError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(code="forbidden", http_status=403, message=message)


class NotFoundError(AppError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(code="not_found", http_status=404, message=message)


class RateLimitedError(AppError):
    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__(
            code="rate_limited",
            http_status=429,
            message="rate limited",
            extra={"retry_after_seconds": retry_after_seconds},
        )


class InternalError(AppError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(code="internal_error", http_status=500, message=message)
