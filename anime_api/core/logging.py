from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any

from anime_api.core.config import Settings
from anime_api.core.context import client_ip_ctx_var, request_id_ctx_var, username_ctx_var

_CONTEXT_ATTRS = ("request_id", "client_ip", "username")

# Everything LogRecord sets on itself; whatever else is on __dict__ came from ``extra``.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}

_REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(postgres(?:ql)?(?:\+asyncpg)?://)([^:/\s]+):([^@/\s]+)@"), r"\1\2:***@"),
    (re.compile(r"(redis(?:s|\+ssl)?://)([^:/\s]*):([^@/\s]+)@"), r"\1\2:***@"),
    (re.compile(r"(?i)(password(?:_hash)?[=:]\s*)([^\s&,]+)"), r"\1***"),
    (re.compile(r"(?i)(basic\s+)[A-Za-z0-9+/=]+"), r"\1***"),
    (re.compile(r"\{(argon2|noop)\}\S+"), r"{\1}***"),
]


def redact_secrets(value: str) -> str:
    out = value
    for pattern, repl in _REDACTIONS:
        out = pattern.sub(repl, out)
    return out


def _sanitize_any(value: Any) -> Any:
    if isinstance(value, str):
        return redact_secrets(value)
    if isinstance(value, dict):
        return {str(k): _sanitize_any(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_any(v) for v in value]
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return redact_secrets(str(value))


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx_var.get()
        record.client_ip = client_ip_ctx_var.get()
        record.username = username_ctx_var.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": redact_secrets(record.getMessage()),
        }
        for attr in _CONTEXT_ATTRS:
            base[attr] = getattr(record, attr, "-")

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in _CONTEXT_ATTRS or key.startswith("_"):
                continue
            base[key] = _sanitize_any(value)

        if record.exc_info:
            base["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Exception"
            base["exc"] = redact_secrets(self.formatException(record.exc_info))

        return json.dumps(base, ensure_ascii=False, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s [%(name)s] [%(request_id)s %(username)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        for attr in _CONTEXT_ATTRS:
            if not hasattr(record, attr):
                setattr(record, attr, "-")
        return redact_secrets(super().format(record))


def setup_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JsonFormatter() if settings.log_json else TextFormatter())
    root.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(level)

    # statement echo would leak bound parameters
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))
