from __future__ import annotations

from contextvars import ContextVar

request_id_ctx_var: ContextVar[str] = ContextVar("request_id", default="-")
client_ip_ctx_var: ContextVar[str] = ContextVar("client_ip", default="-")
username_ctx_var: ContextVar[str] = ContextVar("username", default="-")
