"""Per-request context utilities."""
from __future__ import annotations

from contextvars import ContextVar, Token

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def bind_request_id(request_id: str) -> Token:
    """Make request_id visible to log records emitted while handling this request."""
    return request_id_ctx_var.set(request_id)


def release_request_id(token: Token) -> None:
    request_id_ctx_var.reset(token)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()
