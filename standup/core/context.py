"""Request-scoped values that show up on every log line."""
from __future__ import annotations

from contextvars import ContextVar

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx_var: ContextVar[str | None] = ContextVar("user_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx_var.get()


def get_user_id() -> str | None:
    return user_id_ctx_var.get()


def bind_user(user_id: str) -> None:
    """Attach the authenticated user to the rest of the request."""
    user_id_ctx_var.set(user_id)
