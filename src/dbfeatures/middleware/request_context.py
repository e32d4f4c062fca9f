"""
Access to the current HTTP connection outside of request handlers.

RequestContextMiddleware binds the connection of the request being served
to a ContextVar, so components that have no request parameter (such as
ClaimsTenantStore, which is read from inside a session) can still see it.
"""

from __future__ import annotations

from contextvars import ContextVar

from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

current_connection: ContextVar[HTTPConnection | None] = ContextVar(
    "current_connection", default=None
)


def get_current_connection() -> HTTPConnection | None:
    """Return the connection of the request being served, or None."""
    return current_connection.get()


class RequestContextMiddleware:
    """
    ASGI middleware that exposes the current connection via a ContextVar.

    The bound connection wraps the live scope dict, so ``scope["user"]``
    written later by AuthenticationMiddleware is visible through it.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        token = current_connection.set(HTTPConnection(scope, receive))
        try:
            await self.app(scope, receive, send)
        finally:
            current_connection.reset(token)


__all__ = [
    "current_connection",
    "get_current_connection",
    "RequestContextMiddleware",
]
