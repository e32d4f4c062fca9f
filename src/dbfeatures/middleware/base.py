"""
Propagation middleware for ambient values.

AmbientValueMiddleware wraps the handling of one request:

1. If the configured store is read-only, the request passes through and no
   resolution is attempted.
2. Otherwise the resolver runs; a non-empty value is written to the store
   before the downstream app is called.
3. The store is cleared after the downstream app returns, raises, or is
   cancelled.

Each ASGI request runs in its own task with its own copy of the context, so
set() and clear() only affect that request and the tasks it spawns.
"""

from __future__ import annotations

import logging

from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

from dbfeatures.observability import (
    ATTR_AMBIENT_KIND,
    ATTR_AMBIENT_RESOLVED,
    Tracer,
    create_tracer,
)
from dbfeatures.resolvers.interface import AmbientResolver
from dbfeatures.stores.interface import AmbientStore, WritableAmbientStore

logger = logging.getLogger(__name__)


class AmbientValueMiddleware:
    """
    Pure ASGI middleware that resolves, sets and clears one ambient value.

    Args:
        app: The downstream ASGI application
        store: Store receiving the resolved value
        resolver: Resolver producing the value from the connection
        kind: Label for logs and spans ("tenant", "user")
        tracer: Optional tracer (if not provided, one will be created)
        enable_tracing: Whether to enable OpenTelemetry tracing (default True)

    Example:
        >>> app = Starlette(routes=routes)
        >>> app.add_middleware(
        ...     AmbientValueMiddleware,
        ...     store=InMemoryTenantStore(),
        ...     resolver=HttpHeaderTenantResolver(),
        ...     kind="tenant",
        ... )
    """

    def __init__(
        self,
        app: ASGIApp,
        store: AmbientStore,
        resolver: AmbientResolver,
        kind: str = "ambient",
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self.app = app
        self.store = store
        self.resolver = resolver
        self.kind = kind
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def is_active(self) -> bool:
        """False when the store is read-only and requests pass through."""
        return isinstance(self.store, WritableAmbientStore)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        store = self.store
        if not isinstance(store, WritableAmbientStore):
            await self.app(scope, receive, send)
            return

        try:
            value = await self._resolve(HTTPConnection(scope, receive))
            if value:
                store.set(value)
            await self.app(scope, receive, send)
        finally:
            store.clear()

    async def _resolve(self, connection: HTTPConnection) -> str | None:
        with self._tracer.span(
            "dbfeatures.middleware.resolve",
            {ATTR_AMBIENT_KIND: self.kind},
        ) as span:
            value = await self.resolver.resolve(connection)
            if span is not None:
                span.set_attribute(ATTR_AMBIENT_RESOLVED, bool(value))
        if not value:
            logger.debug("No %s resolved for %s", self.kind, connection.url.path)
        return value


__all__ = ["AmbientValueMiddleware"]
