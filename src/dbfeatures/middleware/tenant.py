"""Middleware propagating the current tenant."""

from __future__ import annotations

from starlette.types import ASGIApp

from dbfeatures.middleware.base import AmbientValueMiddleware
from dbfeatures.observability import Tracer
from dbfeatures.resolvers.headers import HttpHeaderTenantResolver
from dbfeatures.resolvers.interface import AmbientResolver
from dbfeatures.stores.in_memory import InMemoryTenantStore
from dbfeatures.stores.interface import AmbientStore


class MultiTenantMiddleware(AmbientValueMiddleware):
    """
    Resolve the tenant of each request and expose it through the tenant store.

    Defaults to the X-Tenant-Id header and the ContextVar-backed tenant store.

    Example:
        >>> app.add_middleware(MultiTenantMiddleware)
        >>> # or with a session factory's collaborators
        >>> app.add_middleware(
        ...     MultiTenantMiddleware,
        ...     store=factory.tenant_store,
        ...     resolver=factory.tenant_resolver,
        ... )
    """

    def __init__(
        self,
        app: ASGIApp,
        store: AmbientStore | None = None,
        resolver: AmbientResolver | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        super().__init__(
            app,
            store=store if store is not None else InMemoryTenantStore(),
            resolver=resolver if resolver is not None else HttpHeaderTenantResolver(),
            kind="tenant",
            tracer=tracer,
            enable_tracing=enable_tracing,
        )


__all__ = ["MultiTenantMiddleware"]
