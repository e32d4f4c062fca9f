"""Middleware propagating the current user."""

from __future__ import annotations

from starlette.types import ASGIApp

from dbfeatures.middleware.base import AmbientValueMiddleware
from dbfeatures.observability import Tracer
from dbfeatures.resolvers.claims import ClaimsCurrentUserResolver
from dbfeatures.resolvers.interface import AmbientResolver
from dbfeatures.stores.in_memory import InMemoryCurrentUserStore
from dbfeatures.stores.interface import AmbientStore


class CurrentUserMiddleware(AmbientValueMiddleware):
    """
    Resolve the user of each request and expose it through the user store.

    Defaults to the "sub" claim of the authenticated principal and the
    ContextVar-backed user store. Install it inside AuthenticationMiddleware
    (add it before AuthenticationMiddleware) so the principal is available.
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
            store=store if store is not None else InMemoryCurrentUserStore(),
            resolver=resolver if resolver is not None else ClaimsCurrentUserResolver(),
            kind="user",
            tracer=tracer,
            enable_tracing=enable_tracing,
        )


__all__ = ["CurrentUserMiddleware"]
