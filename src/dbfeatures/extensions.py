"""
Registration helpers for ASGI applications.

use_multi_tenant() and use_current_user() install the propagation middleware
only when the configured store can be written. With a read-only store (for
example ClaimsTenantStore) the value is derived on demand and no middleware
is needed.

Example:
    >>> from starlette.applications import Starlette
    >>> from dbfeatures.extensions import use_current_user, use_multi_tenant
    >>>
    >>> app = Starlette(routes=routes)
    >>> use_multi_tenant(app, factory.tenant_store, factory.tenant_resolver)
    True
    >>> use_current_user(app, factory.user_store, factory.user_resolver)
    True
"""

from __future__ import annotations

import logging
from typing import Any

from starlette.applications import Starlette

from dbfeatures.middleware.tenant import MultiTenantMiddleware
from dbfeatures.middleware.user import CurrentUserMiddleware
from dbfeatures.resolvers.interface import AmbientResolver
from dbfeatures.stores.interface import AmbientStore, is_writable

logger = logging.getLogger(__name__)


def _use(
    app: Starlette,
    middleware_class: type,
    store: AmbientStore,
    resolver: AmbientResolver | None,
    **options: Any,
) -> bool:
    if not is_writable(store):
        logger.debug(
            "Skipping %s: %r is read-only", middleware_class.__name__, store
        )
        return False
    app.add_middleware(middleware_class, store=store, resolver=resolver, **options)
    return True


def use_multi_tenant(
    app: Starlette,
    store: AmbientStore,
    resolver: AmbientResolver | None = None,
    **options: Any,
) -> bool:
    """
    Install MultiTenantMiddleware if the tenant store is writable.

    Args:
        app: Starlette or FastAPI application
        store: Tenant store shared with the session factory
        resolver: Tenant resolver (default: X-Tenant-Id header)
        **options: Extra MultiTenantMiddleware arguments (tracer, ...)

    Returns:
        True if the middleware was added
    """
    return _use(app, MultiTenantMiddleware, store, resolver, **options)


def use_current_user(
    app: Starlette,
    store: AmbientStore,
    resolver: AmbientResolver | None = None,
    **options: Any,
) -> bool:
    """
    Install CurrentUserMiddleware if the user store is writable.

    Returns:
        True if the middleware was added
    """
    return _use(app, CurrentUserMiddleware, store, resolver, **options)


__all__ = ["use_multi_tenant", "use_current_user"]
