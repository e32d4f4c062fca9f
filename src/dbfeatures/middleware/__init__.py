"""
ASGI middleware propagating ambient values per request.

- AmbientValueMiddleware: resolve, set and clear one value around a request
- MultiTenantMiddleware / CurrentUserMiddleware: tenant and user flavours
- RequestContextMiddleware: binds the current connection for ClaimsTenantStore
"""

from dbfeatures.middleware.base import AmbientValueMiddleware
from dbfeatures.middleware.request_context import (
    RequestContextMiddleware,
    current_connection,
    get_current_connection,
)
from dbfeatures.middleware.tenant import MultiTenantMiddleware
from dbfeatures.middleware.user import CurrentUserMiddleware

__all__ = [
    "AmbientValueMiddleware",
    "MultiTenantMiddleware",
    "CurrentUserMiddleware",
    "RequestContextMiddleware",
    "current_connection",
    "get_current_connection",
]
