"""
Ambient value stores for tenant and current-user context.

- Interfaces: AmbientStore (read-only) and WritableAmbientStore (read-write)
- InMemoryTenantStore / InMemoryCurrentUserStore: ContextVar-backed, writable
- ClaimsTenantStore: read-only, reads a claim of the current principal
- Scoped helpers for non-request code: tenant_scope(), user_scope(), ...

Example:
    >>> from dbfeatures.stores import InMemoryTenantStore
    >>> store = InMemoryTenantStore()
    >>> with store.scope("acme"):
    ...     assert store.get() == "acme"
    >>> assert store.get() is None
"""

from dbfeatures.stores.in_memory import (
    ContextVarStore,
    InMemoryCurrentUserStore,
    InMemoryTenantStore,
    clear_tenant_context,
    clear_user_context,
    current_user_context,
    get_current_tenant,
    get_current_user,
    get_required_tenant,
    set_current_tenant,
    set_current_user,
    tenant_context,
    tenant_scope,
    tenant_scope_sync,
    user_scope,
    user_scope_sync,
)
from dbfeatures.stores.interface import (
    AmbientStore,
    CurrentUserStore,
    TenantStore,
    WritableAmbientStore,
    WritableCurrentUserStore,
    WritableTenantStore,
    is_writable,
)

# Imported last: pulls in the middleware package for the request context
from dbfeatures.stores.claims import ClaimsTenantStore  # noqa: E402

__all__ = [
    # Interfaces
    "AmbientStore",
    "WritableAmbientStore",
    "TenantStore",
    "WritableTenantStore",
    "CurrentUserStore",
    "WritableCurrentUserStore",
    "is_writable",
    # Implementations
    "ContextVarStore",
    "InMemoryTenantStore",
    "InMemoryCurrentUserStore",
    "ClaimsTenantStore",
    # Context helpers
    "tenant_context",
    "current_user_context",
    "get_current_tenant",
    "get_required_tenant",
    "set_current_tenant",
    "clear_tenant_context",
    "get_current_user",
    "set_current_user",
    "clear_user_context",
    "tenant_scope",
    "tenant_scope_sync",
    "user_scope",
    "user_scope_sync",
]
