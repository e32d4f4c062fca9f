"""Read-only tenant store backed by the current principal's claims."""

from __future__ import annotations

from dbfeatures.middleware.request_context import get_current_connection
from dbfeatures.resolvers.claims import DEFAULT_TENANT_CLAIM, find_claim


class ClaimsTenantStore:
    """
    Read-only tenant store that reads a claim of the authenticated principal.

    The tenant is looked up on every get() from the connection bound by
    RequestContextMiddleware. Outside a request, or without an authenticated
    principal, get() returns None.

    Because the store is read-only, MultiTenantMiddleware passes requests
    through untouched when it is configured with this store.

    Args:
        claim_type: Claim holding the tenant id (default "tenant-id")
    """

    def __init__(self, claim_type: str = DEFAULT_TENANT_CLAIM) -> None:
        self._claim_type = claim_type

    def get(self) -> str | None:
        connection = get_current_connection()
        if connection is None:
            return None
        return find_claim(connection.scope.get("user"), self._claim_type)

    def __repr__(self) -> str:
        return f"ClaimsTenantStore(claim_type={self._claim_type!r})"


__all__ = ["ClaimsTenantStore"]
