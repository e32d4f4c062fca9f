"""
Resolvers derive ambient values (tenant id, user id) from an inbound request.

- HttpHeaderTenantResolver / HttpHeaderCurrentUserResolver: first header value
- ClaimsTenantResolver / ClaimsCurrentUserResolver: claim of the principal
"""

from dbfeatures.resolvers.claims import (
    DEFAULT_TENANT_CLAIM,
    DEFAULT_USER_CLAIM,
    ClaimsCurrentUserResolver,
    ClaimsResolver,
    ClaimsTenantResolver,
    ClaimsUser,
    find_claim,
)
from dbfeatures.resolvers.headers import (
    DEFAULT_TENANT_HEADER,
    DEFAULT_USER_HEADER,
    HttpHeaderCurrentUserResolver,
    HttpHeaderResolver,
    HttpHeaderTenantResolver,
)
from dbfeatures.resolvers.interface import (
    AmbientResolver,
    CurrentUserResolver,
    TenantResolver,
)

__all__ = [
    # Interfaces
    "AmbientResolver",
    "TenantResolver",
    "CurrentUserResolver",
    # Headers
    "DEFAULT_TENANT_HEADER",
    "DEFAULT_USER_HEADER",
    "HttpHeaderResolver",
    "HttpHeaderTenantResolver",
    "HttpHeaderCurrentUserResolver",
    # Claims
    "DEFAULT_TENANT_CLAIM",
    "DEFAULT_USER_CLAIM",
    "ClaimsUser",
    "find_claim",
    "ClaimsResolver",
    "ClaimsTenantResolver",
    "ClaimsCurrentUserResolver",
]
