"""
Claims based resolvers.

Claims are read from the principal that Starlette's AuthenticationMiddleware
attaches to ``scope["user"]``. A principal exposes its claims either as a
``claims`` mapping (see ClaimsUser) or by being a mapping itself, e.g. a
decoded JWT payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from starlette.authentication import BaseUser
from starlette.requests import HTTPConnection

# Standard subject identifier claim of JWT / OpenID Connect
DEFAULT_USER_CLAIM = "sub"
DEFAULT_TENANT_CLAIM = "tenant-id"


class ClaimsUser(BaseUser):
    """
    Authenticated Starlette user carrying a claims mapping.

    Authentication backends return this from ``authenticate()`` so that the
    claims resolvers can find user and tenant identifiers.

    Example:
        >>> user = ClaimsUser({"sub": "u-1", "tenant-id": "acme", "name": "Ada"})
        >>> user.identity
        'u-1'
    """

    def __init__(
        self,
        claims: Mapping[str, Any],
        identity_claim: str = DEFAULT_USER_CLAIM,
        name_claim: str = "name",
    ) -> None:
        self.claims = dict(claims)
        self._identity_claim = identity_claim
        self._name_claim = name_claim

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return str(self.claims.get(self._name_claim, ""))

    @property
    def identity(self) -> str:
        return str(self.claims.get(self._identity_claim, ""))


def find_claim(principal: Any, claim_type: str) -> str | None:
    """
    Return the first value of a claim on a principal.

    Returns None for a missing or unauthenticated principal, a principal
    without claims, or a missing claim.
    """
    if principal is None or not getattr(principal, "is_authenticated", True):
        return None

    claims = getattr(principal, "claims", None)
    if claims is None and isinstance(principal, Mapping):
        claims = principal
    if not isinstance(claims, Mapping):
        return None

    value = claims.get(claim_type)
    if isinstance(value, list | tuple):
        value = value[0] if value else None
    if value is None:
        return None
    return str(value)


class ClaimsResolver:
    """
    Resolve a value from a claim of the authenticated principal.

    Args:
        claim_type: Name of the claim to read
    """

    def __init__(self, claim_type: str) -> None:
        if not claim_type:
            raise ValueError("claim_type must be a non-empty string")
        self._claim_type = claim_type

    @property
    def claim_type(self) -> str:
        return self._claim_type

    async def resolve(self, connection: HTTPConnection) -> str | None:
        # connection.user asserts when AuthenticationMiddleware is missing
        return find_claim(connection.scope.get("user"), self._claim_type)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(claim_type={self._claim_type!r})"


class ClaimsCurrentUserResolver(ClaimsResolver):
    """Resolve the current user id from the subject claim (configurable)."""

    def __init__(self, claim_type: str = DEFAULT_USER_CLAIM) -> None:
        super().__init__(claim_type)


class ClaimsTenantResolver(ClaimsResolver):
    """Resolve the tenant id from the "tenant-id" claim (configurable)."""

    def __init__(self, claim_type: str = DEFAULT_TENANT_CLAIM) -> None:
        super().__init__(claim_type)


__all__ = [
    "DEFAULT_USER_CLAIM",
    "DEFAULT_TENANT_CLAIM",
    "ClaimsUser",
    "find_claim",
    "ClaimsResolver",
    "ClaimsCurrentUserResolver",
    "ClaimsTenantResolver",
]
