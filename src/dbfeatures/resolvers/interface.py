"""
Resolver interfaces.

A resolver derives an ambient value for the current request from an external
source (HTTP header, claims principal). Resolvers are asynchronous because a
source may need to await a session or token lookup, and side-effect free:
they never write to a store.

Absence is a valid outcome. A resolver returns None when the source is
missing and never raises for "not found".
"""

from typing import Protocol, runtime_checkable

from starlette.requests import HTTPConnection


@runtime_checkable
class AmbientResolver(Protocol):
    """Protocol for resolvers of a single ambient string value."""

    async def resolve(self, connection: HTTPConnection) -> str | None:
        """
        Resolve the value for the given connection.

        Args:
            connection: The inbound HTTP (or websocket) connection

        Returns:
            The resolved value, or None if the source is missing
        """
        ...


@runtime_checkable
class TenantResolver(AmbientResolver, Protocol):
    """Resolves the tenant id of a request."""


@runtime_checkable
class CurrentUserResolver(AmbientResolver, Protocol):
    """Resolves the current user id of a request."""


__all__ = [
    "AmbientResolver",
    "TenantResolver",
    "CurrentUserResolver",
]
