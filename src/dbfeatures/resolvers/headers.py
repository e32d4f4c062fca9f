"""HTTP header based resolvers."""

from starlette.requests import HTTPConnection

DEFAULT_TENANT_HEADER = "X-Tenant-Id"
DEFAULT_USER_HEADER = "X-User-Id"


class HttpHeaderResolver:
    """
    Resolve a value from the first occurrence of a request header.

    Header names are matched case-insensitively. A missing header resolves to
    None; a present but empty header resolves to "" which the middleware
    treats as absent.

    Args:
        header_name: Name of the header to read
    """

    def __init__(self, header_name: str) -> None:
        if not header_name:
            raise ValueError("header_name must be a non-empty string")
        self._header_name = header_name

    @property
    def header_name(self) -> str:
        return self._header_name

    async def resolve(self, connection: HTTPConnection) -> str | None:
        values = connection.headers.getlist(self._header_name)
        if not values:
            return None
        return values[0]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(header_name={self._header_name!r})"


class HttpHeaderTenantResolver(HttpHeaderResolver):
    """Resolve the tenant id from the X-Tenant-Id header (configurable)."""

    def __init__(self, header_name: str = DEFAULT_TENANT_HEADER) -> None:
        super().__init__(header_name)


class HttpHeaderCurrentUserResolver(HttpHeaderResolver):
    """Resolve the current user id from the X-User-Id header (configurable)."""

    def __init__(self, header_name: str = DEFAULT_USER_HEADER) -> None:
        super().__init__(header_name)


__all__ = [
    "DEFAULT_TENANT_HEADER",
    "DEFAULT_USER_HEADER",
    "HttpHeaderResolver",
    "HttpHeaderTenantResolver",
    "HttpHeaderCurrentUserResolver",
]
