"""
Unit tests for the HTTP header resolvers.

Tests cover:
- Default header names
- First value of repeated headers
- Case-insensitive header lookup
- Absence is None, never an exception
"""

from __future__ import annotations

import pytest
from starlette.requests import HTTPConnection

from dbfeatures.resolvers import (
    DEFAULT_TENANT_HEADER,
    DEFAULT_USER_HEADER,
    AmbientResolver,
    CurrentUserResolver,
    HttpHeaderCurrentUserResolver,
    HttpHeaderResolver,
    HttpHeaderTenantResolver,
    TenantResolver,
)
from tests.fixtures import make_connection


class TestHttpHeaderTenantResolver:
    """Tests for HttpHeaderTenantResolver."""

    def test_default_header_name(self) -> None:
        assert HttpHeaderTenantResolver().header_name == DEFAULT_TENANT_HEADER == "X-Tenant-Id"

    async def test_resolves_header_value(self) -> None:
        connection = make_connection({"X-Tenant-Id": "acme"})
        assert await HttpHeaderTenantResolver().resolve(connection) == "acme"

    async def test_header_lookup_is_case_insensitive(self) -> None:
        connection = make_connection({"x-tenant-id": "acme"})
        assert await HttpHeaderTenantResolver("X-TENANT-ID").resolve(connection) == "acme"

    async def test_missing_header_returns_none(self) -> None:
        assert await HttpHeaderTenantResolver().resolve(make_connection()) is None

    async def test_empty_header_returns_empty_string(self) -> None:
        """An empty header is passed through; the middleware treats it as absent."""
        connection = make_connection({"X-Tenant-Id": ""})
        assert await HttpHeaderTenantResolver().resolve(connection) == ""

    async def test_first_value_wins(self) -> None:
        connection = HTTPConnection(
            {
                "type": "http",
                "headers": [(b"x-tenant-id", b"first"), (b"x-tenant-id", b"second")],
            }
        )
        assert await HttpHeaderTenantResolver().resolve(connection) == "first"

    async def test_custom_header_name(self) -> None:
        connection = make_connection({"X-Org": "globex", "X-Tenant-Id": "acme"})
        assert await HttpHeaderTenantResolver("X-Org").resolve(connection) == "globex"

    def test_implements_protocols(self) -> None:
        resolver = HttpHeaderTenantResolver()
        assert isinstance(resolver, AmbientResolver)
        assert isinstance(resolver, TenantResolver)


class TestHttpHeaderCurrentUserResolver:
    """Tests for HttpHeaderCurrentUserResolver."""

    def test_default_header_name(self) -> None:
        assert HttpHeaderCurrentUserResolver().header_name == DEFAULT_USER_HEADER == "X-User-Id"

    async def test_resolves_header_value(self) -> None:
        connection = make_connection({"X-User-Id": "user-1"})
        assert await HttpHeaderCurrentUserResolver().resolve(connection) == "user-1"

    async def test_ignores_tenant_header(self) -> None:
        connection = make_connection({"X-Tenant-Id": "acme"})
        assert await HttpHeaderCurrentUserResolver().resolve(connection) is None

    def test_implements_protocol(self) -> None:
        assert isinstance(HttpHeaderCurrentUserResolver(), CurrentUserResolver)


class TestHttpHeaderResolver:
    def test_rejects_empty_header_name(self) -> None:
        with pytest.raises(ValueError):
            HttpHeaderResolver("")
