"""
Unit tests for the propagation middleware.

Tests cover:
- Value set during the handler and cleared afterwards
- Clearing on the exception and cancellation paths
- Read-only stores bypass resolution entirely
- Empty resolution leaves the store empty
- Isolation between concurrent requests
- Non-HTTP scopes pass through
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from dbfeatures.middleware import (
    AmbientValueMiddleware,
    CurrentUserMiddleware,
    MultiTenantMiddleware,
)
from dbfeatures.observability import MockTracer
from dbfeatures.resolvers import HttpHeaderTenantResolver
from dbfeatures.stores import (
    ClaimsTenantStore,
    InMemoryTenantStore,
    get_current_tenant,
    get_current_user,
)
from tests.fixtures import ClaimsHeaderBackend, make_connection


class ReadOnlyStore:
    def __init__(self, value: str | None) -> None:
        self.value = value

    def get(self) -> str | None:
        return self.value


def _client(app: Starlette) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


async def tenant_endpoint(request: Request) -> JSONResponse:
    return JSONResponse({"tenant": get_current_tenant()})


async def failing_endpoint(request: Request) -> JSONResponse:
    request.app.state.seen = get_current_tenant()
    raise RuntimeError("handler failed")


def tenant_app(*middleware: Middleware) -> Starlette:
    return Starlette(
        routes=[
            Route("/", tenant_endpoint),
            Route("/fail", failing_endpoint),
        ],
        middleware=list(middleware),
    )


class TestMultiTenantMiddleware:
    """Tenant propagation from the X-Tenant-Id header."""

    async def test_tenant_visible_in_handler(self) -> None:
        async with _client(tenant_app(Middleware(MultiTenantMiddleware))) as client:
            response = await client.get("/", headers={"X-Tenant-Id": "acme"})
        assert response.json() == {"tenant": "acme"}

    async def test_tenant_cleared_after_request(self) -> None:
        async with _client(tenant_app(Middleware(MultiTenantMiddleware))) as client:
            await client.get("/", headers={"X-Tenant-Id": "acme"})
        assert get_current_tenant() is None

    async def test_tenant_cleared_when_handler_raises(self) -> None:
        app = tenant_app(Middleware(MultiTenantMiddleware))
        async with _client(app) as client:
            with pytest.raises(RuntimeError, match="handler failed"):
                await client.get("/fail", headers={"X-Tenant-Id": "acme"})
        assert app.state.seen == "acme"
        assert get_current_tenant() is None

    async def test_tenant_cleared_when_request_is_cancelled(self) -> None:
        started = asyncio.Event()
        observed: dict[str, str | None] = {}

        async def hanging_app(scope, receive, send) -> None:
            observed["during"] = get_current_tenant()
            started.set()
            await asyncio.Event().wait()

        middleware = MultiTenantMiddleware(hanging_app)
        scope = make_connection({"X-Tenant-Id": "acme"}).scope

        async def serve() -> None:
            try:
                await middleware(scope, AsyncMock(), AsyncMock())
            finally:
                observed["after"] = get_current_tenant()

        task = asyncio.create_task(serve())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert observed == {"during": "acme", "after": None}

    async def test_missing_header_leaves_store_empty(self) -> None:
        async with _client(tenant_app(Middleware(MultiTenantMiddleware))) as client:
            response = await client.get("/")
        assert response.json() == {"tenant": None}

    async def test_empty_header_is_treated_as_absent(self) -> None:
        async with _client(tenant_app(Middleware(MultiTenantMiddleware))) as client:
            response = await client.get("/", headers={"X-Tenant-Id": ""})
        assert response.json() == {"tenant": None}

    async def test_custom_resolver(self) -> None:
        middleware = Middleware(
            MultiTenantMiddleware, resolver=HttpHeaderTenantResolver("X-Org")
        )
        async with _client(tenant_app(middleware)) as client:
            response = await client.get("/", headers={"X-Org": "globex"})
        assert response.json() == {"tenant": "globex"}

    async def test_concurrent_requests_are_isolated(self) -> None:
        """Two concurrent requests never observe each other's tenant."""

        async def slow_endpoint(request: Request) -> JSONResponse:
            seen = [get_current_tenant()]
            for _ in range(3):
                await asyncio.sleep(0.001)
                seen.append(get_current_tenant())
            return JSONResponse({"seen": seen})

        app = Starlette(
            routes=[Route("/", slow_endpoint)],
            middleware=[Middleware(MultiTenantMiddleware)],
        )
        tenants = ["t1", "t2"] * 10
        async with _client(app) as client:
            responses = await asyncio.gather(
                *(client.get("/", headers={"X-Tenant-Id": t}) for t in tenants)
            )

        for tenant_id, response in zip(tenants, responses, strict=True):
            assert response.json()["seen"] == [tenant_id] * 4


class TestReadOnlyStore:
    """A read-only store turns the middleware into a pass-through."""

    async def test_resolver_is_not_called(self) -> None:
        resolver = AsyncMock()
        resolver.resolve.return_value = "acme"
        middleware = Middleware(
            AmbientValueMiddleware, store=ReadOnlyStore("fixed"), resolver=resolver
        )
        async with _client(tenant_app(middleware)) as client:
            await client.get("/", headers={"X-Tenant-Id": "acme"})
        resolver.resolve.assert_not_awaited()

    async def test_ambient_value_unchanged(self) -> None:
        store = ReadOnlyStore("fixed")
        middleware = Middleware(MultiTenantMiddleware, store=store)
        async with _client(tenant_app(middleware)) as client:
            response = await client.get("/", headers={"X-Tenant-Id": "acme"})
        assert response.json() == {"tenant": None}
        assert store.get() == "fixed"

    def test_is_active_reflects_store_capability(self) -> None:
        async def app(scope, receive, send) -> None:  # pragma: no cover
            pass

        assert MultiTenantMiddleware(app).is_active
        assert not MultiTenantMiddleware(app, store=ClaimsTenantStore()).is_active


class TestCurrentUserMiddleware:
    """User propagation from the authenticated principal."""

    async def _user_endpoint(self, request: Request) -> JSONResponse:
        return JSONResponse({"user": get_current_user()})

    def _app(self) -> Starlette:
        return Starlette(
            routes=[Route("/", self._user_endpoint)],
            middleware=[
                Middleware(AuthenticationMiddleware, backend=ClaimsHeaderBackend()),
                Middleware(CurrentUserMiddleware),
            ],
        )

    async def test_user_visible_in_handler(self) -> None:
        async with _client(self._app()) as client:
            response = await client.get("/", headers={"X-Claims": "sub=u-1"})
        assert response.json() == {"user": "u-1"}
        assert get_current_user() is None

    async def test_anonymous_request_has_no_user(self) -> None:
        async with _client(self._app()) as client:
            response = await client.get("/")
        assert response.json() == {"user": None}

    async def test_without_authentication_middleware(self) -> None:
        """No principal in scope resolves to no user instead of failing."""
        app = Starlette(
            routes=[Route("/", self._user_endpoint)],
            middleware=[Middleware(CurrentUserMiddleware)],
        )
        async with _client(app) as client:
            response = await client.get("/")
        assert response.json() == {"user": None}


class TestTracingAndScopes:
    async def test_resolution_is_traced(self) -> None:
        tracer = MockTracer()
        middleware = Middleware(MultiTenantMiddleware, tracer=tracer)
        async with _client(tenant_app(middleware)) as client:
            await client.get("/", headers={"X-Tenant-Id": "acme"})
        assert tracer.span_names == ["dbfeatures.middleware.resolve"]
        assert tracer.spans[0][1] == {"dbfeatures.ambient.kind": "tenant"}

    async def test_lifespan_scope_passes_through(self) -> None:
        """Non-HTTP scopes are forwarded without touching the store."""
        received: list[str] = []
        resolver = AsyncMock()

        async def app(scope, receive, send) -> None:
            received.append(scope["type"])

        middleware = AmbientValueMiddleware(
            app, store=InMemoryTenantStore(), resolver=resolver
        )
        await middleware({"type": "lifespan"}, AsyncMock(), AsyncMock())

        assert received == ["lifespan"]
        resolver.resolve.assert_not_awaited()
