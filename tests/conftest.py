"""
Shared pytest fixtures for the dbfeatures library tests.

This module provides:
- Context hygiene (tenant and user context cleared around every test)
- SQLite engines, sync and async, with the sample schema created
- Stores, a controllable clock and a recording tracer
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
from sqlalchemy import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from dbfeatures.observability import MockTracer
from dbfeatures.stores import (
    InMemoryCurrentUserStore,
    InMemoryTenantStore,
    clear_tenant_context,
    clear_user_context,
)
from tests.fixtures import Base, FixedClock

# ============================================================================
# Context hygiene
# ============================================================================


@pytest.fixture(autouse=True)
def clean_ambient_context() -> Generator[None, None, None]:
    """Make sure no tenant or user leaks between tests."""
    clear_tenant_context()
    clear_user_context()
    yield
    clear_tenant_context()
    clear_user_context()


# ============================================================================
# Database fixtures
# ============================================================================


def _sqlite_engine() -> Engine:
    # StaticPool keeps a single in-memory database for all sessions
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with the sample schema."""
    engine = _sqlite_engine()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest_asyncio.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory aiosqlite engine with the sample schema."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def new_database() -> Generator[Callable[[], Engine], None, None]:
    """Callable creating a separate in-memory database per call."""
    engines: list[Engine] = []

    def create() -> Engine:
        engine = _sqlite_engine()
        Base.metadata.create_all(engine)
        engines.append(engine)
        return engine

    yield create
    for engine in engines:
        engine.dispose()


# ============================================================================
# Collaborators
# ============================================================================


@pytest.fixture
def tenant_store() -> InMemoryTenantStore:
    return InMemoryTenantStore()


@pytest.fixture
def user_store() -> InMemoryCurrentUserStore:
    return InMemoryCurrentUserStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def tracer() -> MockTracer:
    return MockTracer()
