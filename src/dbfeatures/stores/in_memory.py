"""
ContextVar-backed ambient stores.

This module provides the default writable stores and helpers for managing
tenant and user context in async and sync code:

- tenant_context / current_user_context: ContextVars holding the values
- InMemoryTenantStore / InMemoryCurrentUserStore: writable stores over them
- get_current_tenant(), get_required_tenant(), get_current_user()
- tenant_scope() / user_scope(): async context managers for scoped values
- tenant_scope_sync() / user_scope_sync(): sync context managers

The ContextVar mechanism ensures that a value set while handling one request
is seen by every asyncio task spawned from that point, and never by a
concurrently running request.

Example:
    >>> import asyncio
    >>> from dbfeatures.stores import tenant_scope, get_current_tenant
    >>>
    >>> async def main():
    ...     async with tenant_scope("acme"):
    ...         assert get_current_tenant() == "acme"
    ...     # Context automatically restored here
    ...     assert get_current_tenant() is None
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING

from dbfeatures.exceptions import TenantNotSetError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator

logger = logging.getLogger(__name__)

# Default is None, indicating no value is set
tenant_context: ContextVar[str | None] = ContextVar("tenant_context", default=None)
current_user_context: ContextVar[str | None] = ContextVar("current_user_context", default=None)


class ContextVarStore:
    """
    Writable ambient store backed by a ContextVar.

    Each store wraps one ContextVar. Stores sharing a variable share the
    value, so InMemoryTenantStore() instances created in different places
    all see the tenant set by the middleware.

    Args:
        var: The context variable to use
        kind: Label used in log messages ("tenant", "user")
    """

    def __init__(self, var: ContextVar[str | None], kind: str) -> None:
        self._var = var
        self._kind = kind

    @property
    def var(self) -> ContextVar[str | None]:
        """The underlying context variable."""
        return self._var

    def get(self) -> str | None:
        return self._var.get()

    def set(self, value: str) -> None:
        if not value:
            raise ValueError(f"{self._kind} id must be a non-empty string")
        logger.debug("%s context set: %s", self._kind.capitalize(), value)
        self._var.set(value)

    def clear(self) -> None:
        logger.debug("%s context cleared", self._kind.capitalize())
        self._var.set(None)

    @contextmanager
    def scope(self, value: str) -> Generator[str, None, None]:
        """
        Set the value for the duration of a with-block.

        The previous value is restored by token on exit, so scopes nest
        correctly and are released on every exit path.
        """
        if not value:
            raise ValueError(f"{self._kind} id must be a non-empty string")
        token: Token[str | None] = self._var.set(value)
        logger.debug("%s scope entered: %s", self._kind.capitalize(), value)
        try:
            yield value
        finally:
            self._var.reset(token)
            logger.debug("%s scope exited: %s", self._kind.capitalize(), value)

    @asynccontextmanager
    async def ascope(self, value: str) -> AsyncGenerator[str, None]:
        """Async variant of scope()."""
        with self.scope(value) as scoped:
            yield scoped

    def __repr__(self) -> str:
        return f"{type(self).__name__}(var={self._var.name!r})"


class InMemoryTenantStore(ContextVarStore):
    """
    Writable tenant store.

    Example:
        >>> store = InMemoryTenantStore()
        >>> store.set("acme")
        >>> store.get()
        'acme'
        >>> store.clear()
        >>> store.get() is None
        True
    """

    def __init__(self, var: ContextVar[str | None] | None = None) -> None:
        super().__init__(var if var is not None else tenant_context, "tenant")


class InMemoryCurrentUserStore(ContextVarStore):
    """Writable current-user store."""

    def __init__(self, var: ContextVar[str | None] | None = None) -> None:
        super().__init__(var if var is not None else current_user_context, "user")


_default_tenant_store = InMemoryTenantStore()
_default_user_store = InMemoryCurrentUserStore()


def get_current_tenant() -> str | None:
    """
    Get the current tenant ID from context.

    Returns None if no tenant context has been established. Never raises.
    """
    return _default_tenant_store.get()


def get_required_tenant() -> str:
    """
    Get the current tenant ID, raising if not set.

    Raises:
        TenantNotSetError: If no tenant context is set
    """
    tenant_id = _default_tenant_store.get()
    if not tenant_id:
        raise TenantNotSetError()
    return tenant_id


def set_current_tenant(tenant_id: str) -> None:
    """
    Set the current tenant ID in context.

    Note:
        Prefer tenant_scope() or tenant_scope_sync(), which restore the
        previous value automatically.
    """
    _default_tenant_store.set(tenant_id)


def clear_tenant_context() -> None:
    """Clear the tenant context for the current execution context."""
    _default_tenant_store.clear()


def get_current_user() -> str | None:
    """Get the current user ID from context, or None if not set."""
    return _default_user_store.get()


def set_current_user(user_id: str) -> None:
    """Set the current user ID in context."""
    _default_user_store.set(user_id)


def clear_user_context() -> None:
    """Clear the user context for the current execution context."""
    _default_user_store.clear()


@asynccontextmanager
async def tenant_scope(tenant_id: str) -> AsyncGenerator[str, None]:
    """
    Async context manager for scoped tenant context.

    Example with nesting:
        >>> async def nested_example():
        ...     async with tenant_scope("a"):
        ...         async with tenant_scope("b"):
        ...             assert get_current_tenant() == "b"
        ...         # "a" is restored
        ...         assert get_current_tenant() == "a"
    """
    async with _default_tenant_store.ascope(tenant_id) as scoped:
        yield scoped


@contextmanager
def tenant_scope_sync(tenant_id: str) -> Generator[str, None, None]:
    """Sync context manager for scoped tenant context."""
    with _default_tenant_store.scope(tenant_id) as scoped:
        yield scoped


@asynccontextmanager
async def user_scope(user_id: str) -> AsyncGenerator[str, None]:
    """Async context manager for scoped user context."""
    async with _default_user_store.ascope(user_id) as scoped:
        yield scoped


@contextmanager
def user_scope_sync(user_id: str) -> Generator[str, None, None]:
    """Sync context manager for scoped user context."""
    with _default_user_store.scope(user_id) as scoped:
        yield scoped


__all__ = [
    "tenant_context",
    "current_user_context",
    "ContextVarStore",
    "InMemoryTenantStore",
    "InMemoryCurrentUserStore",
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
