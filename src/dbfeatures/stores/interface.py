"""
Ambient value store interfaces.

An ambient store holds a single scoped string (tenant id or user id) for the
current logical unit of work. Two capabilities are exposed as distinct
protocols:

- AmbientStore: read-only, for consumers that must not mutate ambient state
- WritableAmbientStore: read-write, for the propagation middleware

The middleware checks the capability with isinstance(), so a read-only store
turns the middleware into a pass-through without removing it from the stack.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AmbientStore(Protocol):
    """
    Read-only access to an ambient value.

    get() never raises. It returns None when no value is set for the
    current context.
    """

    def get(self) -> str | None:
        """Return the current value, or None if not set."""
        ...


@runtime_checkable
class WritableAmbientStore(AmbientStore, Protocol):
    """
    Read-write access to an ambient value.

    set() only affects the current execution context and the asyncio tasks
    spawned from it afterwards. clear() removes the value for the current
    context.
    """

    def set(self, value: str) -> None:
        """Set the value for the current context."""
        ...

    def clear(self) -> None:
        """Remove the value for the current context."""
        ...


@runtime_checkable
class TenantStore(AmbientStore, Protocol):
    """Read-only store for the current tenant id."""


@runtime_checkable
class WritableTenantStore(WritableAmbientStore, Protocol):
    """Read-write store for the current tenant id."""


@runtime_checkable
class CurrentUserStore(AmbientStore, Protocol):
    """Read-only store for the current user id."""


@runtime_checkable
class WritableCurrentUserStore(WritableAmbientStore, Protocol):
    """Read-write store for the current user id."""


def is_writable(store: AmbientStore | None) -> bool:
    """Return True if the store supports set() and clear()."""
    return isinstance(store, WritableAmbientStore)


__all__ = [
    "AmbientStore",
    "WritableAmbientStore",
    "TenantStore",
    "WritableTenantStore",
    "CurrentUserStore",
    "WritableCurrentUserStore",
    "is_writable",
]
