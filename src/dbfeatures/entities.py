"""
Entity traits and the capability registry.

Mapped classes opt into features by inheriting declarative mixins:

- TenantEntity: a ``tenant_id`` discriminator column
- AuditableEntity: ``created_date`` and ``last_modified_date``
- AuditableWithUserEntity: adds ``created_by`` and ``modified_by``

Feature processors translate the traits into capabilities once, when the
model is built, and record them in an EntityRegistry. Query and flush hooks
then consult the registry instead of inspecting entity types.

Example:
    >>> from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
    >>> from dbfeatures.entities import AuditableEntity, TenantEntity
    >>>
    >>> class Base(DeclarativeBase):
    ...     pass
    >>>
    >>> class Order(TenantEntity, AuditableEntity, Base):
    ...     __tablename__ = "orders"
    ...     id: Mapped[int] = mapped_column(primary_key=True)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

logger = logging.getLogger(__name__)

TenantPredicate = Callable[[str], ColumnElement[bool]]


class TenantEntity:
    """Mixin for entities partitioned by tenant."""

    tenant_id: Mapped[str] = mapped_column(
        String(64), nullable=False, default="", index=True
    )


class AuditableEntity:
    """Mixin for entities carrying creation and modification timestamps."""

    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_modified_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class AuditableWithUserEntity(AuditableEntity):
    """Mixin adding the identity of the creator and last modifier."""

    created_by: Mapped[str | None] = mapped_column(String(256), nullable=True)
    modified_by: Mapped[str | None] = mapped_column(String(256), nullable=True)


class EntityCapability(Enum):
    """Features an entity type takes part in."""

    TENANT_FILTER = "tenant_filter"
    """Reads, updates and deletes are restricted to the current tenant."""

    TENANT_STAMP = "tenant_stamp"
    """Added and modified rows receive the current tenant on flush."""

    AUDIT = "audit"
    """Creation and modification timestamps are maintained."""

    AUDIT_USER = "audit_user"
    """Creator and modifier identity are maintained."""


class EntityRegistry:
    """
    Mapping of entity class to its capabilities.

    Built once per model by the feature processors and read on every query
    and flush. Registering the same class twice merges the capabilities.

    Example:
        >>> registry = EntityRegistry()
        >>> registry.register(Order, {EntityCapability.AUDIT})
        >>> registry.supports(Order, EntityCapability.AUDIT)
        True
        >>> registry.entities_with(EntityCapability.TENANT_FILTER)
        ()
    """

    def __init__(self) -> None:
        self._capabilities: dict[type, frozenset[EntityCapability]] = {}
        self._tenant_predicates: dict[type, TenantPredicate] = {}

    def register(
        self,
        entity: type,
        capabilities: Iterable[EntityCapability],
        *,
        tenant_predicate: TenantPredicate | None = None,
    ) -> None:
        """
        Record capabilities for an entity class.

        Args:
            entity: Mapped class
            capabilities: Capabilities to add
            tenant_predicate: Builds the row filter for a tenant id. Required
                for TENANT_FILTER unless the class has a ``tenant_id``
                attribute.

        Raises:
            ValueError: If TENANT_FILTER is requested without a way to build
                the predicate
        """
        merged = self._capabilities.get(entity, frozenset()) | frozenset(capabilities)
        if EntityCapability.TENANT_FILTER in merged and entity not in self._tenant_predicates:
            if tenant_predicate is None:
                column = getattr(entity, "tenant_id", None)
                if column is None:
                    raise ValueError(
                        f"{entity.__name__} has no tenant_id attribute; "
                        "pass tenant_predicate explicitly"
                    )
                tenant_predicate = _column_equals(column)
            self._tenant_predicates[entity] = tenant_predicate
        elif tenant_predicate is not None:
            self._tenant_predicates[entity] = tenant_predicate
        self._capabilities[entity] = merged
        logger.debug(
            "Registered %s with capabilities %s",
            entity.__name__,
            sorted(c.value for c in merged),
        )

    def capabilities_of(self, entity: type) -> frozenset[EntityCapability]:
        """Capabilities of an entity class (empty if unregistered)."""
        return self._capabilities.get(entity, frozenset())

    def supports(self, entity: type, capability: EntityCapability) -> bool:
        return capability in self.capabilities_of(entity)

    def entities_with(self, capability: EntityCapability) -> tuple[type, ...]:
        """All registered classes having a capability, in registration order."""
        return tuple(
            entity for entity, caps in self._capabilities.items() if capability in caps
        )

    def tenant_predicate(self, entity: type, tenant_id: str) -> ColumnElement[bool]:
        """
        Build the row filter restricting an entity to one tenant.

        Raises:
            KeyError: If the entity is not registered for TENANT_FILTER
        """
        return self._tenant_predicates[entity](tenant_id)

    def __contains__(self, entity: object) -> bool:
        return entity in self._capabilities

    def __iter__(self) -> Iterator[type]:
        return iter(self._capabilities)

    def __len__(self) -> int:
        return len(self._capabilities)

    def __repr__(self) -> str:
        return f"EntityRegistry({len(self)} entities)"


def _column_equals(column: Any) -> TenantPredicate:
    def predicate(tenant_id: str) -> ColumnElement[bool]:
        return column == tenant_id

    return predicate


__all__ = [
    "TenantEntity",
    "AuditableEntity",
    "AuditableWithUserEntity",
    "EntityCapability",
    "EntityRegistry",
    "TenantPredicate",
]
