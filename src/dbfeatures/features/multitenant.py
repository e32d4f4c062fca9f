"""
Multi-tenancy feature.

Two strategies are supported:

- DISCRIMINATOR: all tenants share one database. Every TenantEntity is
  filtered by ``tenant_id`` on SELECT, UPDATE and DELETE, and stamped with
  the current tenant on flush.
- DATABASE: every tenant has its own database. No row filter is installed;
  stamping is controlled by ``stamp_tenant_id``.

The row filter reads the session's current tenant when each statement runs,
so switching tenants between queries needs no reconfiguration. Statements
executed with ``execution_options(include_all_tenants=True)`` are not
filtered.

Example:
    >>> config = MultiTenantConfiguration()  # discriminator
    >>> processor = MultiTenantFeatureProcessor(config)
    >>>
    >>> builder = MultiTenantByDatabaseBuilder()
    >>> builder.add_tenant_url("acme", "sqlite:///acme.db")
    >>> config = builder.build()
    >>> config.strategy
    <MultiTenantStrategy.DATABASE: 'database'>
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import with_loader_criteria

from dbfeatures.entities import EntityCapability, TenantEntity
from dbfeatures.exceptions import ConfigurationError
from dbfeatures.features.processor import BaseFeatureProcessor, pending_changes
from dbfeatures.observability import (
    ATTR_ENTITY_COUNT,
    ATTR_MULTITENANT_STRATEGY,
    ATTR_TENANT_ID,
    Tracer,
    create_tracer,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Mapper, ORMExecuteState

    from dbfeatures.entities import EntityRegistry
    from dbfeatures.session import ExtensibleSession

logger = logging.getLogger(__name__)

INCLUDE_ALL_TENANTS = "include_all_tenants"
"""Execution option that disables the tenant row filter for one statement."""

EngineConfigurator = Callable[[], "Engine | AsyncEngine"]


class MultiTenantStrategy(Enum):
    """How tenants are isolated."""

    DISCRIMINATOR = "discriminator"
    """Shared database, rows partitioned by a tenant column."""

    DATABASE = "database"
    """One database per tenant."""


@dataclass(frozen=True)
class MultiTenantConfiguration:
    """
    Configuration of the multi-tenancy feature.

    Attributes:
        strategy: Tenant isolation strategy
        stamp_tenant_id: Whether to set ``tenant_id`` on added and modified
            tenant entities at flush time. Applies to both strategies.
        database_configurations: Engine configurators per tenant, required
            for the DATABASE strategy

    Raises:
        ConfigurationError: If the DATABASE strategy has no tenants, or a
            tenant id is empty
    """

    strategy: MultiTenantStrategy = MultiTenantStrategy.DISCRIMINATOR
    stamp_tenant_id: bool = True
    database_configurations: Mapping[str, EngineConfigurator] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        if self.strategy is MultiTenantStrategy.DATABASE and not self.database_configurations:
            raise ConfigurationError(
                "At least one tenant must be configured for the database strategy. "
                "Use MultiTenantByDatabaseBuilder.add_tenant()."
            )
        if any(not tenant_id for tenant_id in self.database_configurations):
            raise ConfigurationError("Tenant ids must be non-empty strings")
        # Freeze the mapping along with the dataclass
        object.__setattr__(
            self,
            "database_configurations",
            MappingProxyType(dict(self.database_configurations)),
        )

    @property
    def tenant_ids(self) -> tuple[str, ...]:
        """Tenants configured for the DATABASE strategy."""
        return tuple(self.database_configurations)


class MultiTenantByDatabaseBuilder:
    """
    Collects per-tenant engine configuration for the DATABASE strategy.

    Example:
        >>> builder = MultiTenantByDatabaseBuilder()
        >>> builder.add_tenant("acme", lambda: create_engine("sqlite:///acme.db"))
        >>> builder.add_tenant_url("globex", "sqlite+aiosqlite:///globex.db")
        >>> config = builder.build()
    """

    def __init__(self) -> None:
        self._configurations: dict[str, EngineConfigurator] = {}

    def add_tenant(
        self, tenant_id: str, configure: EngineConfigurator
    ) -> MultiTenantByDatabaseBuilder:
        """
        Register a tenant with a callable producing its engine.

        Registering the same tenant twice replaces the earlier configuration.
        """
        if not tenant_id:
            raise ConfigurationError("Tenant ids must be non-empty strings")
        self._configurations[tenant_id] = configure
        return self

    def add_tenant_url(
        self, tenant_id: str, url: str, **engine_kwargs: Any
    ) -> MultiTenantByDatabaseBuilder:
        """
        Register a tenant by database URL.

        Async driver URLs (``sqlite+aiosqlite``, ``postgresql+asyncpg``, ...)
        produce an AsyncEngine; any other URL a sync Engine.
        """

        def configure() -> Engine | AsyncEngine:
            if _is_async_url(url):
                return create_async_engine(url, **engine_kwargs)
            return create_engine(url, **engine_kwargs)

        return self.add_tenant(tenant_id, configure)

    def build(self, *, stamp_tenant_id: bool = True) -> MultiTenantConfiguration:
        return MultiTenantConfiguration(
            strategy=MultiTenantStrategy.DATABASE,
            stamp_tenant_id=stamp_tenant_id,
            database_configurations=dict(self._configurations),
        )

    def __len__(self) -> int:
        return len(self._configurations)


_ASYNC_DRIVERS = ("aiosqlite", "asyncpg", "aiomysql", "asyncmy", "psycopg_async")


def _is_async_url(url: str) -> bool:
    scheme = url.split("://", 1)[0]
    return "+" in scheme and scheme.split("+", 1)[1] in _ASYNC_DRIVERS


class MultiTenantFeatureProcessor(BaseFeatureProcessor):
    """
    Installs the tenant row filter and stamps tenant ids on flush.

    Args:
        configuration: Multi-tenancy configuration
        tracer: Optional tracer (if not provided, one will be created)
        enable_tracing: Whether to enable OpenTelemetry tracing (default True)
    """

    def __init__(
        self,
        configuration: MultiTenantConfiguration | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self.configuration = configuration or MultiTenantConfiguration()
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def filters_rows(self) -> bool:
        return self.configuration.strategy is MultiTenantStrategy.DISCRIMINATOR

    def on_model_creating_entity(self, mapper: Mapper[Any], entities: EntityRegistry) -> None:
        entity = mapper.class_
        if not issubclass(entity, TenantEntity):
            return
        capabilities = set()
        if self.filters_rows:
            capabilities.add(EntityCapability.TENANT_FILTER)
        if self.configuration.stamp_tenant_id:
            capabilities.add(EntityCapability.TENANT_STAMP)
        if capabilities:
            entities.register(entity, capabilities)

    def on_execute(self, orm_execute_state: ORMExecuteState, session: ExtensibleSession) -> None:
        if not self.filters_rows:
            return
        state = orm_execute_state
        if not (state.is_select or state.is_update or state.is_delete):
            return
        if state.is_column_load or state.is_relationship_load:
            return
        if state.execution_options.get(INCLUDE_ALL_TENANTS, False):
            return

        tenant_id = session.current_tenant_id
        if not tenant_id:
            return

        entities = session.entities
        criteria = [
            with_loader_criteria(
                entity,
                entities.tenant_predicate(entity, tenant_id),
                include_aliases=True,
            )
            for entity in entities.entities_with(EntityCapability.TENANT_FILTER)
        ]
        if criteria:
            state.statement = state.statement.options(*criteria)

    def on_save_changes(self, session: ExtensibleSession) -> None:
        if not self.configuration.stamp_tenant_id:
            return
        tenant_id = session.current_tenant_id
        if not tenant_id:
            return

        entities = session.entities
        added, modified = pending_changes(session)
        targets = [
            obj
            for obj in (*added, *modified)
            if entities.supports(type(obj), EntityCapability.TENANT_STAMP)
        ]
        if not targets:
            return

        with self._tracer.span(
            "dbfeatures.multitenant.stamp",
            {
                ATTR_TENANT_ID: tenant_id,
                ATTR_ENTITY_COUNT: len(targets),
                ATTR_MULTITENANT_STRATEGY: self.configuration.strategy.value,
            },
        ):
            for obj in targets:
                obj.tenant_id = tenant_id
        logger.debug("Stamped tenant %s on %d entities", tenant_id, len(targets))


__all__ = [
    "INCLUDE_ALL_TENANTS",
    "EngineConfigurator",
    "MultiTenantStrategy",
    "MultiTenantConfiguration",
    "MultiTenantByDatabaseBuilder",
    "MultiTenantFeatureProcessor",
]
