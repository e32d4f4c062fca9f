"""
Session factories.

ExtensibleSessionFactory wires features, stores and a model together and
creates sessions for a single engine. MultiTenantSessionFactory adds tenant
selection on top:

- by_discriminator(): one shared engine; sessions are pinned to a tenant and
  rows are filtered by ``tenant_id``.
- by_database(): one engine per tenant, created on first use and cached.

Both create an ExtensibleSession for a sync Engine and an AsyncSession
(backed by ExtensibleSession) for an AsyncEngine.

Example:
    >>> factory = MultiTenantSessionFactory.by_database(
    ...     Base,
    ...     lambda tenants: (
    ...         tenants.add_tenant_url("acme", "sqlite:///acme.db")
    ...         .add_tenant_url("globex", "sqlite:///globex.db")
    ...     ),
    ...     DbContextFeatures.with_auditing(),
    ... )
    >>> async with tenant_scope("acme"):
    ...     with factory.create_session() as session:
    ...         session.add(Order(number="A-1"))
    ...         session.commit()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import sessionmaker

from dbfeatures.exceptions import TenantConfigurationError, TenantNotSetError
from dbfeatures.features.builder import DbContextFeatures
from dbfeatures.features.multitenant import (
    MultiTenantByDatabaseBuilder,
    MultiTenantConfiguration,
    MultiTenantStrategy,
)
from dbfeatures.observability import Tracer
from dbfeatures.resolvers.claims import ClaimsCurrentUserResolver
from dbfeatures.resolvers.headers import HttpHeaderTenantResolver
from dbfeatures.resolvers.interface import AmbientResolver
from dbfeatures.session import ExtensibleSession, build_model
from dbfeatures.stores.in_memory import InMemoryCurrentUserStore, InMemoryTenantStore
from dbfeatures.stores.interface import AmbientStore

logger = logging.getLogger(__name__)

Bind = Engine | AsyncEngine
AnySession = ExtensibleSession | AsyncSession


class ExtensibleSessionFactory:
    """
    Creates sessions with the configured features for one engine.

    Args:
        engine: Sync or async engine
        base: Declarative base (or ORM registry) holding the mapped classes
        features: Enabled features (default: none)
        user_store: Current user store (default: InMemoryCurrentUserStore)
        user_resolver: Resolver paired with the user store for middleware
            (default: ClaimsCurrentUserResolver)
        tenant_store: Tenant store (default: InMemoryTenantStore)
        tenant_resolver: Resolver paired with the tenant store for
            middleware (default: HttpHeaderTenantResolver)
        tracer: Optional tracer shared by the feature processors
        enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        **session_kwargs: Passed to every session (``expire_on_commit`` ...)

    Example:
        >>> factory = ExtensibleSessionFactory(
        ...     create_engine("sqlite://"),
        ...     Base,
        ...     DbContextFeaturesBuilder().enable_auditing().build(),
        ... )
        >>> with factory.create_session() as session:
        ...     ...
    """

    def __init__(
        self,
        engine: Bind | None,
        base: Any,
        features: DbContextFeatures | None = None,
        *,
        user_store: AmbientStore | None = None,
        user_resolver: AmbientResolver | None = None,
        tenant_store: AmbientStore | None = None,
        tenant_resolver: AmbientResolver | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
        **session_kwargs: Any,
    ) -> None:
        self.engine = engine
        self.features = features or DbContextFeatures.default()
        self.user_store = user_store if user_store is not None else InMemoryCurrentUserStore()
        self.user_resolver = user_resolver or ClaimsCurrentUserResolver()
        self.tenant_store = tenant_store if tenant_store is not None else InMemoryTenantStore()
        self.tenant_resolver = tenant_resolver or HttpHeaderTenantResolver()
        self.processors = self.features.create_processors(
            user_store=self.user_store, tracer=tracer, enable_tracing=enable_tracing
        )
        self.entities = build_model(base, self.processors)
        self._session_kwargs = session_kwargs

    def create_session(self, *, tenant_id: str | None = None, **kwargs: Any) -> AnySession:
        """
        Create a session bound to the factory's engine.

        Args:
            tenant_id: Tenant pinned to the session (default: tenant store)
            **kwargs: Extra session arguments

        Returns:
            ExtensibleSession for a sync engine, AsyncSession for an async one
        """
        if self.engine is None:
            raise TypeError(f"{type(self).__name__} has no engine to bind sessions to")
        return self._open(self.engine, tenant_id, **kwargs)

    def session_maker(self, **kwargs: Any) -> sessionmaker[Any] | async_sessionmaker[Any]:
        """
        Build a configured sessionmaker for the factory's engine.

        Sessions made by it use the ambient tenant; nothing is pinned.
        """
        if self.engine is None:
            raise TypeError(f"{type(self).__name__} has no engine to bind sessions to")
        options = {**self._session_options(), **kwargs}
        if isinstance(self.engine, AsyncEngine):
            return async_sessionmaker(
                self.engine, sync_session_class=ExtensibleSession, **options
            )
        return sessionmaker(self.engine, class_=ExtensibleSession, **options)

    def _session_options(self) -> dict[str, Any]:
        return {
            **self._session_kwargs,
            "processors": self.processors,
            "entities": self.entities,
            "tenant_store": self.tenant_store,
        }

    def _open(self, bind: Bind, tenant_id: str | None, **kwargs: Any) -> AnySession:
        options = {**self._session_options(), "tenant_id": tenant_id, **kwargs}
        if isinstance(bind, AsyncEngine):
            return AsyncSession(bind, sync_session_class=ExtensibleSession, **options)
        return ExtensibleSession(bind, **options)


class MultiTenantSessionFactory(ExtensibleSessionFactory):
    """
    Creates sessions for the current (or a given) tenant.

    Use by_discriminator() or by_database() to construct it.

    Args:
        base: Declarative base holding the mapped classes
        configuration: Multi-tenancy configuration
        features: Other enabled features; multi-tenancy is added to them
        engine: Shared engine, required for the DISCRIMINATOR strategy
        **kwargs: See ExtensibleSessionFactory
    """

    def __init__(
        self,
        base: Any,
        configuration: MultiTenantConfiguration,
        features: DbContextFeatures | None = None,
        *,
        engine: Bind | None = None,
        **kwargs: Any,
    ) -> None:
        if configuration.strategy is MultiTenantStrategy.DISCRIMINATOR and engine is None:
            raise TypeError("The discriminator strategy requires a shared engine")
        features = replace(
            features or DbContextFeatures.default(), multi_tenant=configuration
        )
        super().__init__(engine, base, features, **kwargs)
        self.configuration = configuration
        self._engines: dict[str, Bind] = {}
        self._lock = threading.Lock()

    @classmethod
    def by_discriminator(
        cls,
        engine: Bind,
        base: Any,
        features: DbContextFeatures | None = None,
        *,
        stamp_tenant_id: bool = True,
        **kwargs: Any,
    ) -> MultiTenantSessionFactory:
        """Shared database, rows partitioned by ``tenant_id``."""
        configuration = MultiTenantConfiguration(
            strategy=MultiTenantStrategy.DISCRIMINATOR,
            stamp_tenant_id=stamp_tenant_id,
        )
        return cls(base, configuration, features, engine=engine, **kwargs)

    @classmethod
    def by_database(
        cls,
        base: Any,
        build_tenants: Callable[[MultiTenantByDatabaseBuilder], Any],
        features: DbContextFeatures | None = None,
        *,
        stamp_tenant_id: bool = True,
        **kwargs: Any,
    ) -> MultiTenantSessionFactory:
        """
        One database per tenant.

        Args:
            base: Declarative base holding the mapped classes
            build_tenants: Receives a MultiTenantByDatabaseBuilder and
                registers the tenants on it
            features: Other enabled features
            stamp_tenant_id: Whether to stamp ``tenant_id`` on flush

        Raises:
            ConfigurationError: If no tenant is registered
        """
        builder = MultiTenantByDatabaseBuilder()
        build_tenants(builder)
        configuration = builder.build(stamp_tenant_id=stamp_tenant_id)
        return cls(base, configuration, features, **kwargs)

    @property
    def strategy(self) -> MultiTenantStrategy:
        return self.configuration.strategy

    def resolve_tenant_id(self, tenant_id: str | None = None) -> str:
        """
        Return the given tenant, else the tenant store's value.

        Raises:
            TenantNotSetError: If neither is set
        """
        tenant_id = tenant_id or self.tenant_store.get()
        if not tenant_id:
            raise TenantNotSetError()
        return tenant_id

    def engine_for(self, tenant_id: str) -> Bind:
        """
        Return the engine serving a tenant.

        Under the DATABASE strategy the engine is created on first use and
        cached for the lifetime of the factory.

        Raises:
            TenantConfigurationError: If the tenant has no database configured
        """
        if self.strategy is MultiTenantStrategy.DISCRIMINATOR:
            if self.engine is None:
                raise TypeError(f"{type(self).__name__} has no engine to bind sessions to")
            return self.engine

        engine = self._engines.get(tenant_id)
        if engine is not None:
            return engine
        configure = self.configuration.database_configurations.get(tenant_id)
        if configure is None:
            raise TenantConfigurationError(tenant_id)
        with self._lock:
            engine = self._engines.get(tenant_id)
            if engine is None:
                engine = configure()
                self._engines[tenant_id] = engine
                logger.info("Created engine for tenant %s: %s", tenant_id, engine.url)
        return engine

    def create_session(self, tenant_id: str | None = None, **kwargs: Any) -> AnySession:
        """
        Create a session for a tenant.

        Args:
            tenant_id: Tenant to use (default: the tenant store's value). The
                tenant is pinned to the session, so later changes of the
                ambient tenant do not affect it.

        Raises:
            TenantNotSetError: If no tenant is given or set
            TenantConfigurationError: If the tenant has no database configured
        """
        tenant_id = self.resolve_tenant_id(tenant_id)
        return self._open(self.engine_for(tenant_id), tenant_id, **kwargs)

    def session_maker(self, **kwargs: Any) -> sessionmaker[Any] | async_sessionmaker[Any]:
        if self.strategy is MultiTenantStrategy.DATABASE:
            raise TypeError(
                "Sessions of the database strategy depend on the tenant; "
                "use create_session()"
            )
        return super().session_maker(**kwargs)

    def dispose(self) -> None:
        """
        Dispose the engines created for tenants.

        Async engines are skipped; use adispose() for them.
        """
        with self._lock:
            for tenant_id, engine in list(self._engines.items()):
                if isinstance(engine, AsyncEngine):
                    continue
                engine.dispose()
                del self._engines[tenant_id]
                logger.debug("Disposed engine for tenant %s", tenant_id)

    async def adispose(self) -> None:
        """Dispose all engines created for tenants."""
        with self._lock:
            engines = list(self._engines.items())
            self._engines.clear()
        for tenant_id, engine in engines:
            if isinstance(engine, AsyncEngine):
                await engine.dispose()
            else:
                engine.dispose()
            logger.debug("Disposed engine for tenant %s", tenant_id)


__all__ = ["ExtensibleSessionFactory", "MultiTenantSessionFactory"]
