"""
Unit tests for ExtensibleSession and build_model().

Tests cover:
- Tenant resolution (pinned tenant, store, none)
- Model construction hooks and their order
- Dispatch of statement and flush hooks to processors
- The same hooks through AsyncSession and sessionmakers
"""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import Engine, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import sessionmaker

from dbfeatures.entities import EntityCapability, EntityRegistry
from dbfeatures.features import (
    AuditingFeatureProcessor,
    BaseFeatureProcessor,
    FeatureProcessor,
    MultiTenantFeatureProcessor,
)
from dbfeatures.session import ExtensibleSession, build_model
from dbfeatures.stores import InMemoryCurrentUserStore, InMemoryTenantStore
from tests.fixtures import Base, Document, FixedClock, Note, Product


class RecordingProcessor(BaseFeatureProcessor):
    """Records the hooks it receives."""

    def __init__(self, name: str, log: list[tuple[str, str]]) -> None:
        self.name = name
        self.log = log

    def on_model_creating(self, registry: Any, entities: EntityRegistry) -> None:
        self.log.append((self.name, "model"))

    def on_model_creating_entity(self, mapper: Any, entities: EntityRegistry) -> None:
        self.log.append((self.name, f"entity:{mapper.class_.__name__}"))

    def on_execute(self, orm_execute_state: Any, session: ExtensibleSession) -> None:
        self.log.append((self.name, "execute"))

    def on_save_changes(self, session: ExtensibleSession) -> None:
        self.log.append((self.name, "save"))


class TestCurrentTenant:
    """Tests for ExtensibleSession.current_tenant_id."""

    def test_no_store_no_tenant(self, engine: Engine) -> None:
        with ExtensibleSession(engine) as session:
            assert session.current_tenant_id is None

    def test_reads_store_at_access_time(
        self, engine: Engine, tenant_store: InMemoryTenantStore
    ) -> None:
        with ExtensibleSession(engine, tenant_store=tenant_store) as session:
            assert session.current_tenant_id is None
            with tenant_store.scope("acme"):
                assert session.current_tenant_id == "acme"
            with tenant_store.scope("globex"):
                assert session.current_tenant_id == "globex"

    def test_pinned_tenant_wins(self, engine: Engine, tenant_store: InMemoryTenantStore) -> None:
        with tenant_store.scope("acme"):
            with ExtensibleSession(
                engine, tenant_store=tenant_store, tenant_id="globex"
            ) as session:
                assert session.current_tenant_id == "globex"

    def test_defaults(self, engine: Engine) -> None:
        with ExtensibleSession(engine) as session:
            assert session.processors == ()
            assert len(session.entities) == 0


class TestBuildModel:
    """Tests for build_model()."""

    def test_accepts_declarative_base_or_registry(self) -> None:
        processors = [MultiTenantFeatureProcessor()]
        from_base = build_model(Base, processors)
        from_registry = build_model(Base.registry, processors)
        assert list(from_base) == list(from_registry)

    def test_rejects_other_objects(self) -> None:
        with pytest.raises(TypeError, match="declarative base or registry"):
            build_model(object(), [])

    def test_hook_order(self) -> None:
        """Model hooks run first, then entity hooks per mapped class."""
        log: list[tuple[str, str]] = []
        build_model(Base, [RecordingProcessor("a", log), RecordingProcessor("b", log)])

        assert log[:2] == [("a", "model"), ("b", "model")]
        assert log[2:] == [
            (name, f"entity:{entity}")
            for entity in ("Category", "Document", "Note", "Product")
            for name in ("a", "b")
        ]

    def test_capabilities_from_several_processors_merge(self) -> None:
        entities = build_model(
            Base, [MultiTenantFeatureProcessor(), AuditingFeatureProcessor()]
        )
        assert entities.capabilities_of(Document) == {
            EntityCapability.TENANT_FILTER,
            EntityCapability.TENANT_STAMP,
            EntityCapability.AUDIT,
            EntityCapability.AUDIT_USER,
        }
        assert entities.capabilities_of(Note) == {EntityCapability.AUDIT}

    def test_processor_protocol(self) -> None:
        assert isinstance(RecordingProcessor("a", []), FeatureProcessor)
        assert isinstance(MultiTenantFeatureProcessor(), FeatureProcessor)


class TestHookDispatch:
    """Tests for statement and flush hook dispatch."""

    def test_execute_hook_runs_per_statement(self, engine: Engine) -> None:
        log: list[tuple[str, str]] = []
        processors = [RecordingProcessor("a", log), RecordingProcessor("b", log)]
        with ExtensibleSession(engine, processors=processors) as session:
            session.execute(select(Product))
            session.scalars(select(Note)).all()

        assert log == [("a", "execute"), ("b", "execute")] * 2

    def test_save_hook_runs_once_per_flush(self, engine: Engine) -> None:
        log: list[tuple[str, str]] = []
        with ExtensibleSession(engine, processors=[RecordingProcessor("a", log)]) as session:
            session.add(Product(name="p"))
            session.flush()
            session.flush()  # nothing pending
            session.add(Product(name="q"))
            session.commit()

        assert log == [("a", "save"), ("a", "save")]

    def test_plain_session_is_unaffected(
        self, engine: Engine, tenant_store: InMemoryTenantStore
    ) -> None:
        """The listeners are bound to ExtensibleSession only."""
        from sqlalchemy.orm import Session

        with tenant_store.scope("acme"), Session(engine) as session:
            session.add(Product(name="plain"))
            session.commit()
            assert session.scalars(select(Product)).one().tenant_id == ""

    def test_sessionmaker_class(self, engine: Engine, tenant_store: InMemoryTenantStore) -> None:
        processors = [MultiTenantFeatureProcessor()]
        make_session = sessionmaker(
            engine,
            class_=ExtensibleSession,
            processors=processors,
            entities=build_model(Base, processors),
            tenant_store=tenant_store,
        )
        with tenant_store.scope("acme"), make_session() as session:
            session.add(Product(name="widget"))
            session.commit()
            assert session.scalars(select(Product)).one().tenant_id == "acme"


class TestAsyncSession:
    """The same features through AsyncSession."""

    async def test_async_session_applies_features(
        self,
        async_engine: AsyncEngine,
        tenant_store: InMemoryTenantStore,
        user_store: InMemoryCurrentUserStore,
        clock: FixedClock,
    ) -> None:
        processors: list[FeatureProcessor] = [
            MultiTenantFeatureProcessor(),
            AuditingFeatureProcessor(user_store=user_store, clock=clock),
        ]
        make_session = async_sessionmaker(
            async_engine,
            sync_session_class=ExtensibleSession,
            expire_on_commit=False,
            processors=processors,
            entities=build_model(Base, processors),
            tenant_store=tenant_store,
        )

        async with tenant_store.ascope("acme"), user_store.ascope("u-1"):
            async with make_session() as session:
                document = Document(title="async")
                session.add(document)
                await session.commit()

        assert document.tenant_id == "acme"
        assert document.created_by == "u-1"
        assert document.created_date == clock.now

        async with make_session() as session:
            async with tenant_store.ascope("globex"):
                result = await session.scalars(select(Document))
                assert result.all() == []
            async with tenant_store.ascope("acme"):
                result = await session.scalars(select(Document.title))
                assert result.all() == ["async"]

    async def test_async_session_direct_construction(
        self, async_engine: AsyncEngine, tenant_store: InMemoryTenantStore
    ) -> None:
        processors = [MultiTenantFeatureProcessor()]
        session = AsyncSession(
            async_engine,
            sync_session_class=ExtensibleSession,
            processors=processors,
            entities=build_model(Base, processors),
            tenant_id="pinned",
        )
        async with session:
            assert isinstance(session.sync_session, ExtensibleSession)
            assert session.sync_session.current_tenant_id == "pinned"
            session.add(Product(name="p"))
            await session.commit()
            result = await session.scalars(select(Product.tenant_id))
            assert result.all() == ["pinned"]
