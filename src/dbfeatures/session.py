"""
Extensible SQLAlchemy session.

ExtensibleSession carries the feature processors of a model and dispatches
SQLAlchemy's session events to them:

- ``do_orm_execute`` -> FeatureProcessor.on_execute()
- ``before_flush`` -> FeatureProcessor.on_save_changes()

The listeners are installed once on the class, so every session created
from a ``sessionmaker(class_=ExtensibleSession)`` or an
``async_sessionmaker(sync_session_class=ExtensibleSession)`` takes part.

Example:
    >>> entities = build_model(Base, processors)
    >>> with ExtensibleSession(
    ...     engine,
    ...     processors=processors,
    ...     entities=entities,
    ...     tenant_store=InMemoryTenantStore(),
    ... ) as session:
    ...     session.add(Order(number="A-1"))
    ...     session.commit()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session, registry

from dbfeatures.entities import EntityRegistry
from dbfeatures.features.processor import FeatureProcessor
from dbfeatures.stores.interface import AmbientStore

if TYPE_CHECKING:
    from sqlalchemy.orm.unitofwork import UOWTransaction

logger = logging.getLogger(__name__)


class ExtensibleSession(Session):
    """
    Session that applies feature processors to statements and flushes.

    Args:
        bind: Engine or connection, as for Session
        processors: Feature processors, applied in order
        entities: Capability registry built by build_model()
        tenant_store: Store providing the ambient tenant
        tenant_id: Tenant pinned to this session; takes precedence over
            the store
        **kw: Passed to Session
    """

    def __init__(
        self,
        bind: Any = None,
        *,
        processors: Iterable[FeatureProcessor] = (),
        entities: EntityRegistry | None = None,
        tenant_store: AmbientStore | None = None,
        tenant_id: str | None = None,
        **kw: Any,
    ) -> None:
        super().__init__(bind=bind, **kw)
        self.processors: tuple[FeatureProcessor, ...] = tuple(processors)
        self.entities = entities if entities is not None else EntityRegistry()
        self.tenant_store = tenant_store
        self.tenant_id = tenant_id

    @property
    def current_tenant_id(self) -> str | None:
        """The pinned tenant, else the tenant store's value."""
        if self.tenant_id:
            return self.tenant_id
        if self.tenant_store is None:
            return None
        return self.tenant_store.get()

    def apply_features(self) -> None:
        """Run on_save_changes() of every processor."""
        for processor in self.processors:
            processor.on_save_changes(self)


@event.listens_for(ExtensibleSession, "do_orm_execute")
def _apply_statement_features(orm_execute_state: ORMExecuteState) -> None:
    session = orm_execute_state.session
    for processor in session.processors:  # type: ignore[attr-defined]
        processor.on_execute(orm_execute_state, session)


@event.listens_for(ExtensibleSession, "before_flush")
def _apply_flush_features(
    session: ExtensibleSession,
    flush_context: UOWTransaction,
    instances: Sequence[Any] | None,
) -> None:
    session.apply_features()


def build_model(
    base_or_registry: Any, processors: Iterable[FeatureProcessor]
) -> EntityRegistry:
    """
    Run the model-construction hooks of the processors.

    on_model_creating() runs once per processor, then
    on_model_creating_entity() for every mapped class of the registry.

    Args:
        base_or_registry: Declarative base class or ``sqlalchemy.orm.registry``
        processors: Feature processors

    Returns:
        The capability registry to hand to sessions

    Raises:
        TypeError: If no ORM registry can be found
    """
    orm_registry = getattr(base_or_registry, "registry", base_or_registry)
    if not isinstance(orm_registry, registry):
        raise TypeError(
            f"Expected a declarative base or registry, got {base_or_registry!r}"
        )
    processors = tuple(processors)
    entities = EntityRegistry()

    for processor in processors:
        processor.on_model_creating(orm_registry, entities)

    mappers = sorted(orm_registry.mappers, key=lambda m: m.class_.__qualname__)
    for mapper in mappers:
        for processor in processors:
            processor.on_model_creating_entity(mapper, entities)

    logger.debug(
        "Built model with %d mapped classes, %d with capabilities",
        len(mappers),
        len(entities),
    )
    return entities


__all__ = ["ExtensibleSession", "build_model"]
