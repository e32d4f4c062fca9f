"""
Feature processor protocol.

A feature processor takes part in three phases of a session's life:

- Model construction: on_model_creating() once per model, then
  on_model_creating_entity() for each mapped class. Processors declare
  tables and record entity capabilities here.
- Statement execution: on_execute() for each ORM statement, used to add
  row filters.
- Flush: on_save_changes() before pending changes are written, used to
  stamp tenant and audit fields.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqlalchemy.orm import Mapper, ORMExecuteState, registry

    from dbfeatures.entities import EntityRegistry
    from dbfeatures.session import ExtensibleSession


@runtime_checkable
class FeatureProcessor(Protocol):
    """Protocol for session features."""

    def on_model_creating(self, registry: registry, entities: EntityRegistry) -> None:
        """Called once when the model is built."""
        ...

    def on_model_creating_entity(self, mapper: Mapper[Any], entities: EntityRegistry) -> None:
        """Called once per mapped class when the model is built."""
        ...

    def on_execute(self, orm_execute_state: ORMExecuteState, session: ExtensibleSession) -> None:
        """Called for each ORM statement executed by the session."""
        ...

    def on_save_changes(self, session: ExtensibleSession) -> None:
        """Called before each flush."""
        ...


class BaseFeatureProcessor:
    """Feature processor with no-op hooks; subclasses override what they need."""

    def on_model_creating(self, registry: registry, entities: EntityRegistry) -> None:
        pass

    def on_model_creating_entity(self, mapper: Mapper[Any], entities: EntityRegistry) -> None:
        pass

    def on_execute(self, orm_execute_state: ORMExecuteState, session: ExtensibleSession) -> None:
        pass

    def on_save_changes(self, session: ExtensibleSession) -> None:
        pass


def pending_changes(session: ExtensibleSession) -> tuple[list[Any], list[Any]]:
    """
    Split the session's pending work into added and modified objects.

    Objects in ``session.dirty`` without net attribute changes are left out,
    so stamping never turns a no-op into an UPDATE.
    """
    added = list(session.new)
    modified = [
        obj
        for obj in session.dirty
        if session.is_modified(obj, include_collections=False)
    ]
    return added, modified


__all__ = ["FeatureProcessor", "BaseFeatureProcessor", "pending_changes"]
