"""
Auditing feature.

On every flush, added and modified auditable entities receive timestamps
from a single clock reading:

- Added: ``created_date`` and ``last_modified_date`` are set to now.
- Modified: ``last_modified_date`` is set to now; ``created_date`` is kept.

Entities inheriting AuditableWithUserEntity also receive the current user id
from the user store (``created_by`` and ``modified_by`` on insert,
``modified_by`` on update). When no user is available, the configured
AuditingBehavior decides what happens.

Example:
    >>> config = AuditingConfiguration.use_system_user("SYSTEM")
    >>> processor = AuditingFeatureProcessor(config, user_store=InMemoryCurrentUserStore())
    >>>
    >>> # Settings mappings are accepted as well
    >>> config = AuditingConfiguration.from_settings(
    ...     {"behavior_when_no_user": "throw_exception"}
    ... )
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from dbfeatures.entities import AuditableEntity, AuditableWithUserEntity, EntityCapability
from dbfeatures.exceptions import ConfigurationError, CurrentUserRequiredError
from dbfeatures.features.processor import BaseFeatureProcessor, pending_changes
from dbfeatures.observability import (
    ATTR_AUDITING_BEHAVIOR,
    ATTR_ENTITY_COUNT,
    ATTR_USER_ID,
    Tracer,
    create_tracer,
)
from dbfeatures.stores.interface import AmbientStore

if TYPE_CHECKING:
    from sqlalchemy.orm import Mapper

    from dbfeatures.entities import EntityRegistry
    from dbfeatures.session import ExtensibleSession

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "system"


def utc_now() -> datetime:
    """Default auditing clock."""
    return datetime.now(UTC)


class AuditingBehavior(Enum):
    """What to do with user fields when no current user is available."""

    THROW_EXCEPTION = "throw_exception"
    """Abort the flush with CurrentUserRequiredError."""

    USE_DEFAULT_USER = "use_default_user"
    """Use AuditingConfiguration.default_user_id."""

    SAVE_AS_NULL = "save_as_null"
    """Store NULL in the applicable user fields."""

    SKIP_USER_FIELDS = "skip_user_fields"
    """Leave the user fields as they are."""


class AuditingConfiguration(BaseModel):
    """
    Configuration of the auditing feature.

    Attributes:
        behavior_when_no_user: Policy applied when no current user is set
        default_user_id: Identity used by USE_DEFAULT_USER
    """

    model_config = ConfigDict(frozen=True)

    behavior_when_no_user: AuditingBehavior = Field(
        default=AuditingBehavior.SAVE_AS_NULL,
        description="Policy applied when no current user is available",
    )
    default_user_id: str | None = Field(
        default=DEFAULT_USER_ID,
        description="User id written under USE_DEFAULT_USER",
    )

    @model_validator(mode="after")
    def _check_default_user(self) -> AuditingConfiguration:
        if (
            self.behavior_when_no_user is AuditingBehavior.USE_DEFAULT_USER
            and not self.default_user_id
        ):
            raise ValueError(
                "default_user_id must be a non-empty string when "
                "behavior_when_no_user is USE_DEFAULT_USER"
            )
        return self

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> AuditingConfiguration:
        """
        Validate a settings mapping into a configuration.

        Raises:
            ConfigurationError: If the mapping is not a valid configuration
        """
        try:
            return cls.model_validate(settings)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid auditing configuration: {exc}") from exc

    @classmethod
    def default(cls) -> AuditingConfiguration:
        """Store NULL when no user is available."""
        return cls()

    @classmethod
    def throw_on_missing_user(cls) -> AuditingConfiguration:
        return cls(behavior_when_no_user=AuditingBehavior.THROW_EXCEPTION)

    @classmethod
    def use_system_user(cls, user_id: str = DEFAULT_USER_ID) -> AuditingConfiguration:
        return cls.from_settings(
            {
                "behavior_when_no_user": AuditingBehavior.USE_DEFAULT_USER,
                "default_user_id": user_id,
            }
        )

    @classmethod
    def skip_user_fields(cls) -> AuditingConfiguration:
        return cls(behavior_when_no_user=AuditingBehavior.SKIP_USER_FIELDS)


class AuditingFeatureProcessor(BaseFeatureProcessor):
    """
    Stamps audit timestamps and user fields on flush.

    Args:
        configuration: Auditing configuration (default: SAVE_AS_NULL)
        user_store: Store providing the current user id. Without a store no
            user is ever available.
        clock: Returns the current time; read once per flush
        tracer: Optional tracer (if not provided, one will be created)
        enable_tracing: Whether to enable OpenTelemetry tracing (default True)
    """

    def __init__(
        self,
        configuration: AuditingConfiguration | None = None,
        *,
        user_store: AmbientStore | None = None,
        clock: Callable[[], datetime] = utc_now,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self.configuration = configuration or AuditingConfiguration.default()
        self.user_store = user_store
        self._clock = clock
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    def on_model_creating_entity(self, mapper: Mapper[Any], entities: EntityRegistry) -> None:
        entity = mapper.class_
        if issubclass(entity, AuditableWithUserEntity):
            entities.register(entity, {EntityCapability.AUDIT, EntityCapability.AUDIT_USER})
        elif issubclass(entity, AuditableEntity):
            entities.register(entity, {EntityCapability.AUDIT})

    def current_user_id(self) -> str | None:
        if self.user_store is None:
            return None
        return self.user_store.get() or None

    def on_save_changes(self, session: ExtensibleSession) -> None:
        entities = session.entities
        added, modified = pending_changes(session)
        added = [o for o in added if entities.supports(type(o), EntityCapability.AUDIT)]
        modified = [o for o in modified if entities.supports(type(o), EntityCapability.AUDIT)]
        if not added and not modified:
            return

        user_id = self.current_user_id()
        behavior = self.configuration.behavior_when_no_user
        if user_id is None and behavior is AuditingBehavior.THROW_EXCEPTION:
            # Reject before touching any entity
            for obj in (*added, *modified):
                if entities.supports(type(obj), EntityCapability.AUDIT_USER):
                    logger.warning(
                        "Rejecting flush: no current user for %s", type(obj).__name__
                    )
                    raise CurrentUserRequiredError(type(obj).__name__)

        now = self._clock()
        with self._tracer.span(
            "dbfeatures.auditing.stamp",
            {
                ATTR_ENTITY_COUNT: len(added) + len(modified),
                ATTR_AUDITING_BEHAVIOR: behavior.value,
                ATTR_USER_ID: user_id or "",
            },
        ):
            for obj in added:
                obj.created_date = now
                obj.last_modified_date = now
                if entities.supports(type(obj), EntityCapability.AUDIT_USER):
                    self._stamp_user(obj, user_id, is_creation=True)
            for obj in modified:
                obj.last_modified_date = now
                if entities.supports(type(obj), EntityCapability.AUDIT_USER):
                    self._stamp_user(obj, user_id, is_creation=False)

        logger.debug(
            "Audited %d added and %d modified entities (user=%s)",
            len(added),
            len(modified),
            user_id,
        )

    def _stamp_user(self, obj: Any, user_id: str | None, *, is_creation: bool) -> None:
        if user_id is None:
            behavior = self.configuration.behavior_when_no_user
            if behavior is AuditingBehavior.SKIP_USER_FIELDS:
                return
            if behavior is AuditingBehavior.USE_DEFAULT_USER:
                user_id = self.configuration.default_user_id
            elif behavior is AuditingBehavior.THROW_EXCEPTION:
                raise CurrentUserRequiredError(type(obj).__name__)
            # SAVE_AS_NULL keeps user_id as None

        if is_creation:
            obj.created_by = user_id
        obj.modified_by = user_id


__all__ = [
    "DEFAULT_USER_ID",
    "utc_now",
    "AuditingBehavior",
    "AuditingConfiguration",
    "AuditingFeatureProcessor",
]
