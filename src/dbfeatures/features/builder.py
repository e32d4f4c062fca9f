"""
Feature selection for extensible sessions.

DbContextFeatures records which features a session factory enables and
turns them into feature processors. Use DbContextFeaturesBuilder, or one of
the presets, to create it.

Example:
    >>> features = (
    ...     DbContextFeaturesBuilder()
    ...     .enable_auditing(AuditingConfiguration.throw_on_missing_user())
    ...     .enable_identity()
    ...     .build()
    ... )
    >>> features.auditing_enabled
    True
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from dbfeatures.features.auditing import AuditingConfiguration, AuditingFeatureProcessor
from dbfeatures.features.identity import IdentityConfiguration, IdentityFeatureProcessor
from dbfeatures.features.multitenant import (
    MultiTenantConfiguration,
    MultiTenantFeatureProcessor,
)
from dbfeatures.features.processor import FeatureProcessor
from dbfeatures.observability import Tracer
from dbfeatures.stores.interface import AmbientStore


@dataclass(frozen=True)
class DbContextFeatures:
    """
    Enabled features and their configuration.

    Attributes:
        auditing_enabled: Whether auditable entities are stamped
        auditing: Auditing configuration
        identity_enabled: Whether the identity tables are declared
        identity: Identity table names
        multi_tenant: Multi-tenancy configuration, None when disabled
    """

    auditing_enabled: bool = False
    auditing: AuditingConfiguration = field(default_factory=AuditingConfiguration.default)
    identity_enabled: bool = False
    identity: IdentityConfiguration = field(default_factory=IdentityConfiguration)
    multi_tenant: MultiTenantConfiguration | None = None

    @classmethod
    def default(cls) -> DbContextFeatures:
        """No features enabled."""
        return cls()

    @classmethod
    def with_auditing(cls) -> DbContextFeatures:
        """Auditing with the default configuration."""
        return cls(auditing_enabled=True)

    @property
    def multi_tenant_enabled(self) -> bool:
        return self.multi_tenant is not None

    def create_processors(
        self,
        *,
        user_store: AmbientStore | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> list[FeatureProcessor]:
        """
        Create processors for the enabled features.

        Multi-tenancy comes first so auditing sees entities already stamped
        with their tenant.
        """
        processors: list[FeatureProcessor] = []
        if self.multi_tenant is not None:
            processors.append(
                MultiTenantFeatureProcessor(
                    self.multi_tenant, tracer=tracer, enable_tracing=enable_tracing
                )
            )
        if self.auditing_enabled:
            processors.append(
                AuditingFeatureProcessor(
                    self.auditing,
                    user_store=user_store,
                    tracer=tracer,
                    enable_tracing=enable_tracing,
                )
            )
        if self.identity_enabled:
            processors.append(IdentityFeatureProcessor(self.identity))
        return processors


class DbContextFeaturesBuilder:
    """Fluent builder for DbContextFeatures."""

    def __init__(self) -> None:
        self._features = DbContextFeatures()

    def enable_auditing(
        self, configuration: AuditingConfiguration | Mapping[str, Any] | None = None
    ) -> DbContextFeaturesBuilder:
        """
        Enable auditing.

        Args:
            configuration: Auditing configuration, or a mapping validated
                into one (e.g. loaded from settings)

        Raises:
            ConfigurationError: If the mapping is not a valid configuration
        """
        if configuration is None:
            configuration = AuditingConfiguration.default()
        elif not isinstance(configuration, AuditingConfiguration):
            configuration = AuditingConfiguration.from_settings(configuration)
        self._features = replace(
            self._features, auditing_enabled=True, auditing=configuration
        )
        return self

    def enable_identity(
        self, configuration: IdentityConfiguration | None = None
    ) -> DbContextFeaturesBuilder:
        self._features = replace(
            self._features,
            identity_enabled=True,
            identity=configuration or IdentityConfiguration(),
        )
        return self

    def enable_multi_tenant(
        self, configuration: MultiTenantConfiguration | None = None
    ) -> DbContextFeaturesBuilder:
        self._features = replace(
            self._features, multi_tenant=configuration or MultiTenantConfiguration()
        )
        return self

    def build(self) -> DbContextFeatures:
        return self._features


__all__ = ["DbContextFeatures", "DbContextFeaturesBuilder"]
