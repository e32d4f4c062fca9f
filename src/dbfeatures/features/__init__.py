"""
Session features: multi-tenancy, auditing and identity tables.

- FeatureProcessor: the hooks a feature implements
- MultiTenantFeatureProcessor: tenant row filter and tenant stamping
- AuditingFeatureProcessor: timestamps and user fields on flush
- IdentityFeatureProcessor: user, role, claim, login and token tables
- DbContextFeatures / DbContextFeaturesBuilder: feature selection
"""

from dbfeatures.features.auditing import (
    DEFAULT_USER_ID,
    AuditingBehavior,
    AuditingConfiguration,
    AuditingFeatureProcessor,
    utc_now,
)
from dbfeatures.features.builder import DbContextFeatures, DbContextFeaturesBuilder
from dbfeatures.features.identity import (
    IdentityConfiguration,
    IdentityFeatureProcessor,
    IdentityTables,
    create_identity_tables,
)
from dbfeatures.features.multitenant import (
    INCLUDE_ALL_TENANTS,
    EngineConfigurator,
    MultiTenantByDatabaseBuilder,
    MultiTenantConfiguration,
    MultiTenantFeatureProcessor,
    MultiTenantStrategy,
)
from dbfeatures.features.processor import (
    BaseFeatureProcessor,
    FeatureProcessor,
    pending_changes,
)

__all__ = [
    # Protocol
    "FeatureProcessor",
    "BaseFeatureProcessor",
    "pending_changes",
    # Auditing
    "DEFAULT_USER_ID",
    "AuditingBehavior",
    "AuditingConfiguration",
    "AuditingFeatureProcessor",
    "utc_now",
    # Identity
    "IdentityConfiguration",
    "IdentityFeatureProcessor",
    "IdentityTables",
    "create_identity_tables",
    # Multi-tenancy
    "INCLUDE_ALL_TENANTS",
    "EngineConfigurator",
    "MultiTenantStrategy",
    "MultiTenantConfiguration",
    "MultiTenantByDatabaseBuilder",
    "MultiTenantFeatureProcessor",
    # Selection
    "DbContextFeatures",
    "DbContextFeaturesBuilder",
]
