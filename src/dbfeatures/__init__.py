"""
dbfeatures - Multi-tenancy, auditing and identity tables for SQLAlchemy.

This library provides:
- Ambient tenant and current-user stores backed by contextvars
- Resolvers reading tenant and user from HTTP headers or claims
- ASGI middleware propagating them per request
- An extensible Session applying features on query and flush
- Session factories for discriminator and database-per-tenant setups
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("dbfeatures")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

# Entities
from dbfeatures.entities import (
    AuditableEntity,
    AuditableWithUserEntity,
    EntityCapability,
    EntityRegistry,
    TenantEntity,
)

# Exceptions
from dbfeatures.exceptions import (
    AuditingPolicyError,
    ConfigurationError,
    CurrentUserRequiredError,
    DbFeaturesError,
    TenantConfigurationError,
    TenantNotSetError,
)

# Registration helpers
from dbfeatures.extensions import use_current_user, use_multi_tenant

# Session factories
from dbfeatures.factory import ExtensibleSessionFactory, MultiTenantSessionFactory

# Features
from dbfeatures.features import (
    INCLUDE_ALL_TENANTS,
    AuditingBehavior,
    AuditingConfiguration,
    AuditingFeatureProcessor,
    BaseFeatureProcessor,
    DbContextFeatures,
    DbContextFeaturesBuilder,
    FeatureProcessor,
    IdentityConfiguration,
    IdentityFeatureProcessor,
    IdentityTables,
    MultiTenantByDatabaseBuilder,
    MultiTenantConfiguration,
    MultiTenantFeatureProcessor,
    MultiTenantStrategy,
)

# Middleware
from dbfeatures.middleware import (
    AmbientValueMiddleware,
    CurrentUserMiddleware,
    MultiTenantMiddleware,
    RequestContextMiddleware,
    get_current_connection,
)

# Resolvers
from dbfeatures.resolvers import (
    AmbientResolver,
    ClaimsCurrentUserResolver,
    ClaimsResolver,
    ClaimsTenantResolver,
    ClaimsUser,
    CurrentUserResolver,
    HttpHeaderCurrentUserResolver,
    HttpHeaderResolver,
    HttpHeaderTenantResolver,
    TenantResolver,
)

# Session
from dbfeatures.session import ExtensibleSession, build_model

# Stores
from dbfeatures.stores import (
    AmbientStore,
    ClaimsTenantStore,
    CurrentUserStore,
    InMemoryCurrentUserStore,
    InMemoryTenantStore,
    TenantStore,
    WritableAmbientStore,
    WritableCurrentUserStore,
    WritableTenantStore,
    get_current_tenant,
    get_current_user,
    get_required_tenant,
    tenant_scope,
    tenant_scope_sync,
    user_scope,
    user_scope_sync,
)

__all__ = [
    "__version__",
    # Exceptions
    "DbFeaturesError",
    "ConfigurationError",
    "TenantConfigurationError",
    "TenantNotSetError",
    "AuditingPolicyError",
    "CurrentUserRequiredError",
    # Stores
    "AmbientStore",
    "WritableAmbientStore",
    "TenantStore",
    "WritableTenantStore",
    "CurrentUserStore",
    "WritableCurrentUserStore",
    "InMemoryTenantStore",
    "InMemoryCurrentUserStore",
    "ClaimsTenantStore",
    "get_current_tenant",
    "get_required_tenant",
    "get_current_user",
    "tenant_scope",
    "tenant_scope_sync",
    "user_scope",
    "user_scope_sync",
    # Resolvers
    "AmbientResolver",
    "TenantResolver",
    "CurrentUserResolver",
    "HttpHeaderResolver",
    "HttpHeaderTenantResolver",
    "HttpHeaderCurrentUserResolver",
    "ClaimsResolver",
    "ClaimsTenantResolver",
    "ClaimsCurrentUserResolver",
    "ClaimsUser",
    # Middleware
    "AmbientValueMiddleware",
    "MultiTenantMiddleware",
    "CurrentUserMiddleware",
    "RequestContextMiddleware",
    "get_current_connection",
    "use_multi_tenant",
    "use_current_user",
    # Entities
    "TenantEntity",
    "AuditableEntity",
    "AuditableWithUserEntity",
    "EntityCapability",
    "EntityRegistry",
    # Features
    "FeatureProcessor",
    "BaseFeatureProcessor",
    "AuditingBehavior",
    "AuditingConfiguration",
    "AuditingFeatureProcessor",
    "IdentityConfiguration",
    "IdentityFeatureProcessor",
    "IdentityTables",
    "INCLUDE_ALL_TENANTS",
    "MultiTenantStrategy",
    "MultiTenantConfiguration",
    "MultiTenantByDatabaseBuilder",
    "MultiTenantFeatureProcessor",
    "DbContextFeatures",
    "DbContextFeaturesBuilder",
    # Session
    "ExtensibleSession",
    "build_model",
    "ExtensibleSessionFactory",
    "MultiTenantSessionFactory",
]
