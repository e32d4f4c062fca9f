"""Library exceptions for the dbfeatures package."""


class DbFeaturesError(Exception):
    """Base exception for dbfeatures library."""

    pass


class ConfigurationError(DbFeaturesError, ValueError):
    """Raised when features, tenants or stores are wired incorrectly."""

    pass


class TenantConfigurationError(ConfigurationError):
    """
    Raised when no database configuration exists for a tenant.

    This happens at session-creation time under the database-per-tenant
    strategy and is never retried.

    Attributes:
        tenant_id: The tenant that has no configuration
    """

    def __init__(self, tenant_id: str) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"No database configuration found for tenant: {tenant_id}")


class TenantNotSetError(DbFeaturesError):
    """
    Raised when a tenant is required but none is set.

    Solution: pass a tenant explicitly or set one with tenant_scope()
    or the MultiTenantMiddleware before creating a session.
    """

    def __init__(self) -> None:
        super().__init__(
            "Current tenant ID is not set. Use tenant_scope() or pass tenant_id "
            "explicitly before creating a multi-tenant session."
        )


class AuditingPolicyError(DbFeaturesError):
    """Raised when the auditing policy rejects a flush."""

    pass


class CurrentUserRequiredError(AuditingPolicyError):
    """
    Raised when auditing requires a current user and none is available.

    Only raised under AuditingBehavior.THROW_EXCEPTION. The flush is aborted
    before any row is written.

    Attributes:
        entity_type: Name of the entity class that triggered the rejection
    """

    def __init__(self, entity_type: str) -> None:
        self.entity_type = entity_type
        super().__init__(
            "Current user ID is required when AuditingBehavior.THROW_EXCEPTION "
            f"behavior is configured (entity: {entity_type})"
        )


__all__ = [
    "DbFeaturesError",
    "ConfigurationError",
    "TenantConfigurationError",
    "TenantNotSetError",
    "AuditingPolicyError",
    "CurrentUserRequiredError",
]
