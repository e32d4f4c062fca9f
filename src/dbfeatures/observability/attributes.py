"""
Standard span attributes for dbfeatures.

These follow OpenTelemetry semantic conventions where applicable.

Example:
    >>> from dbfeatures.observability.attributes import ATTR_TENANT_ID
    >>>
    >>> with tracer.span("dbfeatures.multitenant.stamp", {ATTR_TENANT_ID: "acme"}):
    ...     pass
"""

# =============================================================================
# Ambient Value Attributes
# =============================================================================

ATTR_TENANT_ID = "dbfeatures.tenant.id"
"""Tenant identifier in effect for the operation."""

ATTR_USER_ID = "dbfeatures.user.id"
"""Current user identifier in effect for the operation."""

ATTR_AMBIENT_KIND = "dbfeatures.ambient.kind"
"""Which ambient value a middleware propagates ('tenant' or 'user')."""

ATTR_AMBIENT_RESOLVED = "dbfeatures.ambient.resolved"
"""Whether the resolver produced a non-empty value (boolean)."""

# =============================================================================
# Stamping Attributes
# =============================================================================

ATTR_ENTITY_COUNT = "dbfeatures.entity.count"
"""Number of entities stamped during a flush (integer)."""

ATTR_AUDITING_BEHAVIOR = "dbfeatures.auditing.behavior"
"""Configured behavior when no current user is available."""

ATTR_MULTITENANT_STRATEGY = "dbfeatures.multitenant.strategy"
"""Multi-tenancy strategy ('discriminator' or 'database')."""


__all__ = [
    "ATTR_TENANT_ID",
    "ATTR_USER_ID",
    "ATTR_AMBIENT_KIND",
    "ATTR_AMBIENT_RESOLVED",
    "ATTR_ENTITY_COUNT",
    "ATTR_AUDITING_BEHAVIOR",
    "ATTR_MULTITENANT_STRATEGY",
]
