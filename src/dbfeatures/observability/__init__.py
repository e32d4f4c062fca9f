"""
Observability utilities for dbfeatures.

Provides the composition-based Tracer used by feature processors and
middleware, plus standard attribute names.

Note:
    OpenTelemetry is an optional dependency. All utilities in this module
    gracefully handle the case where OpenTelemetry is not installed.
"""

from dbfeatures.observability.attributes import (
    ATTR_AMBIENT_KIND,
    ATTR_AMBIENT_RESOLVED,
    ATTR_AUDITING_BEHAVIOR,
    ATTR_ENTITY_COUNT,
    ATTR_MULTITENANT_STRATEGY,
    ATTR_TENANT_ID,
    ATTR_USER_ID,
)
from dbfeatures.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from dbfeatures.observability.tracing import OTEL_AVAILABLE, should_trace

__all__ = [
    # Availability
    "OTEL_AVAILABLE",
    "should_trace",
    # Tracer
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_TENANT_ID",
    "ATTR_USER_ID",
    "ATTR_AMBIENT_KIND",
    "ATTR_AMBIENT_RESOLVED",
    "ATTR_ENTITY_COUNT",
    "ATTR_AUDITING_BEHAVIOR",
    "ATTR_MULTITENANT_STRATEGY",
]
