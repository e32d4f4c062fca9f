"""
OpenTelemetry availability check for dbfeatures.

OpenTelemetry is optional. This module is the single place that tries to
import it, so the rest of the library only looks at OTEL_AVAILABLE.
"""

from __future__ import annotations

# Optional OpenTelemetry import - single source of truth
try:
    from opentelemetry import trace

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False
    trace = None  # type: ignore[assignment]


def should_trace(enable_tracing: bool) -> bool:
    """Return True if tracing is enabled and OpenTelemetry is installed."""
    return enable_tracing and OTEL_AVAILABLE


__all__ = [
    "OTEL_AVAILABLE",
    "should_trace",
]
