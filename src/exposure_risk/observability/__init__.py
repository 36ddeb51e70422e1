"""Observability module for exposure-risk.

Provides Prometheus metrics for calculation runs and OpenTelemetry spans.

Usage:
    from exposure_risk.observability import TracingManager, TracingConfig

    TracingManager(TracingConfig(console_export=True)).initialize()

    from exposure_risk.observability import record_calculation

    record_calculation(outcome="success", risk_level="low", duration_seconds=1.2)
"""

from exposure_risk.observability.metrics import (
    ACTIVE_DETECTION_SUBSCRIPTIONS,
    DETECTION_FAILURE_COUNT,
    DETECTION_WAIT_DURATION,
    PENDING_CALCULATIONS,
    RISK_CALCULATION_COUNT,
    RISK_CALCULATION_DURATION,
    MetricsConfig,
    MetricsManager,
    create_metrics_manager,
    get_metrics,
    observe_detection_wait,
    record_calculation,
    record_detection_failure,
    set_active_subscriptions,
    set_pending_calculations,
)
from exposure_risk.observability.tracing import (
    SpanKindType,
    TracingConfig,
    TracingManager,
    add_span_attributes,
    add_span_event,
    get_current_span,
    get_tracer,
    record_exception,
    traced_async,
)

__all__ = [
    # Metrics
    "ACTIVE_DETECTION_SUBSCRIPTIONS",
    "DETECTION_FAILURE_COUNT",
    "DETECTION_WAIT_DURATION",
    "PENDING_CALCULATIONS",
    "RISK_CALCULATION_COUNT",
    "RISK_CALCULATION_DURATION",
    "MetricsConfig",
    "MetricsManager",
    "create_metrics_manager",
    "get_metrics",
    "observe_detection_wait",
    "record_calculation",
    "record_detection_failure",
    "set_active_subscriptions",
    "set_pending_calculations",
    # Tracing
    "SpanKindType",
    "TracingConfig",
    "TracingManager",
    "add_span_attributes",
    "add_span_event",
    "get_current_span",
    "get_tracer",
    "record_exception",
    "traced_async",
]
