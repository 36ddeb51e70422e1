"""Prometheus metrics for exposure-risk observability.

This module provides Prometheus metrics for monitoring:
- Risk calculation runs (outcome, resulting level, duration)
- Exposure detection failures (collaborator-reported vs. synthesized)
- Detection wait time and channel subscription leaks
- Calculation queue depth
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

__all__ = [
    "MetricsConfig",
    "MetricsManager",
    "RISK_CALCULATION_COUNT",
    "RISK_CALCULATION_DURATION",
    "DETECTION_FAILURE_COUNT",
    "DETECTION_WAIT_DURATION",
    "ACTIVE_DETECTION_SUBSCRIPTIONS",
    "PENDING_CALCULATIONS",
    "record_calculation",
    "record_detection_failure",
    "observe_detection_wait",
    "set_active_subscriptions",
    "set_pending_calculations",
    "get_metrics",
    "create_metrics_manager",
]


@dataclass
class MetricsConfig:
    """Configuration for Prometheus metrics.

    Attributes:
        enabled: Whether metrics collection is enabled.
        prefix: Prefix for all metric names.
        histogram_buckets: Histogram buckets for calculation latency.
    """

    enabled: bool = True
    prefix: str = "exposure_risk"
    histogram_buckets: tuple[float, ...] = (
        0.01,
        0.05,
        0.1,
        0.5,
        1.0,
        5.0,
        10.0,
        30.0,
        60.0,
        120.0,
        300.0,
    )

    @classmethod
    def from_env(cls) -> MetricsConfig:
        """Create configuration from environment variables."""
        return cls(
            enabled=os.getenv("METRICS_ENABLED", "true").lower() == "true",
            prefix=os.getenv("METRICS_PREFIX", "exposure_risk"),
        )


# Default configuration
_config = MetricsConfig()

# ============================================================================
# Risk Calculation Metrics
# ============================================================================

RISK_CALCULATION_COUNT = Counter(
    f"{_config.prefix}_calculations_total",
    "Total risk calculation runs by outcome and resulting level",
    ["outcome", "risk_level"],
)

RISK_CALCULATION_DURATION = Histogram(
    f"{_config.prefix}_calculation_duration_seconds",
    "Time from start to completion of a risk calculation run",
    ["outcome"],
    buckets=_config.histogram_buckets,
)

PENDING_CALCULATIONS = Gauge(
    f"{_config.prefix}_pending_calculations",
    "Number of calculation runs started but not yet completed",
)

# ============================================================================
# Exposure Detection Metrics
# ============================================================================

DETECTION_FAILURE_COUNT = Counter(
    f"{_config.prefix}_detection_failures_total",
    "Exposure detection failures by reason",
    ["reason", "synthesized"],
)

DETECTION_WAIT_DURATION = Histogram(
    f"{_config.prefix}_detection_wait_seconds",
    "Time spent waiting for an exposure detection signal",
    buckets=_config.histogram_buckets,
)

ACTIVE_DETECTION_SUBSCRIPTIONS = Gauge(
    f"{_config.prefix}_detection_subscriptions_active",
    "Detection channel handlers currently registered",
)

# Service info
SERVICE_INFO = Info(
    f"{_config.prefix}_service",
    "Service information",
)


class MetricsManager:
    """Manages Prometheus metrics configuration and export."""

    def __init__(
        self,
        config: MetricsConfig | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        """Initialize the metrics manager.

        Args:
            config: Metrics configuration.
            registry: Optional custom registry for testing.
        """
        self.config = config or MetricsConfig()
        self.registry = registry or REGISTRY
        self._initialized = False

    def initialize(
        self,
        service_name: str = "exposure-risk",
        service_version: str = "0.1.0",
        environment: str = "development",
    ) -> None:
        """Initialize metrics with service information."""
        if self._initialized or not self.config.enabled:
            return

        SERVICE_INFO.info(
            {
                "name": service_name,
                "version": service_version,
                "environment": environment,
            }
        )

        self._initialized = True

    def get_metrics(self) -> bytes:
        """Generate metrics output in Prometheus format."""
        return generate_latest(self.registry)


# Global metrics manager
_metrics_manager: MetricsManager | None = None


def get_metrics_manager() -> MetricsManager:
    """Get the global metrics manager instance."""
    global _metrics_manager
    if _metrics_manager is None:
        _metrics_manager = MetricsManager()
    return _metrics_manager


def create_metrics_manager(
    config: MetricsConfig | None = None,
    registry: CollectorRegistry | None = None,
) -> MetricsManager:
    """Create and set the global metrics manager."""
    global _metrics_manager
    _metrics_manager = MetricsManager(config, registry)
    return _metrics_manager


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format."""
    return get_metrics_manager().get_metrics()


# ============================================================================
# Recording helpers
# ============================================================================


def record_calculation(outcome: str, risk_level: str | None, duration_seconds: float) -> None:
    """Record a completed risk calculation run.

    Args:
        outcome: "success", "early_exit" or "failure".
        risk_level: Resulting risk level value, if the run succeeded.
        duration_seconds: Run duration.
    """
    RISK_CALCULATION_COUNT.labels(outcome=outcome, risk_level=risk_level or "none").inc()
    RISK_CALCULATION_DURATION.labels(outcome=outcome).observe(duration_seconds)


def record_detection_failure(reason: str, synthesized: bool) -> None:
    """Record a detection failure, keeping synthesized reasons apart."""
    DETECTION_FAILURE_COUNT.labels(
        reason=reason, synthesized="true" if synthesized else "false"
    ).inc()


def observe_detection_wait(duration_seconds: float) -> None:
    """Record how long a run waited for its detection signal."""
    DETECTION_WAIT_DURATION.observe(duration_seconds)


def set_active_subscriptions(count: int) -> None:
    """Set the number of registered detection channel handlers."""
    ACTIVE_DETECTION_SUBSCRIPTIONS.set(count)


def set_pending_calculations(count: int) -> None:
    """Set the number of queued or running calculation runs."""
    PENDING_CALCULATIONS.set(count)
