"""Wiring of the risk calculation from application settings.

Usage:
    from exposure_risk.factory import configure, create_risk_calculation

    configure()
    calculation = create_risk_calculation(
        exposure_state_provider=platform,
        key_packages_store=packages,
        detection_trigger=platform,
    )
"""

from collections.abc import Callable
from datetime import datetime

from exposure_risk.config.settings import Settings, get_settings
from exposure_risk.config.validation import get_configuration_summary, validate_or_raise
from exposure_risk.core.logging import get_logger, setup_logging
from exposure_risk.exposure.protocol import (
    DownloadedPackagesStore,
    ExposureDetectionTrigger,
    ExposureStateProvider,
    RiskStateStore,
)
from exposure_risk.observability.metrics import MetricsConfig, create_metrics_manager
from exposure_risk.observability.tracing import TracingConfig, TracingManager
from exposure_risk.risk.calculation import RiskExposureCalculation
from exposure_risk.risk.store import InMemoryRiskStateStore, JsonFileRiskStateStore

logger = get_logger(__name__)


def configure(settings: Settings | None = None) -> TracingManager | None:
    """Validate settings and set up logging, metrics and tracing.

    Raises:
        ConfigurationError: If the settings contain errors.

    Returns:
        The tracing manager if tracing is enabled.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_json)
    validate_or_raise(settings)

    metrics = create_metrics_manager(MetricsConfig(enabled=settings.metrics_enabled))
    metrics.initialize(environment=settings.ENVIRONMENT)

    tracing: TracingManager | None = None
    if settings.tracing_enabled:
        tracing = TracingManager(TracingConfig(environment=settings.ENVIRONMENT))
        tracing.initialize()

    logger.info("exposure_risk_configured", **get_configuration_summary(settings))
    return tracing


def create_risk_store(settings: Settings | None = None) -> RiskStateStore:
    """Create the configured risk state store."""
    settings = settings or get_settings()
    if settings.risk_state_path is None:
        logger.warning("risk_state_not_persisted")
        return InMemoryRiskStateStore()
    return JsonFileRiskStateStore(settings.risk_state_path)


def create_risk_calculation(
    exposure_state_provider: ExposureStateProvider,
    key_packages_store: DownloadedPackagesStore,
    detection_trigger: ExposureDetectionTrigger,
    risk_store: RiskStateStore | None = None,
    settings: Settings | None = None,
    clock: Callable[[], datetime] | None = None,
) -> RiskExposureCalculation:
    """Create a risk calculation configured from settings.

    Raises:
        ScoreMappingError: If the configured score bands are not monotonic.
    """
    settings = settings or get_settings()
    return RiskExposureCalculation(
        exposure_state_provider=exposure_state_provider,
        key_packages_store=key_packages_store,
        risk_store=risk_store or create_risk_store(settings),
        detection_trigger=detection_trigger,
        config=settings.risk_calculation,
        score_mapping=settings.score_mapping.to_mapping(),
        clock=clock,
    )
