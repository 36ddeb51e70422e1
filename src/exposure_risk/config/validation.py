"""Configuration validation for startup checks.

Validates that the risk calculation configuration is coherent before the
first calculation run is scheduled.

Usage:
    from exposure_risk.config.validation import validate_configuration

    errors = validate_configuration()
    for error in errors:
        logger.error(f"Configuration error: {error}")
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any

from exposure_risk.config.settings import Settings, get_settings
from exposure_risk.utils.exceptions import ConfigurationError, ScoreMappingError


logger = logging.getLogger("exposure_risk.config")

# Platforms rate-limit detection runs; anything below this is most likely a typo
MIN_REASONABLE_DETECTION_TIMEOUT = timedelta(seconds=5)
RECOMMENDED_MINIMUM_TRACING_DURATION = timedelta(hours=24)


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, calculation cannot run
    WARNING = "warning"  # Should be fixed, results may be misleading


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Validate application configuration.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []

    results.extend(_validate_risk_calculation(settings))
    results.extend(_validate_score_mapping(settings))
    results.extend(_validate_persistence(settings))
    results.extend(_validate_environment(settings))

    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors found.

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    warnings = [r for r in results if r.severity == ValidationSeverity.WARNING]
    for warning in warnings:
        logger.warning(str(warning))


# =============================================================================
# Validators
# =============================================================================


def _validate_risk_calculation(settings: Settings) -> list[ValidationResult]:
    """Validate calculation thresholds."""
    results: list[ValidationResult] = []
    config = settings.risk_calculation

    if config.detection_timeout < MIN_REASONABLE_DETECTION_TIMEOUT:
        results.append(
            ValidationResult(
                field="risk_calculation.detection_timeout",
                severity=ValidationSeverity.WARNING,
                message=f"Detection timeout {config.detection_timeout} is very short",
                suggestion="Exposure detection usually takes several seconds; use at least 5s",
            )
        )

    if config.detection_timeout >= config.exposure_detection_stale_threshold:
        results.append(
            ValidationResult(
                field="risk_calculation.detection_timeout",
                severity=ValidationSeverity.ERROR,
                message="Detection timeout is not shorter than the stale threshold",
                suggestion="A run waiting that long would always produce an outdated result",
            )
        )

    if config.minimum_tracing_duration < RECOMMENDED_MINIMUM_TRACING_DURATION:
        results.append(
            ValidationResult(
                field="risk_calculation.minimum_tracing_duration",
                severity=ValidationSeverity.WARNING,
                message=(
                    f"Minimum tracing duration {config.minimum_tracing_duration} "
                    "is below 24 hours"
                ),
                suggestion="Risk levels based on less than a day of tracing are unreliable",
            )
        )

    return results


def _validate_score_mapping(settings: Settings) -> list[ValidationResult]:
    """Validate the score-to-level bands."""
    results: list[ValidationResult] = []

    try:
        settings.score_mapping.to_mapping()
    except ScoreMappingError as e:
        results.append(
            ValidationResult(
                field="score_mapping.bands",
                severity=ValidationSeverity.ERROR,
                message=e.args[0],
                suggestion="Bands must start at 0 with increasing thresholds and levels",
            )
        )

    return results


def _validate_persistence(settings: Settings) -> list[ValidationResult]:
    """Validate risk state persistence."""
    results: list[ValidationResult] = []

    if settings.risk_state_path is None:
        severity = (
            ValidationSeverity.ERROR
            if settings.ENVIRONMENT == "production"
            else ValidationSeverity.WARNING
        )
        results.append(
            ValidationResult(
                field="risk_state_path",
                severity=severity,
                message="No risk state path configured - state will not survive restarts",
                suggestion="Set RISK_STATE_PATH to a writable JSON file location",
            )
        )
    elif not settings.risk_state_path.parent.exists():
        results.append(
            ValidationResult(
                field="risk_state_path",
                severity=ValidationSeverity.WARNING,
                message=f"Directory {settings.risk_state_path.parent} does not exist",
                suggestion="It will be created on first save",
            )
        )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    """Validate environment-specific settings."""
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.log_level == "DEBUG":
        results.append(
            ValidationResult(
                field="log_level",
                severity=ValidationSeverity.WARNING,
                message="DEBUG log level in production may expose exposure data",
                suggestion="Use INFO or WARNING for production",
            )
        )

    return results


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Get a summary of current configuration (safe for logging)."""
    if settings is None:
        settings = get_settings()

    config = settings.risk_calculation
    return {
        "environment": settings.ENVIRONMENT,
        "log_level": settings.log_level,
        "risk_state_configured": settings.risk_state_path is not None,
        "metrics_enabled": settings.metrics_enabled,
        "tracing_enabled": settings.tracing_enabled,
        "minimum_tracing_seconds": config.minimum_tracing_duration.total_seconds(),
        "stale_threshold_seconds": config.exposure_detection_stale_threshold.total_seconds(),
        "detection_timeout_seconds": config.detection_timeout.total_seconds(),
        "tracing_duration_mode": config.tracing_duration_mode.value,
        "score_bands": len(settings.score_mapping.bands),
    }
