"""Unit tests for configuration validation."""

from datetime import timedelta
from pathlib import Path

import pytest

from exposure_risk.config.settings import Settings
from exposure_risk.config.validation import (
    ValidationResult,
    ValidationSeverity,
    get_configuration_summary,
    validate_configuration,
    validate_or_raise,
)
from exposure_risk.risk.config import RiskCalculationConfig, ScoreBandConfig, ScoreMappingConfig
from exposure_risk.risk.levels import RiskLevel
from exposure_risk.utils.exceptions import ConfigurationError


def fields(results: list[ValidationResult], severity: ValidationSeverity) -> list[str]:
    return [r.field for r in results if r.severity == severity]


class TestValidationResult:
    """Tests for ValidationResult class."""

    def test_validation_result_str_error(self):
        """Test string representation for error."""
        result = ValidationResult(
            field="TEST_FIELD",
            severity=ValidationSeverity.ERROR,
            message="Test error message",
        )
        text = str(result)
        assert "[ERROR]" in text
        assert "TEST_FIELD" in text
        assert "Test error message" in text

    def test_validation_result_str_with_suggestion(self):
        """Test string representation includes the suggestion."""
        result = ValidationResult(
            field="TEST_FIELD",
            severity=ValidationSeverity.WARNING,
            message="Test warning message",
            suggestion="Do something else",
        )
        text = str(result)
        assert "[WARNING]" in text
        assert "Suggestion: Do something else" in text


class TestValidateRiskCalculation:
    """Tests for risk calculation threshold checks."""

    def test_defaults_are_valid(self, tmp_path: Path):
        """Test default thresholds produce no findings."""
        settings = Settings(risk_state_path=tmp_path / "state.json")

        assert validate_configuration(settings) == []

    def test_short_timeout_warns(self, tmp_path: Path):
        """Test a timeout below five seconds is a warning."""
        settings = Settings(
            risk_state_path=tmp_path / "state.json",
            risk_calculation=RiskCalculationConfig(detection_timeout=timedelta(seconds=1)),
        )

        results = validate_configuration(settings)

        assert fields(results, ValidationSeverity.WARNING) == ["risk_calculation.detection_timeout"]
        assert fields(results, ValidationSeverity.ERROR) == []

    def test_timeout_not_shorter_than_stale_threshold(self, tmp_path: Path):
        """Test a timeout as long as the stale threshold is an error."""
        settings = Settings(
            risk_state_path=tmp_path / "state.json",
            risk_calculation=RiskCalculationConfig(
                detection_timeout=timedelta(hours=1),
                exposure_detection_stale_threshold=timedelta(hours=1),
            ),
        )

        results = validate_configuration(settings)

        assert fields(results, ValidationSeverity.ERROR) == ["risk_calculation.detection_timeout"]

    def test_short_minimum_tracing_warns(self, tmp_path: Path):
        """Test a minimum tracing duration below a day is a warning."""
        settings = Settings(
            risk_state_path=tmp_path / "state.json",
            risk_calculation=RiskCalculationConfig(minimum_tracing_duration=timedelta(hours=2)),
        )

        results = validate_configuration(settings)

        assert fields(results, ValidationSeverity.WARNING) == [
            "risk_calculation.minimum_tracing_duration"
        ]


class TestValidateScoreMapping:
    """Tests for score band checks."""

    def test_non_monotonic_bands(self, tmp_path: Path):
        """Test decreasing band levels are an error."""
        settings = Settings(
            risk_state_path=tmp_path / "state.json",
            score_mapping=ScoreMappingConfig(
                bands=[
                    ScoreBandConfig(min_score=0, level=RiskLevel.HIGH),
                    ScoreBandConfig(min_score=30, level=RiskLevel.LOW),
                ]
            ),
        )

        results = validate_configuration(settings)

        assert fields(results, ValidationSeverity.ERROR) == ["score_mapping.bands"]

    def test_band_not_starting_at_zero(self, tmp_path: Path):
        """Test bands leaving low scores unmapped are an error."""
        settings = Settings(
            risk_state_path=tmp_path / "state.json",
            score_mapping=ScoreMappingConfig(
                bands=[ScoreBandConfig(min_score=10, level=RiskLevel.LOW)]
            ),
        )

        results = validate_configuration(settings)

        assert any("start at score 0" in r.message for r in results)


class TestValidatePersistence:
    """Tests for risk state persistence checks."""

    def test_missing_path_in_development(self):
        """Test a missing state path is only a warning outside production."""
        results = validate_configuration(Settings(ENVIRONMENT="development"))

        assert fields(results, ValidationSeverity.WARNING) == ["risk_state_path"]
        assert fields(results, ValidationSeverity.ERROR) == []

    def test_missing_path_in_production(self):
        """Test a missing state path is an error in production."""
        results = validate_configuration(Settings(ENVIRONMENT="production"))

        assert fields(results, ValidationSeverity.ERROR) == ["risk_state_path"]

    def test_missing_parent_directory(self, tmp_path: Path):
        """Test a missing parent directory is a warning."""
        settings = Settings(risk_state_path=tmp_path / "missing" / "state.json")

        results = validate_configuration(settings)

        assert fields(results, ValidationSeverity.WARNING) == ["risk_state_path"]


class TestValidateEnvironment:
    """Tests for environment-specific checks."""

    def test_debug_in_production(self, tmp_path: Path):
        """Test DEBUG logging in production is a warning."""
        settings = Settings(
            ENVIRONMENT="production",
            log_level="DEBUG",
            risk_state_path=tmp_path / "state.json",
        )

        results = validate_configuration(settings)

        assert fields(results, ValidationSeverity.WARNING) == ["log_level"]


class TestValidateOrRaise:
    """Tests for validate_or_raise."""

    def test_raises_on_errors(self):
        """Test errors raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="risk_state_path"):
            validate_or_raise(Settings(ENVIRONMENT="production"))

    def test_warnings_are_logged(self, caplog: pytest.LogCaptureFixture):
        """Test warnings are logged instead of raised."""
        with caplog.at_level("WARNING", logger="exposure_risk.config"):
            validate_or_raise(Settings(ENVIRONMENT="development"))

        assert any("risk_state_path" in record.getMessage() for record in caplog.records)


class TestConfigurationSummary:
    """Tests for get_configuration_summary."""

    def test_summary(self, tmp_path: Path):
        """Test summary contains the effective thresholds."""
        settings = Settings(ENVIRONMENT="test", risk_state_path=tmp_path / "state.json")

        summary = get_configuration_summary(settings)

        assert summary["environment"] == "test"
        assert summary["risk_state_configured"] is True
        assert summary["detection_timeout_seconds"] == 300.0
        assert summary["stale_threshold_seconds"] == 86400.0
        assert summary["tracing_duration_mode"] == "cumulative"
        assert summary["score_bands"] == 2
