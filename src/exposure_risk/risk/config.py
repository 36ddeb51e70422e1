"""Configuration models for the risk calculation."""

from datetime import timedelta

from pydantic import BaseModel, Field, field_validator

from exposure_risk.risk.levels import RiskLevel
from exposure_risk.risk.scoring import (
    DEFAULT_HIGH_RISK_MIN_SCORE,
    MAX_RISK_SCORE,
    MIN_RISK_SCORE,
    ScoreBand,
    ThresholdScoreMapping,
)
from exposure_risk.risk.tracing import TracingDurationMode

DEFAULT_MINIMUM_TRACING_DURATION = timedelta(hours=24)
DEFAULT_STALE_THRESHOLD = timedelta(hours=24)
DEFAULT_DETECTION_TIMEOUT = timedelta(minutes=5)


class RiskCalculationConfig(BaseModel):
    """Thresholds and limits for a risk calculation run."""

    minimum_tracing_duration: timedelta = DEFAULT_MINIMUM_TRACING_DURATION
    """Tracing must have been active this long before risk is determinable."""

    exposure_detection_stale_threshold: timedelta = DEFAULT_STALE_THRESHOLD
    """A last detection at least this old makes the risk level outdated."""

    detection_timeout: timedelta = DEFAULT_DETECTION_TIMEOUT
    """Maximum wait for an exposure detection run to signal its result."""

    tracing_duration_mode: TracingDurationMode = TracingDurationMode.CUMULATIVE
    """How active tracing time is measured for the tracing duration check."""

    @field_validator(
        "minimum_tracing_duration",
        "exposure_detection_stale_threshold",
        "detection_timeout",
    )
    @classmethod
    def _must_be_positive(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("duration must be positive")
        return value


class ScoreBandConfig(BaseModel):
    """A single score band: scores >= min_score map to level."""

    min_score: int = Field(ge=MIN_RISK_SCORE, le=MAX_RISK_SCORE)
    level: RiskLevel


def _default_band_configs() -> list[ScoreBandConfig]:
    return [
        ScoreBandConfig(min_score=MIN_RISK_SCORE, level=RiskLevel.LOW),
        ScoreBandConfig(min_score=DEFAULT_HIGH_RISK_MIN_SCORE, level=RiskLevel.HIGH),
    ]


class ScoreMappingConfig(BaseModel):
    """Configured score-to-level bands."""

    bands: list[ScoreBandConfig] = Field(default_factory=_default_band_configs)

    def to_mapping(self) -> ThresholdScoreMapping:
        """Build the score mapping. Raises ScoreMappingError if not monotonic."""
        return ThresholdScoreMapping(
            bands=tuple(ScoreBand(min_score=b.min_score, level=b.level) for b in self.bands)
        )
