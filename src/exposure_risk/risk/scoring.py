"""Mapping from exposure detection risk scores to risk levels.

An exposure detection summary carries the maximum risk score over all
matched exposures. The mapping from that score to a RiskLevel is policy
configured outside the calculation and injected into it, so it is expressed
as a protocol with a threshold-band default implementation.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from exposure_risk.risk.levels import RiskLevel
from exposure_risk.utils.exceptions import ScoreMappingError

# Exposure notification risk scores are unsigned bytes
MIN_RISK_SCORE = 0
MAX_RISK_SCORE = 255

DEFAULT_HIGH_RISK_MIN_SCORE = 15


@runtime_checkable
class RiskScoreMapping(Protocol):
    """Monotonic function from a numeric risk score to a RiskLevel."""

    def level_for_score(self, score: float) -> RiskLevel:
        """Get the risk level for a maximum risk score."""
        ...


@dataclass(frozen=True)
class ScoreBand:
    """Scores at or above ``min_score`` map to ``level`` until the next band."""

    min_score: int
    level: RiskLevel


def _default_bands() -> tuple[ScoreBand, ...]:
    return (
        ScoreBand(min_score=MIN_RISK_SCORE, level=RiskLevel.LOW),
        ScoreBand(min_score=DEFAULT_HIGH_RISK_MIN_SCORE, level=RiskLevel.HIGH),
    )


@dataclass(frozen=True)
class ThresholdScoreMapping:
    """Score mapping defined by ascending threshold bands.

    Bands must start at the minimum score, have strictly increasing
    ``min_score`` values and non-decreasing levels, and may only use
    determinable levels (LOW, HIGH).
    """

    bands: tuple[ScoreBand, ...] = field(default_factory=_default_bands)

    def __post_init__(self) -> None:
        described = [(band.min_score, band.level.value) for band in self.bands]
        if not self.bands:
            raise ScoreMappingError("At least one score band is required", described)
        if self.bands[0].min_score != MIN_RISK_SCORE:
            raise ScoreMappingError(
                f"First band must start at score {MIN_RISK_SCORE}", described
            )

        for band in self.bands:
            if not band.level.is_determinable:
                raise ScoreMappingError(
                    f"Band level {band.level.value} is not a determinable risk level",
                    described,
                )
            if band.min_score > MAX_RISK_SCORE:
                raise ScoreMappingError(
                    f"Band threshold {band.min_score} exceeds {MAX_RISK_SCORE}", described
                )

        for previous, current in zip(self.bands, self.bands[1:]):
            if current.min_score <= previous.min_score:
                raise ScoreMappingError("Band thresholds must be strictly increasing", described)
            if current.level < previous.level:
                raise ScoreMappingError("Band levels must not decrease", described)

    @classmethod
    def with_high_threshold(cls, high_risk_min_score: int) -> "ThresholdScoreMapping":
        """Create the usual two-band mapping (LOW below, HIGH at or above)."""
        return cls(
            bands=(
                ScoreBand(min_score=MIN_RISK_SCORE, level=RiskLevel.LOW),
                ScoreBand(min_score=high_risk_min_score, level=RiskLevel.HIGH),
            )
        )

    def level_for_score(self, score: float) -> RiskLevel:
        """Get the risk level for a maximum risk score.

        Raises:
            ValueError: If the score is negative.
        """
        if score < MIN_RISK_SCORE:
            raise ValueError(f"Risk score must not be negative: {score}")

        level = self.bands[0].level
        for band in self.bands:
            if score >= band.min_score:
                level = band.level
            else:
                break
        return level

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "bands": [
                {"min_score": band.min_score, "level": band.level.value} for band in self.bands
            ]
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ThresholdScoreMapping":
        """Create from dictionary."""
        if "bands" not in d:
            return cls()
        return cls(
            bands=tuple(
                ScoreBand(min_score=int(b["min_score"]), level=RiskLevel(b["level"]))
                for b in d["bands"]
            )
        )
