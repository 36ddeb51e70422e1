"""Freshness and duration policy checks.

Each check inspects one input and either returns a RiskLevel candidate or
None for "no objection". RiskPolicy runs the four checks in their fixed
order against a single snapshot and merges every candidate before the
caller decides whether to stop early.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from exposure_risk.exposure.types import ExposureState
from exposure_risk.risk.config import RiskCalculationConfig
from exposure_risk.risk.levels import BASELINE_RISK_LEVEL, RiskLevel, merge_risk_level
from exposure_risk.risk.tracing import TracingDurationMode, TracingStatusHistory
from exposure_risk.utils.timestamps import as_utc


class PolicyCheck(str, Enum):
    """Policy checks in the order they are applied."""

    PERMISSIONS = "permissions"
    DOWNLOADED_KEYS = "downloaded_keys"
    TRACING_DURATION = "tracing_duration"
    STALENESS = "staleness"


def check_permissions(state: ExposureState) -> RiskLevel | None:
    """INACTIVE unless exposure notification is authorized and enabled."""
    return None if state.is_good else RiskLevel.INACTIVE


def check_downloaded_keys(days: set[str]) -> RiskLevel | None:
    """UNKNOWN_INITIAL when no diagnosis key package has been downloaded."""
    return RiskLevel.UNKNOWN_INITIAL if not days else None


def check_tracing_duration(
    history: TracingStatusHistory,
    now: datetime,
    minimum: timedelta = timedelta(hours=24),
    mode: TracingDurationMode = TracingDurationMode.CUMULATIVE,
) -> RiskLevel | None:
    """UNKNOWN_INITIAL while tracing has been active for less than ``minimum``."""
    if history.active_duration(now, mode) < minimum:
        return RiskLevel.UNKNOWN_INITIAL
    return None


def check_staleness(
    last_detection: datetime | None,
    now: datetime,
    threshold: timedelta = timedelta(hours=24),
) -> RiskLevel | None:
    """Classify the age of the last exposure detection.

    Returns UNKNOWN_INITIAL if detection never ran, UNKNOWN_OUTDATED if the
    last run is at least ``threshold`` old (the boundary counts as outdated),
    and None otherwise.
    """
    if last_detection is None:
        return RiskLevel.UNKNOWN_INITIAL
    if as_utc(now) - as_utc(last_detection) >= threshold:
        return RiskLevel.UNKNOWN_OUTDATED
    return None


@dataclass(frozen=True)
class PolicySnapshot:
    """Inputs of one policy pass, captured once at the start of a run."""

    exposure_state: ExposureState
    downloaded_days: frozenset[str]
    tracing_history: TracingStatusHistory
    last_detection: datetime | None
    now: datetime


@dataclass
class PolicyEvaluation:
    """Outcome of a full policy pass."""

    risk_level: RiskLevel = BASELINE_RISK_LEVEL
    candidates: dict[PolicyCheck, RiskLevel | None] = field(default_factory=dict)

    @property
    def ends_calculation(self) -> bool:
        """Whether the merged level stops the run before detection."""
        return self.risk_level.ends_calculation

    @property
    def triggered_checks(self) -> list[PolicyCheck]:
        """Checks that produced a candidate, in evaluation order."""
        return [check for check, level in self.candidates.items() if level is not None]

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary."""
        return {
            check.value: level.value if level is not None else None
            for check, level in self.candidates.items()
        }


class RiskPolicy:
    """Applies the permission, key, tracing and staleness checks in order."""

    def __init__(self, config: RiskCalculationConfig | None = None) -> None:
        self.config = config or RiskCalculationConfig()

    def evaluate(
        self,
        snapshot: PolicySnapshot,
        start: RiskLevel = BASELINE_RISK_LEVEL,
    ) -> PolicyEvaluation:
        """Run every check against ``snapshot`` and merge the candidates."""
        candidates: dict[PolicyCheck, RiskLevel | None] = {
            PolicyCheck.PERMISSIONS: check_permissions(snapshot.exposure_state),
            PolicyCheck.DOWNLOADED_KEYS: check_downloaded_keys(set(snapshot.downloaded_days)),
            PolicyCheck.TRACING_DURATION: check_tracing_duration(
                snapshot.tracing_history,
                snapshot.now,
                minimum=self.config.minimum_tracing_duration,
                mode=self.config.tracing_duration_mode,
            ),
            PolicyCheck.STALENESS: check_staleness(
                snapshot.last_detection,
                snapshot.now,
                threshold=self.config.exposure_detection_stale_threshold,
            ),
        }

        level = start
        for candidate in candidates.values():
            level = merge_risk_level(level, candidate)

        return PolicyEvaluation(risk_level=level, candidates=candidates)
