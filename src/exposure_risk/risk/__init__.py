"""Risk level calculation: ordering, policy checks, detection handling, persistence."""

from exposure_risk.risk.levels import (
    BASELINE_RISK_LEVEL,
    RISK_LEVEL_ORDER,
    RiskLevel,
    max_risk_level,
    merge_risk_level,
)
from exposure_risk.risk.scoring import (
    MAX_RISK_SCORE,
    MIN_RISK_SCORE,
    RiskScoreMapping,
    ScoreBand,
    ThresholdScoreMapping,
)
from exposure_risk.risk.tracing import (
    TracingDurationMode,
    TracingStatusEntry,
    TracingStatusHistory,
)
from exposure_risk.risk.config import (
    RiskCalculationConfig,
    ScoreBandConfig,
    ScoreMappingConfig,
)
from exposure_risk.risk.policy import (
    PolicyCheck,
    PolicyEvaluation,
    PolicySnapshot,
    RiskPolicy,
    check_downloaded_keys,
    check_permissions,
    check_staleness,
    check_tracing_duration,
)
from exposure_risk.risk.store import (
    InMemoryRiskStateStore,
    JsonFileRiskStateStore,
    PersistentRiskState,
    record_tracing_status,
)
from exposure_risk.risk.result import CalculationOutcome, CalculationResult
from exposure_risk.risk.listener import ExposureSummaryListener
from exposure_risk.risk.calculation import (
    CalculationCompletion,
    RiskExposureCalculation,
    utc_now,
)

__all__ = [
    # Levels
    "BASELINE_RISK_LEVEL",
    "RISK_LEVEL_ORDER",
    "RiskLevel",
    "max_risk_level",
    "merge_risk_level",
    # Scoring
    "MAX_RISK_SCORE",
    "MIN_RISK_SCORE",
    "RiskScoreMapping",
    "ScoreBand",
    "ThresholdScoreMapping",
    # Tracing history
    "TracingDurationMode",
    "TracingStatusEntry",
    "TracingStatusHistory",
    # Configuration
    "RiskCalculationConfig",
    "ScoreBandConfig",
    "ScoreMappingConfig",
    # Policy
    "PolicyCheck",
    "PolicyEvaluation",
    "PolicySnapshot",
    "RiskPolicy",
    "check_downloaded_keys",
    "check_permissions",
    "check_staleness",
    "check_tracing_duration",
    # Persistence
    "InMemoryRiskStateStore",
    "JsonFileRiskStateStore",
    "PersistentRiskState",
    "record_tracing_status",
    # Calculation
    "CalculationCompletion",
    "CalculationOutcome",
    "CalculationResult",
    "ExposureSummaryListener",
    "RiskExposureCalculation",
    "utc_now",
]
