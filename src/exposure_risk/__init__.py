"""exposure-risk: risk level calculation for an exposure notification client.

Determines the user's risk level from exposure notification permission
state, downloaded diagnosis keys, tracing duration, the freshness of the
last exposure detection, and the result of a new detection run.
"""

from exposure_risk.exposure import (
    DetectionChannel,
    DetectionFailure,
    DetectionFailureReason,
    ExposureDetectionSummary,
    ExposureState,
)
from exposure_risk.risk import (
    CalculationOutcome,
    CalculationResult,
    PersistentRiskState,
    RiskCalculationConfig,
    RiskExposureCalculation,
    RiskLevel,
    ThresholdScoreMapping,
)

__version__ = "0.1.0"

__all__ = [
    "CalculationOutcome",
    "CalculationResult",
    "DetectionChannel",
    "DetectionFailure",
    "DetectionFailureReason",
    "ExposureDetectionSummary",
    "ExposureState",
    "PersistentRiskState",
    "RiskCalculationConfig",
    "RiskExposureCalculation",
    "RiskLevel",
    "ThresholdScoreMapping",
    "__version__",
]
