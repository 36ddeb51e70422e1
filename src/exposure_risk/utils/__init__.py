"""Utility modules for exposure-risk."""

from exposure_risk.utils.exceptions import (
    ChannelClosedError,
    ConfigurationError,
    ExposureRiskError,
    RiskStoreError,
    ScoreMappingError,
)
from exposure_risk.utils.timestamps import as_utc

__all__ = [
    "ChannelClosedError",
    "ConfigurationError",
    "ExposureRiskError",
    "RiskStoreError",
    "ScoreMappingError",
    "as_utc",
]
