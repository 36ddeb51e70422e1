"""Exposure notification platform boundary: value types, signal channel, protocols."""

from exposure_risk.exposure.channel import DetectionChannel, Subscription
from exposure_risk.exposure.protocol import (
    DownloadedPackagesStore,
    ExposureDetectionTrigger,
    ExposureStateProvider,
    RiskStateStore,
)
from exposure_risk.exposure.types import (
    DetectionFailure,
    DetectionFailureReason,
    ExposureAuthorization,
    ExposureDetectionSummary,
    ExposureState,
)

__all__ = [
    "DetectionChannel",
    "DetectionFailure",
    "DetectionFailureReason",
    "DownloadedPackagesStore",
    "ExposureAuthorization",
    "ExposureDetectionSummary",
    "ExposureDetectionTrigger",
    "ExposureState",
    "ExposureStateProvider",
    "RiskStateStore",
    "Subscription",
]
