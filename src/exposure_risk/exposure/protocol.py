"""Collaborator protocols consumed by the risk calculation.

The exposure notification platform, the key package download store and the
persistent risk state store live outside this package. The calculation
only depends on the narrow interfaces defined here.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from exposure_risk.exposure.channel import DetectionChannel
from exposure_risk.exposure.types import ExposureState

if TYPE_CHECKING:
    from exposure_risk.risk.store import PersistentRiskState


@runtime_checkable
class ExposureStateProvider(Protocol):
    """Source of the current exposure notification permission state."""

    def current_state(self) -> ExposureState:
        """Get a snapshot of the platform authorization and activation state."""
        ...


@runtime_checkable
class DownloadedPackagesStore(Protocol):
    """Store of downloaded diagnosis key packages, grouped by day."""

    def all_days(self) -> set[str]:
        """Get the identifiers of every day with a downloaded key package."""
        ...


@runtime_checkable
class ExposureDetectionTrigger(Protocol):
    """Starts an exposure detection run on the platform.

    Example implementation:
        class PlatformDetectionTrigger:
            def start_detection(self, channel: DetectionChannel) -> None:
                def on_done(summary, error):
                    if error is not None:
                        channel.publish_failure(DetectionFailureReason.NO_SUMMARY, str(error))
                    else:
                        channel.publish_summary(
                            ExposureDetectionSummary(maximum_risk_score=summary.max_score)
                        )

                platform.detect_exposures(completion=on_done)
    """

    def start_detection(self, channel: DetectionChannel) -> None:
        """Start a detection run without waiting for it.

        The run must eventually publish exactly one summary or one failure on
        ``channel``. Signals published after the calculation gave up on the
        run are dropped.
        """
        ...


@runtime_checkable
class RiskStateStore(Protocol):
    """Durable storage for the risk state that survives restarts."""

    def load(self) -> "PersistentRiskState":
        """Read the current persistent risk state."""
        ...

    def save(self, state: "PersistentRiskState") -> None:
        """Replace the persistent risk state."""
        ...
