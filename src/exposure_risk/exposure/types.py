"""Value types exchanged with the exposure notification platform."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ExposureAuthorization(str, Enum):
    """Platform authorization status for exposure notification."""

    UNKNOWN = "unknown"
    NOT_AUTHORIZED = "not_authorized"
    AUTHORIZED = "authorized"
    RESTRICTED = "restricted"


class ExposureState(BaseModel):
    """Snapshot of exposure notification permission and activation state."""

    model_config = ConfigDict(frozen=True)

    authorization: ExposureAuthorization = ExposureAuthorization.UNKNOWN
    enabled: bool = False

    @classmethod
    def good(cls) -> "ExposureState":
        """State of an authorized and enabled platform API."""
        return cls(authorization=ExposureAuthorization.AUTHORIZED, enabled=True)

    @property
    def is_good(self) -> bool:
        """Whether the platform API is authorized and enabled."""
        return self.authorization == ExposureAuthorization.AUTHORIZED and self.enabled


class ExposureDetectionSummary(BaseModel):
    """Summary produced by a successful exposure detection run."""

    model_config = ConfigDict(frozen=True)

    maximum_risk_score: float = Field(ge=0)
    matched_key_count: int = Field(default=0, ge=0)
    days_since_last_exposure: int | None = Field(default=None, ge=0)


class DetectionFailureReason(str, Enum):
    """Why a risk calculation ended without a detection summary.

    The first group is reported by the detection collaborator. The second
    group is produced by the calculation itself.
    """

    NO_EXPOSURE_MANAGER = "no_exposure_manager"
    NO_SUMMARY = "no_summary"
    NO_DAYS_AND_HOURS = "no_days_and_hours"
    NO_EXPOSURE_CONFIGURATION = "no_exposure_configuration"
    UNABLE_TO_WRITE_DIAGNOSIS_KEYS = "unable_to_write_diagnosis_keys"
    NOT_AUTHORIZED = "not_authorized"
    RATE_LIMITED = "rate_limited"
    INTERNAL_ERROR = "internal_error"

    TIMED_OUT = "timed_out"
    TRIGGER_FAILED = "trigger_failed"
    CANCELLED = "cancelled"

    @property
    def is_synthesized(self) -> bool:
        """Whether the reason was produced by the calculation, not the platform."""
        return self in _SYNTHESIZED_REASONS


_SYNTHESIZED_REASONS = frozenset(
    {
        DetectionFailureReason.TIMED_OUT,
        DetectionFailureReason.TRIGGER_FAILED,
        DetectionFailureReason.CANCELLED,
    }
)


class DetectionFailure(BaseModel):
    """Structured failure signal from an exposure detection run."""

    model_config = ConfigDict(frozen=True)

    reason: DetectionFailureReason
    detail: str | None = None
